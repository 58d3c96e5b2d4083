from pydantic import BaseModel, ConfigDict, Field


class NomenclatureEntryDTO(BaseModel):
    """
    External representation of a nomenclature entry.
    """

    code: str = Field(...)
    description: str = Field(...)
    section: str = Field(default="")
    chapter: str = Field(default="")
    notes: str | None = Field(default=None)
    has_embedding: bool = Field(default=False, description="Whether the entry is searchable semantically")

    model_config = ConfigDict(from_attributes=True)


class NomenclatureSeedDTO(BaseModel):
    """
    One row of the nomenclature dataset to bulk load.
    """

    code: str = Field(..., description="Tariff code, dotted or bare digits")
    description: str = Field(..., description="Full description of the goods category")
    chapter: str | None = Field(default=None, description="Chapter; derived from the code when omitted")
    notes: str | None = Field(default=None, description="Auxiliary notes such as the AEC rate")


class NomenclatureSeedRequestDTO(BaseModel):
    entries: list[NomenclatureSeedDTO] = Field(..., min_length=1)


class SeedReportDTO(BaseModel):
    """
    Outcome of a bulk load.
    """

    inserted: int = Field(..., description="Entries written to storage")
    skipped_existing: int = Field(..., description="Codes already stored; left untouched")
    skipped_invalid: int = Field(..., description="Rows without code or description")
    skipped_duplicates: int = Field(..., description="Repeated codes within the payload")
    pending_embedding: list[str] = Field(
        default_factory=list,
        description="Inserted codes whose embedding chunk failed",
    )


class NomenclatureCorrectionDTO(BaseModel):
    """
    Administrative correction of an entry; omitted fields are kept.
    """

    description: str | None = Field(default=None)
    notes: str | None = Field(default=None)
