from pydantic import BaseModel, Field, field_validator


class InputFormDTO(BaseModel):
    """
    Free-form text to vectorize.
    """

    input: str = Field(..., description="Product description to embed")

    @field_validator('input', mode='after')
    @classmethod
    def validate_input(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('Input is empty')

        return value


class VectorDTO(BaseModel):
    """
    Dense vector representation of a textual payload.
    """

    embedding: list[float] = Field(..., description="Embedding vector")
    model: str = Field(..., description="Model that produced the vector")


class NomenclatureVectorizeRequestDTO(BaseModel):
    """
    Codes of entries that should receive fresh embeddings.
    """

    codes: list[str] = Field(..., description="Tariff codes to re-embed")


class NomenclatureVectorizeResultDTO(BaseModel):
    """
    Report about embedding refresh results.
    """

    processed_codes: list[str] = Field(..., description="Codes that now have embeddings")
    missing_codes: list[str] = Field(..., description="Codes not found in storage")
    failed_codes: list[str] = Field(
        default_factory=list,
        description="Codes whose embedding call failed; stored vectors are unchanged",
    )
