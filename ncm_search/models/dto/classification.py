from enum import Enum

from pydantic import BaseModel, Field


class ConfidenceLevel(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class ClassificationSource(str, Enum):
    semantic = "semantic"
    lexical = "lexical"
    suggested = "suggested"
    unclassified = "unclassified"


class InvoiceItemDTO(BaseModel):
    """
    An invoice line item awaiting tariff classification.
    """

    description: str = Field(..., description="Product description as printed on the invoice")
    suggested_ncm_code: str | None = Field(default=None, description="Code proposed upstream, if any")


class ClassifyRequestDTO(BaseModel):
    items: list[InvoiceItemDTO] = Field(..., min_length=1, max_length=1000)


class ItemClassificationDTO(BaseModel):
    """
    Classification outcome for one invoice item, in request order.
    """

    index: int = Field(..., description="Position of the item in the request")
    ncm_code: str | None = Field(default=None)
    description: str | None = Field(default=None, description="Nomenclature description of the code")
    score: float | None = Field(default=None, ge=0, le=1)
    confidence: ConfidenceLevel = Field(...)
    source: ClassificationSource = Field(...)
