from pydantic import BaseModel, Field


class SearchRequestDTO(BaseModel):
    """
    Incoming NCM search payload.

    Limit and threshold are validated and clamped by the search engine.
    """

    query: str = Field(..., description="Product description or tariff code fragment")
    limit: int | None = Field(default=None, description="Maximum number of results")
    threshold: float | None = Field(default=None, description="Minimum semantic similarity, 0 to 1")
    skip_expansion: bool = Field(default=False, description="Embed and match the raw text without query expansion")


class SearchResultDTO(BaseModel):
    """
    Response item returned by the search endpoints.
    """

    code: str = Field(..., description="Tariff code of the matched entry")
    description: str = Field(..., description="Description of the matched entry")
    section: str = Field(default="", description="HS section of the entry")
    chapter: str = Field(default="", description="Chapter of the entry")
    score: float = Field(..., ge=0, le=1, description="Confidence where higher means closer match")
    match_type: str = Field(..., description="semantic or lexical")
