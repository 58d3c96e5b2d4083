from fastapi.exceptions import HTTPException

"""
Search domain exceptions aligned with HTTP semantics.
"""


class SearchError(HTTPException):
    """
    Base class for search exceptions exposed over HTTP.
    """


class InvalidQueryError(SearchError):
    """
    Raised when a search request is rejected before any external call.

    :return: HTTP 400 exception for empty text or malformed limits
    """

    def __init__(self, detail: str = "Search query is invalid.") -> None:
        super().__init__(status_code=400, detail=detail)


class IndexQueryError(SearchError):
    """
    Raised when the similarity index cannot be queried.

    Search requests absorb it and continue with lexical matches only.
    """

    def __init__(self, detail: str = "Similarity index query failed.") -> None:
        super().__init__(status_code=503, detail=detail)
