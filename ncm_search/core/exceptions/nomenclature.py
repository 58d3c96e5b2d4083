from fastapi.exceptions import HTTPException

"""
Nomenclature maintenance exceptions.
"""


class NomenclatureError(HTTPException):
    """
    Base class for nomenclature exceptions exposed over HTTP.
    """


class NomenclatureValidationError(NomenclatureError):
    """
    Raised when nomenclature payloads fail validation rules.
    """

    def __init__(self, detail: str = "Invalid nomenclature data.") -> None:
        super().__init__(status_code=400, detail=detail)


class NomenclatureNotFoundError(NomenclatureError):
    """
    Raised when a referenced tariff code is not stored.
    """

    def __init__(self, detail: str = "Nomenclature entry not found.") -> None:
        super().__init__(status_code=404, detail=detail)
