from fastapi.exceptions import HTTPException


class AuthenticationError(HTTPException):
    """
    Raised when a caller presents no token or an invalid one.

    :return: HTTP 401 exception carrying a Bearer challenge
    """

    def __init__(self, detail: str = "Not authenticated.") -> None:
        super().__init__(
            status_code=401,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
