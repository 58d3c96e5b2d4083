from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ncm_search.config import settings
from ncm_search.core.exceptions.auth import AuthenticationError
from ncm_search.core.security import AuthenticatedUser, decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """
    Reject unauthenticated callers before any route logic runs.

    :return: verified caller identity
    """

    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return decode_access_token(token=credentials.credentials, auth_settings=settings.auth)
