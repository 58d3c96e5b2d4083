from dataclasses import dataclass

import jwt

from ncm_search.config import AuthSettings
from ncm_search.core.exceptions.auth import AuthenticationError


@dataclass(frozen=True)
class AuthenticatedUser:
    """
    Caller identity taken from a verified access token.
    """

    id: str
    email: str | None = None
    role: str | None = None


def decode_access_token(token: str, auth_settings: AuthSettings) -> AuthenticatedUser:
    """
    Verify an access token issued by the auth backend.

    :param token: raw bearer token.
    :param auth_settings: secret, algorithm and expected audience.
    :return: identity of the caller.
    :raises AuthenticationError: when the token is expired, malformed or has no subject.
    """

    try:
        payload = jwt.decode(
            token,
            auth_settings.jwt_secret,
            algorithms=[auth_settings.algorithm],
            audience=auth_settings.audience or None,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError(detail="Token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError(detail=f"Invalid token: {exc}") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError(detail="Invalid token: missing user ID claim.")

    return AuthenticatedUser(id=str(subject), email=payload.get("email"), role=payload.get("role"))
