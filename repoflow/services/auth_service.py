"""AuthService — Bearer JWT → caller identity.

Tokens are issued elsewhere; this service only verifies them. Without
``REPOFLOW_JWT_SECRET`` every caller is anonymous.
"""

import os
import uuid

from jose import JWTError, jwt

from repoflow.services import AuthenticationError

_ALGORITHM = "HS256"
_ENV_JWT_SECRET = "REPOFLOW_JWT_SECRET"


def _get_secret() -> str | None:
    return os.environ.get(_ENV_JWT_SECRET) or None


class AuthService:
    """Stateless JWT verification."""

    @property
    def enabled(self) -> bool:
        return _get_secret() is not None

    def user_id_from_token(self, token: str) -> uuid.UUID:
        """Decode an access token and return its ``sub`` as a UUID.

        Raises :class:`AuthenticationError` on a bad signature, an expired
        token, a missing or malformed ``sub``, or when auth is not configured.
        """
        secret = _get_secret()
        if secret is None:
            raise AuthenticationError("authentication is not configured")
        try:
            payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
        except JWTError:
            raise AuthenticationError("invalid access token")

        try:
            return uuid.UUID(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("invalid token payload")
