"""JWT token service.

Identity is verified by an external auth provider that issues HS256 bearer
tokens signed with the shared secret. Trove only validates the signature,
issuer and expiry and reads the ``user_id`` claim; ``create_access_token``
exists for local development and tests (``trove issue-token``).
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from trove.core.config import get_settings


class JWTError(Exception):
    """Base exception for JWT-related errors."""

    pass


class TokenExpiredError(JWTError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(JWTError):
    """Raised when a token is invalid."""

    pass


class JWTService:
    """Service for creating and validating access tokens."""

    ALGORITHM = "HS256"

    def __init__(self, secret_key: str | None = None, issuer: str | None = None) -> None:
        """Initialize the JWT service.

        Args:
            secret_key: Secret key for signing tokens. If not provided,
                        uses the configured secret key from settings.
            issuer: Expected issuer claim. Defaults to the configured issuer.
        """
        self._secret_key = secret_key
        self._issuer = issuer

    @property
    def secret_key(self) -> str:
        """Get the secret key for signing tokens."""
        if self._secret_key:
            return self._secret_key
        return get_settings().secret_key

    @property
    def issuer(self) -> str:
        if self._issuer:
            return self._issuer
        return get_settings().token_issuer

    def create_access_token(
        self,
        user_id: str,
        email: str | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create an access token.

        Args:
            user_id: The user's unique identifier.
            email: The user's email address, if known.
            expires_delta: Custom expiration time. Defaults to config value.

        Returns:
            Encoded JWT access token.
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=get_settings().access_token_expire_minutes)

        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "iss": self.issuer,
            "sub": user_id,
            "iat": now,
            "exp": now + expires_delta,
            "user_id": user_id,
            "type": "access",
        }
        if email:
            payload["email"] = email

        return jwt.encode(payload, self.secret_key, algorithm=self.ALGORITHM)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT token.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid.
        """
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.ALGORITHM],
                issuer=self.issuer,
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError("Invalid token") from e

    def validate_access_token(self, token: str) -> dict[str, Any]:
        """Validate that a token is an access token carrying a user id.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid, not an access token or has no user id.
        """
        payload = self.decode_token(token)
        if payload.get("type", "access") != "access":
            raise InvalidTokenError("Not an access token")
        if not (payload.get("user_id") or payload.get("sub")):
            raise InvalidTokenError("Token carries no user id")
        return payload


jwt_service = JWTService()
