"""JWT token management for session authentication."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

import jwt
from pydantic import BaseModel, Field

from civicconnect.config import settings

logger = logging.getLogger("api.auth")


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str = Field(..., description="Subject (user ID)")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(..., description="Issued at time")
    jti: str = Field(..., description="JWT ID (unique token identifier)")


class JWTConfig(BaseModel):
    """JWT configuration."""

    secret_key: str
    algorithm: str = "HS256"
    expire_days: int = 7
    issuer: str = "civicconnect-api"
    audience: str = "civicconnect-mobile"


class JWTManager:
    """
    Issues and validates time-bounded bearer tokens.

    The token only carries the user's identity; the role is resolved from
    the database on every request so that it is never stale.
    """

    def __init__(self, config: Optional[JWTConfig] = None):
        self.config = config or JWTConfig(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            expire_days=settings.jwt_expire_days,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return self.config.expire_days * 24 * 60 * 60

    def create_access_token(self, subject: str, now: Optional[datetime] = None) -> str:
        """
        Create a new access token.

        Args:
            subject: User identifier
            now: Issue time, defaults to the current time

        Returns:
            Encoded JWT access token
        """
        now = now or datetime.now(timezone.utc)
        expire = now + timedelta(days=self.config.expire_days)

        payload = {
            "sub": subject,
            "exp": expire,
            "iat": now,
            "jti": str(uuid4()),
            "iss": self.config.issuer,
            "aud": self.config.audience,
        }

        return jwt.encode(payload, self.config.secret_key, algorithm=self.config.algorithm)

    def decode_token(self, token: str) -> Optional[TokenPayload]:
        """
        Decode and validate a JWT token.

        Returns:
            TokenPayload if valid, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                audience=self.config.audience,
                issuer=self.config.issuer,
                options={"require": ["sub", "exp", "iat"]},
            )

            return TokenPayload(
                sub=payload["sub"],
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                jti=payload.get("jti", ""),
            )

        except jwt.ExpiredSignatureError:
            logger.debug("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the JWT manager instance."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager
