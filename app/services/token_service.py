"""JWT decoding for tokens issued by the account service."""

import uuid
from datetime import UTC, datetime, timedelta

import jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenError, TokenExpiredError
from app.schemas.auth_schema import TokenPayload


class TokenService:
    """Decode and mint HS256 access tokens shared with the account service.

    Minting only exists for local seeding and tests; production tokens come
    from the account service.
    """

    def __init__(self) -> None:
        self._secret = settings.auth.secret_key.get_secret_value()
        self._algorithm = settings.auth.algorithm

    def create_access_token(self, user_id: int, email: str, role: str) -> str:
        """Create a signed JWT access token."""
        now = datetime.now(UTC)
        expire = now + timedelta(minutes=settings.auth.access_token_expire_minutes)
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "type": "access",
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenPayload:
        """Decode and validate a JWT access token."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError from e

        try:
            return TokenPayload(
                sub=payload["sub"],
                email=payload["email"],
                role=payload["role"],
                type=payload["type"],
                jti=payload["jti"],
                exp=payload["exp"],
            )
        except KeyError as e:
            raise InvalidTokenError from e
