"""JWT verification configuration."""

from pydantic import BaseModel, SecretStr


class AuthConfig(BaseModel, frozen=True):
    """Settings for verifying bearer tokens issued by the auth service."""

    secret_key: SecretStr
    algorithm: str
    access_token_expire_minutes: int
