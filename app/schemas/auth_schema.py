"""Schemas for bearer tokens issued by the account service."""

from pydantic import BaseModel, ConfigDict


class TokenPayload(BaseModel):
    """Decoded JWT payload."""

    model_config = ConfigDict(frozen=True)

    sub: str
    email: str
    role: str
    type: str
    jti: str
    exp: int
