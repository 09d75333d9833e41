"""Redis connection configuration."""

from pydantic import BaseModel


class RedisConfig(BaseModel, frozen=True):
    """Redis connection settings for the token revocation blacklist."""

    url: str
    blacklist_prefix: str

    def blacklist_key(self, jti: str) -> str:
        return f"{self.blacklist_prefix}{jti}"
