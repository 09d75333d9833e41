"""Database connection configuration."""

from pydantic import BaseModel, SecretStr


class DatabaseConfig(BaseModel, frozen=True):
    """Database connection and pool settings."""

    url: SecretStr
    pool_size: int
    max_overflow: int

    @property
    def is_sqlite(self) -> bool:
        return self.url.get_secret_value().startswith("sqlite")

    @property
    def async_url(self) -> str:
        """DB URL with utf8mb4 charset forced for MySQL."""
        base = self.url.get_secret_value()
        if base.startswith("mysql") and "?" not in base:
            return f"{base}?charset=utf8mb4"
        return base

    @property
    def engine_options(self) -> dict[str, int | bool]:
        """Pool keyword arguments for create_async_engine."""
        if self.is_sqlite:
            return {}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_recycle": 3600,
            "pool_pre_ping": True,
        }
