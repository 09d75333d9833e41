"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    GuestChatConfig,
    NotificationConfig,
    RedisConfig,
    ServerConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.guest_chat.max_send_attempts).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = Field(
        default="guest-chat",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version reported by the API",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=8004,
        ge=1,
        le=65535,
        description="Server port",
    )
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins outside development",
    )

    # JWT Auth (tokens are issued by the account service; we only verify)
    jwt_secret_key: SecretStr = Field(
        description="JWT secret key shared with the account service",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    jwt_access_token_expire_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Access token lifetime, used when minting tokens for dev and tests",
    )

    # Database
    database_url: SecretStr = Field(
        description="Async database URL (mysql+aiomysql://...)",
    )
    database_pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Connection pool size",
    )
    database_max_overflow: int = Field(
        default=20,
        ge=0,
        le=100,
        description="Connections allowed beyond the pool size",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_blacklist_prefix: str = Field(
        default="token_blacklist:",
        description="Key prefix of revoked token ids",
    )

    # Guest chat
    guest_chat_public_base_url: str = Field(
        default="http://localhost:5173",
        description="Origin of the frontend that serves the guest chat page",
    )
    guest_chat_allowed_max_messages: str = Field(
        default="25,50,100,200",
        description="Comma-separated list of quota sizes a recruiter may grant",
    )
    guest_chat_max_expiry_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Longest lifetime a guest session may be created with",
    )
    guest_chat_max_message_length: int = Field(
        default=2000,
        ge=1,
        le=10000,
        description="Maximum characters per guest chat message",
    )
    guest_chat_max_send_attempts: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Compare-and-swap attempts before a send fails with a conflict",
    )
    guest_chat_message_rate_limit: str = Field(
        default="30/minute",
        description="Per-client rate limit of the unauthenticated send endpoint",
    )
    guest_chat_poll_interval_seconds: int = Field(
        default=5,
        ge=1,
        le=300,
        description="Poll interval advertised to guest chat clients",
    )

    # Notification
    notification_webhook_url: str | None = Field(
        default=None,
        description="Webhook that delivers guest invitation emails",
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Timeout for the invitation webhook call",
    )

    # --- Domain properties ---

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            version=self.app_version,
            env=self.app_env,
            debug=self.debug,
        )

    @cached_property
    def server(self) -> ServerConfig:
        """Server configuration."""
        return ServerConfig(
            host=self.host,
            port=self.port,
            cors_origins=self.cors_origins,
        )

    @cached_property
    def auth(self) -> AuthConfig:
        """JWT verification configuration."""
        return AuthConfig(
            secret_key=self.jwt_secret_key,
            algorithm=self.jwt_algorithm,
            access_token_expire_minutes=self.jwt_access_token_expire_minutes,
        )

    @cached_property
    def database(self) -> DatabaseConfig:
        """Database connection configuration."""
        return DatabaseConfig(
            url=self.database_url,
            pool_size=self.database_pool_size,
            max_overflow=self.database_max_overflow,
        )

    @cached_property
    def redis(self) -> RedisConfig:
        """Redis connection configuration."""
        return RedisConfig(
            url=self.redis_url,
            blacklist_prefix=self.redis_blacklist_prefix,
        )

    @cached_property
    def guest_chat(self) -> GuestChatConfig:
        """Guest chat engine configuration."""
        return GuestChatConfig(
            public_base_url=self.guest_chat_public_base_url,
            allowed_max_messages=self.guest_chat_allowed_max_messages,
            max_expiry_days=self.guest_chat_max_expiry_days,
            max_message_length=self.guest_chat_max_message_length,
            max_send_attempts=self.guest_chat_max_send_attempts,
            message_rate_limit=self.guest_chat_message_rate_limit,
            poll_interval_seconds=self.guest_chat_poll_interval_seconds,
        )

    @cached_property
    def notification(self) -> NotificationConfig:
        """Invitation notification configuration."""
        return NotificationConfig(
            webhook_url=self.notification_webhook_url,
            timeout_seconds=self.notification_timeout_seconds,
        )

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
