"""Domain-specific configuration models."""

from app.core.settings.app_config import AppConfig
from app.core.settings.auth_config import AuthConfig
from app.core.settings.database_config import DatabaseConfig
from app.core.settings.guest_chat_config import GuestChatConfig
from app.core.settings.notification_config import NotificationConfig
from app.core.settings.redis_config import RedisConfig
from app.core.settings.server_config import ServerConfig

__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "GuestChatConfig",
    "NotificationConfig",
    "RedisConfig",
    "ServerConfig",
]
