"""Invitation notification configuration."""

from pydantic import BaseModel


class NotificationConfig(BaseModel, frozen=True):
    """Outbound invitation webhook settings."""

    webhook_url: str | None
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        """Check if a webhook target is configured."""
        return bool(self.webhook_url)
