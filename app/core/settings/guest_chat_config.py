"""Guest chat engine configuration."""

from pydantic import BaseModel


class GuestChatConfig(BaseModel, frozen=True):
    """Guest chat quota, expiry, and link settings."""

    public_base_url: str
    allowed_max_messages: str
    max_expiry_days: int
    max_message_length: int
    max_send_attempts: int
    message_rate_limit: str
    poll_interval_seconds: int

    @property
    def allowed_max_messages_list(self) -> list[int]:
        """Get the curated quota choices as a sorted list of ints."""
        return sorted(
            int(value.strip())
            for value in self.allowed_max_messages.split(",")
            if value.strip()
        )

    def guest_url(self, token: str) -> str:
        """Build the shareable landing page URL for a session token."""
        return f"{self.public_base_url.rstrip('/')}/guest-chat/{token}"
