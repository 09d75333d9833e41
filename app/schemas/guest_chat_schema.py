"""Guest chat request and response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

GuestChatStatusLiteral = Literal["ACTIVE", "LIMIT_REACHED", "EXPIRED", "CONVERTED"]
SenderPartyLiteral = Literal["GUEST", "RECRUITER"]


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON with the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests ---


class CreateInvitationRequest(CamelModel):
    """Recruiter request to open a guest chat for one job."""

    job_id: int = Field(description="Job the conversation is about")
    guest_name: str | None = Field(default=None, max_length=100)
    guest_email: EmailStr | None = None
    max_messages: int = Field(description="Guest message quota")
    expires_at: datetime = Field(description="When the link stops working")

    @field_validator("guest_name")
    @classmethod
    def blank_name_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("guest_email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower().strip() if v else None


class SendGuestMessageRequest(CamelModel):
    """Message posted through the guest link."""

    # Length is checked by the quota guard so that it maps to MESSAGE_TOO_LONG.
    content: str
    sender_name: str | None = Field(default=None, max_length=100)


class SendRecruiterMessageRequest(CamelModel):
    """Reply posted by the owning recruiter."""

    content: str


# --- Responses ---


class InvitationResponse(CamelModel):
    """Shareable link for a freshly created guest chat."""

    model_config = ConfigDict(frozen=True)

    token: str
    guest_url: str
    expires_at: datetime
    max_messages: int


class GuestMessageResponse(CamelModel):
    """Single ledger entry as shown to either party."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    sender_party: SenderPartyLiteral
    sender_name: str
    content: str
    is_read: bool
    created_at: datetime


class SessionState(CamelModel):
    """Quota and lifecycle state returned alongside polled messages."""

    model_config = ConfigDict(frozen=True)

    message_count: int
    max_messages: int
    remaining_quota: int
    expires_at: datetime
    status: GuestChatStatusLiteral


class SessionSummary(SessionState):
    """Session details for the chat landing page."""

    id: str
    guest_name: str | None = None
    created_at: datetime


class JobSummary(CamelModel):
    """Job details shown to the guest."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    title: str
    description: str
    location: str | None = None


class RecruiterSummary(CamelModel):
    """Public face of the recruiter who opened the chat."""

    model_config = ConfigDict(frozen=True)

    name: str
    company_name: str | None = None


class GuestChatViewResponse(CamelModel):
    """Landing page payload for a guest chat link."""

    model_config = ConfigDict(frozen=True)

    session: SessionSummary
    job: JobSummary | None = None
    recruiter: RecruiterSummary | None = None
    poll_interval_seconds: int


class GuestMessagesResponse(CamelModel):
    """Polling payload: full ordered ledger plus session state."""

    model_config = ConfigDict(frozen=True)

    messages: list[GuestMessageResponse]
    session: SessionState


class ConversionResponse(CamelModel):
    """Outcome of converting a guest session to a full account."""

    model_config = ConfigDict(frozen=True)

    status: GuestChatStatusLiteral
    converted_user_id: int
    converted_at: datetime | None = None


class MarkReadResponse(CamelModel):
    """Number of guest messages newly acknowledged."""

    model_config = ConfigDict(frozen=True)

    updated: int
