"""Read model served to polling guest chat clients."""

import hashlib

from app.models.guest_chat_session import GuestChatSession, GuestChatStatus
from app.models.guest_message import GuestMessage
from app.schemas.guest_chat_schema import (
    GuestMessageResponse,
    GuestMessagesResponse,
    SessionState,
    SessionSummary,
)
from app.services.quota_guard import as_utc


def remaining_quota(session: GuestChatSession) -> int:
    return max(session.max_messages - session.message_count, 0)


def to_message_response(message: GuestMessage) -> GuestMessageResponse:
    return GuestMessageResponse(
        id=message.id,
        sender_party=message.sender_party,
        sender_name=message.sender_name,
        content=message.content,
        is_read=message.is_read,
        created_at=as_utc(message.created_at),
    )


def to_session_state(
    session: GuestChatSession, status: GuestChatStatus
) -> SessionState:
    return SessionState(
        message_count=session.message_count,
        max_messages=session.max_messages,
        remaining_quota=remaining_quota(session),
        expires_at=as_utc(session.expires_at),
        status=status.value,
    )


def to_session_summary(
    session: GuestChatSession, status: GuestChatStatus
) -> SessionSummary:
    return SessionSummary(
        id=session.id,
        guest_name=session.guest_name,
        message_count=session.message_count,
        max_messages=session.max_messages,
        remaining_quota=remaining_quota(session),
        expires_at=as_utc(session.expires_at),
        status=status.value,
        created_at=as_utc(session.created_at),
    )


def build_messages_response(
    session: GuestChatSession,
    status: GuestChatStatus,
    messages: list[GuestMessage],
) -> GuestMessagesResponse:
    """Assemble the poll payload from a session snapshot and its ledger."""
    return GuestMessagesResponse(
        messages=[to_message_response(m) for m in messages],
        session=to_session_state(session, status),
    )


def compute_etag(response: GuestMessagesResponse) -> str:
    """Strong validator derived only from the payload, so any worker agrees."""
    digest = hashlib.sha256(
        response.model_dump_json(by_alias=True).encode()
    ).hexdigest()
    return f'"{digest[:32]}"'


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """Evaluate an If-None-Match header against the current ETag."""
    if not if_none_match:
        return False
    candidates = [c.strip() for c in if_none_match.split(",")]
    for candidate in candidates:
        if candidate == "*":
            return True
        if candidate.removeprefix("W/") == etag:
            return True
    return False
