"""Quota and expiry guard for guest chat sessions.

Status is never swept in the background. Every access recomputes it from the
stored counters, the expiry timestamp and the current time, and persists the
result only when it differs from what is stored. Guest message appends are
serialized through a compare-and-swap on the session's message counter.
"""

from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    EmptyMessageError,
    GuestChatNotFoundError,
    MessageTooLongError,
    QuotaExceededError,
    SendConflictError,
    SessionConvertedError,
    SessionExpiredError,
)
from app.core.security import is_well_formed_token, token_hint
from app.models.guest_chat_session import GuestChatSession, GuestChatStatus
from app.models.guest_message import GuestMessage, SenderParty
from app.repositories.guest_message_repo import GuestMessageRepository
from app.repositories.guest_session_repo import GuestSessionRepository

logger = structlog.get_logger()

Clock = Callable[[], datetime]

DEFAULT_GUEST_NAME = "Guest"
DEFAULT_MAX_SEND_ATTEMPTS = 3
DEFAULT_MAX_MESSAGE_LENGTH = 2000


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC (SQLite hands back naive values)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def evaluate_status(session: GuestChatSession, now: datetime) -> GuestChatStatus:
    """Derive the effective status of a session at ``now``.

    CONVERTED and EXPIRED are terminal once stored, whatever ``now`` says.
    Otherwise expiry wins over an exhausted quota, since an expired session
    must reject recruiters too.
    """
    if session.status == GuestChatStatus.CONVERTED:
        return GuestChatStatus.CONVERTED
    if session.status == GuestChatStatus.EXPIRED:
        return GuestChatStatus.EXPIRED
    if as_utc(now) >= as_utc(session.expires_at):
        return GuestChatStatus.EXPIRED
    if session.message_count >= session.max_messages:
        return GuestChatStatus.LIMIT_REACHED
    return GuestChatStatus.ACTIVE


def validate_content(
    content: str, max_length: int = DEFAULT_MAX_MESSAGE_LENGTH
) -> str:
    """Return the trimmed message text or raise a validation error."""
    text = content.strip()
    if not text:
        raise EmptyMessageError()
    if len(text) > max_length:
        raise MessageTooLongError(max_length)
    return text


class QuotaGuard:
    """Validates and commits message appends against quota and expiry."""

    def __init__(
        self,
        session_repo: GuestSessionRepository,
        message_repo: GuestMessageRepository,
        db_session: AsyncSession,
        clock: Clock = utcnow,
        max_send_attempts: int = DEFAULT_MAX_SEND_ATTEMPTS,
        max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH,
    ) -> None:
        self._sessions = session_repo
        self._messages = message_repo
        self._db = db_session
        self._clock = clock
        self._max_send_attempts = max_send_attempts
        self._max_message_length = max_message_length

    def now(self) -> datetime:
        return as_utc(self._clock())

    async def load(self, token: str) -> GuestChatSession:
        """Fetch a session, answering NotFound for unknown or malformed tokens."""
        if not is_well_formed_token(token):
            raise GuestChatNotFoundError()
        session = await self._sessions.find_by_token(token)
        if session is None:
            raise GuestChatNotFoundError()
        return session

    async def refresh_status(
        self, session: GuestChatSession, now: datetime
    ) -> GuestChatStatus:
        """Recompute the effective status and persist it if it changed.

        The write is conditional on the stored status, so racing callers that
        compute the same transition are harmless.
        """
        effective = evaluate_status(session, now)
        stored = GuestChatStatus(session.status)
        if effective is stored:
            return effective

        applied = await self._sessions.update_status(session.id, stored, effective)
        await self._db.commit()
        if applied:
            logger.info(
                "Guest chat status transition persisted",
                token=token_hint(session.id),
                from_status=stored.value,
                to_status=effective.value,
            )
        return effective

    async def try_send_guest_message(
        self, token: str, content: str, sender_name: str | None = None
    ) -> GuestMessage:
        """Append a guest message if the session is live and has quota left.

        Each attempt reloads the session and tries to move the counter from
        the value it observed. The counter bump and the ledger insert commit
        together; a lost race commits nothing and the attempt is retried.
        """
        text = validate_content(content, self._max_message_length)

        for attempt in range(1, self._max_send_attempts + 1):
            session = await self.load(token)
            now = self.now()
            status = await self.refresh_status(session, now)

            if status is GuestChatStatus.EXPIRED:
                raise SessionExpiredError()
            if status is GuestChatStatus.CONVERTED:
                raise SessionConvertedError()
            if session.message_count >= session.max_messages:
                raise QuotaExceededError()

            observed = session.message_count
            updated = await self._sessions.commit_append(token, observed)
            if updated is None:
                await self._db.rollback()
                logger.warning(
                    "Guest message counter conflict",
                    token=token_hint(token),
                    attempt=attempt,
                    observed_count=observed,
                )
                continue

            # The guest identity is recorded only alongside an accepted send.
            author = updated.guest_name or sender_name or DEFAULT_GUEST_NAME
            if updated.guest_name is None and sender_name:
                if await self._sessions.set_guest_identity(token, sender_name):
                    logger.info("Guest identity recorded", token=token_hint(token))

            message = await self._messages.append(
                session_id=token,
                sender_party=SenderParty.GUEST,
                sender_name=author,
                content=text,
                created_at=now,
            )
            await self._db.commit()

            logger.info(
                "Guest message sent",
                token=token_hint(token),
                message_id=message.id,
                message_count=updated.message_count,
                max_messages=updated.max_messages,
            )
            if updated.message_count >= updated.max_messages:
                logger.info(
                    "Guest message quota reached",
                    token=token_hint(token),
                    max_messages=updated.max_messages,
                )
            return message

        logger.warning(
            "Guest message send attempts exhausted",
            token=token_hint(token),
            attempts=self._max_send_attempts,
        )
        raise SendConflictError()

    async def try_send_recruiter_message(
        self, session: GuestChatSession, content: str, sender_name: str
    ) -> GuestMessage:
        """Append a recruiter reply; unmetered but refused once closed."""
        text = validate_content(content, self._max_message_length)
        now = self.now()
        status = await self.refresh_status(session, now)

        if status is GuestChatStatus.EXPIRED:
            raise SessionExpiredError()
        if status is GuestChatStatus.CONVERTED:
            raise SessionConvertedError()

        message = await self._messages.append(
            session_id=session.id,
            sender_party=SenderParty.RECRUITER,
            sender_name=sender_name,
            content=text,
            created_at=now,
        )
        await self._db.commit()

        logger.info(
            "Recruiter message sent",
            token=token_hint(session.id),
            message_id=message.id,
        )
        return message
