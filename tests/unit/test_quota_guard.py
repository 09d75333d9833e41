"""Tests for QuotaGuard and status evaluation."""

import asyncio
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
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
from app.core.security import generate_guest_token
from app.models.guest_chat_session import GuestChatSession, GuestChatStatus
from app.models.guest_message import SenderParty
from app.models.job import Job
from app.models.user import User
from app.repositories.guest_message_repo import GuestMessageRepository
from app.repositories.guest_session_repo import GuestSessionRepository
from app.services.quota_guard import (
    QuotaGuard,
    as_utc,
    evaluate_status,
    validate_content,
)
from tests.conftest import FakeClock

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _snapshot(**overrides: object) -> GuestChatSession:
    values: dict[str, object] = {
        "status": GuestChatStatus.ACTIVE.value,
        "expires_at": NOW + timedelta(hours=1),
        "message_count": 0,
        "max_messages": 3,
    }
    values.update(overrides)
    return GuestChatSession(**values)


class TestEvaluateStatus:
    def test_active(self) -> None:
        assert evaluate_status(_snapshot(), NOW) is GuestChatStatus.ACTIVE

    def test_limit_reached(self) -> None:
        session = _snapshot(message_count=3)
        assert evaluate_status(session, NOW) is GuestChatStatus.LIMIT_REACHED

    def test_expired_at_exact_instant(self) -> None:
        session = _snapshot(expires_at=NOW)
        assert evaluate_status(session, NOW) is GuestChatStatus.EXPIRED

    def test_expiry_wins_over_limit(self) -> None:
        session = _snapshot(message_count=3, expires_at=NOW - timedelta(seconds=1))
        assert evaluate_status(session, NOW) is GuestChatStatus.EXPIRED

    def test_converted_is_sticky(self) -> None:
        session = _snapshot(
            status=GuestChatStatus.CONVERTED.value,
            expires_at=NOW - timedelta(days=1),
            message_count=3,
        )
        assert evaluate_status(session, NOW) is GuestChatStatus.CONVERTED

    def test_stored_expired_is_sticky(self) -> None:
        session = _snapshot(status=GuestChatStatus.EXPIRED.value)
        assert evaluate_status(session, NOW) is GuestChatStatus.EXPIRED

    def test_naive_expiry_is_treated_as_utc(self) -> None:
        session = _snapshot(expires_at=datetime(2026, 3, 1, 8, 59))
        assert evaluate_status(session, NOW) is GuestChatStatus.EXPIRED

    def test_as_utc_converts_offsets(self) -> None:
        kst = datetime(2026, 3, 2, 3, 0, tzinfo=timezone(timedelta(hours=9)))
        assert as_utc(kst) == datetime(2026, 3, 1, 18, 0, tzinfo=UTC)


class TestValidateContent:
    def test_trims(self) -> None:
        assert validate_content("  hello  ") == "hello"

    def test_empty_rejected(self) -> None:
        with pytest.raises(EmptyMessageError):
            validate_content("")

    def test_whitespace_rejected(self) -> None:
        with pytest.raises(EmptyMessageError):
            validate_content(" \n\t ")

    def test_exact_limit_accepted(self) -> None:
        assert len(validate_content("x" * 2000)) == 2000

    def test_one_over_limit_rejected(self) -> None:
        with pytest.raises(MessageTooLongError):
            validate_content("x" * 2001)

    def test_length_checked_after_trim(self) -> None:
        assert len(validate_content("  " + "x" * 2000 + "  ")) == 2000


# --- Database-backed guard ---


@pytest.fixture
def guard(db_session: AsyncSession, clock: FakeClock) -> QuotaGuard:
    return QuotaGuard(
        session_repo=GuestSessionRepository(db_session),
        message_repo=GuestMessageRepository(db_session),
        db_session=db_session,
        clock=clock,
    )


async def _open_session(
    db_session: AsyncSession,
    job: Job,
    recruiter: User,
    max_messages: int = 3,
    expires_in: timedelta = timedelta(days=7),
) -> GuestChatSession:
    session = await GuestSessionRepository(db_session).create(
        token=generate_guest_token(),
        job_id=job.id,
        recruiter_id=recruiter.id,
        max_messages=max_messages,
        expires_at=NOW + expires_in,
        created_at=NOW,
    )
    await db_session.commit()
    return session


class TestLoad:
    async def test_malformed_token_is_not_found(self, guard: QuotaGuard) -> None:
        with pytest.raises(GuestChatNotFoundError):
            await guard.load("not-a-token")

    async def test_unknown_token_is_not_found(self, guard: QuotaGuard) -> None:
        with pytest.raises(GuestChatNotFoundError):
            await guard.load(generate_guest_token())


class TestGuestSends:
    async def test_quota_is_enforced(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(db_session, job, recruiter, max_messages=3)
        for text in ("one", "two", "three"):
            await guard.try_send_guest_message(chat.id, text)

        with pytest.raises(QuotaExceededError):
            await guard.try_send_guest_message(chat.id, "four")

        stored = await guard.load(chat.id)
        assert stored.message_count == 3
        assert stored.status == GuestChatStatus.LIMIT_REACHED
        messages = await GuestMessageRepository(db_session).list_by_session(chat.id)
        assert [m.content for m in messages] == ["one", "two", "three"]

    async def test_expired_session_rejects_and_persists_status(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
        clock: FakeClock,
    ) -> None:
        chat = await _open_session(
            db_session, job, recruiter, expires_in=timedelta(minutes=1)
        )
        clock.advance(minutes=2)

        with pytest.raises(SessionExpiredError):
            await guard.try_send_guest_message(chat.id, "too late")

        stored = await guard.load(chat.id)
        assert stored.status == GuestChatStatus.EXPIRED
        assert stored.message_count == 0

    async def test_lagging_clock_cannot_revive_expired_session(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
        clock: FakeClock,
    ) -> None:
        chat = await _open_session(
            db_session, job, recruiter, expires_in=timedelta(minutes=1)
        )
        clock.advance(hours=1)
        with pytest.raises(SessionExpiredError):
            await guard.try_send_guest_message(chat.id, "too late")

        lagging = QuotaGuard(
            session_repo=GuestSessionRepository(db_session),
            message_repo=GuestMessageRepository(db_session),
            db_session=db_session,
            clock=lambda: NOW,
        )
        with pytest.raises(SessionExpiredError):
            await lagging.try_send_guest_message(chat.id, "revived")

        stored = await guard.load(chat.id)
        assert stored.status == GuestChatStatus.EXPIRED
        assert stored.message_count == 0
        messages = await GuestMessageRepository(db_session).list_by_session(chat.id)
        assert messages == []

    async def test_rejected_send_does_not_record_identity(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
        clock: FakeClock,
    ) -> None:
        chat = await _open_session(
            db_session, job, recruiter, expires_in=timedelta(minutes=1)
        )
        clock.advance(minutes=2)

        with pytest.raises(SessionExpiredError):
            await guard.try_send_guest_message(chat.id, "hi", "Mallory")

        stored = await guard.load(chat.id)
        assert stored.guest_name is None

    async def test_accepted_send_records_identity_once(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(db_session, job, recruiter)
        first = await guard.try_send_guest_message(chat.id, "hi", "Alex")
        second = await guard.try_send_guest_message(chat.id, "again", "Sam")

        assert first.sender_name == "Alex"
        assert second.sender_name == "Alex"
        stored = await guard.load(chat.id)
        assert stored.guest_name == "Alex"

    async def test_converted_session_rejects(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(db_session, job, recruiter)
        await GuestSessionRepository(db_session).mark_converted(chat.id, recruiter.id, NOW)
        await db_session.commit()

        with pytest.raises(SessionConvertedError):
            await guard.try_send_guest_message(chat.id, "hello")

    async def test_invalid_content_does_not_use_quota(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(db_session, job, recruiter)
        with pytest.raises(EmptyMessageError):
            await guard.try_send_guest_message(chat.id, "   ")
        with pytest.raises(MessageTooLongError):
            await guard.try_send_guest_message(chat.id, "x" * 2001)

        stored = await guard.load(chat.id)
        assert stored.message_count == 0

    async def test_message_fields(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(db_session, job, recruiter)
        message = await guard.try_send_guest_message(chat.id, "  Hi there ", "Alex")
        assert message.content == "Hi there"
        assert message.sender_party == SenderParty.GUEST
        assert message.sender_name == "Alex"
        assert as_utc(message.created_at) == NOW

    async def test_default_guest_name(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(db_session, job, recruiter)
        message = await guard.try_send_guest_message(chat.id, "hello")
        assert message.sender_name == "Guest"


class TestRecruiterSends:
    async def test_recruiter_messages_are_unmetered(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(db_session, job, recruiter, max_messages=1)
        await guard.try_send_guest_message(chat.id, "only one")
        session = await guard.load(chat.id)

        reply = await guard.try_send_recruiter_message(session, "thanks!", "Dana")
        assert reply.sender_party == SenderParty.RECRUITER

        stored = await guard.load(chat.id)
        assert stored.message_count == 1
        assert stored.status == GuestChatStatus.LIMIT_REACHED

    async def test_recruiter_rejected_after_expiry(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
        clock: FakeClock,
    ) -> None:
        chat = await _open_session(
            db_session, job, recruiter, expires_in=timedelta(hours=1)
        )
        clock.advance(hours=1)
        session = await guard.load(chat.id)
        with pytest.raises(SessionExpiredError):
            await guard.try_send_recruiter_message(session, "hello?", "Dana")


# --- Concurrency against an in-memory store ---


@dataclass
class _Row:
    id: str
    status: str
    expires_at: datetime
    message_count: int
    max_messages: int
    guest_name: str | None = None


class _InMemorySessions:
    """Conditional-update store that yields between every read and write."""

    def __init__(self, row: _Row) -> None:
        self.row = row
        self.cas_calls = 0

    async def find_by_token(self, token: str) -> _Row | None:
        await asyncio.sleep(0)
        return replace(self.row) if token == self.row.id else None

    async def commit_append(self, token: str, expected: int) -> _Row | None:
        self.cas_calls += 1
        await asyncio.sleep(0)
        row = self.row
        if (
            row.message_count != expected
            or row.message_count >= row.max_messages
            or row.status != GuestChatStatus.ACTIVE
        ):
            return None
        row.message_count = expected + 1
        if row.message_count >= row.max_messages:
            row.status = GuestChatStatus.LIMIT_REACHED.value
        return replace(row)

    async def update_status(
        self, token: str, from_status: GuestChatStatus, to_status: GuestChatStatus
    ) -> bool:
        if self.row.status != from_status:
            return False
        self.row.status = to_status.value
        return True


class _AlwaysConflicting(_InMemorySessions):
    async def commit_append(self, token: str, expected: int) -> _Row | None:
        self.cas_calls += 1
        return None


class _InMemoryMessages:
    def __init__(self) -> None:
        self.appended: list[SimpleNamespace] = []

    async def append(self, **fields: object) -> SimpleNamespace:
        message = SimpleNamespace(id=len(self.appended) + 1, **fields)
        self.appended.append(message)
        return message


def _row(max_messages: int) -> _Row:
    return _Row(
        id=generate_guest_token(),
        status=GuestChatStatus.ACTIVE.value,
        expires_at=NOW + timedelta(days=1),
        message_count=0,
        max_messages=max_messages,
    )


class TestConcurrentSends:
    async def test_racing_guests_never_exceed_quota(self) -> None:
        quota = 5
        sessions = _InMemorySessions(_row(quota))
        messages = _InMemoryMessages()
        guard = QuotaGuard(
            session_repo=sessions,  # type: ignore[arg-type]
            message_repo=messages,  # type: ignore[arg-type]
            db_session=AsyncMock(),
            clock=lambda: NOW,
            max_send_attempts=2 * quota,
        )

        results = await asyncio.gather(
            *(
                guard.try_send_guest_message(sessions.row.id, f"msg {i}")
                for i in range(2 * quota)
            ),
            return_exceptions=True,
        )

        sent = [r for r in results if not isinstance(r, BaseException)]
        rejected = [r for r in results if isinstance(r, QuotaExceededError)]
        assert len(sent) == quota
        assert len(rejected) == quota
        assert len(messages.appended) == quota
        assert sessions.row.message_count == quota
        assert sessions.row.status == GuestChatStatus.LIMIT_REACHED
        # Losers retried, so more CAS attempts were made than messages stored.
        assert sessions.cas_calls > quota

    async def test_conflicts_surface_after_configured_attempts(self) -> None:
        sessions = _AlwaysConflicting(_row(10))
        db = AsyncMock()
        guard = QuotaGuard(
            session_repo=sessions,  # type: ignore[arg-type]
            message_repo=_InMemoryMessages(),  # type: ignore[arg-type]
            db_session=db,
            clock=lambda: NOW,
            max_send_attempts=4,
        )

        with pytest.raises(SendConflictError):
            await guard.try_send_guest_message(sessions.row.id, "hello")

        assert sessions.cas_calls == 4
        assert db.rollback.await_count == 4
        db.commit.assert_not_awaited()


class TestScenarios:
    async def test_two_message_quota(
        self,
        guard: QuotaGuard,
        db_session: AsyncSession,
        job: Job,
        recruiter: User,
    ) -> None:
        chat = await _open_session(
            db_session, job, recruiter, max_messages=2, expires_in=timedelta(hours=1)
        )

        await guard.try_send_guest_message(chat.id, "hi")
        stored = await guard.load(chat.id)
        assert stored.message_count == 1
        assert stored.status == GuestChatStatus.ACTIVE

        await guard.try_send_guest_message(chat.id, "there")
        stored = await guard.load(chat.id)
        assert stored.message_count == 2
        assert stored.status == GuestChatStatus.LIMIT_REACHED

        with pytest.raises(QuotaExceededError):
            await guard.try_send_guest_message(chat.id, "more")
