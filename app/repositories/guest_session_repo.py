"""Guest chat session store with conditional (compare-and-swap) updates."""

from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.guest_chat_session import GuestChatSession, GuestChatStatus

TERMINAL_STATUSES = (GuestChatStatus.EXPIRED.value, GuestChatStatus.CONVERTED.value)


class GuestSessionRepository:
    """Encapsulates guest chat session queries.

    Every mutation is a single conditional UPDATE whose WHERE clause carries
    the expected prior state, so concurrent workers never need a lock.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        token: str,
        job_id: int,
        recruiter_id: int,
        max_messages: int,
        expires_at: datetime,
        created_at: datetime,
        guest_name: str | None = None,
        guest_email: str | None = None,
    ) -> GuestChatSession:
        """Insert a new ACTIVE session with an empty quota counter."""
        record = GuestChatSession(
            id=token,
            job_id=job_id,
            recruiter_id=recruiter_id,
            guest_name=guest_name,
            guest_email=guest_email,
            max_messages=max_messages,
            message_count=0,
            expires_at=expires_at,
            status=GuestChatStatus.ACTIVE.value,
            created_at=created_at,
        )
        self._session.add(record)
        await self._session.flush()
        await self._session.refresh(record)
        return record

    async def find_by_token(self, token: str) -> GuestChatSession | None:
        """Load the current stored state of a session."""
        result = await self._session.execute(
            select(GuestChatSession)
            .where(GuestChatSession.id == token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def commit_append(
        self, token: str, expected_message_count: int
    ) -> GuestChatSession | None:
        """Increment the guest message counter if nobody else did first.

        Succeeds only while the stored count still equals
        ``expected_message_count``, the quota has room, and the session is
        ACTIVE. Reaching the quota flips the status to LIMIT_REACHED in the
        same statement. Returns the updated session, or ``None`` on conflict.
        """
        new_count = expected_message_count + 1
        result = await self._session.execute(
            update(GuestChatSession)
            .where(
                GuestChatSession.id == token,
                GuestChatSession.message_count == expected_message_count,
                GuestChatSession.message_count < GuestChatSession.max_messages,
                GuestChatSession.status == GuestChatStatus.ACTIVE.value,
            )
            .values(
                message_count=new_count,
                status=case(
                    (
                        GuestChatSession.max_messages <= new_count,
                        GuestChatStatus.LIMIT_REACHED.value,
                    ),
                    else_=GuestChatSession.status,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.find_by_token(token)

    async def update_status(
        self,
        token: str,
        from_status: GuestChatStatus,
        to_status: GuestChatStatus,
    ) -> bool:
        """Persist a recomputed status; a no-op once another caller applied it.

        EXPIRED and CONVERTED rows are never moved by this call.
        """
        result = await self._session.execute(
            update(GuestChatSession)
            .where(
                GuestChatSession.id == token,
                GuestChatSession.status == from_status.value,
                GuestChatSession.status.not_in(TERMINAL_STATUSES),
            )
            .values(status=to_status.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_guest_identity(
        self, token: str, name: str, email: str | None = None
    ) -> bool:
        """Fill in the guest's name (and email) once; later calls are no-ops."""
        values: dict[str, Any] = {"guest_name": name}
        if email:
            values["guest_email"] = func.coalesce(GuestChatSession.guest_email, email)
        result = await self._session.execute(
            update(GuestChatSession)
            .where(
                GuestChatSession.id == token,
                GuestChatSession.guest_name.is_(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_converted(
        self, token: str, user_id: int, converted_at: datetime
    ) -> bool:
        """Move a session to CONVERTED unless it already is."""
        result = await self._session.execute(
            update(GuestChatSession)
            .where(
                GuestChatSession.id == token,
                GuestChatSession.status != GuestChatStatus.CONVERTED.value,
            )
            .values(
                status=GuestChatStatus.CONVERTED.value,
                converted_user_id=user_id,
                converted_at=converted_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
