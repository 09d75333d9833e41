"""Append-only guest chat message ledger."""

from collections.abc import AsyncIterator
from datetime import datetime

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.guest_message import GuestMessage, SenderParty

DEFAULT_BATCH_SIZE = 200


class GuestMessageRepository:
    """Encapsulates guest chat message inserts and ordered reads."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        session_id: str,
        sender_party: SenderParty,
        sender_name: str,
        content: str,
        created_at: datetime,
    ) -> GuestMessage:
        """Insert one message at the end of a session's ledger.

        Content must already be validated by the caller.
        """
        message = GuestMessage(
            session_id=session_id,
            sender_party=sender_party.value,
            sender_name=sender_name,
            content=content,
            is_read=False,
            created_at=created_at,
        )
        self._session.add(message)
        await self._session.flush()
        await self._session.refresh(message)
        return message

    async def iter_by_session(
        self, session_id: str, batch_size: int = DEFAULT_BATCH_SIZE
    ) -> AsyncIterator[GuestMessage]:
        """Yield a session's messages ordered by (created_at, id).

        Pages through the ledger with a keyset cursor, so memory stays bounded
        and each call starts a fresh, finite pass.
        """
        cursor: tuple[datetime, int] | None = None
        while True:
            stmt = select(GuestMessage).where(GuestMessage.session_id == session_id)
            if cursor is not None:
                cursor_created_at, cursor_id = cursor
                stmt = stmt.where(
                    or_(
                        GuestMessage.created_at > cursor_created_at,
                        and_(
                            GuestMessage.created_at == cursor_created_at,
                            GuestMessage.id > cursor_id,
                        ),
                    )
                )
            stmt = stmt.order_by(
                GuestMessage.created_at.asc(),
                GuestMessage.id.asc(),
            ).limit(batch_size).execution_options(populate_existing=True)

            result = await self._session.execute(stmt)
            batch = list(result.scalars().all())
            for message in batch:
                yield message
            if len(batch) < batch_size:
                return
            last = batch[-1]
            cursor = (last.created_at, last.id)

    async def list_by_session(self, session_id: str) -> list[GuestMessage]:
        """Materialize the whole ordered ledger of a session."""
        return [message async for message in self.iter_by_session(session_id)]

    async def mark_read_for_party(
        self, session_id: str, sender_party: SenderParty
    ) -> int:
        """Acknowledge every unread message from one party; returns how many."""
        result = await self._session.execute(
            update(GuestMessage)
            .where(
                GuestMessage.session_id == session_id,
                GuestMessage.sender_party == sender_party.value,
                GuestMessage.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount)
