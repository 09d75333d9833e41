"""Guest chat message database model."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class SenderParty(StrEnum):
    """Which side of the guest chat authored a message."""

    GUEST = "GUEST"
    RECRUITER = "RECRUITER"


class GuestMessage(Base):
    """Append-only ledger entry of a guest chat session."""

    __tablename__ = "guest_chat_messages"
    __table_args__ = (
        Index("ix_guest_chat_messages_session_id_created_at_id", "session_id", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("guest_chat_sessions.id"), nullable=False
    )
    sender_party: Mapped[str] = mapped_column(String(20), nullable=False)
    sender_name: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
