"""Guest chat session database model."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class GuestChatStatus(StrEnum):
    """Cached lifecycle status; re-derived on every access."""

    ACTIVE = "ACTIVE"
    LIMIT_REACHED = "LIMIT_REACHED"
    EXPIRED = "EXPIRED"
    CONVERTED = "CONVERTED"


class GuestChatSession(Base):
    """Token-addressed chat channel between a recruiter and a guest.

    ``id`` is the bearer token itself. Rows are never deleted; they only move
    to a terminal status.
    """

    __tablename__ = "guest_chat_sessions"
    __table_args__ = (
        CheckConstraint("max_messages > 0", name="ck_guest_chat_sessions_max_positive"),
        CheckConstraint(
            "message_count >= 0 AND message_count <= max_messages",
            name="ck_guest_chat_sessions_count_in_quota",
        ),
        Index("ix_guest_chat_sessions_recruiter_id_created_at", "recruiter_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_id: Mapped[int] = mapped_column(ForeignKey("jobs.id"), nullable=False, index=True)
    recruiter_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    guest_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    max_messages: Mapped[int] = mapped_column(nullable=False)
    message_count: Mapped[int] = mapped_column(nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GuestChatStatus.ACTIVE.value
    )
    converted_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    converted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
