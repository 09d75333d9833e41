"""Global dependencies for the application."""

from collections.abc import Callable

from fastapi import Depends, Request
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_async_session
from app.core.exceptions import AuthenticationError, AuthorizationError
from app.repositories.guest_message_repo import GuestMessageRepository
from app.repositories.guest_session_repo import GuestSessionRepository
from app.repositories.job_repo import JobRepository
from app.repositories.user_repo import UserRepository
from app.services.guest_chat_service import GuestChatService
from app.services.quota_guard import Clock, QuotaGuard, utcnow

# --- Auth dependencies ---


class CurrentUser(BaseModel):
    """Authenticated user extracted from request state."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    role: str


def get_current_user(request: Request) -> CurrentUser:
    """Extract the authenticated user from middleware-populated state."""
    state = getattr(request, "state", None)
    user_id = getattr(state, "user_id", None) if state else None
    if user_id is None:
        raise AuthenticationError(message="Not authenticated")
    return CurrentUser(
        id=state.user_id,
        email=state.email,
        role=state.role,
    )


def require_role(*allowed_roles: str) -> Callable[..., CurrentUser]:
    """Dependency factory that enforces role-based access control."""

    def _check(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                message=f"Role '{current_user.role}' is not permitted"
            )
        return current_user

    return _check


require_recruiter = require_role("recruiter", "admin")


# --- Guest chat dependencies ---


def get_clock() -> Clock:
    """Time source for expiry decisions; overridden in tests."""
    return utcnow


def get_guest_session_repository(
    session: AsyncSession = Depends(get_async_session),
) -> GuestSessionRepository:
    """Get GuestSessionRepository bound to the current session."""
    return GuestSessionRepository(session)


def get_guest_message_repository(
    session: AsyncSession = Depends(get_async_session),
) -> GuestMessageRepository:
    """Get GuestMessageRepository bound to the current session."""
    return GuestMessageRepository(session)


def get_quota_guard(
    session_repo: GuestSessionRepository = Depends(get_guest_session_repository),
    message_repo: GuestMessageRepository = Depends(get_guest_message_repository),
    session: AsyncSession = Depends(get_async_session),
    clock: Clock = Depends(get_clock),
) -> QuotaGuard:
    """Get QuotaGuard configured from guest chat settings."""
    config = settings.guest_chat
    return QuotaGuard(
        session_repo=session_repo,
        message_repo=message_repo,
        db_session=session,
        clock=clock,
        max_send_attempts=config.max_send_attempts,
        max_message_length=config.max_message_length,
    )


def get_guest_chat_service(
    session_repo: GuestSessionRepository = Depends(get_guest_session_repository),
    message_repo: GuestMessageRepository = Depends(get_guest_message_repository),
    guard: QuotaGuard = Depends(get_quota_guard),
    session: AsyncSession = Depends(get_async_session),
) -> GuestChatService:
    """Get GuestChatService with all dependencies."""
    return GuestChatService(
        session_repo=session_repo,
        message_repo=message_repo,
        job_repo=JobRepository(session),
        user_repo=UserRepository(session),
        guard=guard,
        db_session=session,
        config=settings.guest_chat,
    )
