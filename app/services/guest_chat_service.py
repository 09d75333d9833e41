"""Guest chat session lifecycle: issuance, viewing, messaging, conversion."""

from datetime import timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError,
    GuestChatNotFoundError,
    InvalidParametersError,
)
from app.core.security import generate_guest_token, token_hint
from app.core.settings import GuestChatConfig
from app.models.guest_chat_session import GuestChatSession, GuestChatStatus
from app.models.guest_message import SenderParty
from app.repositories.guest_message_repo import GuestMessageRepository
from app.repositories.guest_session_repo import GuestSessionRepository
from app.repositories.job_repo import JobRepository
from app.repositories.user_repo import UserRepository
from app.schemas.guest_chat_schema import (
    ConversionResponse,
    CreateInvitationRequest,
    GuestChatViewResponse,
    GuestMessageResponse,
    GuestMessagesResponse,
    InvitationResponse,
    JobSummary,
    MarkReadResponse,
    RecruiterSummary,
)
from app.services.polling_view import (
    build_messages_response,
    to_message_response,
    to_session_summary,
)
from app.services.quota_guard import QuotaGuard, as_utc

logger = structlog.get_logger()

DEFAULT_RECRUITER_NAME = "Recruiter"


class GuestChatService:
    """Orchestrates guest chat sessions on top of the quota guard."""

    def __init__(
        self,
        session_repo: GuestSessionRepository,
        message_repo: GuestMessageRepository,
        job_repo: JobRepository,
        user_repo: UserRepository,
        guard: QuotaGuard,
        db_session: AsyncSession,
        config: GuestChatConfig,
    ) -> None:
        self._sessions = session_repo
        self._messages = message_repo
        self._jobs = job_repo
        self._users = user_repo
        self._guard = guard
        self._db = db_session
        self._config = config

    async def create_invitation(
        self, recruiter_id: int, request: CreateInvitationRequest
    ) -> InvitationResponse:
        """Validate a recruiter's request and persist a new guest session."""
        now = self._guard.now()
        expires_at = as_utc(request.expires_at)

        if request.max_messages <= 0:
            raise InvalidParametersError("maxMessages must be a positive integer")
        allowed = self._config.allowed_max_messages_list
        if allowed and request.max_messages not in allowed:
            raise InvalidParametersError(
                f"maxMessages must be one of {', '.join(map(str, allowed))}"
            )
        if expires_at <= now:
            raise InvalidParametersError("expiresAt must be in the future")
        if expires_at > now + timedelta(days=self._config.max_expiry_days):
            raise InvalidParametersError(
                f"expiresAt must be within {self._config.max_expiry_days} days"
            )

        job = await self._jobs.find_by_id(request.job_id)
        if job is None or job.recruiter_id != recruiter_id:
            raise InvalidParametersError("Job not found")

        token = generate_guest_token()
        session = await self._sessions.create(
            token=token,
            job_id=job.id,
            recruiter_id=recruiter_id,
            max_messages=request.max_messages,
            expires_at=expires_at,
            created_at=now,
            guest_name=request.guest_name,
            guest_email=request.guest_email,
        )
        await self._db.commit()

        logger.info(
            "Guest chat session created",
            token=token_hint(token),
            job_id=job.id,
            recruiter_id=recruiter_id,
            max_messages=session.max_messages,
            expires_at=expires_at.isoformat(),
        )
        return InvitationResponse(
            token=token,
            guest_url=self._config.guest_url(token),
            expires_at=expires_at,
            max_messages=session.max_messages,
        )

    async def get_session_view(self, token: str) -> GuestChatViewResponse:
        """Landing page data; expired links look exactly like unknown ones."""
        session = await self._guard.load(token)
        status = await self._guard.refresh_status(session, self._guard.now())
        if status is GuestChatStatus.EXPIRED:
            raise GuestChatNotFoundError()

        job = await self._jobs.find_by_id(session.job_id)
        recruiter = await self._users.find_by_id(session.recruiter_id)

        return GuestChatViewResponse(
            session=to_session_summary(session, status),
            job=JobSummary.model_validate(job) if job else None,
            recruiter=(
                RecruiterSummary(
                    name=recruiter.username,
                    company_name=recruiter.company_name,
                )
                if recruiter
                else None
            ),
            poll_interval_seconds=self._config.poll_interval_seconds,
        )

    async def send_message(
        self,
        token: str,
        content: str,
        sender_party: SenderParty,
        sender_name: str | None = None,
        recruiter_id: int | None = None,
    ) -> GuestMessageResponse:
        """Post a message as the guest (metered) or the owning recruiter."""
        if sender_party is SenderParty.GUEST:
            name = (sender_name or "").strip() or None
            message = await self._guard.try_send_guest_message(token, content, name)
            return to_message_response(message)

        session = await self._load_owned(token, recruiter_id)
        recruiter = await self._users.find_by_id(session.recruiter_id)
        author = recruiter.username if recruiter else DEFAULT_RECRUITER_NAME
        message = await self._guard.try_send_recruiter_message(session, content, author)
        return to_message_response(message)

    async def list_messages(self, token: str) -> GuestMessagesResponse:
        """Polling read: the full ordered ledger plus fresh session state."""
        session = await self._guard.load(token)
        status = await self._guard.refresh_status(session, self._guard.now())
        messages = await self._messages.list_by_session(session.id)
        return build_messages_response(session, status, messages)

    async def convert_to_account(
        self, token: str, new_user_id: int
    ) -> ConversionResponse:
        """Close the session because the guest registered; idempotent per user."""
        session = await self._guard.load(token)
        if session.status != GuestChatStatus.CONVERTED:
            applied = await self._sessions.mark_converted(
                token, new_user_id, self._guard.now()
            )
            await self._db.commit()
            session = await self._guard.load(token)
            if applied:
                logger.info(
                    "Guest chat session converted",
                    token=token_hint(token),
                    user_id=new_user_id,
                )

        if session.converted_user_id != new_user_id:
            raise InvalidParametersError(
                "Session was already converted to a different account"
            )
        return ConversionResponse(
            status=GuestChatStatus.CONVERTED.value,
            converted_user_id=new_user_id,
            converted_at=as_utc(session.converted_at) if session.converted_at else None,
        )

    async def mark_messages_read(
        self, token: str, recruiter_id: int
    ) -> MarkReadResponse:
        """Recruiter acknowledgement of the guest's messages."""
        session = await self._load_owned(token, recruiter_id)
        updated = await self._messages.mark_read_for_party(
            session.id, SenderParty.GUEST
        )
        await self._db.commit()
        return MarkReadResponse(updated=updated)

    async def _load_owned(
        self, token: str, recruiter_id: int | None
    ) -> GuestChatSession:
        session = await self._guard.load(token)
        if recruiter_id is None or session.recruiter_id != recruiter_id:
            raise AuthorizationError(
                message="Not authorized to act on this guest chat"
            )
        return session
