"""Guest chat API router.

Recruiter endpoints need a bearer token; the guest endpoints are reached with
the session token in the path and nothing else.
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request, Response, status

from app.core.config import settings
from app.core.limiter import limiter
from app.dependencies import CurrentUser, get_current_user, get_guest_chat_service, require_recruiter
from app.models.guest_message import SenderParty
from app.schemas.guest_chat_schema import (
    ConversionResponse,
    CreateInvitationRequest,
    GuestChatViewResponse,
    GuestMessageResponse,
    GuestMessagesResponse,
    InvitationResponse,
    MarkReadResponse,
    SendGuestMessageRequest,
    SendRecruiterMessageRequest,
)
from app.schemas.response_schema import ApiResponse, error_responses, success_response
from app.services.guest_chat_service import GuestChatService
from app.services.invitation_notifier import notify_invitation_created
from app.services.polling_view import compute_etag, etag_matches

router = APIRouter(prefix="/api/v1/guest-chat", tags=["guest-chat"])

GuestChatServiceDep = Annotated[GuestChatService, Depends(get_guest_chat_service)]
RecruiterDep = Annotated[CurrentUser, Depends(require_recruiter)]


# --- Recruiter endpoints ---


@router.post(
    "/create",
    response_model=ApiResponse[InvitationResponse],
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(400, 401, 403),
)
async def create_invitation(
    body: CreateInvitationRequest,
    service: GuestChatServiceDep,
    recruiter: RecruiterDep,
    background_tasks: BackgroundTasks,
) -> dict:
    """Open a guest chat for one of the recruiter's jobs."""
    result = await service.create_invitation(recruiter.id, body)
    if body.guest_email:
        background_tasks.add_task(
            notify_invitation_created,
            guest_email=body.guest_email,
            guest_name=body.guest_name,
            guest_url=result.guest_url,
            expires_at=result.expires_at,
            job_id=body.job_id,
        )
    return success_response(result, status=201)


@router.post(
    "/{token}/recruiter-message",
    response_model=ApiResponse[GuestMessageResponse],
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(401, 403, 404, 410, 422),
)
async def send_recruiter_message(
    token: str,
    body: SendRecruiterMessageRequest,
    service: GuestChatServiceDep,
    recruiter: RecruiterDep,
) -> dict:
    """Reply to the guest; recruiter messages do not use the guest quota."""
    result = await service.send_message(
        token,
        body.content,
        SenderParty.RECRUITER,
        recruiter_id=recruiter.id,
    )
    return success_response(result, status=201)


@router.post(
    "/{token}/read",
    response_model=ApiResponse[MarkReadResponse],
    responses=error_responses(401, 403, 404),
)
async def mark_messages_read(
    token: str,
    service: GuestChatServiceDep,
    recruiter: RecruiterDep,
) -> dict:
    """Acknowledge the guest's messages."""
    result = await service.mark_messages_read(token, recruiter.id)
    return success_response(result)


@router.post(
    "/{token}/convert",
    response_model=ApiResponse[ConversionResponse],
    responses=error_responses(400, 401, 404),
)
async def convert_to_account(
    token: str,
    service: GuestChatServiceDep,
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    """Close the guest session once the guest has registered an account."""
    result = await service.convert_to_account(token, current_user.id)
    return success_response(result)


# --- Guest endpoints (public) ---


@router.get(
    "/{token}",
    response_model=ApiResponse[GuestChatViewResponse],
    responses=error_responses(404),
)
async def get_session_view(token: str, service: GuestChatServiceDep) -> dict:
    """Session, job and recruiter summary for the chat landing page."""
    result = await service.get_session_view(token)
    return success_response(result)


@router.get(
    "/{token}/messages",
    response_model=ApiResponse[GuestMessagesResponse],
    responses={304: {"description": "No change since the given ETag"}, **error_responses(404)},
)
async def list_messages(
    token: str,
    service: GuestChatServiceDep,
    response: Response,
    if_none_match: Annotated[str | None, Header()] = None,
) -> dict | Response:
    """Polled by both parties; answers 304 when nothing changed."""
    result = await service.list_messages(token)
    etag = compute_etag(result)
    headers = {"ETag": etag, "Cache-Control": "no-cache"}
    if etag_matches(if_none_match, etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)
    response.headers.update(headers)
    return success_response(result)


@router.post(
    "/{token}/message",
    response_model=ApiResponse[GuestMessageResponse],
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(403, 404, 409, 410, 422, 429),
)
@limiter.limit(settings.guest_chat.message_rate_limit)
async def send_guest_message(
    request: Request,
    token: str,
    body: SendGuestMessageRequest,
    service: GuestChatServiceDep,
) -> dict:
    """Send a message as the guest, counted against the session quota."""
    result = await service.send_message(
        token,
        body.content,
        SenderParty.GUEST,
        sender_name=body.sender_name,
    )
    return success_response(result, status=201)
