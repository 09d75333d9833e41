"""Background task that hands guest invitations to the email webhook."""

from datetime import datetime

import httpx
import structlog

from app.core.config import settings

logger = structlog.get_logger()


async def notify_invitation_created(
    guest_email: str,
    guest_name: str | None,
    guest_url: str,
    expires_at: datetime,
    job_id: int,
) -> None:
    """Post the invitation to the notification webhook.

    Runs as a FastAPI BackgroundTask after the session has been committed.
    Failures are logged and never affect the created session.
    """
    config = settings.notification
    if not config.enabled:
        logger.info("Invitation notification skipped, no webhook configured", job_id=job_id)
        return

    payload = {
        "type": "guest_chat_invitation",
        "to": guest_email,
        "guestName": guest_name,
        "guestUrl": guest_url,
        "expiresAt": expires_at.isoformat(),
        "jobId": job_id,
    }
    try:
        async with httpx.AsyncClient(timeout=config.timeout_seconds) as client:
            response = await client.post(str(config.webhook_url), json=payload)
            response.raise_for_status()
        logger.info("Invitation notification delivered", job_id=job_id)
    except Exception:
        logger.exception("Failed to deliver invitation notification", job_id=job_id)
