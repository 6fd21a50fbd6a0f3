"""Activity logging for admin actions.

Every administrative mutation records who performed it, what was done and
the originating IP address in ``activity_log``.
"""
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from billingcore.config import settings
from billingcore.models.activity import Activity

logger = structlog.get_logger(__name__)


def get_client_ip(request: Request) -> Optional[str]:
    """
    Resolve the real client IP behind a proxy.

    Checks the trusted proxy header (``CF-Connecting-IP`` by default), then
    the first ``X-Forwarded-For`` entry, then the socket peer.
    """
    trusted = request.headers.get(settings.trusted_ip_header)
    if trusted:
        return trusted.strip()

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return request.client.host if request.client else None


async def record_activity(
    db: AsyncSession,
    name: str,
    context: str,
    actor: Optional[dict] = None,
    ip_address: Optional[str] = None,
) -> Activity:
    """
    Write an activity log entry.

    Args:
        db: Database session
        name: Action name (e.g., billingcore_add_credits)
        context: Human-readable description of the change
        actor: Decoded token of the acting admin
        ip_address: Originating IP address

    Returns:
        The stored activity entry
    """
    activity = Activity(
        user_uuid=actor.get("uuid") if actor else None,
        name=name,
        context=context,
        ip_address=ip_address,
    )

    db.add(activity)
    await db.flush()

    logger.info(
        "activity_recorded",
        name=name,
        actor_uuid=activity.user_uuid,
        ip_address=ip_address,
    )
    return activity
