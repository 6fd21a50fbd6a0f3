"""FastAPI dependencies for database sessions, authentication and services."""
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billingcore.auth.jwt import panel_tokens
from billingcore.config import settings
from billingcore.database import AsyncSessionLocal
from billingcore.services.billing_profile_service import AdminBillingInfoService
from billingcore.services.currency_service import CurrencyDisplay, CurrencyService
from billingcore.services.ledger import CreditLedger
from billingcore.services.settings_store import DatabaseSettingsStore, SettingsStore
from billingcore.utils.activity import get_client_ip

logger = structlog.get_logger(__name__)

# HTTP Bearer token security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database session dependency.

    Commits when the request succeeds and rolls back when it raises.

    Yields:
        AsyncSession: Database session for the request lifecycle
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory the credit ledger opens its own transactions from."""
    return AsyncSessionLocal


def get_ledger(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> CreditLedger:
    """Credit ledger bound to the application session factory."""
    return CreditLedger(session_factory)


def get_settings_store(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SettingsStore:
    """Settings store reading and writing in its own short transactions."""
    return DatabaseSettingsStore(session_factory)


def get_currency_service(store: SettingsStore = Depends(get_settings_store)) -> CurrencyService:
    """Currency service reading fresh settings for this request."""
    return CurrencyService(store)


async def get_display(service: CurrencyService = Depends(get_currency_service)) -> CurrencyDisplay:
    """Display settings snapshot used to format every amount in one response."""
    return await service.display()


def get_request_ip(request: Request) -> Optional[str]:
    """Originating client IP for activity logging."""
    return get_client_ip(request)


@dataclass(frozen=True)
class PageParams:
    """Clamped pagination parameters."""

    page: int
    limit: int


def get_page_params(
    page: int = Query(default=1, description="Page number (1-indexed)"),
    limit: int = Query(default=settings.default_page_size, description="Items per page"),
) -> PageParams:
    """Clamp page to at least 1 and limit to [1, max_page_size]."""
    return PageParams(
        page=max(1, page),
        limit=max(1, min(settings.max_page_size, limit)),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Get current authenticated user from the panel's JWT.

    Args:
        credentials: HTTP Bearer token from request header

    Returns:
        dict: Decoded claims (sub, uuid, username, email, role)

    Raises:
        HTTPException: If token is invalid, expired, or missing
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = credentials.credentials

    try:
        payload = panel_tokens.verify(token)
    except jwt.ExpiredSignatureError:
        logger.warning("token_expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        logger.warning("invalid_token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    structlog.contextvars.bind_contextvars(user_id=payload.get("sub"), role=payload.get("role"))
    return payload


def get_admin_billing_info_service(
    store: SettingsStore = Depends(get_settings_store),
) -> AdminBillingInfoService:
    """Seller billing info backed by the settings store."""
    return AdminBillingInfoService(store)
