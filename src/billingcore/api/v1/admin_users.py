"""Admin endpoints for user balances and billing profiles."""
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.api.deps import (
    PageParams,
    get_current_user,
    get_db,
    get_display,
    get_ledger,
    get_page_params,
    get_request_ip,
)
from billingcore.auth.rbac import Role, require_roles
from billingcore.config import settings
from billingcore.exceptions import UserNotFoundError
from billingcore.schemas.billing_profile import BillingProfile, BillingProfileUpdate
from billingcore.schemas.credit import AdminUserCredits, CreditAmount, CreditsAdded, CreditsRemoved, CreditsSet
from billingcore.schemas.pagination import ListMeta, Pagination
from billingcore.schemas.user import UserList, UserSearchResult, UserWithCredits
from billingcore.services.billing_profile_service import BillingProfileService
from billingcore.services.currency_service import CurrencyDisplay
from billingcore.services.ledger import CreditLedger
from billingcore.services.user_service import UserService
from billingcore.utils.activity import record_activity

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/users", tags=["Admin - Users"])


@router.get("", response_model=UserList)
@require_roles(Role.ADMIN)
async def list_users(
    search: Optional[str] = Query(default=None, description="Match username, email or UUID"),
    paging: PageParams = Depends(get_page_params),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> UserList:
    """
    List panel users with their credit balances, ordered by username.

    Users that never had a balance row are shown with 0 credits.
    """
    rows, total = await UserService(db).list_users_with_credits(
        page=paging.page,
        limit=paging.limit,
        search=search.strip() if search else None,
    )

    return UserList(
        data=[UserWithCredits.from_row(row, display) for row in rows],
        meta=ListMeta(
            pagination=Pagination.build(total, len(rows), paging.page, paging.limit),
            currency=display.currency,
            credits_mode=display.credits_mode,
        ),
    )


@router.get("/search", response_model=UserSearchResult)
@require_roles(Role.ADMIN)
async def search_users(
    query: str = Query(default="", description="At least 2 characters"),
    limit: int = Query(default=settings.default_page_size, description="Maximum results"),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> UserSearchResult:
    """Quick user lookup by username, email or UUID."""
    limit = max(1, min(settings.max_page_size, limit))
    rows = await UserService(db).search_users(query, limit=limit)

    return UserSearchResult(
        data=[UserWithCredits.from_row(row, display) for row in rows],
        count=len(rows),
        currency=display.currency,
    )


@router.get("/{user_id}/credits", response_model=AdminUserCredits)
@require_roles(Role.ADMIN)
async def get_user_credits(
    user_id: int,
    ledger: CreditLedger = Depends(get_ledger),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> AdminUserCredits:
    """Get a user's credit balance."""
    credits = await ledger.get_balance(user_id)
    user = await _get_user(db, user_id)

    return AdminUserCredits(
        user_id=user_id,
        username=user.username,
        email=user.email,
        uuid=user.uuid,
        credits=credits,
        credits_formatted=display.format(credits),
        currency=display.currency,
        credits_mode=display.credits_mode,
    )


@router.post("/{user_id}/credits/add", response_model=CreditsAdded)
@require_roles(Role.ADMIN)
async def add_user_credits(
    user_id: int,
    credit_data: CreditAmount,
    ledger: CreditLedger = Depends(get_ledger),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> CreditsAdded:
    """Add credits to a user's balance."""
    change = await ledger.add_credits(user_id, credit_data.amount)
    user = await _get_user(db, user_id)

    await record_activity(
        db,
        name="billingcore_add_credits",
        context=(
            f"Added {credit_data.amount} credits to user: {user.username} (ID: {user_id}). "
            f"New balance: {change.new_balance}"
        ),
        actor=current_user,
        ip_address=ip_address,
    )

    return CreditsAdded(
        user_id=user_id,
        amount_added=credit_data.amount,
        old_balance=change.old_balance,
        new_balance=change.new_balance,
        new_balance_formatted=display.format(change.new_balance),
        currency=display.currency,
    )


@router.post("/{user_id}/credits/remove", response_model=CreditsRemoved)
@require_roles(Role.ADMIN)
async def remove_user_credits(
    user_id: int,
    credit_data: CreditAmount,
    ledger: CreditLedger = Depends(get_ledger),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> CreditsRemoved:
    """
    Remove credits from a user's balance.

    Fails with ``insufficient_credits`` and leaves the balance untouched
    when the user holds fewer credits than requested.
    """
    change = await ledger.remove_credits(user_id, credit_data.amount)
    user = await _get_user(db, user_id)

    await record_activity(
        db,
        name="billingcore_remove_credits",
        context=(
            f"Removed {credit_data.amount} credits from user: {user.username} (ID: {user_id}). "
            f"Old balance: {change.old_balance}, New balance: {change.new_balance}"
        ),
        actor=current_user,
        ip_address=ip_address,
    )

    return CreditsRemoved(
        user_id=user_id,
        amount_removed=credit_data.amount,
        old_balance=change.old_balance,
        new_balance=change.new_balance,
        new_balance_formatted=display.format(change.new_balance),
        currency=display.currency,
    )


@router.api_route("/{user_id}/credits/set", methods=["POST", "PUT"], response_model=CreditsSet)
@require_roles(Role.ADMIN)
async def set_user_credits(
    user_id: int,
    credit_data: CreditAmount,
    ledger: CreditLedger = Depends(get_ledger),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> CreditsSet:
    """Overwrite a user's balance with an amount of 0 or more."""
    change = await ledger.set_balance(user_id, credit_data.amount)
    user = await _get_user(db, user_id)

    await record_activity(
        db,
        name="billingcore_set_credits",
        context=(
            f"Set credits for user: {user.username} (ID: {user_id}). "
            f"Old balance: {change.old_balance}, New balance: {change.new_balance}"
        ),
        actor=current_user,
        ip_address=ip_address,
    )

    return CreditsSet(
        user_id=user_id,
        old_balance=change.old_balance,
        new_balance=change.new_balance,
        new_balance_formatted=display.format(change.new_balance),
        currency=display.currency,
    )


@router.get("/{user_id}/billing-info", response_model=BillingProfile)
@require_roles(Role.ADMIN)
async def get_user_billing_info(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> BillingProfile:
    """Get a user's billing profile, or every field null if none exists."""
    await _get_user(db, user_id)
    return BillingProfile(**await BillingProfileService(db).get_or_default(user_id))


@router.api_route("/{user_id}/billing-info", methods=["PATCH", "PUT"], response_model=BillingProfile)
@require_roles(Role.ADMIN)
async def update_user_billing_info(
    user_id: int,
    profile_data: BillingProfileUpdate,
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> BillingProfile:
    """Create or update a user's billing profile on their behalf."""
    user = await _get_user(db, user_id)
    profile = await BillingProfileService(db).create_or_update(
        user_id, profile_data.model_dump(exclude_unset=True)
    )

    await record_activity(
        db,
        name="billingcore_update_user_billing_info",
        context=f"Updated billing info for user: {user.username} (ID: {user_id})",
        actor=current_user,
        ip_address=ip_address,
    )

    return BillingProfile.model_validate(profile)


async def _get_user(db: AsyncSession, user_id: int):
    user = await UserService(db).get_user(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user
