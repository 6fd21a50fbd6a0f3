"""Credit balance endpoints for the signed-in user."""
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.api.deps import get_current_user, get_db, get_display, get_ledger
from billingcore.models.balance import Balance
from billingcore.schemas.credit import UserBilling, UserCredits
from billingcore.services.billing_profile_service import BillingProfileService
from billingcore.services.currency_service import CurrencyDisplay
from billingcore.services.ledger import CreditLedger

router = APIRouter(tags=["Credits"])


@router.get("/credits", response_model=UserCredits)
async def get_credits(
    current_user: dict = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
    display: CurrencyDisplay = Depends(get_display),
) -> UserCredits:
    """
    Get the caller's credit balance.

    A balance row with 0 credits is created on first access.
    """
    user_id = current_user["sub"]
    credits = await ledger.get_balance(user_id)

    return UserCredits(
        user_id=user_id,
        credits=credits,
        credits_formatted=display.format(credits),
        currency=display.currency,
    )


@router.get("/billing", response_model=UserBilling)
async def get_billing(
    current_user: dict = Depends(get_current_user),
    ledger: CreditLedger = Depends(get_ledger),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
) -> UserBilling:
    """
    Get the caller's balance together with their billing profile.

    ``billing_info`` is null until the user saves a profile.
    """
    user_id = current_user["sub"]
    credits = await ledger.get_balance(user_id)

    result = await db.execute(select(Balance).where(Balance.user_id == user_id))
    balance = result.scalar_one_or_none()
    profile = await BillingProfileService(db).get_by_user(user_id)

    return UserBilling(
        user_id=user_id,
        credits=credits,
        credits_formatted=display.format(credits),
        currency=display.currency,
        billing_info=profile.to_dict() if profile else None,
        created_at=balance.created_at if balance else None,
        updated_at=balance.updated_at if balance else None,
    )
