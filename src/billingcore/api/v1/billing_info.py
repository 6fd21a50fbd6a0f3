"""Billing profile endpoints for the signed-in user."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.api.deps import get_current_user, get_db
from billingcore.schemas.billing_profile import BillingProfile, BillingProfileUpdate
from billingcore.services.billing_profile_service import BillingProfileService

router = APIRouter(prefix="/billing-info", tags=["Billing Profile"])


@router.get("", response_model=BillingProfile)
async def get_billing_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BillingProfile:
    """Get the caller's billing profile, or every field null if none exists yet."""
    service = BillingProfileService(db)
    return BillingProfile(**await service.get_or_default(current_user["sub"]))


@router.api_route("", methods=["PATCH", "PUT"], response_model=BillingProfile)
async def update_billing_info(
    profile_data: BillingProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BillingProfile:
    """
    Create or update the caller's billing profile.

    The first save must include full_name, address_line1, city,
    postal_code and country_code. Later saves may send any subset.
    """
    service = BillingProfileService(db)
    profile = await service.create_or_update(current_user["sub"], profile_data.model_dump(exclude_unset=True))
    return BillingProfile.model_validate(profile)
