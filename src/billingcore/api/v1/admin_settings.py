"""Admin endpoints for currency, credits display, seller info and statistics."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.api.deps import (
    get_admin_billing_info_service,
    get_currency_service,
    get_current_user,
    get_db,
    get_display,
    get_request_ip,
)
from billingcore.auth.rbac import Role, require_roles
from billingcore.schemas.billing_profile import BillingProfileFields, BillingProfileUpdate
from billingcore.schemas.credit import BillingStatistics
from billingcore.schemas.currency import (
    CreditsSettings,
    CreditsSettingsUpdate,
    CurrencyList,
    CurrencySettings,
    CurrencySettingsUpdate,
)
from billingcore.services.billing_profile_service import AdminBillingInfoService
from billingcore.services.currency_service import CurrencyDisplay, CurrencyService
from billingcore.services.user_service import UserService
from billingcore.utils.activity import record_activity

router = APIRouter(prefix="/admin", tags=["Admin - Settings"])


@router.get("/currency/settings", response_model=CurrencySettings)
@require_roles(Role.ADMIN)
async def get_currency_settings(
    display: CurrencyDisplay = Depends(get_display),
    current_user: dict = Depends(get_current_user),
) -> CurrencySettings:
    """Get the active currency and the currencies available to choose from."""
    return CurrencySettings(default_currency=display.currency, available_currencies=display.currencies)


@router.api_route("/currency/settings", methods=["PATCH", "PUT"], response_model=CurrencySettings)
@require_roles(Role.ADMIN)
async def update_currency_settings(
    settings_data: CurrencySettingsUpdate,
    currency_service: CurrencyService = Depends(get_currency_service),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> CurrencySettings:
    """
    Change the active currency.

    Takes effect on the next request. Existing invoices keep the currency
    they were created in.
    """
    currency = await currency_service.set_default_currency(settings_data.default_currency)
    available = await currency_service.available_currencies()

    await record_activity(
        db,
        name="billingcore_update_currency",
        context=f"Updated default currency to: {currency['code']} ({currency['name']})",
        actor=current_user,
        ip_address=ip_address,
    )

    return CurrencySettings(default_currency=currency, available_currencies=available)


@router.get("/currency/list", response_model=CurrencyList)
@require_roles(Role.ADMIN)
async def list_currencies(
    display: CurrencyDisplay = Depends(get_display),
    current_user: dict = Depends(get_current_user),
) -> CurrencyList:
    """List every currency an admin can make active."""
    return CurrencyList(currencies=display.currencies, default_currency=display.currency)


@router.get("/settings", response_model=CreditsSettings)
@require_roles(Role.ADMIN)
async def get_settings(
    display: CurrencyDisplay = Depends(get_display),
    current_user: dict = Depends(get_current_user),
) -> CreditsSettings:
    """Get the credits display mode and token ratio."""
    return CreditsSettings(credits_mode=display.credits_mode, tokens_per_currency=display.tokens_per_currency)


@router.api_route("/settings", methods=["PATCH", "PUT"], response_model=CreditsSettings)
@require_roles(Role.ADMIN)
async def update_settings(
    settings_data: CreditsSettingsUpdate,
    currency_service: CurrencyService = Depends(get_currency_service),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> CreditsSettings:
    """
    Update the credits display mode and/or token ratio.

    ``tokens_per_currency`` only affects how amounts are described; balances
    are never converted.
    """
    result = await currency_service.update_settings(
        credits_mode=settings_data.credits_mode,
        tokens_per_currency=settings_data.tokens_per_currency,
    )

    if settings_data.credits_mode is not None:
        await record_activity(
            db,
            name="billingcore_update_settings",
            context=f"Updated credits mode to: {result['credits_mode']}",
            actor=current_user,
            ip_address=ip_address,
        )
    if settings_data.tokens_per_currency is not None:
        await record_activity(
            db,
            name="billingcore_update_settings",
            context=f"Updated tokens per currency to: {result['tokens_per_currency']}",
            actor=current_user,
            ip_address=ip_address,
        )

    return CreditsSettings(**result)


@router.get("/billing-info", response_model=BillingProfileFields)
@require_roles(Role.ADMIN)
async def get_admin_billing_info(
    seller: AdminBillingInfoService = Depends(get_admin_billing_info_service),
    current_user: dict = Depends(get_current_user),
) -> BillingProfileFields:
    """Get the seller details printed on every invoice."""
    return BillingProfileFields(**await seller.get())


@router.api_route("/billing-info", methods=["PATCH", "PUT"], response_model=BillingProfileFields)
@require_roles(Role.ADMIN)
async def update_admin_billing_info(
    profile_data: BillingProfileUpdate,
    seller: AdminBillingInfoService = Depends(get_admin_billing_info_service),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> BillingProfileFields:
    """Update the seller details; fields not sent keep their stored value."""
    info = await seller.update(profile_data.model_dump(exclude_unset=True))

    await record_activity(
        db,
        name="billingcore_update_admin_billing_info",
        context="Updated admin billing information",
        actor=current_user,
        ip_address=ip_address,
    )

    return BillingProfileFields(**info)


@router.get("/statistics", response_model=BillingStatistics)
@require_roles(Role.ADMIN)
async def get_statistics(
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> BillingStatistics:
    """Balance totals and user counts over every balance row."""
    stats = await UserService(db).statistics()
    return BillingStatistics.from_stats(stats, display)
