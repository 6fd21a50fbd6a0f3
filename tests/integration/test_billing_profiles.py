"""Integration tests for billing profiles."""
from typing import Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.exceptions import IncompleteProfileError, UserNotFoundError
from billingcore.services.billing_profile_service import BillingProfileService

COMPLETE_PROFILE = {
    "full_name": "Ada Lovelace",
    "address_line1": "12 Analytical Row",
    "city": "London",
    "postal_code": "N1 9GU",
    "country_code": "gb",
}


@pytest.mark.asyncio
async def test_create_requires_mandatory_fields(create_user: Callable, db_session: AsyncSession) -> None:
    """The first save must carry every mandatory field."""
    user = await create_user()
    service = BillingProfileService(db_session)

    with pytest.raises(IncompleteProfileError) as exc_info:
        await service.create_or_update(user.id, {"full_name": "Ada Lovelace", "city": "London"})

    assert exc_info.value.missing_fields == ["address_line1", "postal_code", "country_code"]
    assert not await service.has_profile(user.id)


@pytest.mark.asyncio
async def test_create_and_partial_update(create_user: Callable, db_session: AsyncSession) -> None:
    """Later saves may send any subset of fields."""
    user = await create_user()
    service = BillingProfileService(db_session)

    profile = await service.create_or_update(user.id, COMPLETE_PROFILE)
    assert profile.country_code == "GB"
    assert await service.has_profile(user.id)

    profile = await service.create_or_update(user.id, {"vat_id": " GB123456789 ", "city": "Cambridge"})
    assert profile.vat_id == "GB123456789"
    assert profile.city == "Cambridge"
    assert profile.full_name == "Ada Lovelace"


@pytest.mark.asyncio
async def test_update_rejects_blanking_required_field(create_user: Callable, db_session: AsyncSession) -> None:
    """Blanking a mandatory field is an error and nothing in that save is applied."""
    user = await create_user()
    service = BillingProfileService(db_session)
    await service.create_or_update(user.id, COMPLETE_PROFILE)

    with pytest.raises(IncompleteProfileError) as exc_info:
        await service.create_or_update(user.id, {"full_name": "  ", "phone": "123"})

    assert exc_info.value.missing_fields == ["full_name"]
    profile = await service.get_by_user(user.id)
    assert profile.full_name == "Ada Lovelace"
    assert profile.phone is None


@pytest.mark.asyncio
async def test_update_can_clear_optional_fields(create_user: Callable, db_session: AsyncSession) -> None:
    """Optional fields sent empty are cleared."""
    user = await create_user()
    service = BillingProfileService(db_session)
    await service.create_or_update(user.id, {**COMPLETE_PROFILE, "company_name": "Engines Ltd"})

    profile = await service.create_or_update(user.id, {"company_name": ""})

    assert profile.company_name is None
    assert profile.full_name == "Ada Lovelace"


@pytest.mark.asyncio
async def test_empty_payload_is_rejected(create_user: Callable, db_session: AsyncSession) -> None:
    """A save with no known fields is an error."""
    user = await create_user()

    with pytest.raises(IncompleteProfileError):
        await BillingProfileService(db_session).create_or_update(user.id, {"unknown": "value"})


@pytest.mark.asyncio
async def test_get_or_default_never_creates(create_user: Callable, db_session: AsyncSession) -> None:
    """Reading a missing profile returns nulls and leaves no row behind."""
    user = await create_user()
    service = BillingProfileService(db_session)

    profile = await service.get_or_default(user.id)

    assert profile["full_name"] is None
    assert profile["country_code"] is None
    assert not await service.has_profile(user.id)


@pytest.mark.asyncio
async def test_profile_for_unknown_user(db_session: AsyncSession) -> None:
    """Profiles can only be created for existing users."""
    with pytest.raises(UserNotFoundError):
        await BillingProfileService(db_session).create_or_update(777, COMPLETE_PROFILE)
