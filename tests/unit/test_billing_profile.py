"""Unit tests for billing profile normalization and seller info storage."""
import json

import pytest

from billingcore.services.billing_profile_service import (
    AdminBillingInfoService,
    empty_profile,
    normalize_profile_fields,
)
from billingcore.services.settings_store import ADMIN_BILLING_INFO, InMemorySettingsStore


def test_normalize_whitelists_trims_and_uppercases() -> None:
    """Unknown keys are dropped, blanks become None, the country is upper-cased."""
    payload = normalize_profile_fields(
        {
            "full_name": "  Ada Lovelace ",
            "company_name": "   ",
            "country_code": "de",
            "is_admin": True,
            "id": 99,
        }
    )

    assert payload == {"full_name": "Ada Lovelace", "company_name": None, "country_code": "DE"}


def test_normalize_keeps_only_present_keys() -> None:
    """Absent keys are not reported, so updates stay partial."""
    assert normalize_profile_fields({}) == {}
    assert normalize_profile_fields({"city": "Berlin"}) == {"city": "Berlin"}


def test_empty_profile_has_every_field() -> None:
    """The default profile lists each field as None."""
    profile = empty_profile()

    assert set(profile) >= {"full_name", "address_line1", "city", "postal_code", "country_code", "vat_id"}
    assert all(value is None for value in profile.values())


@pytest.mark.asyncio
async def test_admin_billing_info_defaults_to_empty() -> None:
    """Nothing stored yields every field as None."""
    service = AdminBillingInfoService(InMemorySettingsStore())

    assert await service.get() == empty_profile()


@pytest.mark.asyncio
async def test_admin_billing_info_update_merges() -> None:
    """Fields not sent keep their stored value."""
    store = InMemorySettingsStore()
    service = AdminBillingInfoService(store)

    await service.update({"full_name": "Hosting GmbH", "country_code": "de"})
    info = await service.update({"city": "Berlin", "unknown": "x"})

    assert info["full_name"] == "Hosting GmbH"
    assert info["country_code"] == "DE"
    assert info["city"] == "Berlin"
    assert "unknown" not in info
    assert json.loads(await store.get(ADMIN_BILLING_INFO))["city"] == "Berlin"


@pytest.mark.asyncio
async def test_admin_billing_info_ignores_unreadable_value() -> None:
    """A corrupt stored value reads as an empty profile."""
    service = AdminBillingInfoService(InMemorySettingsStore({ADMIN_BILLING_INFO: "{broken"}))

    assert await service.get() == empty_profile()
