"""Unit tests for settings-backed currency resolution."""
import json

import pytest

from billingcore.exceptions import InvalidCreditsModeError, InvalidCurrencyCodeError, InvalidTokenRatioError
from billingcore.services.currency_service import CurrencyService
from billingcore.services.settings_store import CREDITS_MODE, CURRENCIES, DEFAULT_CURRENCY, InMemorySettingsStore


@pytest.mark.asyncio
async def test_defaults_without_any_settings() -> None:
    """An empty store yields EUR, currency mode and a ratio of 1."""
    service = CurrencyService(InMemorySettingsStore())

    display = await service.display()

    assert display.currency["code"] == "EUR"
    assert display.credits_mode == "currency"
    assert display.tokens_per_currency == "1"
    assert len(display.currencies) == 10
    assert display.format(10.5) == "€ 10.50 (EUR)"


@pytest.mark.asyncio
async def test_set_default_currency_is_visible_on_next_read() -> None:
    """Changing the currency takes effect immediately."""
    store = InMemorySettingsStore()
    service = CurrencyService(store)

    currency = await service.set_default_currency("usd")

    assert currency == {"code": "USD", "name": "US Dollar", "symbol": "$"}
    assert await store.get(DEFAULT_CURRENCY) == "USD"
    assert (await service.default_currency())["code"] == "USD"
    assert (await service.display()).format(25) == "$ 25.00 (USD)"


@pytest.mark.asyncio
async def test_set_unknown_currency_is_rejected() -> None:
    """Only available currencies can be made active."""
    store = InMemorySettingsStore()
    service = CurrencyService(store)

    with pytest.raises(InvalidCurrencyCodeError):
        await service.set_default_currency("XYZ")

    assert await store.get(DEFAULT_CURRENCY) is None


@pytest.mark.asyncio
async def test_configured_currency_outside_overrides_falls_back() -> None:
    """A stale default that is not in the override list falls back to the first entry."""
    overrides = [{"code": "JPY", "name": "Yen", "symbol": "¥"}]
    store = InMemorySettingsStore({CURRENCIES: json.dumps(overrides), DEFAULT_CURRENCY: "EUR"})
    service = CurrencyService(store)

    assert await service.available_currencies() == overrides
    assert (await service.default_currency())["code"] == "JPY"
    assert await service.is_valid_currency_code("jpy")
    assert not await service.is_valid_currency_code("EUR")


@pytest.mark.asyncio
async def test_token_mode_display() -> None:
    """Token mode renders amounts as credits."""
    service = CurrencyService(InMemorySettingsStore({CREDITS_MODE: "token"}))

    display = await service.display()

    assert display.credits_mode == "token"
    assert display.format(100) == "100.00 Credits"


@pytest.mark.asyncio
async def test_update_settings() -> None:
    """Mode and ratio are stored and echoed back."""
    service = CurrencyService(InMemorySettingsStore())

    result = await service.update_settings(credits_mode="token", tokens_per_currency="100")

    assert result == {"credits_mode": "token", "tokens_per_currency": "100"}
    assert await service.credits_mode() == "token"
    assert await service.tokens_per_currency() == "100"


@pytest.mark.asyncio
async def test_update_settings_validates_before_writing() -> None:
    """A bad ratio leaves a valid mode unwritten too."""
    store = InMemorySettingsStore()
    service = CurrencyService(store)

    with pytest.raises(InvalidTokenRatioError):
        await service.update_settings(credits_mode="token", tokens_per_currency="0")

    assert await store.get(CREDITS_MODE) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("ratio", ["-1", "abc", "", True, "nan"])
async def test_invalid_token_ratios(ratio) -> None:
    """The ratio must be a positive finite number."""
    service = CurrencyService(InMemorySettingsStore())

    with pytest.raises(InvalidTokenRatioError):
        await service.update_settings(tokens_per_currency=ratio)


@pytest.mark.asyncio
async def test_invalid_credits_mode() -> None:
    """Unknown modes are rejected on write."""
    service = CurrencyService(InMemorySettingsStore())

    with pytest.raises(InvalidCreditsModeError):
        await service.update_settings(credits_mode="gold")
