"""Settings-backed currency and credits display resolution."""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

import structlog

from billingcore.exceptions import InvalidCreditsModeError, InvalidCurrencyCodeError, InvalidTokenRatioError
from billingcore.services.settings_store import (
    CREDITS_MODE,
    CURRENCIES,
    DEFAULT_CURRENCY,
    TOKENS_PER_CURRENCY,
    SettingsStore,
)
from billingcore.utils.currency import (
    CREDITS_MODES,
    find_currency,
    format_amount,
    normalize_credits_mode,
    parse_currency_overrides,
    pick_default_currency,
)

logger = structlog.get_logger(__name__)

DEFAULT_TOKENS_PER_CURRENCY = "1"


@dataclass(frozen=True)
class CurrencyDisplay:
    """Snapshot of display settings used to render one response."""

    currency: dict[str, str]
    credits_mode: str
    tokens_per_currency: str = DEFAULT_TOKENS_PER_CURRENCY
    currencies: list[dict[str, str]] = field(default_factory=list)

    def format(self, amount: Union[int, float, Decimal]) -> str:
        """Format ``amount`` with the snapshot's mode and currency."""
        return format_amount(amount, self.credits_mode, self.currency)


class CurrencyService:
    """Resolves the active currency and credits mode from the settings store."""

    def __init__(self, settings_store: SettingsStore):
        """Initialize currency service with a settings store."""
        self.settings_store = settings_store

    async def available_currencies(self) -> list[dict[str, str]]:
        """Configured override list, or the built-in table."""
        return parse_currency_overrides(await self.settings_store.get(CURRENCIES))

    async def default_currency(self) -> dict[str, str]:
        """The active currency: configured code, else EUR, else the first available."""
        currencies = await self.available_currencies()
        return pick_default_currency(currencies, await self.settings_store.get(DEFAULT_CURRENCY))

    async def get_currency(self, code: Any) -> Optional[dict[str, str]]:
        """Look up an available currency by code."""
        return find_currency(await self.available_currencies(), code)

    async def is_valid_currency_code(self, code: Any) -> bool:
        """Check whether ``code`` is one of the available currencies."""
        return await self.get_currency(code) is not None

    async def credits_mode(self) -> str:
        """Current credits mode; unknown values fall back to ``currency``."""
        return normalize_credits_mode(await self.settings_store.get(CREDITS_MODE))

    async def tokens_per_currency(self) -> str:
        """Display-only ratio of tokens to one currency unit."""
        value = await self.settings_store.get(TOKENS_PER_CURRENCY)
        return value if value else DEFAULT_TOKENS_PER_CURRENCY

    async def set_default_currency(self, code: Any) -> dict[str, str]:
        """
        Make ``code`` the active currency.

        Args:
            code: ISO code, case-insensitive

        Returns:
            The now-active currency entry

        Raises:
            InvalidCurrencyCodeError: If the code is not available
        """
        currency = await self.get_currency(code)
        if currency is None:
            raise InvalidCurrencyCodeError(code)

        await self.settings_store.set(DEFAULT_CURRENCY, currency["code"])
        logger.info("default_currency_changed", currency_code=currency["code"])
        return currency

    async def update_settings(
        self,
        credits_mode: Optional[str] = None,
        tokens_per_currency: Any = None,
    ) -> dict[str, str]:
        """
        Update credits display settings.

        Both values are validated before either is written.

        Args:
            credits_mode: ``currency`` or ``token``
            tokens_per_currency: Positive number (string or numeric)

        Returns:
            The resulting ``{credits_mode, tokens_per_currency}``

        Raises:
            InvalidCreditsModeError: If the mode is unknown
            InvalidTokenRatioError: If the ratio is not a positive number
        """
        if credits_mode is not None and credits_mode not in CREDITS_MODES:
            raise InvalidCreditsModeError(credits_mode)

        ratio = None
        if tokens_per_currency is not None:
            ratio = self._parse_token_ratio(tokens_per_currency)

        if credits_mode is not None:
            await self.settings_store.set(CREDITS_MODE, credits_mode)
        if ratio is not None:
            await self.settings_store.set(TOKENS_PER_CURRENCY, ratio)

        logger.info("credits_settings_updated", credits_mode=credits_mode, tokens_per_currency=ratio)

        return {
            "credits_mode": await self.credits_mode(),
            "tokens_per_currency": await self.tokens_per_currency(),
        }

    async def display(self) -> CurrencyDisplay:
        """Read all display settings once and return a formatting snapshot."""
        currencies = await self.available_currencies()
        values = await self.settings_store.get_many(DEFAULT_CURRENCY, CREDITS_MODE, TOKENS_PER_CURRENCY)
        return CurrencyDisplay(
            currency=pick_default_currency(currencies, values[DEFAULT_CURRENCY]),
            credits_mode=normalize_credits_mode(values[CREDITS_MODE]),
            tokens_per_currency=values[TOKENS_PER_CURRENCY] or DEFAULT_TOKENS_PER_CURRENCY,
            currencies=currencies,
        )

    @staticmethod
    def _parse_token_ratio(value: Any) -> str:
        if isinstance(value, bool):
            raise InvalidTokenRatioError(value)
        try:
            ratio = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidTokenRatioError(value)
        if not ratio.is_finite() or ratio <= 0:
            raise InvalidTokenRatioError(value)
        return str(value).strip()
