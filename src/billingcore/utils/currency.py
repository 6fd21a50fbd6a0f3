"""Currency table, override parsing and amount formatting.

Pure functions only. Settings-backed resolution lives in
``billingcore.services.currency_service``.
"""
import json
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

DEFAULT_CURRENCY_CODE = "EUR"

CREDITS_MODE_CURRENCY = "currency"
CREDITS_MODE_TOKEN = "token"
CREDITS_MODES = (CREDITS_MODE_CURRENCY, CREDITS_MODE_TOKEN)

# ISO 4217 format: exactly three upper-case letters
_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

# Built-in currencies offered when no override list is configured
_BUILTIN_CURRENCIES = (
    {"code": "EUR", "name": "Euro", "symbol": "€"},
    {"code": "USD", "name": "US Dollar", "symbol": "$"},
    {"code": "GBP", "name": "British Pound", "symbol": "£"},
    {"code": "CHF", "name": "Swiss Franc", "symbol": "CHF"},
    {"code": "CAD", "name": "Canadian Dollar", "symbol": "C$"},
    {"code": "AUD", "name": "Australian Dollar", "symbol": "A$"},
    {"code": "SEK", "name": "Swedish Krona", "symbol": "kr"},
    {"code": "NOK", "name": "Norwegian Krone", "symbol": "kr"},
    {"code": "DKK", "name": "Danish Krone", "symbol": "kr"},
    {"code": "PLN", "name": "Polish Złoty", "symbol": "zł"},
)


def builtin_currencies() -> list[dict[str, str]]:
    """Return a fresh copy of the built-in currency table."""
    return [dict(currency) for currency in _BUILTIN_CURRENCIES]


def normalize_currency_code(code: Any) -> Optional[str]:
    """
    Trim and upper-case a currency code.

    Args:
        code: Raw code from a request or setting

    Returns:
        Normalized code, or None if ``code`` is not a non-empty string
    """
    if not isinstance(code, str):
        return None
    code = code.strip().upper()
    return code or None


def is_valid_currency_format(code: Any) -> bool:
    """Check that a code looks like ISO 4217 (three upper-case letters)."""
    return isinstance(code, str) and bool(_CURRENCY_CODE_RE.match(code))


def parse_currency_overrides(raw: Optional[str]) -> list[dict[str, str]]:
    """
    Parse the ``currencies`` setting into a currency list.

    Entries that are not objects, lack a string ``code``/``name``/``symbol``
    or have a malformed code are skipped.

    Args:
        raw: JSON-encoded list of ``{code, name, symbol}`` objects

    Returns:
        Valid overrides, or the built-in table if none survive
    """
    if not raw:
        return builtin_currencies()

    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        return builtin_currencies()

    if not isinstance(decoded, list):
        return builtin_currencies()

    valid = []
    for item in decoded:
        if not isinstance(item, dict):
            continue

        code = item.get("code")
        name = item.get("name")
        symbol = item.get("symbol")
        if not all(isinstance(value, str) for value in (code, name, symbol)):
            continue

        code = code.strip().upper()
        if not is_valid_currency_format(code):
            continue

        valid.append({"code": code, "name": name.strip(), "symbol": symbol.strip()})

    return valid or builtin_currencies()


def find_currency(currencies: list[dict[str, str]], code: Any) -> Optional[dict[str, str]]:
    """Look up a currency by code (case-insensitive) in the given list."""
    code = normalize_currency_code(code)
    if code is None:
        return None

    for currency in currencies:
        if currency["code"] == code:
            return currency
    return None


def pick_default_currency(currencies: list[dict[str, str]], configured_code: Any = None) -> dict[str, str]:
    """
    Resolve the active currency.

    The configured code wins if it is in the list; otherwise EUR, otherwise
    the first entry.

    Args:
        currencies: Available currencies (never empty)
        configured_code: Value of the ``default_currency`` setting

    Returns:
        The chosen currency entry
    """
    currency = find_currency(currencies, configured_code)
    if currency is not None:
        return currency

    currency = find_currency(currencies, DEFAULT_CURRENCY_CODE)
    if currency is not None:
        return currency

    return currencies[0]


def normalize_credits_mode(mode: Any) -> str:
    """Return ``mode`` if it is a known credits mode, else ``currency``."""
    return mode if mode in CREDITS_MODES else CREDITS_MODE_CURRENCY


def format_amount(amount: Union[int, float, Decimal], mode: str, currency: dict[str, str]) -> str:
    """
    Format an amount for display.

    Examples:
        >>> format_amount(10.5, "currency", {"code": "EUR", "name": "Euro", "symbol": "€"})
        '€ 10.50 (EUR)'
        >>> format_amount(10, "token", {"code": "EUR", "name": "Euro", "symbol": "€"})
        '10.00 Credits'
    """
    value = f"{Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"

    if mode == CREDITS_MODE_TOKEN:
        return f"{value} Credits"

    return f"{currency['symbol']} {value} ({currency['code']})"
