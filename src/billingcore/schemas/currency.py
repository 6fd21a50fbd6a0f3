"""Pydantic schemas for currency and credits display settings."""
from typing import Optional, Union

from pydantic import BaseModel, Field


class Currency(BaseModel):
    """A selectable currency."""

    code: str = Field(..., description="ISO 4217 currency code")
    name: str = Field(..., description="Display name")
    symbol: str = Field(..., description="Display symbol")


class CurrencySettings(BaseModel):
    """Schema for the active currency and the choices available."""

    default_currency: Currency
    available_currencies: list[Currency]


class CurrencySettingsUpdate(BaseModel):
    """Schema for changing the active currency."""

    default_currency: str = Field(..., min_length=1, description="ISO code of an available currency")


class CurrencyList(BaseModel):
    """Schema for the available currency list."""

    currencies: list[Currency]
    default_currency: Currency


class CreditsSettings(BaseModel):
    """Schema for credits display settings."""

    credits_mode: str = Field(..., description="'currency' or 'token'")
    tokens_per_currency: str = Field(..., description="Tokens per currency unit (display only)")


class CreditsSettingsUpdate(BaseModel):
    """Schema for updating credits display settings."""

    credits_mode: Optional[str] = Field(default=None, description="'currency' or 'token'")
    tokens_per_currency: Optional[Union[str, float]] = Field(default=None, description="Positive number")
