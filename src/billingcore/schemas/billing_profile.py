"""Pydantic schemas for billing profiles."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BillingProfileFields(BaseModel):
    """Profile fields as accepted from callers.

    Unknown keys are ignored. Trimming and the create-time completeness check
    happen in the service layer.
    """

    full_name: Optional[str] = Field(default=None, max_length=255)
    company_name: Optional[str] = Field(default=None, max_length=255)
    address_line1: Optional[str] = Field(default=None, max_length=255)
    address_line2: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=191)
    state: Optional[str] = Field(default=None, max_length=191)
    postal_code: Optional[str] = Field(default=None, max_length=32)
    country_code: Optional[str] = Field(default=None, max_length=2, description="ISO 3166-1 alpha-2")
    vat_id: Optional[str] = Field(default=None, max_length=64)
    phone: Optional[str] = Field(default=None, max_length=32)

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class BillingProfileUpdate(BillingProfileFields):
    """Schema for creating or updating a billing profile."""

    pass


class BillingProfile(BillingProfileFields):
    """Schema for returning a billing profile; every field is null when none exists."""

    id: Optional[int] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
