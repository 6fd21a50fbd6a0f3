"""Test data factories using Faker for generating realistic test data."""
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from faker import Faker

fake = Faker()


class UserFactory:
    """Factory for creating panel user data."""

    @staticmethod
    def create(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Create panel user test data.

        Args:
            overrides: Optional field overrides

        Returns:
            dict: User column values
        """
        data = {
            "uuid": str(uuid4()),
            "username": fake.unique.user_name(),
            "email": fake.unique.email(),
            "first_seen": datetime.utcnow(),
        }
        if overrides:
            data.update(overrides)
        return data


class BillingProfileFactory:
    """Factory for creating complete billing profile data."""

    @staticmethod
    def create(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Create billing profile test data with every required field set.

        Args:
            overrides: Optional field overrides

        Returns:
            dict: Billing profile fields
        """
        data = {
            "full_name": fake.name(),
            "company_name": fake.company(),
            "address_line1": fake.street_address(),
            "address_line2": None,
            "city": fake.city(),
            "state": None,
            "postal_code": fake.postcode()[:32],
            "country_code": fake.country_code(),
            "vat_id": None,
            "phone": None,
        }
        if overrides:
            data.update(overrides)
        return data


class InvoiceItemFactory:
    """Factory for creating invoice item payloads."""

    @staticmethod
    def create(overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Create invoice item test data.

        Args:
            overrides: Optional field overrides

        Returns:
            dict: Invoice item fields
        """
        data = {
            "description": fake.sentence(nb_words=4),
            "quantity": Decimal(fake.random_int(min=1, max=5)),
            "unit_price": Decimal(fake.random_int(min=100, max=5000)) / Decimal("100"),
        }
        if overrides:
            data.update(overrides)
        return data
