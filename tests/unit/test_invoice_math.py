"""Unit tests for invoice number generation and total calculation."""
import re
from decimal import Decimal

import pytest

from billingcore.exceptions import InvalidAmountError
from billingcore.services.invoice_service import compute_totals, generate_invoice_number, line_total, to_decimal

INVOICE_NUMBER_RE = re.compile(r"^INV-\d{8}-[0-9A-F]{8}$")


def test_invoice_number_format() -> None:
    """Numbers look like INV-YYYYMMDD-1A2B3C4D."""
    assert INVOICE_NUMBER_RE.match(generate_invoice_number())


def test_invoice_numbers_are_random() -> None:
    """Consecutive numbers differ."""
    numbers = {generate_invoice_number() for _ in range(50)}

    assert len(numbers) == 50


def test_line_total_rounds_half_up() -> None:
    """quantity x unit price is rounded to cents."""
    assert line_total(Decimal("2"), Decimal("10.00")) == Decimal("20.00")
    assert line_total(Decimal("0.5"), Decimal("0.05")) == Decimal("0.03")
    assert line_total(Decimal("3"), Decimal("0")) == Decimal("0.00")


def test_compute_totals() -> None:
    """Tax is a percentage of the subtotal, rounded to cents."""
    assert compute_totals(Decimal("25.00"), Decimal("10")) == (
        Decimal("25.00"),
        Decimal("2.50"),
        Decimal("27.50"),
    )
    assert compute_totals(Decimal("19.99"), Decimal("19")) == (
        Decimal("19.99"),
        Decimal("3.80"),
        Decimal("23.79"),
    )
    assert compute_totals(Decimal("0"), Decimal("21")) == (
        Decimal("0.00"),
        Decimal("0.00"),
        Decimal("0.00"),
    )


def test_to_decimal() -> None:
    """Numbers convert without float artifacts; None takes the default."""
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("12.50") == Decimal("12.50")
    assert to_decimal(None) == Decimal("0")
    assert to_decimal(None, Decimal("1")) == Decimal("1")

    with pytest.raises(InvalidAmountError):
        to_decimal("twelve")
