"""Pagination metadata shared by list endpoints."""
import math

from pydantic import BaseModel

from billingcore.schemas.currency import Currency


class Pagination(BaseModel):
    """Page position within a filtered result set."""

    total: int
    count: int
    per_page: int
    current_page: int
    total_pages: int

    @classmethod
    def build(cls, total: int, count: int, page: int, limit: int) -> "Pagination":
        return cls(
            total=total,
            count=count,
            per_page=limit,
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class ListMeta(BaseModel):
    """Pagination plus the display settings the amounts were formatted with."""

    pagination: Pagination
    currency: Currency
    credits_mode: str
