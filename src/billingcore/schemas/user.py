"""Pydantic schemas for the admin user directory."""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from billingcore.schemas.currency import Currency
from billingcore.schemas.pagination import ListMeta


class UserWithCredits(BaseModel):
    """A panel user with their balance."""

    id: int
    username: str
    email: str
    uuid: str
    first_seen: Optional[datetime] = None
    credits: int
    credits_formatted: str

    @classmethod
    def from_row(cls, row: dict[str, Any], display) -> "UserWithCredits":
        credits = int(row["credits"] or 0)
        return cls(**{**row, "credits": credits}, credits_formatted=display.format(credits))


class UserList(BaseModel):
    """Schema for paginated user list."""

    data: list[UserWithCredits]
    meta: ListMeta


class UserSearchResult(BaseModel):
    """Schema for quick user search."""

    data: list[UserWithCredits]
    count: int
    currency: Currency
