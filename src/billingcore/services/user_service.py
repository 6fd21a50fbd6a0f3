"""Read-only access to panel users joined with their credit balances."""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.exceptions import InvalidQueryError
from billingcore.models.balance import Balance
from billingcore.models.user import User

MIN_SEARCH_LENGTH = 2


class UserService:
    """User directory queries for the admin views."""

    def __init__(self, db: AsyncSession):
        """Initialize user service with database session."""
        self.db = db

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID, or None if missing."""
        return await self.db.get(User, user_id)

    async def list_users_with_credits(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        List users ordered by username, each with their credit balance.

        Users without a balance row are reported with 0 credits.

        Args:
            page: Page number (1-indexed)
            limit: Items per page
            search: Case-insensitive substring of username, email or UUID

        Returns:
            Tuple of (user rows, total matching users)
        """
        filters = self._search_filters(search) if search else []

        count_query = select(func.count(User.id)).where(*filters)
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            self._users_with_credits()
            .where(*filters)
            .order_by(User.username.asc(), User.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()], total

    async def search_users(self, query: Optional[str], limit: int = 20) -> list[dict[str, Any]]:
        """
        Quick user lookup for admin pickers.

        Args:
            query: At least two characters matched against username, email and UUID
            limit: Maximum rows returned

        Returns:
            Matching user rows with credits

        Raises:
            InvalidQueryError: If the query is shorter than two characters
        """
        if not query or len(query) < MIN_SEARCH_LENGTH:
            raise InvalidQueryError("Query must be at least 2 characters", query=query)

        statement = (
            self._users_with_credits()
            .where(*self._search_filters(query))
            .order_by(User.username.asc(), User.id.asc())
            .limit(limit)
        )
        result = await self.db.execute(statement)
        return [dict(row) for row in result.mappings().all()]

    async def statistics(self) -> dict[str, Any]:
        """
        Aggregate balance statistics over users that have a balance row.

        Returns:
            Dict with total_with_billing, with_credits, with_zero_credits,
            total_credits and average_per_user (rounded to 2 decimals)
        """
        result = await self.db.execute(
            select(
                func.count(Balance.id),
                func.coalesce(func.sum(Balance.credits), 0),
                func.coalesce(func.sum(case((Balance.credits == 0, 1), else_=0)), 0),
            )
        )
        with_billing, total_credits, with_zero = result.one()
        with_billing = int(with_billing or 0)
        total_credits = int(total_credits or 0)
        with_zero = int(with_zero or 0)

        average = Decimal("0")
        if with_billing:
            average = (Decimal(total_credits) / Decimal(with_billing)).quantize(
                Decimal("0.01"), rounding=ROUND_HALF_UP
            )

        return {
            "total_with_billing": with_billing,
            "with_credits": with_billing - with_zero,
            "with_zero_credits": with_zero,
            "total_credits": total_credits,
            "average_per_user": average,
        }

    @staticmethod
    def _users_with_credits():
        return select(
            User.id,
            User.username,
            User.email,
            User.uuid,
            User.first_seen,
            func.coalesce(Balance.credits, 0).label("credits"),
        ).outerjoin(Balance, Balance.user_id == User.id)

    @staticmethod
    def _search_filters(search: str) -> list:
        pattern = f"%{search.lower()}%"
        return [
            or_(
                func.lower(User.username).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(User.uuid).like(pattern),
            )
        ]
