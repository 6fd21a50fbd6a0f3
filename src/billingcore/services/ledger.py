"""Credit ledger: the only writer of user credit balances.

Every operation runs in its own short transaction on a dedicated session.
The balance row is created lazily with an idempotent insert and locked with
``SELECT ... FOR UPDATE`` before it is read, so concurrent adjustments to
the same user are serialized and the balance can never go negative.
"""
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billingcore.exceptions import InsufficientCreditsError, InvalidAmountError, LedgerWriteFailedError, UserNotFoundError
from billingcore.metrics import ledger_credits_moved_total, ledger_operations_total
from billingcore.models.balance import Balance
from billingcore.models.user import User

logger = structlog.get_logger(__name__)

# Dialects with native INSERT ... ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class BalanceChange:
    """Balance before and after a ledger mutation, read in the same transaction."""

    user_id: int
    old_balance: int
    new_balance: int

    @property
    def delta(self) -> int:
        return self.new_balance - self.old_balance


def _require_int(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError("Amount must be an integer", amount=amount)
    return amount


class CreditLedger:
    """Atomic credit balance operations."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize the ledger.

        Args:
            session_factory: Factory for the short-lived sessions each
                operation runs in
        """
        self.session_factory = session_factory

    async def get_balance(self, user_id: int) -> int:
        """
        Get a user's credit balance, creating a zero row if none exists.

        Args:
            user_id: Panel user ID

        Returns:
            Current credits

        Raises:
            UserNotFoundError: If the user does not exist
            LedgerWriteFailedError: If the store fails
        """
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await self._ensure_user(session, user_id)
                    await self._ensure_row(session, user_id)
                    result = await session.execute(select(Balance.credits).where(Balance.user_id == user_id))
                    return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error("ledger_read_failed", user_id=user_id, error=str(e))
            ledger_operations_total.labels(operation="get", outcome="failed").inc()
            raise LedgerWriteFailedError("Failed to read credit balance", user_id=user_id) from e

    async def set_balance(self, user_id: int, amount: int) -> BalanceChange:
        """
        Overwrite a user's balance.

        Args:
            user_id: Panel user ID
            amount: New balance, zero or greater

        Returns:
            BalanceChange with the previous and new balance

        Raises:
            InvalidAmountError: If amount is negative
            UserNotFoundError: If the user does not exist
            LedgerWriteFailedError: If the store fails
        """
        amount = _require_int(amount)
        if amount < 0:
            raise InvalidAmountError("Amount must be zero or greater", amount=amount)

        change = await self._write(user_id, "set", lambda current: amount)

        logger.info(
            "credits_set",
            user_id=user_id,
            old_balance=change.old_balance,
            new_balance=change.new_balance,
        )
        return change

    async def add_credits(self, user_id: int, amount: int) -> BalanceChange:
        """
        Add credits to a user's balance.

        Args:
            user_id: Panel user ID
            amount: Credits to add, greater than zero

        Returns:
            BalanceChange with the previous and new balance

        Raises:
            InvalidAmountError: If amount is not positive
            UserNotFoundError: If the user does not exist
            LedgerWriteFailedError: If the store fails
        """
        amount = _require_int(amount)
        if amount <= 0:
            raise InvalidAmountError("Amount must be greater than 0", amount=amount)

        change = await self.adjust(user_id, amount)
        ledger_credits_moved_total.labels(direction="in").inc(amount)
        return change

    async def remove_credits(self, user_id: int, amount: int) -> BalanceChange:
        """
        Remove credits from a user's balance.

        The balance is left untouched when it holds fewer than ``amount``
        credits.

        Args:
            user_id: Panel user ID
            amount: Credits to remove, greater than zero

        Returns:
            BalanceChange with the previous and new balance

        Raises:
            InvalidAmountError: If amount is not positive
            InsufficientCreditsError: If the balance would go negative
            UserNotFoundError: If the user does not exist
            LedgerWriteFailedError: If the store fails
        """
        amount = _require_int(amount)
        if amount <= 0:
            raise InvalidAmountError("Amount must be greater than 0", amount=amount)

        change = await self.adjust(user_id, -amount)
        ledger_credits_moved_total.labels(direction="out").inc(amount)
        return change

    async def adjust(self, user_id: int, delta: int) -> BalanceChange:
        """
        Apply a signed delta to a user's balance under a row lock.

        Args:
            user_id: Panel user ID
            delta: Credits to add (positive) or remove (negative)

        Returns:
            BalanceChange with the previous and new balance

        Raises:
            InsufficientCreditsError: If the result would be negative
            UserNotFoundError: If the user does not exist
            LedgerWriteFailedError: If the store fails
        """
        delta = _require_int(delta)

        def apply(current: int) -> int:
            next_balance = current + delta
            if next_balance < 0:
                raise InsufficientCreditsError(user_id=user_id, available=current, requested=-delta)
            return next_balance

        operation = "add" if delta >= 0 else "remove"
        change = await self._write(user_id, operation, apply)

        logger.info(
            "credits_adjusted",
            user_id=user_id,
            delta=delta,
            old_balance=change.old_balance,
            new_balance=change.new_balance,
        )
        return change

    async def _write(self, user_id: int, operation: str, compute) -> BalanceChange:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await self._ensure_user(session, user_id)
                    await self._ensure_row(session, user_id)

                    result = await session.execute(
                        select(Balance.credits).where(Balance.user_id == user_id).with_for_update()
                    )
                    current = result.scalar_one()

                    # Raising here rolls back the row created above as well
                    new_balance = compute(current)

                    await session.execute(
                        update(Balance).where(Balance.user_id == user_id).values(credits=new_balance)
                    )
        except InsufficientCreditsError as e:
            logger.warning(
                "insufficient_credits",
                user_id=user_id,
                available=e.available,
                requested=e.requested,
            )
            ledger_operations_total.labels(operation=operation, outcome="rejected").inc()
            raise
        except UserNotFoundError:
            ledger_operations_total.labels(operation=operation, outcome="rejected").inc()
            raise
        except SQLAlchemyError as e:
            logger.error("ledger_write_failed", user_id=user_id, operation=operation, error=str(e))
            ledger_operations_total.labels(operation=operation, outcome="failed").inc()
            raise LedgerWriteFailedError("Failed to update credit balance", user_id=user_id) from e

        ledger_operations_total.labels(operation=operation, outcome="success").inc()
        return BalanceChange(user_id=user_id, old_balance=current, new_balance=new_balance)

    async def _ensure_user(self, session: AsyncSession, user_id: int) -> None:
        result = await session.execute(select(User.id).where(User.id == user_id))
        if result.scalar_one_or_none() is None:
            raise UserNotFoundError(user_id)

    async def _ensure_row(self, session: AsyncSession, user_id: int) -> None:
        """Create the zero balance row if missing; a no-op when it already exists."""
        dialect = session.get_bind().dialect.name
        dialect_insert = _UPSERT_INSERTS.get(dialect)

        if dialect_insert is not None:
            await session.execute(
                dialect_insert(Balance)
                .values(user_id=user_id, credits=0)
                .on_conflict_do_nothing(index_elements=["user_id"])
            )
            return

        result = await session.execute(select(Balance.id).where(Balance.user_id == user_id))
        if result.scalar_one_or_none() is not None:
            return

        try:
            async with session.begin_nested():
                await session.execute(insert(Balance).values(user_id=user_id, credits=0))
        except IntegrityError:
            # Another transaction created the row first
            logger.debug("balance_row_already_created", user_id=user_id)
