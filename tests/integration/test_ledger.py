"""Integration tests for the credit ledger."""
import asyncio
from typing import Callable

import pytest
from sqlalchemy import Insert, Update, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billingcore.exceptions import (
    InsufficientCreditsError,
    InvalidAmountError,
    LedgerWriteFailedError,
    UserNotFoundError,
)
from billingcore.models.balance import Balance
from billingcore.services import ledger as ledger_module
from billingcore.services.ledger import CreditLedger
from tests.utils.db import fail_statements


async def _balance_rows(session_factory: async_sessionmaker[AsyncSession], user_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count(Balance.id)).where(Balance.user_id == user_id))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_get_balance_creates_zero_row_once(session_factory, create_user: Callable) -> None:
    """The first read creates a 0 balance; later reads reuse it."""
    user = await create_user()
    ledger = CreditLedger(session_factory)

    assert await _balance_rows(session_factory, user.id) == 0
    assert await ledger.get_balance(user.id) == 0
    assert await ledger.get_balance(user.id) == 0
    assert await _balance_rows(session_factory, user.id) == 1


@pytest.mark.asyncio
async def test_add_remove_sequence(session_factory, create_user: Callable) -> None:
    """Set 50, remove 30, add 5 leaves 25 credits."""
    user = await create_user()
    ledger = CreditLedger(session_factory)

    change = await ledger.set_balance(user.id, 50)
    assert (change.old_balance, change.new_balance) == (0, 50)

    change = await ledger.remove_credits(user.id, 30)
    assert (change.old_balance, change.new_balance, change.delta) == (50, 20, -30)

    change = await ledger.add_credits(user.id, 5)
    assert (change.old_balance, change.new_balance, change.delta) == (20, 25, 5)

    assert await ledger.get_balance(user.id) == 25


@pytest.mark.asyncio
async def test_remove_more_than_balance_is_rejected(session_factory, create_user: Callable) -> None:
    """An overdraft raises and leaves the balance unchanged."""
    user = await create_user()
    ledger = CreditLedger(session_factory)
    await ledger.add_credits(user.id, 20)

    with pytest.raises(InsufficientCreditsError) as exc_info:
        await ledger.remove_credits(user.id, 30)

    assert exc_info.value.available == 20
    assert exc_info.value.requested == 30
    assert exc_info.value.message == "Insufficient credits. User has 20 credits"
    assert await ledger.get_balance(user.id) == 20


@pytest.mark.asyncio
async def test_failed_remove_leaves_no_balance_row(session_factory, create_user: Callable) -> None:
    """A rejected first-ever operation does not materialize a row."""
    user = await create_user()
    ledger = CreditLedger(session_factory)

    with pytest.raises(InsufficientCreditsError):
        await ledger.remove_credits(user.id, 1)

    assert await _balance_rows(session_factory, user.id) == 0


@pytest.mark.asyncio
async def test_remove_entire_balance(session_factory, create_user: Callable) -> None:
    """Removing exactly the balance reaches zero."""
    user = await create_user()
    ledger = CreditLedger(session_factory)
    await ledger.add_credits(user.id, 7)

    change = await ledger.remove_credits(user.id, 7)

    assert change.new_balance == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, 1.5, "10", True, None])
async def test_add_and_remove_require_positive_integers(session_factory, create_user: Callable, amount) -> None:
    """Non-positive or non-integer amounts are rejected before touching the store."""
    user = await create_user()
    ledger = CreditLedger(session_factory)

    with pytest.raises(InvalidAmountError):
        await ledger.add_credits(user.id, amount)
    with pytest.raises(InvalidAmountError):
        await ledger.remove_credits(user.id, amount)

    assert await _balance_rows(session_factory, user.id) == 0


@pytest.mark.asyncio
async def test_set_balance_accepts_zero_and_rejects_negative(session_factory, create_user: Callable) -> None:
    """A balance may be set to 0 but never below."""
    user = await create_user()
    ledger = CreditLedger(session_factory)
    await ledger.set_balance(user.id, 12)

    change = await ledger.set_balance(user.id, 0)
    assert (change.old_balance, change.new_balance) == (12, 0)

    with pytest.raises(InvalidAmountError):
        await ledger.set_balance(user.id, -1)
    assert await ledger.get_balance(user.id) == 0


@pytest.mark.asyncio
async def test_unknown_user(session_factory) -> None:
    """Every operation on a missing user raises UserNotFoundError."""
    ledger = CreditLedger(session_factory)

    with pytest.raises(UserNotFoundError):
        await ledger.get_balance(999)
    with pytest.raises(UserNotFoundError):
        await ledger.add_credits(999, 10)
    with pytest.raises(UserNotFoundError):
        await ledger.set_balance(999, 10)

    assert await _balance_rows(session_factory, 999) == 0


@pytest.mark.asyncio
async def test_concurrent_adds_are_not_lost(session_factory, create_user: Callable) -> None:
    """Parallel additions to one user all land."""
    user = await create_user()
    ledger = CreditLedger(session_factory)

    await asyncio.gather(*(ledger.add_credits(user.id, 3) for _ in range(10)))

    assert await ledger.get_balance(user.id) == 30


@pytest.mark.asyncio
async def test_concurrent_removes_never_overdraw(session_factory, create_user: Callable) -> None:
    """Of ten parallel removals of 10 from 50, exactly five succeed."""
    user = await create_user()
    ledger = CreditLedger(session_factory)
    await ledger.set_balance(user.id, 50)

    results = await asyncio.gather(
        *(ledger.remove_credits(user.id, 10) for _ in range(10)),
        return_exceptions=True,
    )

    succeeded = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, InsufficientCreditsError)]
    assert len(succeeded) == 5
    assert len(rejected) == 5
    assert await ledger.get_balance(user.id) == 0


@pytest.mark.asyncio
async def test_concurrent_first_access_creates_one_row(session_factory, create_user: Callable) -> None:
    """Parallel first reads and adds on a user without a row create exactly one."""
    user = await create_user()
    ledger = CreditLedger(session_factory)

    results = await asyncio.gather(
        *(ledger.get_balance(user.id) for _ in range(10)),
        *(ledger.add_credits(user.id, 5) for _ in range(3)),
    )

    assert all(balance in (0, 5, 10, 15) for balance in results[:10])
    assert await _balance_rows(session_factory, user.id) == 1
    assert await ledger.get_balance(user.id) == 15


@pytest.mark.asyncio
async def test_row_creation_without_native_upsert(session_factory, create_user: Callable, monkeypatch) -> None:
    """Dialects without ON CONFLICT fall back to a savepoint insert."""
    monkeypatch.setattr(ledger_module, "_UPSERT_INSERTS", {})
    user = await create_user()
    ledger = CreditLedger(session_factory)

    await asyncio.gather(*(ledger.get_balance(user.id) for _ in range(5)))
    assert await _balance_rows(session_factory, user.id) == 1

    change = await ledger.add_credits(user.id, 4)
    assert (change.old_balance, change.new_balance) == (0, 4)
    assert await _balance_rows(session_factory, user.id) == 1


@pytest.mark.asyncio
async def test_failed_remove_without_native_upsert_leaves_no_row(
    session_factory, create_user: Callable, monkeypatch
) -> None:
    """The fallback insert is rolled back with the rejected operation."""
    monkeypatch.setattr(ledger_module, "_UPSERT_INSERTS", {})
    user = await create_user()
    ledger = CreditLedger(session_factory)

    with pytest.raises(InsufficientCreditsError):
        await ledger.remove_credits(user.id, 1)

    assert await _balance_rows(session_factory, user.id) == 0


@pytest.mark.asyncio
async def test_store_failure_during_write_is_rolled_back(session_factory, create_user: Callable, monkeypatch) -> None:
    """A failing balance update raises LedgerWriteFailedError and changes nothing."""
    user = await create_user()
    ledger = CreditLedger(session_factory)
    await ledger.set_balance(user.id, 10)

    error = fail_statements(monkeypatch, Update)
    with pytest.raises(LedgerWriteFailedError) as exc_info:
        await ledger.add_credits(user.id, 5)
    with pytest.raises(LedgerWriteFailedError):
        await ledger.set_balance(user.id, 99)
    monkeypatch.undo()

    assert exc_info.value.code == "ledger_write_failed"
    assert exc_info.value.status_code == 500
    assert exc_info.value.__cause__ is error
    assert await ledger.get_balance(user.id) == 10


@pytest.mark.asyncio
async def test_store_failure_during_read(session_factory, create_user: Callable, monkeypatch) -> None:
    """A failing row creation on read is reported as a ledger failure and leaves no row."""
    user = await create_user()
    ledger = CreditLedger(session_factory)

    error = fail_statements(monkeypatch, Insert)
    with pytest.raises(LedgerWriteFailedError) as exc_info:
        await ledger.get_balance(user.id)
    monkeypatch.undo()

    assert exc_info.value.code == "ledger_write_failed"
    assert exc_info.value.__cause__ is error
    assert await _balance_rows(session_factory, user.id) == 0
