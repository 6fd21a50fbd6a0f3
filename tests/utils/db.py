"""Helpers for simulating database failures in tests."""
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


def fail_statements(monkeypatch: pytest.MonkeyPatch, statement_type: type) -> OperationalError:
    """
    Make every session raise OperationalError when executing ``statement_type``.

    Other statements run normally. The patch is undone with the monkeypatch.

    Returns:
        The error instance that will be raised
    """
    error = OperationalError(f"{statement_type.__name__} billing_balances", None, Exception("disk I/O error"))
    original_execute = AsyncSession.execute

    async def execute(self, statement, *args, **kwargs):
        if isinstance(statement, statement_type):
            raise error
        return await original_execute(self, statement, *args, **kwargs)

    monkeypatch.setattr(AsyncSession, "execute", execute)
    return error
