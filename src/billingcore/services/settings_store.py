"""Key/value settings storage shared by the currency and billing services."""
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billingcore.models.setting import Setting

logger = structlog.get_logger(__name__)

# Known keys
DEFAULT_CURRENCY = "default_currency"
CURRENCIES = "currencies"
CREDITS_MODE = "credits_mode"
TOKENS_PER_CURRENCY = "tokens_per_currency"
ADMIN_BILLING_INFO = "admin_billing_info"


class SettingsStore(ABC):
    """Process-wide string settings. Values are read fresh on every call."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key was never set."""

    @abstractmethod
    async def set(self, key: str, value: Optional[str]) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    async def get_many(self, *keys: str) -> dict[str, Optional[str]]:
        """Fetch several keys at once."""
        return {key: await self.get(key) for key in keys}


class DatabaseSettingsStore(SettingsStore):
    """
    Settings persisted in the ``billing_settings`` table.

    Each call runs in its own short transaction, so a setting written by an
    admin is visible to the very next read in any request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """Initialize settings store with a session factory."""
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        async with self.session_factory() as session:
            result = await session.execute(select(Setting.value).where(Setting.key == key))
            return result.scalar_one_or_none()

    async def get_many(self, *keys: str) -> dict[str, Optional[str]]:
        async with self.session_factory() as session:
            result = await session.execute(select(Setting.key, Setting.value).where(Setting.key.in_(keys)))
            stored = dict(result.all())
        return {key: stored.get(key) for key in keys}

    async def set(self, key: str, value: Optional[str]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                setting = await session.get(Setting, key)
                if setting is None:
                    session.add(Setting(key=key, value=value))
                else:
                    setting.value = value

        logger.info("setting_updated", key=key)


class InMemorySettingsStore(SettingsStore):
    """Dictionary-backed store for tests and embedded use."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._values: dict[str, Optional[str]] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def set(self, key: str, value: Optional[str]) -> None:
        self._values[key] = value
