"""Service for user billing profiles and the seller's own billing info."""
import json
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.exceptions import IncompleteProfileError, UserNotFoundError
from billingcore.models.billing_profile import PROFILE_FIELDS, REQUIRED_PROFILE_FIELDS, BillingProfile
from billingcore.models.user import User
from billingcore.services.settings_store import ADMIN_BILLING_INFO, SettingsStore

logger = structlog.get_logger(__name__)


def empty_profile() -> dict[str, None]:
    """All profile keys set to None."""
    return {field: None for field in PROFILE_FIELDS}


def normalize_profile_fields(data: dict[str, Any]) -> dict[str, Any]:
    """
    Apply the profile whitelist and normalization rules.

    Unknown keys are dropped, strings are trimmed, empty values become None
    and ``country_code`` is upper-cased.

    Args:
        data: Raw fields from a request body

    Returns:
        Only the whitelisted keys that were present in ``data``
    """
    payload = {}
    for field in PROFILE_FIELDS:
        if field not in data:
            continue

        value = data[field]
        if isinstance(value, str):
            value = value.strip()
        payload[field] = value if value not in ("", None) else None

    if isinstance(payload.get("country_code"), str):
        payload["country_code"] = payload["country_code"].upper()

    return payload


class BillingProfileService:
    """CRUD for the one-per-user billing profile."""

    def __init__(self, db: AsyncSession):
        """Initialize billing profile service with database session."""
        self.db = db

    async def get_by_user(self, user_id: int) -> Optional[BillingProfile]:
        """Return the user's profile, or None if they have not created one."""
        result = await self.db.execute(select(BillingProfile).where(BillingProfile.user_id == user_id))
        return result.scalar_one_or_none()

    async def has_profile(self, user_id: int) -> bool:
        """Check whether the user has a billing profile."""
        result = await self.db.execute(select(BillingProfile.id).where(BillingProfile.user_id == user_id))
        return result.scalar_one_or_none() is not None

    async def get_or_default(self, user_id: int) -> dict[str, Any]:
        """
        Return the profile as a dict, or every key set to None.

        Never creates a row.
        """
        profile = await self.get_by_user(user_id)
        if profile is None:
            return empty_profile()
        return profile.to_dict()

    async def create_or_update(self, user_id: int, data: dict[str, Any]) -> BillingProfile:
        """
        Create the user's profile or update an existing one.

        Creation requires every mandatory field. Updates accept any subset
        of fields but may not blank a mandatory one.

        Args:
            user_id: Panel user ID
            data: Raw profile fields

        Returns:
            The saved profile

        Raises:
            UserNotFoundError: If the user does not exist
            IncompleteProfileError: If the payload is empty, is missing
                mandatory fields on creation, or blanks one on update
        """
        payload = normalize_profile_fields(data)
        if not payload:
            raise IncompleteProfileError("No billing information fields provided")

        profile = await self.get_by_user(user_id)

        if profile is None:
            missing = [field for field in REQUIRED_PROFILE_FIELDS if not payload.get(field)]
            if missing:
                raise IncompleteProfileError(
                    f"Missing required billing fields: {', '.join(missing)}",
                    missing_fields=missing,
                )

            user = await self.db.get(User, user_id)
            if user is None:
                raise UserNotFoundError(user_id)

            profile = BillingProfile(user_id=user_id, **payload)
            self.db.add(profile)
            await self.db.flush()
            await self.db.refresh(profile)

            logger.info("billing_profile_created", user_id=user_id, country_code=profile.country_code)
            return profile

        blanked = [field for field in REQUIRED_PROFILE_FIELDS if field in payload and payload[field] is None]
        if blanked:
            raise IncompleteProfileError(
                f"Required billing fields cannot be empty: {', '.join(blanked)}",
                missing_fields=blanked,
            )

        for field, value in payload.items():
            setattr(profile, field, value)

        await self.db.flush()
        await self.db.refresh(profile)

        logger.info("billing_profile_updated", user_id=user_id, fields=sorted(payload))
        return profile


class AdminBillingInfoService:
    """The seller's billing details, stored as JSON in the settings store."""

    def __init__(self, settings_store: SettingsStore):
        """Initialize with the settings store holding ``admin_billing_info``."""
        self.settings_store = settings_store

    async def get(self) -> dict[str, Any]:
        """Stored seller info merged over an all-None profile."""
        info = empty_profile()
        raw = await self.settings_store.get(ADMIN_BILLING_INFO)
        if not raw:
            return info

        try:
            stored = json.loads(raw)
        except ValueError:
            logger.warning("admin_billing_info_unreadable")
            return info

        if isinstance(stored, dict):
            info.update(normalize_profile_fields(stored))
        return info

    async def update(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Merge normalized fields into the stored seller info.

        Args:
            data: Raw profile fields; unknown keys are ignored

        Returns:
            The full seller info after the update
        """
        info = await self.get()
        info.update(normalize_profile_fields(data))
        await self.settings_store.set(ADMIN_BILLING_INFO, json.dumps(info))

        logger.info("admin_billing_info_updated", fields=sorted(normalize_profile_fields(data)))
        return info
