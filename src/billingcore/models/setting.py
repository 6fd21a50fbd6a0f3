"""Process-wide key/value settings for billingcore."""
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from billingcore.database import Base


class Setting(Base):
    """A single configuration value such as ``default_currency`` or ``credits_mode``."""

    __tablename__ = "billing_settings"

    key = Column(String(191), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Setting(key={self.key})>"
