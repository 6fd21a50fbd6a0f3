"""Activity log model for admin actions."""
from sqlalchemy import Column, String, Text

from billingcore.models.base import Base


class Activity(Base):
    """
    Audit trail entry written for every administrative mutation.

    Records who acted (panel UUID), what they did and where from.
    """

    __tablename__ = "activity_log"

    user_uuid = Column(String(36), nullable=True, index=True)  # Acting admin
    name = Column(String(191), nullable=False, index=True)  # billingcore_add_credits, ...
    context = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Activity(name={self.name}, user_uuid={self.user_uuid})>"
