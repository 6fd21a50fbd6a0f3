"""Host panel user model (read-only from this service)."""
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from billingcore.database import Base


class User(Base):
    """
    A control panel user.

    The host panel owns this table; billingcore only reads it to check that
    a user exists and to join balances for the admin views.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), nullable=False, unique=True, index=True)
    username = Column(String(191), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    first_seen = Column(DateTime, nullable=True, default=datetime.utcnow)

    # Relationships
    balance = relationship("Balance", back_populates="user", uselist=False, passive_deletes=True)
    billing_profile = relationship("BillingProfile", back_populates="user", uselist=False, passive_deletes=True)
    invoices = relationship("Invoice", back_populates="user", passive_deletes=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id}, username={self.username})>"
