"""Balance model holding each user's credit count."""
from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer
from sqlalchemy.orm import relationship

from billingcore.models.base import Base


class Balance(Base):
    """
    Credit balance for a single user.

    At most one row per user; a user without a row has zero credits. Only
    CreditLedger mutates ``credits``.
    """

    __tablename__ = "billing_balances"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_billing_balances_credits_non_negative"),)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    credits = Column(Integer, nullable=False, default=0)

    # Relationships
    user = relationship("User", back_populates="balance")

    def __repr__(self) -> str:
        """String representation."""
        return f"<Balance(user_id={self.user_id}, credits={self.credits})>"
