"""Billing profile model for a user's legal name, address and VAT data."""
from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from billingcore.models.base import Base

# Columns a caller may write, in display order
PROFILE_FIELDS = (
    "full_name",
    "company_name",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "postal_code",
    "country_code",
    "vat_id",
    "phone",
)

# Must all be present before the first profile row is created
REQUIRED_PROFILE_FIELDS = ("full_name", "address_line1", "city", "postal_code", "country_code")


class BillingProfile(Base):
    """One billing profile per user, printed on that user's invoices."""

    __tablename__ = "billing_user_info"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=True)
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    city = Column(String(191), nullable=False)
    state = Column(String(191), nullable=True)
    postal_code = Column(String(32), nullable=False)
    country_code = Column(String(2), nullable=False)
    vat_id = Column(String(64), nullable=True)
    phone = Column(String(32), nullable=True)

    # Relationships
    user = relationship("User", back_populates="billing_profile")

    def to_dict(self) -> dict:
        """Serialize to the flat structure returned by the API."""
        data = {"id": self.id, "user_id": self.user_id}
        data.update({field: getattr(self, field) for field in PROFILE_FIELDS})
        data["created_at"] = self.created_at
        data["updated_at"] = self.updated_at
        return data

    def __repr__(self) -> str:
        """String representation."""
        return f"<BillingProfile(user_id={self.user_id}, country_code={self.country_code})>"
