"""Inquiry model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utcnow


class InquiryStatus(str, Enum):
    """Inquiry lifecycle states."""
    PENDING_OWNER = "pending_owner"
    APPROVED = "approved"
    DECLINED = "declined"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    # Only reachable through manual/administrative intervention
    CANCELLED = "cancelled"


class InquiryOrigin(str, Enum):
    """Channel an inquiry arrived through."""
    VILLA_SITE = "villa_site"
    WHATSAPP = "whatsapp"
    MANUAL = "manual"
    PHONE = "phone"
    EMAIL = "email"


class Inquiry(Base):
    """Inquiry entity: a guest's stay request and the durable audit trail of its decision."""

    __tablename__ = "inquiries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    listing_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="SET NULL"), nullable=True, index=True
    )

    guest_name: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    guest_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # ISO dates; check_out is exclusive
    check_in: Mapped[str] = mapped_column(String(10), nullable=False)
    check_out: Mapped[str] = mapped_column(String(10), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    occasion: Mapped[str | None] = mapped_column(String(255), nullable=True)
    origin: Mapped[str] = mapped_column(String(16), nullable=False, default=InquiryOrigin.VILLA_SITE.value)
    language: Mapped[str] = mapped_column(String(2), nullable=False, default="en")

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InquiryStatus.PENDING_OWNER.value, index=True
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    # Null for rate-on-request listings until the owner confirms a price
    quote_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Captured at creation so later owner edits don't redirect in-flight approvals
    owner_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    checkout_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    booking_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("party_size > 0", name="ck_inquiry_party_size_positive"),
        CheckConstraint("check_out > check_in", name="ck_inquiry_date_range"),
    )

    @property
    def lifecycle_status(self) -> InquiryStatus:
        return InquiryStatus(self.status)

    def __repr__(self) -> str:
        return (
            f"<Inquiry(id={self.id}, listing_id={self.listing_id}, "
            f"{self.check_in}..{self.check_out}, status={self.status})>"
        )
