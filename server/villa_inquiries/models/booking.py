"""Booking model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utcnow


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class BookingChannel(str, Enum):
    """Where the booking originated."""
    DIRECT = "direct"
    AIRBNB = "airbnb"
    BOOKING = "booking"
    VRBO = "vrbo"


class Booking(Base):
    """Booking entity created once, when the guest's payment completes."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    listing_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="SET NULL"), nullable=True, index=True
    )
    owner_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("owners.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # One booking per inquiry
    inquiry_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("inquiries.id"), nullable=False, unique=True, index=True
    )

    channel: Mapped[str] = mapped_column(String(16), nullable=False, default=BookingChannel.DIRECT.value)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    platform_fee_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    platform_fee_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    owner_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.PAID.value, index=True
    )

    stripe_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_booking_total_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, inquiry_id={self.inquiry_id}, "
            f"total={self.total_amount} {self.currency}, status={self.status})>"
        )
