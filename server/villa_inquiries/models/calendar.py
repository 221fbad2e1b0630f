"""Calendar block model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base, utcnow


class CalendarBlockSource(str, Enum):
    """Where an unavailable range came from."""
    AIRBNB = "airbnb"
    BOOKING = "booking"
    MANUAL = "manual"


class CalendarBlock(Base):
    """An unavailable date range of a listing; end date is exclusive."""

    __tablename__ = "calendar_blocks"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    listing_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), nullable=False
    )

    # ISO dates compare correctly as strings
    start_date: Mapped[str] = mapped_column(String(10), nullable=False)
    end_date: Mapped[str] = mapped_column(String(10), nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default=CalendarBlockSource.MANUAL.value)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_calendar_block_range"),
        Index("ix_calendar_blocks_listing_start", "listing_id", "start_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<CalendarBlock(listing_id={self.listing_id}, "
            f"{self.start_date}..{self.end_date}, source={self.source})>"
        )
