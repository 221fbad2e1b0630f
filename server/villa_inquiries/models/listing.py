"""Listing and listing pricing model definitions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .owner import Owner


class ListingType(str, Enum):
    """Kind of rentable property."""
    VILLA = "villa"
    YACHT = "yacht"
    BOUTIQUE_HOTEL = "boutique-hotel"


class PricingStrategy(str, Enum):
    """How a listing's price is determined; MANUAL means rate on request."""
    MANUAL = "manual"
    FIXED = "fixed"
    SEASONAL = "seasonal"
    PER_PERSON = "per-person"


class ListingStatus(str, Enum):
    """Visibility of a listing."""
    ACTIVE = "active"
    HIDDEN = "hidden"


class Listing(Base):
    """Listing entity: one rentable property addressed by its slug."""

    __tablename__ = "listings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # External join key used by the intake form; never changes
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default=ListingType.VILLA.value)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Soft reference; intake degrades to the fallback owner address when absent
    owner_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("owners.id", ondelete="SET NULL"), nullable=True, index=True
    )

    country: Mapped[str] = mapped_column(String(64), nullable=False)
    region: Mapped[str | None] = mapped_column(String(128), nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)

    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    # Mirrors the owner at creation, may diverge afterwards
    commission_percent: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    base_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    pricing_strategy: Mapped[str] = mapped_column(String(16), nullable=False, default=PricingStrategy.SEASONAL.value)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ListingStatus.ACTIVE.value)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    owner: Mapped["Owner | None"] = relationship("Owner", back_populates="listings")
    pricing: Mapped["ListingPricing | None"] = relationship(
        "ListingPricing",
        back_populates="listing",
        cascade="all, delete-orphan",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, slug='{self.slug}', name='{self.name}')>"


class ListingPricing(Base):
    """Seasonal rate table of a listing."""

    __tablename__ = "listing_pricing"

    listing_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="CASCADE"), primary_key=True
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    low_season_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    high_season_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    peak_season_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # MM-DD, recurring every year; the range may wrap across new year
    high_season_start: Mapped[str] = mapped_column(String(5), nullable=False)
    high_season_end: Mapped[str] = mapped_column(String(5), nullable=False)
    peak_dates: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    cleaning_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    # Refundable, never part of a quote
    security_deposit: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    minimum_nights: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    base_guests: Mapped[int | None] = mapped_column(Integer, nullable=True)
    extra_guest_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    listing: Mapped["Listing"] = relationship("Listing", back_populates="pricing")

    def __repr__(self) -> str:
        return f"<ListingPricing(listing_id={self.listing_id}, currency={self.currency})>"
