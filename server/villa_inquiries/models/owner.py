"""Owner model definition."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .listing import Listing


class OwnerTier(str, Enum):
    """Payout tier of an owner contract."""
    ASSET_PARTNER = "asset-partner"
    PERFORMANCE_STARTER = "performance-starter"
    BUYOUT = "buyout"


class Owner(Base):
    """Owner entity: the payee and contact for one or more listings."""

    __tablename__ = "owners"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    tier: Mapped[str] = mapped_column(String(32), nullable=False, default=OwnerTier.PERFORMANCE_STARTER.value)

    # Stripe Connect account the payout goes to
    payout_account_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    commission_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("10"))

    contract_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    contract_months: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    listings: Mapped[list["Listing"]] = relationship("Listing", back_populates="owner")

    def __repr__(self) -> str:
        return f"<Owner(id={self.id}, email='{self.email}', tier={self.tier})>"
