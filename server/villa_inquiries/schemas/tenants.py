"""Owner and listing creation schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.listing import ListingStatus, ListingType, PricingStrategy
from ..models.owner import OwnerTier


class OwnerCreate(BaseModel):
    """Fields of a new owner record."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320)
    tier: OwnerTier = OwnerTier.PERFORMANCE_STARTER
    payout_account_ref: Optional[str] = Field(None, description="Stripe Connect account id")
    currency: str = Field("EUR", pattern=r"^[A-Z]{3}$")
    commission_percent: Decimal = Field(Decimal("10"), ge=0, le=100)
    contract_start: Optional[datetime] = None
    contract_months: Optional[int] = Field(None, ge=1)


class ListingCreate(BaseModel):
    """Fields of a new listing record."""

    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    name: str = Field(..., min_length=1, max_length=255)
    type: ListingType = ListingType.VILLA
    owner_id: Optional[UUID] = None
    country: str = Field(..., min_length=1)
    region: Optional[str] = None
    city: Optional[str] = None
    max_guests: int = Field(2, ge=1)
    commission_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    base_currency: str = Field("EUR", pattern=r"^[A-Z]{3}$")
    pricing_strategy: PricingStrategy = PricingStrategy.SEASONAL
    status: ListingStatus = ListingStatus.ACTIVE
