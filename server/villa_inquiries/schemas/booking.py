"""Booking-related Pydantic schemas."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.booking import BookingChannel, BookingStatus


class CommissionSplit(BaseModel):
    """Platform fee and owner payout of one paid total."""

    model_config = ConfigDict(frozen=True)

    total_amount: Decimal
    platform_fee_percent: Decimal
    platform_fee_amount: Decimal
    owner_amount: Decimal

    @model_validator(mode="after")
    def check_balanced(self) -> "CommissionSplit":
        if self.platform_fee_amount + self.owner_amount != self.total_amount:
            raise ValueError("platform fee and owner amount must sum to the total")
        return self


class BookingCreate(BaseModel):
    """Fields of a booking written when payment completes."""

    listing_id: Optional[UUID] = None
    owner_id: Optional[UUID] = None
    inquiry_id: UUID
    channel: BookingChannel = BookingChannel.DIRECT
    currency: str = Field(..., pattern=r"^[A-Z]{3}$")
    split: CommissionSplit
    status: BookingStatus = BookingStatus.PAID
    stripe_session_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None

    def to_row(self) -> dict:
        row = self.model_dump(exclude={"split"}, exclude_none=True, mode="python")
        row["channel"] = self.channel.value
        row["status"] = self.status.value
        row.update(self.split.model_dump())
        return row
