"""Pricing value objects."""

import re
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MMDD_PATTERN = r"^(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$"


class Season(str, Enum):
    """Season tier of a single night."""
    LOW = "low"
    HIGH = "high"
    PEAK = "peak"


class PricingConfig(BaseModel):
    """Seasonal rate table used to compute a tentative quote."""

    model_config = ConfigDict(frozen=True)

    currency: str = Field(..., pattern=r"^[A-Z]{3}$")
    low_season_rate: Decimal = Field(..., ge=0)
    high_season_rate: Decimal = Field(..., ge=0)
    peak_season_rate: Optional[Decimal] = Field(None, ge=0)
    high_season_start: str = Field(..., pattern=MMDD_PATTERN)
    high_season_end: str = Field(..., pattern=MMDD_PATTERN)
    peak_dates: tuple[str, ...] = ()
    cleaning_fee: Decimal = Field(Decimal("0"), ge=0)
    security_deposit: Optional[Decimal] = Field(None, ge=0, description="Refundable, not quoted")
    minimum_nights: int = Field(1, ge=1)
    base_guests: Optional[int] = Field(None, ge=1)
    extra_guest_fee: Optional[Decimal] = Field(None, ge=0, description="Per extra guest per night")

    @field_validator("peak_dates")
    @classmethod
    def validate_peak_dates(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for mmdd in v:
            if not re.match(MMDD_PATTERN, mmdd):
                raise ValueError(f"Peak date '{mmdd}' is not MM-DD")
        return v


class NightlyRate(BaseModel):
    """Rate applied to one night of a stay."""

    model_config = ConfigDict(frozen=True)

    date: str
    rate: Decimal
    season: Season


class QuoteBreakdown(BaseModel):
    """Non-binding price estimate of a stay."""

    model_config = ConfigDict(frozen=True)

    nights: int
    nightly_rates: tuple[NightlyRate, ...]
    accommodation_total: Decimal
    cleaning_fee: Decimal
    extra_guest_fee: Decimal
    total: Decimal
    currency: str
    minimum_nights_met: bool
