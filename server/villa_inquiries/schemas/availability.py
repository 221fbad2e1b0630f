"""Availability and calendar schemas."""

from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.calendar import CalendarBlockSource


class ConflictingBlock(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: str = Field(..., alias="startDate", description="First blocked night (ISO date)")
    end_date: str = Field(..., alias="endDate", description="Exclusive end of the block (ISO date)")
    source: str


class AvailabilityResponse(BaseModel):
    """Soft availability signal; never a rejection of the inquiry flow."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    available: Union[bool, Literal["unknown"]]
    message: str
    slug: str
    listing_id: Optional[str] = Field(None, alias="listingId")
    check_in: str = Field(..., alias="checkIn")
    check_out: str = Field(..., alias="checkOut")
    conflicting_blocks: List[ConflictingBlock] = Field(default_factory=list, alias="conflictingBlocks")


class CalendarBlockCreate(BaseModel):
    """An unavailable range imported from a channel or entered by hand."""

    listing_id: UUID
    start_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    end_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    source: CalendarBlockSource = CalendarBlockSource.MANUAL

    @model_validator(mode="after")
    def check_range(self) -> "CalendarBlockCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self
