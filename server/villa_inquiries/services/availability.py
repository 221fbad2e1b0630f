"""Soft availability check against imported calendar blocks."""

import logging
from typing import Optional

from ..core.exceptions import ValidationError
from ..schemas.availability import AvailabilityResponse, ConflictingBlock
from ..schemas.inquiry import parse_iso_date
from .inquiry_store import InquiryStore

logger = logging.getLogger(__name__)

MESSAGE_UNKNOWN = "Listing not found in system. Please contact us directly."
MESSAGE_UNAVAILABLE = "These dates appear unavailable, but we can double-check with the owner."
MESSAGE_AVAILABLE = "These dates appear available, we will confirm with the owner."


class AvailabilityService:
    """Read-only date conflict lookup used by the booking widget."""

    def __init__(self, store: InquiryStore):
        self.store = store

    def _validate(self, slug: Optional[str], check_in: Optional[str], check_out: Optional[str]) -> None:
        if not slug or not check_in or not check_out:
            raise ValidationError(
                detail="Missing required parameters: slug, checkIn, checkOut",
                errors={
                    name: "Required"
                    for name, value in (("slug", slug), ("checkIn", check_in), ("checkOut", check_out))
                    if not value
                },
            )
        errors = {}
        if parse_iso_date(check_in) is None:
            errors["checkIn"] = "Use YYYY-MM-DD"
        if parse_iso_date(check_out) is None:
            errors["checkOut"] = "Use YYYY-MM-DD"
        if errors:
            raise ValidationError(detail="Invalid date format. Use YYYY-MM-DD", errors=errors)
        if check_out <= check_in:
            raise ValidationError(
                detail="checkOut must be after checkIn",
                errors={"checkOut": "Must be after checkIn"},
            )

    async def check(self, slug: Optional[str], check_in: Optional[str], check_out: Optional[str]) -> AvailabilityResponse:
        """
        Report whether the stay overlaps any calendar block.

        Raises:
            ValidationError: If a parameter is missing or the dates are malformed
        """
        self._validate(slug, check_in, check_out)

        listing = await self.store.get_listing_by_slug(slug)
        if listing is None:
            return AvailabilityResponse(
                available="unknown",
                message=MESSAGE_UNKNOWN,
                slug=slug,
                check_in=check_in,
                check_out=check_out,
            )

        blocks = await self.store.get_calendar_blocks_overlapping(listing.id, check_in, check_out)
        logger.debug(
            "Availability checked",
            extra={"slug": slug, "conflicts": len(blocks)}
        )
        return AvailabilityResponse(
            available=not blocks,
            message=MESSAGE_UNAVAILABLE if blocks else MESSAGE_AVAILABLE,
            slug=slug,
            listing_id=str(listing.id),
            check_in=check_in,
            check_out=check_out,
            conflicting_blocks=[
                ConflictingBlock(start_date=b.start_date, end_date=b.end_date, source=b.source)
                for b in blocks
            ],
        )
