"""Models module exporting all database models."""

from .booking import Booking, BookingChannel, BookingStatus
from .calendar import CalendarBlock, CalendarBlockSource
from .inquiry import Inquiry, InquiryOrigin, InquiryStatus
from .listing import Listing, ListingPricing, ListingStatus, ListingType, PricingStrategy
from .owner import Owner, OwnerTier

__all__ = [
    # Tenants
    "Owner",
    "OwnerTier",
    "Listing",
    "ListingPricing",
    "ListingStatus",
    "ListingType",
    "PricingStrategy",

    # Availability
    "CalendarBlock",
    "CalendarBlockSource",

    # Inquiry lifecycle
    "Inquiry",
    "InquiryOrigin",
    "InquiryStatus",

    # Bookings
    "Booking",
    "BookingChannel",
    "BookingStatus",
]
