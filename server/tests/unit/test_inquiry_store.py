"""Unit tests for the inquiry store."""

from decimal import Decimal
from uuid import uuid4

import pytest

from villa_inquiries.models.calendar import CalendarBlockSource
from villa_inquiries.models.inquiry import InquiryStatus
from villa_inquiries.schemas.availability import CalendarBlockCreate
from villa_inquiries.schemas.booking import BookingCreate, CommissionSplit
from villa_inquiries.schemas.inquiry import InquiryCreate
from villa_inquiries.schemas.tenants import OwnerCreate
from villa_inquiries.services.state_machine import InquiryEvent, transition

PAID = transition(InquiryStatus.AWAITING_PAYMENT, InquiryEvent.PAYMENT_COMPLETED)
EXPIRED = transition(InquiryStatus.AWAITING_PAYMENT, InquiryEvent.CHECKOUT_EXPIRED)


def new_inquiry(listing_id=None, **overrides) -> InquiryCreate:
    data = {
        "listing_id": listing_id,
        "guest_name": "Ana Guest",
        "guest_email": "ana@guest.test",
        "check_in": "2026-07-01",
        "check_out": "2026-07-08",
        "party_size": 3,
        "currency": "EUR",
        "owner_email": "marta@owners.test",
    }
    data.update(overrides)
    return InquiryCreate(**data)


def split(total: str, fee: str) -> CommissionSplit:
    return CommissionSplit(
        total_amount=Decimal(total),
        platform_fee_percent=Decimal("12"),
        platform_fee_amount=Decimal(fee),
        owner_amount=Decimal(total) - Decimal(fee),
    )


@pytest.mark.asyncio
async def test_get_or_create_owner_is_idempotent(store):
    """A second onboarding with the same email returns the first owner."""
    first = await store.get_or_create_owner(OwnerCreate(name="Marta", email="Marta@Owners.test"))
    second = await store.get_or_create_owner(OwnerCreate(name="Marta R.", email="marta@owners.test "))

    assert first.id == second.id
    assert first.email == "marta@owners.test"


@pytest.mark.asyncio
async def test_find_owner_by_email_missing(store):
    assert await store.find_owner_by_email("nobody@owners.test") is None


@pytest.mark.asyncio
async def test_listing_inherits_owner_commission(listing, owner):
    assert listing.commission_percent == owner.commission_percent


@pytest.mark.asyncio
async def test_listing_lookup(store, listing):
    assert (await store.get_listing_by_slug("villa-azul")).id == listing.id
    assert (await store.get_listing_by_id(str(listing.id))).slug == "villa-azul"
    assert await store.get_listing_by_slug("villa-nada") is None
    assert await store.get_listing_by_id("not-a-uuid") is None


@pytest.mark.asyncio
async def test_pricing_round_trip(store, listing, high_season_pricing):
    pricing = await store.get_listing_pricing(listing.id)

    assert pricing.high_season_rate == high_season_pricing.high_season_rate
    assert pricing.peak_dates == ("12-24", "12-25", "12-31")
    assert pricing.minimum_nights == 3


@pytest.mark.asyncio
async def test_overlapping_blocks_use_half_open_ranges(store, listing):
    """A block ending on check-in day or starting on check-out day does not overlap."""
    for start, end in [("2026-06-20", "2026-07-01"), ("2026-07-05", "2026-07-06"), ("2026-07-08", "2026-07-15")]:
        await store.create_calendar_block(
            CalendarBlockCreate(listing_id=listing.id, start_date=start, end_date=end, source=CalendarBlockSource.AIRBNB)
        )

    blocks = await store.get_calendar_blocks_overlapping(listing.id, "2026-07-01", "2026-07-08")

    assert [(b.start_date, b.end_date) for b in blocks] == [("2026-07-05", "2026-07-06")]


@pytest.mark.asyncio
async def test_create_inquiry_starts_pending_and_omits_unset_fields(store, listing):
    inquiry = await store.create_inquiry(new_inquiry(listing.id))

    assert inquiry.status == InquiryStatus.PENDING_OWNER.value
    assert inquiry.quote_amount is None
    assert inquiry.guest_phone is None
    assert inquiry.created_at is not None
    assert inquiry.updated_at is not None


@pytest.mark.asyncio
async def test_record_quote(store, listing):
    inquiry = await store.create_inquiry(new_inquiry(listing.id))
    await store.record_quote(inquiry.id, Decimal("5850"), "EUR")

    refreshed = await store.get_inquiry_by_id(inquiry.id)
    assert refreshed.quote_amount == Decimal("5850")


@pytest.mark.asyncio
async def test_transition_is_compare_and_swap(store):
    """Only the first of two identical transitions applies."""
    inquiry = await store.create_inquiry(new_inquiry())

    first = await store.transition_inquiry_status(inquiry.id, InquiryStatus.PENDING_OWNER, InquiryStatus.APPROVED)
    second = await store.transition_inquiry_status(inquiry.id, InquiryStatus.PENDING_OWNER, InquiryStatus.DECLINED)

    assert first is True
    assert second is False
    assert (await store.get_inquiry_by_id(inquiry.id)).status == InquiryStatus.APPROVED.value


@pytest.mark.asyncio
async def test_transition_unknown_inquiry(store):
    assert await store.transition_inquiry_status(uuid4(), InquiryStatus.PENDING_OWNER, InquiryStatus.APPROVED) is False


@pytest.mark.asyncio
async def test_update_inquiry_status_is_unconditional(store):
    inquiry = await store.create_inquiry(new_inquiry())
    updated = await store.update_inquiry_status(inquiry.id, InquiryStatus.CANCELLED)
    assert updated.status == InquiryStatus.CANCELLED.value


@pytest.mark.asyncio
async def test_release_checkout_session_requires_current_session(store):
    inquiry = await store.create_inquiry(new_inquiry())
    await store.update_inquiry_status(inquiry.id, InquiryStatus.AWAITING_PAYMENT, checkout_session_id="cs_new")

    assert await store.release_checkout_session(inquiry.id, "cs_old", EXPIRED) is False
    assert await store.release_checkout_session(inquiry.id, "cs_new", EXPIRED) is True

    refreshed = await store.get_inquiry_by_id(inquiry.id)
    assert refreshed.status == InquiryStatus.APPROVED.value
    assert refreshed.checkout_session_id is None


@pytest.mark.asyncio
async def test_complete_payment_creates_one_booking(store, listing, owner):
    inquiry = await store.create_inquiry(new_inquiry(listing.id))
    inquiry_id = inquiry.id
    await store.update_inquiry_status(inquiry.id, InquiryStatus.AWAITING_PAYMENT, checkout_session_id="cs_1")
    data = BookingCreate(
        listing_id=listing.id,
        owner_id=owner.id,
        inquiry_id=inquiry.id,
        currency="EUR",
        split=split("5850.00", "702.00"),
        stripe_session_id="cs_1",
    )

    booking = await store.complete_payment(inquiry.id, data, PAID)

    assert booking is not None
    booking_id = booking.id
    assert booking.owner_amount + booking.platform_fee_amount == booking.total_amount

    paid = await store.get_inquiry_by_id(inquiry.id)
    assert paid.status == InquiryStatus.PAID.value
    assert paid.booking_id == booking_id
    assert paid.paid_at is not None

    assert await store.complete_payment(inquiry_id, data, PAID) is None
    assert (await store.get_booking_by_inquiry_id(inquiry_id)).id == booking_id


@pytest.mark.asyncio
async def test_complete_payment_requires_awaiting_payment(store):
    inquiry = await store.create_inquiry(new_inquiry())
    inquiry_id = inquiry.id
    data = BookingCreate(inquiry_id=inquiry_id, currency="EUR", split=split("100.00", "12.00"))

    assert await store.complete_payment(inquiry_id, data, PAID) is None
    assert await store.get_booking_by_inquiry_id(inquiry_id) is None


@pytest.mark.asyncio
async def test_booking_status_update(store):
    inquiry = await store.create_inquiry(new_inquiry())
    booking = await store.create_booking(
        BookingCreate(inquiry_id=inquiry.id, currency="EUR", split=split("100.00", "12.00"))
    )
    assert booking.status == "paid"

    cancelled = await store.update_booking_status(booking.id, "cancelled")
    assert cancelled.status == "cancelled"
    assert await store.get_booking_by_id(uuid4()) is None
