"""Unit tests for checkout creation and payment webhook handling."""

from decimal import Decimal

import pytest
import pytest_asyncio

from conftest import WEBHOOK_SECRET, checkout_event, stripe_signature_header
from villa_inquiries.core.exceptions import IllegalTransitionError, ServiceUnavailableError, WebhookVerificationError
from villa_inquiries.models.inquiry import InquiryStatus
from villa_inquiries.schemas.inquiry import InquiryCreate
from villa_inquiries.services.checkout import (
    CheckoutService,
    PaymentEvent,
    PaymentEventType,
    compute_commission_split,
)
from villa_inquiries.services.state_machine import TRANSITIONS, InquiryEvent, SideEffect, Transition


@pytest_asyncio.fixture
async def approved_inquiry(store, listing):
    inquiry = await store.create_inquiry(
        InquiryCreate(
            listing_id=listing.id,
            guest_name="Ana Guest",
            guest_email="ana@guest.test",
            check_in="2026-07-01",
            check_out="2026-07-08",
            party_size=3,
            currency="EUR",
            owner_email="marta@owners.test",
        )
    )
    return await store.update_inquiry_status(inquiry.id, InquiryStatus.APPROVED, quote_amount=Decimal("5850"))


@pytest_asyncio.fixture
async def awaiting_inquiry(store, approved_inquiry):
    return await store.update_inquiry_status(
        approved_inquiry.id, InquiryStatus.AWAITING_PAYMENT, checkout_session_id="cs_live_1"
    )


def completed(inquiry_id, session_id="cs_live_1", **kwargs) -> PaymentEvent:
    return PaymentEvent(
        type=PaymentEventType.COMPLETED,
        session_id=session_id,
        metadata={"inquiryId": str(inquiry_id)},
        amount_total=585000,
        currency="EUR",
        payment_intent_id="pi_1",
        provider_type="checkout.session.completed",
        **kwargs,
    )


def expired(inquiry_id, session_id) -> PaymentEvent:
    return PaymentEvent(
        type=PaymentEventType.EXPIRED,
        session_id=session_id,
        metadata={"inquiryId": str(inquiry_id)},
        provider_type="checkout.session.expired",
    )


@pytest.mark.parametrize("total,percent,fee,owner", [
    ("5850", "12", "702.00", "5148.00"),
    ("1000.00", "10", "100.00", "900.00"),
    ("1000.00", "15", "150.00", "850.00"),
    ("999.99", "10", "100.00", "899.99"),
    ("999.99", "15", "150.00", "849.99"),
    ("0.01", "10", "0.00", "0.01"),
    ("0.01", "15", "0.00", "0.01"),
    ("100", "0", "0.00", "100.00"),
    ("0.05", "10", "0.01", "0.04"),
])
def test_commission_split(total, percent, fee, owner):
    split = compute_commission_split(Decimal(total), Decimal(percent))

    assert split.platform_fee_amount == Decimal(fee)
    assert split.owner_amount == Decimal(owner)
    assert split.platform_fee_amount + split.owner_amount == split.total_amount


@pytest.mark.asyncio
async def test_start_payment_moves_to_awaiting_payment(checkout_service, payment_provider, store, listing,
                                                      approved_inquiry):
    ref = await checkout_service.start_payment(approved_inquiry, listing, Decimal("5850"), "EUR")

    assert ref.id == "cs_test_1"
    [params] = payment_provider.sessions
    assert params["amount_minor_units"] == 585000
    assert params["currency"] == "EUR"
    assert params["metadata"]["inquiryId"] == str(approved_inquiry.id)
    assert params["listing_name"] == "Villa Azul"
    assert params["success_url"].startswith("https://villas.test/villas/villa-azul/en/thank-you?payment=success")

    refreshed = await store.get_inquiry_by_id(approved_inquiry.id)
    assert refreshed.status == InquiryStatus.AWAITING_PAYMENT.value
    assert refreshed.checkout_session_id == "cs_test_1"


@pytest.mark.asyncio
async def test_start_payment_provider_failure_leaves_approved(checkout_service, payment_provider, store, listing,
                                                             approved_inquiry):
    payment_provider.fail = True

    assert await checkout_service.start_payment(approved_inquiry, listing, Decimal("5850"), "EUR") is None
    assert (await store.get_inquiry_by_id(approved_inquiry.id)).status == InquiryStatus.APPROVED.value


@pytest.mark.asyncio
async def test_start_payment_requires_approved_inquiry(checkout_service, payment_provider, store, listing,
                                                      awaiting_inquiry):
    with pytest.raises(IllegalTransitionError) as exc_info:
        await checkout_service.start_payment(awaiting_inquiry, listing, Decimal("5850"), "EUR")

    assert exc_info.value.current_status == InquiryStatus.AWAITING_PAYMENT.value
    assert payment_provider.sessions == []


@pytest.mark.asyncio
async def test_no_provider_configured(store, notifier, settings, listing, approved_inquiry):
    service = CheckoutService(store, None, notifier, settings)

    assert await service.create_checkout_session(approved_inquiry, listing, Decimal("5850"), "EUR") is None
    with pytest.raises(ServiceUnavailableError):
        service.parse_webhook(b"{}", "t=1,v1=00")


@pytest.mark.asyncio
async def test_payment_completed_creates_booking(checkout_service, email_sender, store, owner, awaiting_inquiry):
    inquiry_id = awaiting_inquiry.id

    booking = await checkout_service.handle_session_completed(completed(inquiry_id))

    assert booking.total_amount == Decimal("5850.00")
    assert booking.platform_fee_percent == Decimal("12")
    assert booking.platform_fee_amount == Decimal("702.00")
    assert booking.owner_amount == Decimal("5148.00")
    assert booking.owner_id == owner.id
    assert booking.stripe_session_id == "cs_live_1"
    assert booking.stripe_payment_intent_id == "pi_1"

    paid = await store.get_inquiry_by_id(inquiry_id)
    assert paid.status == InquiryStatus.PAID.value
    assert paid.booking_id == booking.id

    [guest] = email_sender.of_kind("guest_payment_confirmation")
    assert guest.to == ("ana@guest.test",)
    assert str(booking.id) in guest.text
    [owner_notice] = email_sender.of_kind("owner_payment_received")
    assert "Platform Fee (12%)" in owner_notice.text
    assert "Your Payout: €5,148" in owner_notice.text


@pytest.mark.asyncio
async def test_confirmation_emails_follow_the_transition(checkout_service, email_sender, store, awaiting_inquiry,
                                                         monkeypatch):
    monkeypatch.setitem(
        TRANSITIONS,
        (InquiryStatus.AWAITING_PAYMENT, InquiryEvent.PAYMENT_COMPLETED),
        Transition(InquiryStatus.AWAITING_PAYMENT, InquiryStatus.PAID, (SideEffect.CREATE_BOOKING,)),
    )
    inquiry_id = awaiting_inquiry.id

    booking = await checkout_service.handle_session_completed(completed(inquiry_id))

    assert booking is not None
    assert (await store.get_inquiry_by_id(inquiry_id)).status == InquiryStatus.PAID.value
    assert email_sender.sent == []


@pytest.mark.asyncio
async def test_duplicate_completion_is_a_no_op(checkout_service, email_sender, store, awaiting_inquiry):
    inquiry_id = awaiting_inquiry.id
    first = await checkout_service.handle_session_completed(completed(inquiry_id))
    first_id = first.id
    sent = len(email_sender.sent)

    assert await checkout_service.handle_session_completed(completed(inquiry_id)) is None

    assert (await store.get_booking_by_inquiry_id(inquiry_id)).id == first_id
    assert len(email_sender.sent) == sent


@pytest.mark.asyncio
async def test_completion_before_checkout_is_ignored(checkout_service, store, approved_inquiry):
    inquiry_id = approved_inquiry.id

    assert await checkout_service.handle_session_completed(completed(inquiry_id)) is None
    assert await store.get_booking_by_inquiry_id(inquiry_id) is None


@pytest.mark.asyncio
async def test_completion_for_unknown_inquiry(checkout_service):
    event = PaymentEvent(type=PaymentEventType.COMPLETED, session_id="cs_x", metadata={})
    assert await checkout_service.handle_session_completed(event) is None


@pytest.mark.asyncio
async def test_amount_from_provider_when_no_quote(checkout_service, store, awaiting_inquiry):
    inquiry_id = awaiting_inquiry.id
    await store.update_inquiry_status(inquiry_id, InquiryStatus.AWAITING_PAYMENT, quote_amount=None)

    booking = await checkout_service.handle_session_completed(completed(inquiry_id))

    assert booking.total_amount == Decimal("5850.00")


@pytest.mark.asyncio
async def test_current_session_expiry_rolls_back_to_approved(checkout_service, store, awaiting_inquiry):
    inquiry_id = awaiting_inquiry.id

    assert await checkout_service.handle_session_expired(expired(inquiry_id, "cs_live_1")) is True

    refreshed = await store.get_inquiry_by_id(inquiry_id)
    assert refreshed.status == InquiryStatus.APPROVED.value
    assert refreshed.checkout_session_id is None


@pytest.mark.asyncio
async def test_stale_session_expiry_is_ignored(checkout_service, store, awaiting_inquiry):
    """An old session lapsing must not undo a newer one."""
    inquiry_id = awaiting_inquiry.id

    assert await checkout_service.handle_session_expired(expired(inquiry_id, "cs_old")) is False

    refreshed = await store.get_inquiry_by_id(inquiry_id)
    assert refreshed.status == InquiryStatus.AWAITING_PAYMENT.value
    assert refreshed.checkout_session_id == "cs_live_1"


@pytest.mark.asyncio
async def test_expiry_after_payment_is_ignored(checkout_service, store, awaiting_inquiry):
    inquiry_id = awaiting_inquiry.id
    await checkout_service.handle_session_completed(completed(inquiry_id))

    assert await checkout_service.handle_session_expired(expired(inquiry_id, "cs_live_1")) is False
    assert (await store.get_inquiry_by_id(inquiry_id)).status == InquiryStatus.PAID.value


def test_parse_signed_webhook(payment_provider):
    payload = checkout_event("checkout.session.completed", "inq-1", "cs_live_1")

    event = payment_provider.parse_webhook(payload.encode(), stripe_signature_header(payload))

    assert event.type is PaymentEventType.COMPLETED
    assert event.session_id == "cs_live_1"
    assert event.metadata == {"inquiryId": "inq-1"}
    assert event.amount_total == 585000
    assert event.currency == "EUR"
    assert event.payment_intent_id == "pi_test_1"


def test_unhandled_event_types_are_ignored(payment_provider):
    payload = checkout_event("payment_intent.created", "inq-1", "cs_live_1")
    event = payment_provider.parse_webhook(payload.encode(), stripe_signature_header(payload))
    assert event.type is PaymentEventType.IGNORED


@pytest.mark.parametrize("header", [
    "t=1700000000,v1=" + "0" * 64,
    "garbage",
    "",
])
def test_bad_signature_is_rejected(payment_provider, header):
    payload = checkout_event("checkout.session.completed", "inq-1", "cs_live_1")
    with pytest.raises(WebhookVerificationError):
        payment_provider.parse_webhook(payload.encode(), header)


def test_signature_from_other_secret_is_rejected(payment_provider):
    payload = checkout_event("checkout.session.completed", "inq-1", "cs_live_1")
    header = stripe_signature_header(payload, secret=WEBHOOK_SECRET + "x")
    with pytest.raises(WebhookVerificationError):
        payment_provider.parse_webhook(payload.encode(), header)


def test_missing_signature_header(checkout_service):
    with pytest.raises(WebhookVerificationError):
        checkout_service.parse_webhook(b"{}", None)
