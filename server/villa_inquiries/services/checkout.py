"""Hosted checkout creation and payment webhook reconciliation."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Optional, Protocol

import stripe

from ..core.config import Settings
from ..core.exceptions import IllegalTransitionError, ServiceUnavailableError, WebhookVerificationError
from ..core.observability import record_checkout_session, record_payment_event
from ..models.booking import Booking
from ..models.inquiry import Inquiry
from ..models.listing import Listing
from ..schemas.booking import BookingCreate, CommissionSplit
from ..templates import emails
from .inquiry_store import InquiryStore
from .notifications import Notifier, stay_details
from .pricing import count_nights, from_minor_units, to_minor_units
from .state_machine import InquiryEvent, SideEffect, transition

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class PaymentProviderError(Exception):
    """The payment provider rejected or failed a request."""


class PaymentEventType(str, Enum):
    COMPLETED = "completed"
    EXPIRED = "expired"
    IGNORED = "ignored"


PROVIDER_EVENT_TYPES = {
    "checkout.session.completed": PaymentEventType.COMPLETED,
    "checkout.session.expired": PaymentEventType.EXPIRED,
}


@dataclass(frozen=True)
class CheckoutSessionRef:
    id: str
    url: str


@dataclass(frozen=True)
class PaymentEvent:
    type: PaymentEventType
    session_id: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    payment_intent_id: Optional[str] = None
    provider_type: str = ""


class PaymentProvider(Protocol):
    async def create_session(
        self,
        *,
        listing_name: str,
        description: str,
        amount_minor_units: int,
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        customer_email: Optional[str] = None,
        expires_at: Optional[int] = None,
    ) -> CheckoutSessionRef:
        ...

    def parse_webhook(self, payload: bytes, signature: str) -> PaymentEvent:
        ...


class StripePaymentProvider:
    """Stripe Checkout Sessions; the blocking SDK call runs in a worker thread."""

    def __init__(self, secret_key: str, webhook_secret: Optional[str] = None):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    async def create_session(
        self,
        *,
        listing_name: str,
        description: str,
        amount_minor_units: int,
        currency: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        customer_email: Optional[str] = None,
        expires_at: Optional[int] = None,
    ) -> CheckoutSessionRef:
        params: dict[str, Any] = {
            "api_key": self.secret_key,
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [{
                "price_data": {
                    "currency": currency.lower(),
                    "product_data": {"name": listing_name[:250], "description": description},
                    "unit_amount": amount_minor_units,
                },
                "quantity": 1,
            }],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        if expires_at:
            params["expires_at"] = expires_at

        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
        except stripe.StripeError as exc:
            raise PaymentProviderError(exc.user_message or str(exc)) from exc
        return CheckoutSessionRef(id=session.id, url=session.url)

    def parse_webhook(self, payload: bytes, signature: str) -> PaymentEvent:
        if not self.webhook_secret:
            raise ServiceUnavailableError("Payment webhooks are not configured")
        try:
            text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
            stripe.WebhookSignature.verify_header(text, signature, self.webhook_secret)
            event = json.loads(text)
            provider_type = event["type"]
            session = event["data"]["object"]
        except (ValueError, KeyError, TypeError, stripe.SignatureVerificationError) as exc:
            raise WebhookVerificationError() from exc

        event_type = PROVIDER_EVENT_TYPES.get(provider_type, PaymentEventType.IGNORED)
        return PaymentEvent(
            type=event_type,
            session_id=session.get("id"),
            metadata=dict(session.get("metadata") or {}),
            amount_total=session.get("amount_total"),
            currency=(session.get("currency") or "").upper() or None,
            payment_intent_id=session.get("payment_intent"),
            provider_type=provider_type,
        )


def compute_commission_split(total: Decimal, percent: Decimal) -> CommissionSplit:
    """Fee rounded half-up to the cent; the owner gets the exact remainder."""
    total = Decimal(total).quantize(CENT, rounding=ROUND_HALF_UP)
    percent = Decimal(percent)
    fee = (total * percent / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)
    return CommissionSplit(
        total_amount=total,
        platform_fee_percent=percent,
        platform_fee_amount=fee,
        owner_amount=total - fee,
    )


class CheckoutService:
    """Creates payment sessions for approved inquiries and applies webhook outcomes."""

    def __init__(
        self,
        store: InquiryStore,
        provider: Optional[PaymentProvider],
        notifier: Notifier,
        settings: Settings,
    ):
        self.store = store
        self.provider = provider
        self.notifier = notifier
        self.settings = settings

    def _redirect_urls(self, inquiry: Inquiry, listing: Optional[Listing]) -> tuple[str, str]:
        base = self.settings.site_url
        prefix = f"{base}/villas/{listing.slug}/en" if listing else f"{base}/en"
        return (
            f"{prefix}/thank-you?payment=success&ref={inquiry.id}",
            f"{prefix}/contact?payment=cancelled&ref={inquiry.id}",
        )

    async def create_checkout_session(
        self,
        inquiry: Inquiry,
        listing: Optional[Listing],
        price: Decimal,
        currency: str,
    ) -> Optional[CheckoutSessionRef]:
        """
        Create one hosted checkout for the whole stay.

        Returns None when no provider is configured or the provider fails;
        the caller treats that as a recoverable, owner-visible condition.
        """
        if self.provider is None:
            logger.warning("Payment provider not configured", extra={"inquiry_id": str(inquiry.id)})
            record_checkout_session(False)
            return None

        nights = count_nights(inquiry.check_in, inquiry.check_out)
        success_url, cancel_url = self._redirect_urls(inquiry, listing)
        metadata = {
            "inquiryId": str(inquiry.id),
            "listingId": str(listing.id) if listing else "",
            "guestName": inquiry.guest_name,
            "guestEmail": inquiry.guest_email,
            "checkIn": inquiry.check_in,
            "checkOut": inquiry.check_out,
            "partySize": str(inquiry.party_size),
        }
        try:
            ref = await self.provider.create_session(
                listing_name=listing.name if listing else self.settings.from_name,
                description=f"{nights} nights: {inquiry.check_in} → {inquiry.check_out}\nGuests: {inquiry.party_size}",
                amount_minor_units=to_minor_units(price, currency),
                currency=currency,
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                customer_email=inquiry.guest_email,
                expires_at=int(time.time()) + self.settings.checkout_session_ttl_hours * 3600,
            )
        except PaymentProviderError as exc:
            logger.error(
                "Checkout session creation failed",
                extra={"inquiry_id": str(inquiry.id), "error": str(exc)}
            )
            record_checkout_session(False)
            return None

        record_checkout_session(True)
        logger.info(
            "Checkout session created",
            extra={"inquiry_id": str(inquiry.id), "session_id": ref.id}
        )
        return ref

    async def start_payment(
        self,
        inquiry: Inquiry,
        listing: Optional[Listing],
        price: Decimal,
        currency: str,
    ) -> Optional[CheckoutSessionRef]:
        """
        Create a session for an approved inquiry and move it to awaiting payment.

        Returns:
            The recorded session, or None if no session could be created or recorded

        Raises:
            IllegalTransitionError: If the inquiry is not approved
        """
        step = transition(inquiry.lifecycle_status, InquiryEvent.CHECKOUT_CREATED)
        ref = await self.create_checkout_session(inquiry, listing, price, currency)
        if ref is None:
            return None

        moved = await self.store.transition_inquiry_status(
            inquiry.id, step.source, step.target, checkout_session_id=ref.id
        )
        if not moved:
            logger.warning(
                "Inquiry left approved state before checkout was recorded",
                extra={"inquiry_id": str(inquiry.id), "session_id": ref.id}
            )
            return None
        return ref

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> PaymentEvent:
        if self.provider is None:
            raise ServiceUnavailableError("Payment provider is not configured")
        if not signature:
            raise WebhookVerificationError("Missing webhook signature")
        return self.provider.parse_webhook(payload, signature)

    async def handle_event(self, event: PaymentEvent) -> None:
        if event.type is PaymentEventType.COMPLETED:
            await self.handle_session_completed(event)
        elif event.type is PaymentEventType.EXPIRED:
            await self.handle_session_expired(event)
        else:
            logger.debug("Ignoring payment event", extra={"provider_type": event.provider_type})

    async def _commission_percent(self, listing: Optional[Listing]) -> Decimal:
        if listing is not None and listing.commission_percent is not None:
            return Decimal(listing.commission_percent)
        if listing is not None and listing.owner_id is not None:
            owner = await self.store.get_owner_by_id(listing.owner_id)
            if owner is not None and owner.commission_percent is not None:
                return Decimal(owner.commission_percent)
        return Decimal(str(self.settings.default_commission_percent))

    async def handle_session_completed(self, event: PaymentEvent) -> Optional[Booking]:
        """Create the booking for a paid session; duplicates and strays are no-ops."""
        inquiry_id = event.metadata.get("inquiryId")
        inquiry = await self.store.get_inquiry_by_id(inquiry_id) if inquiry_id else None
        if inquiry is None:
            logger.warning("Payment completed for unknown inquiry", extra={"session_id": event.session_id})
            record_payment_event("completed", "unknown_inquiry")
            return None

        try:
            step = transition(inquiry.lifecycle_status, InquiryEvent.PAYMENT_COMPLETED)
        except IllegalTransitionError:
            logger.info(
                "Ignoring payment completion",
                extra={"inquiry_id": str(inquiry.id), "status": inquiry.status, "session_id": event.session_id}
            )
            record_payment_event("completed", "ignored")
            return None

        listing = await self.store.get_listing_by_id(inquiry.listing_id) if inquiry.listing_id else None
        percent = await self._commission_percent(listing)
        currency = inquiry.currency or event.currency or self.settings.default_currency
        if inquiry.quote_amount is not None:
            total = Decimal(inquiry.quote_amount)
        else:
            total = from_minor_units(event.amount_total or 0, currency)

        booking = await self.store.complete_payment(
            inquiry.id,
            BookingCreate(
                listing_id=listing.id if listing else None,
                owner_id=listing.owner_id if listing else None,
                inquiry_id=inquiry.id,
                currency=currency,
                split=compute_commission_split(total, percent),
                stripe_session_id=event.session_id,
                stripe_payment_intent_id=event.payment_intent_id,
            ),
            step,
        )
        if booking is None:
            record_payment_event("completed", "duplicate")
            return None
        record_payment_event("completed", "booked")

        if step.requires(SideEffect.NOTIFY_PAYMENT_CONFIRMATION):
            await self._send_payment_confirmations(inquiry, listing, booking)
        return booking

    async def _send_payment_confirmations(
        self, inquiry: Inquiry, listing: Optional[Listing], booking: Booking
    ) -> None:
        stay = stay_details(inquiry, listing, self.settings.from_name)
        reference = str(booking.id)
        try:
            await self.notifier.send_guest_email(
                emails.guest_payment_confirmation(stay, booking.total_amount, booking.currency, reference),
                guest_email=inquiry.guest_email,
                owner_email=inquiry.owner_email,
                listing_name=stay.listing_name,
                kind="guest_payment_confirmation",
            )
            await self.notifier.send_owner_notification(
                emails.owner_payment_received(
                    stay,
                    total=booking.total_amount,
                    platform_fee_percent=booking.platform_fee_percent,
                    platform_fee_amount=booking.platform_fee_amount,
                    owner_amount=booking.owner_amount,
                    currency=booking.currency,
                    booking_reference=reference,
                ),
                owner_email=inquiry.owner_email,
                guest_email=inquiry.guest_email,
                listing_name=stay.listing_name,
                kind="owner_payment_received",
            )
        except Exception:
            logger.exception("Payment confirmation emails failed", extra={"booking_id": reference})

    async def handle_session_expired(self, event: PaymentEvent) -> bool:
        """Roll an unpaid inquiry back to approved when its current session lapses."""
        inquiry_id = event.metadata.get("inquiryId")
        inquiry = await self.store.get_inquiry_by_id(inquiry_id) if inquiry_id else None
        if inquiry is None:
            record_payment_event("expired", "unknown_inquiry")
            return False

        try:
            step = transition(inquiry.lifecycle_status, InquiryEvent.CHECKOUT_EXPIRED)
        except IllegalTransitionError:
            step = None
        if step is None or inquiry.checkout_session_id != event.session_id:
            logger.info(
                "Ignoring stale checkout expiry",
                extra={"inquiry_id": str(inquiry.id), "status": inquiry.status, "session_id": event.session_id}
            )
            record_payment_event("expired", "ignored")
            return False

        rolled_back = await self.store.release_checkout_session(inquiry.id, event.session_id, step)
        record_payment_event("expired", "rolled_back" if rolled_back else "ignored")
        return rolled_back
