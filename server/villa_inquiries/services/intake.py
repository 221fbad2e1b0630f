"""Guest inquiry intake: bot screening, validation, persistence and notification."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..core.config import Settings
from ..core.exceptions import DependencyError, ValidationError
from ..core.observability import record_inquiry
from ..models.inquiry import Inquiry
from ..models.listing import Listing
from ..schemas.inquiry import (
    EMAIL_RE,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_OCCASION_LENGTH,
    MAX_PHONE_LENGTH,
    InquiryCreate,
    InquirySubmission,
    parse_iso_date,
)
from ..schemas.pricing import PricingConfig, QuoteBreakdown
from ..templates import emails
from .inquiry_store import InquiryStore
from .notifications import Notifier
from .pricing import calculate_quote, format_quote_for_email, is_rate_on_request
from .signing import ActionLinkSigner
from .state_machine import InquiryEvent, SideEffect, Transition, transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntakeOutcome:
    """What the endpoint needs to answer the guest; bots get the same answer as real guests."""

    accepted: bool
    submission: InquirySubmission
    inquiry_id: Optional[str] = None


class InquiryIntakeService:
    """Turns a submitted contact form into a pending inquiry and owner notice."""

    def __init__(
        self,
        store: InquiryStore,
        notifier: Notifier,
        signer: ActionLinkSigner,
        settings: Settings,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.notifier = notifier
        self.signer = signer
        self.settings = settings
        self.clock = clock

    def normalize(self, raw: Mapping[str, Any]) -> InquirySubmission:
        return InquirySubmission.from_raw(
            raw,
            honeypot_fields=self.settings.honeypot_fields,
            max_notes_length=self.settings.max_notes_length,
            default_language=self.settings.default_language,
        )

    def is_bot(self, submission: InquirySubmission) -> bool:
        if submission.honeypot:
            return True
        min_dwell = self.settings.min_form_dwell_ms
        if min_dwell <= 0:
            return False
        if submission.rendered_at_ms is None:
            return True
        dwell_ms = int(self.clock() * 1000) - submission.rendered_at_ms
        return dwell_ms < min_dwell

    def validate(self, submission: InquirySubmission) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not submission.full_name:
            errors["fullName"] = "Required"
        if not EMAIL_RE.match(submission.email):
            errors["email"] = "Invalid email"
        for key, value, limit in (
            ("fullName", submission.full_name, MAX_NAME_LENGTH),
            ("email", submission.email, MAX_EMAIL_LENGTH),
            ("phone", submission.phone, MAX_PHONE_LENGTH),
            ("occasion", submission.occasion, MAX_OCCASION_LENGTH),
        ):
            if key not in errors and value and len(value) > limit:
                errors[key] = f"Must be at most {limit} characters"

        if not submission.check_in:
            errors["checkIn"] = "Required"
        elif parse_iso_date(submission.check_in) is None:
            errors["checkIn"] = "Use YYYY-MM-DD"
        if not submission.check_out:
            errors["checkOut"] = "Required"
        elif parse_iso_date(submission.check_out) is None:
            errors["checkOut"] = "Use YYYY-MM-DD"

        if "checkIn" not in errors and "checkOut" not in errors and submission.check_out <= submission.check_in:
            errors["checkOut"] = "Must be after check-in"
        return errors

    async def resolve_owner_email(self, listing: Optional[Listing]) -> str:
        """Owner address for a listing; any lookup problem falls back to the configured default."""
        fallback = self.settings.resolved_owner_fallback_email
        if listing is None or listing.owner_id is None:
            return fallback
        try:
            owner = await self.store.get_owner_by_id(listing.owner_id)
        except SQLAlchemyError:
            logger.warning("Owner lookup failed", extra={"listing_id": str(listing.id)}, exc_info=True)
            return fallback
        if owner is None or not owner.email:
            return fallback
        return owner.email

    async def _load_listing(self, slug: Optional[str]) -> tuple[Optional[Listing], Optional[PricingConfig]]:
        if not slug:
            return None, None
        try:
            listing = await self.store.get_listing_by_slug(slug)
            pricing = await self.store.get_listing_pricing(listing.id) if listing else None
        except SQLAlchemyError:
            logger.warning("Listing lookup failed", extra={"slug": slug}, exc_info=True)
            await self.store.db.rollback()
            return None, None
        if listing is None:
            logger.info("Inquiry for unknown listing", extra={"slug": slug})
        return listing, pricing

    def _quote(
        self,
        listing: Optional[Listing],
        pricing: Optional[PricingConfig],
        submission: InquirySubmission,
    ) -> Optional[QuoteBreakdown]:
        if is_rate_on_request(listing, pricing):
            return None
        try:
            return calculate_quote(pricing, submission.check_in, submission.check_out, submission.party_size)
        except (ValueError, ArithmeticError):
            logger.warning("Quote calculation failed", extra={"slug": listing.slug}, exc_info=True)
            return None

    async def _persist(
        self,
        submission: InquirySubmission,
        listing: Optional[Listing],
        currency: str,
        owner_email: str,
        step: Transition,
    ) -> Optional[Inquiry]:
        try:
            return await self.store.create_inquiry(
                InquiryCreate(
                    listing_id=listing.id if listing else None,
                    guest_name=submission.full_name,
                    guest_email=submission.email,
                    guest_phone=submission.phone,
                    check_in=submission.check_in,
                    check_out=submission.check_out,
                    party_size=submission.party_size,
                    message=submission.notes or None,
                    occasion=submission.occasion,
                    language=submission.lang,
                    currency=currency,
                    owner_email=owner_email,
                ),
                status=step.target,
            )
        except SQLAlchemyError:
            logger.error(
                "Inquiry could not be stored; notifying without action links",
                extra={"slug": submission.slug},
                exc_info=True,
            )
            await self.store.db.rollback()
            return None

    async def _record_quote(self, inquiry_id: str, quote: QuoteBreakdown) -> None:
        try:
            await self.store.record_quote(inquiry_id, quote.total, quote.currency)
        except SQLAlchemyError:
            logger.warning("Quote could not be stored", extra={"inquiry_id": inquiry_id}, exc_info=True)
            await self.store.db.rollback()

    async def submit(self, raw: Mapping[str, Any]) -> IntakeOutcome:
        """
        Process one form submission.

        Raises:
            ValidationError: If a real (non-bot) submission has bad fields
            DependencyError: If the owner notification could not be sent
        """
        submission = self.normalize(raw)

        if self.is_bot(submission):
            logger.info("Suppressed bot submission", extra={"slug": submission.slug})
            record_inquiry("bot")
            return IntakeOutcome(accepted=False, submission=submission)

        errors = self.validate(submission)
        if errors:
            record_inquiry("invalid")
            raise ValidationError(errors=errors)

        listing, pricing = await self._load_listing(submission.slug)
        owner_email = await self.resolve_owner_email(listing)
        if pricing is not None:
            currency = pricing.currency
        elif listing is not None:
            currency = listing.base_currency
        else:
            currency = self.settings.default_currency

        # Read everything needed from the listing first; a failed write below rolls back the session
        listing_name = listing.name if listing else self.settings.from_name
        quote = self._quote(listing, pricing, submission)

        step = transition(None, InquiryEvent.SUBMITTED)
        inquiry = await self._persist(submission, listing, currency, owner_email, step)
        inquiry_id = str(inquiry.id) if inquiry is not None else None
        if inquiry_id is not None and quote is not None:
            await self._record_quote(inquiry_id, quote)

        approve_url = decline_url = None
        if inquiry_id is not None:
            ttl = self.settings.action_link_ttl_hours
            decline_url = self.signer.generate_decline_url(self.settings.site_url, inquiry_id, ttl)
            if quote is not None and quote.total > 0:
                approve_url = self.signer.generate_approve_url(
                    self.settings.site_url, inquiry_id, quote.total, quote.currency, ttl
                )
        else:
            logger.warning("Owner notice sent without action links", extra={"slug": submission.slug})

        stay = emails.StayDetails(
            guest_name=submission.full_name,
            guest_email=submission.email,
            check_in=submission.check_in,
            check_out=submission.check_out,
            party_size=submission.party_size,
            listing_name=listing_name,
            adults=submission.adults,
            children=submission.children,
            phone=submission.phone,
            occasion=submission.occasion,
            notes=submission.notes or None,
            language=submission.lang,
        )

        if step.requires(SideEffect.NOTIFY_OWNER):
            notice = emails.owner_inquiry_notice(
                stay,
                quote_amount=quote.total if quote else None,
                currency=quote.currency if quote else currency,
                quote_breakdown=format_quote_for_email(quote) if quote else None,
                approve_url=approve_url,
                decline_url=decline_url,
                link_ttl_hours=self.settings.action_link_ttl_hours,
            )
            result = await self.notifier.send_owner_notification(
                notice, owner_email=owner_email, guest_email=submission.email, listing_name=listing_name
            )
            if not result.ok:
                record_inquiry("notify_failed")
                raise DependencyError(
                    "email", detail="We could not send your inquiry right now. Please try again shortly."
                )

        if step.requires(SideEffect.NOTIFY_GUEST_RECEIPT):
            try:
                await self.notifier.send_guest_email(
                    emails.guest_receipt(stay, self.settings.public_contact_email),
                    guest_email=submission.email,
                    owner_email=owner_email,
                    listing_name=listing_name,
                    kind="guest_receipt",
                )
            except Exception:
                logger.exception("Guest receipt failed", extra={"slug": submission.slug})

        record_inquiry("accepted")
        return IntakeOutcome(
            accepted=True,
            submission=submission,
            inquiry_id=inquiry_id,
        )
