"""Owner approve/decline decisions arriving through signed links."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from ..core.config import Settings
from ..core.database import utcnow
from ..core.exceptions import AuthenticationError, DependencyError, IllegalTransitionError, NotFoundError
from ..core.observability import record_owner_action
from ..models.inquiry import Inquiry
from ..models.listing import Listing
from ..templates import emails
from .checkout import CheckoutService
from .inquiry_store import InquiryStore
from .notifications import Notifier, stay_details
from .signing import ActionKind, ActionLinkSigner, ActionParams
from .state_machine import InquiryEvent, SideEffect, Transition, transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnerActionResult:
    action: ActionKind
    inquiry: Inquiry
    listing_name: str
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    payment_link_created: bool = False
    guest_notified: bool = False


class OwnerActionService:
    """
    Applies a verified owner decision to a pending inquiry.

    Every status change is a conditional write against ``pending_owner`` so
    a link clicked twice, or by two mail scanners at once, acts exactly once.
    The loser of a race sees IllegalTransitionError carrying the winner's status.
    """

    def __init__(
        self,
        store: InquiryStore,
        notifier: Notifier,
        checkout: CheckoutService,
        signer: ActionLinkSigner,
        settings: Settings,
    ):
        self.store = store
        self.notifier = notifier
        self.checkout = checkout
        self.signer = signer
        self.settings = settings

    async def handle(self, query: Union[str, Mapping[str, str]]) -> OwnerActionResult:
        """
        Verify a signed link and perform its action.

        Raises:
            AuthenticationError: If the link is malformed, tampered or expired
            NotFoundError: If the inquiry does not exist
            IllegalTransitionError: If the inquiry was already decided
            DependencyError: If the decision could not be stored
        """
        params = self.signer.parse_and_verify(query)
        if params is None:
            record_owner_action("unknown", "invalid_link")
            raise AuthenticationError()

        try:
            inquiry = await self.store.get_inquiry_by_id(params.inquiry_id)
        except SQLAlchemyError as exc:
            logger.error("Inquiry lookup failed", extra={"inquiry_id": params.inquiry_id}, exc_info=True)
            raise DependencyError("store") from exc
        if inquiry is None:
            record_owner_action(params.action.value, "not_found")
            raise NotFoundError("Inquiry", params.inquiry_id)

        event = InquiryEvent.OWNER_APPROVED if params.action is ActionKind.APPROVE else InquiryEvent.OWNER_DECLINED
        try:
            step = transition(inquiry.lifecycle_status, event)
        except IllegalTransitionError:
            record_owner_action(params.action.value, "already_processed")
            raise

        listing = await self._listing(inquiry)
        if params.action is ActionKind.APPROVE:
            return await self.approve(inquiry, listing, params, step)
        return await self.decline(inquiry, listing, step)

    async def _listing(self, inquiry: Inquiry) -> Optional[Listing]:
        if inquiry.listing_id is None:
            return None
        try:
            return await self.store.get_listing_by_id(inquiry.listing_id)
        except SQLAlchemyError:
            logger.warning("Listing lookup failed", extra={"inquiry_id": str(inquiry.id)}, exc_info=True)
            return None

    async def _apply(self, inquiry: Inquiry, step: Transition, event: InquiryEvent, **fields) -> Inquiry:
        try:
            moved = await self.store.transition_inquiry_status(inquiry.id, step.source, step.target, **fields)
            current = await self.store.get_inquiry_by_id(inquiry.id)
        except SQLAlchemyError as exc:
            logger.error("Owner decision could not be stored", extra={"inquiry_id": str(inquiry.id)}, exc_info=True)
            await self.store.db.rollback()
            raise DependencyError("store") from exc
        if not moved:
            status = current.status if current is not None else None
            logger.info(
                "Owner decision lost to a concurrent request",
                extra={"inquiry_id": str(inquiry.id), "status": status}
            )
            raise IllegalTransitionError(current_status=status, event=event.value)
        return current

    async def approve(
        self, inquiry: Inquiry, listing: Optional[Listing], params: ActionParams, step: Transition
    ) -> OwnerActionResult:
        price = params.amount
        currency = params.currency
        try:
            inquiry = await self._apply(
                inquiry,
                step,
                InquiryEvent.OWNER_APPROVED,
                quote_amount=price,
                currency=currency,
                approved_at=utcnow(),
            )
        except IllegalTransitionError:
            record_owner_action("approve", "already_processed")
            raise
        logger.info(
            "Inquiry approved",
            extra={"inquiry_id": str(inquiry.id), "price": str(price), "currency": currency}
        )

        checkout_url = None
        if step.requires(SideEffect.CREATE_CHECKOUT):
            try:
                session = await self.checkout.start_payment(inquiry, listing, price, currency)
                checkout_url = session.url if session else None
            except Exception:
                # The approval stands; the owner page reports the missing payment link
                logger.exception("Checkout after approval failed", extra={"inquiry_id": str(inquiry.id)})

        stay = stay_details(inquiry, listing, self.settings.from_name)
        guest_notified = False
        if step.requires(SideEffect.NOTIFY_GUEST_APPROVAL):
            guest_notified = await self._notify_guest(
                inquiry,
                emails.guest_approval(stay, price, currency, checkout_url, self.settings.checkout_session_ttl_hours),
                stay.listing_name,
                "guest_approval",
            )

        record_owner_action("approve", "applied" if checkout_url else "applied_without_checkout")
        return OwnerActionResult(
            action=ActionKind.APPROVE,
            inquiry=inquiry,
            listing_name=stay.listing_name,
            price=price,
            currency=currency,
            payment_link_created=checkout_url is not None,
            guest_notified=guest_notified,
        )

    async def decline(self, inquiry: Inquiry, listing: Optional[Listing], step: Transition) -> OwnerActionResult:
        try:
            inquiry = await self._apply(inquiry, step, InquiryEvent.OWNER_DECLINED, declined_at=utcnow())
        except IllegalTransitionError:
            record_owner_action("decline", "already_processed")
            raise
        logger.info("Inquiry declined", extra={"inquiry_id": str(inquiry.id)})

        stay = stay_details(inquiry, listing, self.settings.from_name)
        guest_notified = False
        if step.requires(SideEffect.NOTIFY_GUEST_DECLINE):
            guest_notified = await self._notify_guest(
                inquiry, emails.guest_decline(stay), stay.listing_name, "guest_decline"
            )

        record_owner_action("decline", "applied")
        return OwnerActionResult(
            action=ActionKind.DECLINE,
            inquiry=inquiry,
            listing_name=stay.listing_name,
            guest_notified=guest_notified,
        )

    async def _notify_guest(self, inquiry: Inquiry, rendered, listing_name: str, kind: str) -> bool:
        """Guest emails never undo a decision that is already stored."""
        try:
            result = await self.notifier.send_guest_email(
                rendered,
                guest_email=inquiry.guest_email,
                owner_email=inquiry.owner_email,
                listing_name=listing_name,
                kind=kind,
            )
        except Exception:
            logger.exception("Guest email failed", extra={"inquiry_id": str(inquiry.id), "kind": kind})
            return False
        return result.ok
