"""Inquiry lifecycle transitions."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.exceptions import IllegalTransitionError
from ..models.inquiry import InquiryStatus


class InquiryEvent(str, Enum):
    """Things that can happen to an inquiry."""
    SUBMITTED = "submitted"
    OWNER_APPROVED = "owner_approved"
    OWNER_DECLINED = "owner_declined"
    CHECKOUT_CREATED = "checkout_created"
    PAYMENT_COMPLETED = "payment_completed"
    CHECKOUT_EXPIRED = "checkout_expired"


class SideEffect(str, Enum):
    """Work a caller performs once the transition has been written."""
    NOTIFY_OWNER = "notify_owner"
    NOTIFY_GUEST_RECEIPT = "notify_guest_receipt"
    CREATE_CHECKOUT = "create_checkout"
    NOTIFY_GUEST_APPROVAL = "notify_guest_approval"
    NOTIFY_GUEST_DECLINE = "notify_guest_decline"
    CREATE_BOOKING = "create_booking"
    NOTIFY_PAYMENT_CONFIRMATION = "notify_payment_confirmation"
    CLEAR_CHECKOUT_SESSION = "clear_checkout_session"


@dataclass(frozen=True)
class Transition:
    """One legal move; writers compare-and-swap ``source`` to ``target``."""

    source: Optional[InquiryStatus]
    target: InquiryStatus
    side_effects: tuple[SideEffect, ...] = ()

    def requires(self, effect: SideEffect) -> bool:
        return effect in self.side_effects


S = InquiryStatus
E = InquiryEvent
F = SideEffect

TRANSITIONS: dict[tuple[Optional[InquiryStatus], InquiryEvent], Transition] = {
    (None, E.SUBMITTED): Transition(
        None, S.PENDING_OWNER, (F.NOTIFY_OWNER, F.NOTIFY_GUEST_RECEIPT)
    ),
    (S.PENDING_OWNER, E.OWNER_APPROVED): Transition(
        S.PENDING_OWNER, S.APPROVED, (F.CREATE_CHECKOUT, F.NOTIFY_GUEST_APPROVAL)
    ),
    (S.APPROVED, E.CHECKOUT_CREATED): Transition(
        S.APPROVED, S.AWAITING_PAYMENT
    ),
    (S.PENDING_OWNER, E.OWNER_DECLINED): Transition(
        S.PENDING_OWNER, S.DECLINED, (F.NOTIFY_GUEST_DECLINE,)
    ),
    (S.AWAITING_PAYMENT, E.PAYMENT_COMPLETED): Transition(
        S.AWAITING_PAYMENT, S.PAID, (F.CREATE_BOOKING, F.NOTIFY_PAYMENT_CONFIRMATION)
    ),
    # The approval is still valid; only this payment attempt lapsed
    (S.AWAITING_PAYMENT, E.CHECKOUT_EXPIRED): Transition(
        S.AWAITING_PAYMENT, S.APPROVED, (F.CLEAR_CHECKOUT_SESSION,)
    ),
}

TERMINAL_STATES = frozenset({S.DECLINED, S.PAID, S.CANCELLED})


def transition(current: Optional[InquiryStatus], event: InquiryEvent) -> Transition:
    """
    Resolve the transition for an event from the current status.

    Raises:
        IllegalTransitionError: If the event is not allowed from ``current``
    """
    if current is not None:
        current = InquiryStatus(current)
    found = TRANSITIONS.get((current, InquiryEvent(event)))
    if found is None:
        raise IllegalTransitionError(
            current_status=current.value if current is not None else None,
            event=InquiryEvent(event).value,
        )
    return found


def is_allowed(current: Optional[InquiryStatus], event: InquiryEvent) -> bool:
    return (current, event) in TRANSITIONS


def is_terminal(status: InquiryStatus) -> bool:
    return InquiryStatus(status) in TERMINAL_STATES
