"""Unit tests for the inquiry lifecycle transition table."""

import pytest

from villa_inquiries.core.exceptions import IllegalTransitionError
from villa_inquiries.models.inquiry import InquiryStatus
from villa_inquiries.services.state_machine import (
    TRANSITIONS,
    InquiryEvent,
    SideEffect,
    is_allowed,
    is_terminal,
    transition,
)

S = InquiryStatus
E = InquiryEvent


@pytest.mark.parametrize("current,event,target", [
    (None, E.SUBMITTED, S.PENDING_OWNER),
    (S.PENDING_OWNER, E.OWNER_APPROVED, S.APPROVED),
    (S.PENDING_OWNER, E.OWNER_DECLINED, S.DECLINED),
    (S.APPROVED, E.CHECKOUT_CREATED, S.AWAITING_PAYMENT),
    (S.AWAITING_PAYMENT, E.PAYMENT_COMPLETED, S.PAID),
    (S.AWAITING_PAYMENT, E.CHECKOUT_EXPIRED, S.APPROVED),
])
def test_legal_transitions(current, event, target):
    assert transition(current, event).target is target


def test_transition_accepts_stored_string_status():
    assert transition("pending_owner", E.OWNER_APPROVED).target is S.APPROVED


@pytest.mark.parametrize("current", [S.APPROVED, S.DECLINED, S.AWAITING_PAYMENT, S.PAID, S.CANCELLED])
@pytest.mark.parametrize("event", [E.OWNER_APPROVED, E.OWNER_DECLINED])
def test_owner_decisions_only_from_pending(current, event):
    with pytest.raises(IllegalTransitionError) as exc_info:
        transition(current, event)
    assert exc_info.value.current_status == current.value
    assert exc_info.value.status_code == 409


def test_expiry_rolls_back_to_approved_not_pending():
    assert transition(S.AWAITING_PAYMENT, E.CHECKOUT_EXPIRED).target is S.APPROVED
    # and the approval can be paid for again
    assert is_allowed(S.APPROVED, E.CHECKOUT_CREATED)


def test_terminal_states_have_no_exits():
    for status in (S.DECLINED, S.PAID, S.CANCELLED):
        assert is_terminal(status)
        assert not any(source is status for source, _ in TRANSITIONS)


def test_cancelled_is_never_produced():
    assert all(t.target is not S.CANCELLED for t in TRANSITIONS.values())


def test_side_effects():
    assert SideEffect.CREATE_CHECKOUT in transition(S.PENDING_OWNER, E.OWNER_APPROVED).side_effects
    assert SideEffect.NOTIFY_GUEST_DECLINE in transition(S.PENDING_OWNER, E.OWNER_DECLINED).side_effects
    assert SideEffect.CREATE_BOOKING in transition(S.AWAITING_PAYMENT, E.PAYMENT_COMPLETED).side_effects
    assert transition(S.AWAITING_PAYMENT, E.CHECKOUT_EXPIRED).side_effects[0] is SideEffect.CLEAR_CHECKOUT_SESSION
    assert transition(S.AWAITING_PAYMENT, E.CHECKOUT_EXPIRED).requires(SideEffect.CLEAR_CHECKOUT_SESSION)
    assert transition(S.APPROVED, E.CHECKOUT_CREATED).side_effects == ()


def test_payment_cannot_skip_checkout():
    assert not is_allowed(S.APPROVED, E.PAYMENT_COMPLETED)
    assert not is_allowed(S.PENDING_OWNER, E.PAYMENT_COMPLETED)
