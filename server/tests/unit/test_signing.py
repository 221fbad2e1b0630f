"""Unit tests for signed owner action links."""

from decimal import Decimal
from urllib.parse import parse_qsl, urlencode, urlsplit

import pytest

from villa_inquiries.core.config import ConfigurationError
from villa_inquiries.services.signing import ActionKind, ActionLinkSigner, ActionParams

BASE_URL = "https://villas.test"
INQUIRY_ID = "3f0e2f9c-6d1b-4b8e-9a55-0c2d7f1e8a10"
NOW = 1_780_000_000.0


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def link_signer(clock):
    return ActionLinkSigner("unit-test-secret", clock=clock)


def query_of(url: str) -> dict:
    return dict(parse_qsl(urlsplit(url).query))


def with_query(url: str, **changes) -> str:
    query = query_of(url)
    query.update(changes)
    return f"{BASE_URL}/api/owner-action?{urlencode(query)}"


def test_missing_secret_fails_at_construction():
    """A signer without a secret cannot be built."""
    with pytest.raises(ConfigurationError):
        ActionLinkSigner("")
    with pytest.raises(ConfigurationError):
        ActionLinkSigner("   ")


def test_approve_url_round_trip(link_signer):
    """A freshly generated approve link verifies and carries its price."""
    url = link_signer.generate_approve_url(BASE_URL, INQUIRY_ID, Decimal("5850"), "eur")

    assert url.startswith(f"{BASE_URL}/api/owner-action?")
    params = link_signer.parse_and_verify(url)

    assert params is not None
    assert params.action is ActionKind.APPROVE
    assert params.inquiry_id == INQUIRY_ID
    assert params.price == "5850.00"
    assert params.amount == Decimal("5850.00")
    assert params.currency == "EUR"
    assert params.expires == int(NOW * 1000) + 72 * 3600 * 1000


def test_decline_url_has_no_financial_fields(link_signer):
    url = link_signer.generate_decline_url(BASE_URL, INQUIRY_ID)
    query = query_of(url)

    assert "price" not in query
    assert "currency" not in query
    params = link_signer.parse_and_verify(url)
    assert params.action is ActionKind.DECLINE
    assert params.amount is None


def test_payload_shapes():
    approve = ActionParams(INQUIRY_ID, ActionKind.APPROVE, 1234, price="10.50", currency="USD")
    decline = ActionParams(INQUIRY_ID, ActionKind.DECLINE, 1234)

    assert approve.payload() == f"{INQUIRY_ID}:approve:10.50:USD:1234"
    assert decline.payload() == f"{INQUIRY_ID}:decline:1234"


def test_parse_accepts_query_mapping(link_signer):
    url = link_signer.generate_decline_url(BASE_URL, INQUIRY_ID)
    params = link_signer.parse_and_verify(query_of(url))
    assert params is not None
    assert params.inquiry_id == INQUIRY_ID


@pytest.mark.parametrize("field,value", [
    ("price", "5850.01"),
    ("price", "1"),
    ("currency", "USD"),
    ("inquiryId", "3f0e2f9c-6d1b-4b8e-9a55-0c2d7f1e8a11"),
])
def test_tampered_approve_fields_are_rejected(link_signer, field, value):
    url = link_signer.generate_approve_url(BASE_URL, INQUIRY_ID, Decimal("5850"), "EUR")
    assert link_signer.parse_and_verify(with_query(url, **{field: value})) is None


def test_extended_expiry_is_rejected(link_signer):
    url = link_signer.generate_decline_url(BASE_URL, INQUIRY_ID)
    later = str(int(query_of(url)["expires"]) + 1)
    assert link_signer.parse_and_verify(with_query(url, expires=later)) is None


def test_changing_action_is_rejected(link_signer):
    url = link_signer.generate_approve_url(BASE_URL, INQUIRY_ID, Decimal("100"), "EUR")
    assert link_signer.parse_and_verify(with_query(url, action="decline")) is None


def test_expired_link_rejected_despite_valid_signature(link_signer, clock):
    """Expiry is checked independently of the signature."""
    url = link_signer.generate_decline_url(BASE_URL, INQUIRY_ID, ttl_hours=1)
    expires_ms = int(query_of(url)["expires"])

    clock.now = (expires_ms - 1) / 1000
    assert link_signer.parse_and_verify(url) is not None

    clock.now = expires_ms / 1000
    assert link_signer.parse_and_verify(url) is None

    clock.now = (expires_ms + 1) / 1000
    assert link_signer.parse_and_verify(url) is None


def test_wrong_secret_is_rejected(link_signer, clock):
    url = link_signer.generate_decline_url(BASE_URL, INQUIRY_ID)
    other = ActionLinkSigner("another-secret", clock=clock)
    assert other.parse_and_verify(url) is None


@pytest.mark.parametrize("query", [
    {},
    {"inquiryId": INQUIRY_ID, "action": "approve"},
    {"inquiryId": INQUIRY_ID, "action": "cancel", "expires": "9999999999999", "sig": "a" * 64},
    {"inquiryId": INQUIRY_ID, "action": "decline", "expires": "soon", "sig": "a" * 64},
    {"inquiryId": INQUIRY_ID, "action": "decline", "expires": "9999999999999", "sig": "not-hex"},
    {"inquiryId": "", "action": "decline", "expires": "9999999999999", "sig": "a" * 64},
])
def test_malformed_links_are_rejected(link_signer, query):
    assert link_signer.parse_and_verify(query) is None


@pytest.mark.parametrize("price", ["0", "0.00", "-5", "1e3", "5850.000", "05850"])
def test_noncanonical_prices_are_rejected(link_signer, clock, price):
    """Only canonical positive prices can be signed or verified."""
    params = ActionParams(INQUIRY_ID, ActionKind.APPROVE, int(NOW * 1000) + 60_000, price=price, currency="EUR")
    query = {**params.query(), "sig": link_signer.sign(params)}
    assert link_signer.parse_and_verify(query) is None


def test_approve_url_requires_positive_price(link_signer):
    with pytest.raises(ValueError):
        link_signer.generate_approve_url(BASE_URL, INQUIRY_ID, Decimal("0"), "EUR")


def test_verify_uses_hex_signature(link_signer):
    params = ActionParams(INQUIRY_ID, ActionKind.DECLINE, 42)
    signature = link_signer.sign(params)

    assert len(signature) == 64
    assert link_signer.verify(params, signature)
    assert not link_signer.verify(params, signature[:-1] + ("0" if signature[-1] != "0" else "1"))
