"""Test configuration and fixtures."""

import os

# Settings and the module-level app are built at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("OWNER_ACTION_SECRET", "test-owner-action-secret")

import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from villa_inquiries.core.config import Settings
from villa_inquiries.core.database import Base
from villa_inquiries.core.dependencies import get_db
from villa_inquiries.models import *  # noqa: F403 - Import all models
from villa_inquiries.schemas.pricing import PricingConfig
from villa_inquiries.schemas.tenants import ListingCreate, OwnerCreate
from villa_inquiries.services.checkout import (
    CheckoutService,
    CheckoutSessionRef,
    PaymentProviderError,
    StripePaymentProvider,
)
from villa_inquiries.services.email_transport import EmailResult, OutboundEmail
from villa_inquiries.services.inquiry_store import InquiryStore
from villa_inquiries.services.intake import InquiryIntakeService
from villa_inquiries.services.notifications import Notifier, RoutingConfig
from villa_inquiries.services.owner_actions import OwnerActionService
from villa_inquiries.services.signing import ActionLinkSigner

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OPERATOR_INBOX = "ops@internal.villas.test"
PUBLIC_CONTACT = "hello@villas.test"
OWNER_EMAIL = "marta@owners.test"
SITE_URL = "https://villas.test"
WEBHOOK_SECRET = "whsec_test_secret"


class RecordingEmailSender:
    """Email transport that keeps every message; ``fail_kinds`` makes chosen kinds fail."""

    def __init__(self):
        self.sent: list[OutboundEmail] = []
        self.fail_kinds: set[str] = set()

    async def send_email(self, message: OutboundEmail) -> EmailResult:
        if message.kind in self.fail_kinds:
            return EmailResult(ok=False, error="simulated transport failure")
        self.sent.append(message)
        return EmailResult(ok=True, id=f"msg_{len(self.sent)}")

    def of_kind(self, kind: str) -> list[OutboundEmail]:
        return [message for message in self.sent if message.kind == kind]


class RecordingPaymentProvider(StripePaymentProvider):
    """Stripe provider with real webhook verification and a recorded, offline session factory."""

    def __init__(self):
        super().__init__(secret_key="sk_test_unused", webhook_secret=WEBHOOK_SECRET)
        self.sessions: list[dict] = []
        self.fail = False

    async def create_session(self, **params) -> CheckoutSessionRef:
        if self.fail:
            raise PaymentProviderError("simulated provider outage")
        self.sessions.append(params)
        session_id = f"cs_test_{len(self.sessions)}"
        return CheckoutSessionRef(id=session_id, url=f"https://checkout.test/pay/{session_id}")


def stripe_signature_header(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe signs webhook deliveries."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_event(event_type: str, inquiry_id: str, session_id: str, amount_total: int = 585000,
                   currency: str = "eur") -> str:
    return json.dumps({
        "id": "evt_test",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "amount_total": amount_total,
                "currency": currency,
                "payment_intent": "pi_test_1",
                "metadata": {"inquiryId": inquiry_id},
            }
        },
    })


@pytest.fixture
def settings():
    return Settings(
        database_url=TEST_DATABASE_URL,
        environment="test",
        owner_action_secret="test-owner-action-secret",
        site_url=SITE_URL,
        operator_inbox=OPERATOR_INBOX,
        public_contact_email=PUBLIC_CONTACT,
        from_email="bookings@villas.test",
        from_name="Villas Test",
        min_form_dwell_ms=3000,
        stripe_webhook_secret=WEBHOOK_SECRET,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def payment_provider():
    return RecordingPaymentProvider()


@pytest.fixture
def store(test_session):
    return InquiryStore(test_session)


@pytest.fixture
def signer(settings):
    return ActionLinkSigner(settings.require_signing_secret())


@pytest.fixture
def notifier(email_sender, settings):
    return Notifier(email_sender, RoutingConfig.from_settings(settings))


@pytest.fixture
def checkout_service(store, payment_provider, notifier, settings):
    return CheckoutService(store, payment_provider, notifier, settings)


@pytest.fixture
def intake_service(store, notifier, signer, settings):
    return InquiryIntakeService(store, notifier, signer, settings)


@pytest.fixture
def owner_action_service(store, notifier, checkout_service, signer, settings):
    return OwnerActionService(store, notifier, checkout_service, signer, settings)


@pytest.fixture
def high_season_pricing():
    """800/night from June to September, 250 cleaning, three night minimum."""
    return PricingConfig(
        currency="EUR",
        low_season_rate=Decimal("500"),
        high_season_rate=Decimal("800"),
        peak_season_rate=Decimal("1100"),
        high_season_start="06-01",
        high_season_end="09-30",
        peak_dates=("12-24", "12-25", "12-31"),
        cleaning_fee=Decimal("250"),
        security_deposit=Decimal("1000"),
        minimum_nights=3,
        base_guests=4,
        extra_guest_fee=Decimal("40"),
    )


@pytest_asyncio.fixture
async def owner(store):
    return await store.create_owner(
        OwnerCreate(name="Marta Ruiz", email=OWNER_EMAIL, commission_percent=Decimal("12"))
    )


@pytest_asyncio.fixture
async def listing(store, owner, high_season_pricing):
    listing = await store.create_listing(
        ListingCreate(
            slug="villa-azul",
            name="Villa Azul",
            owner_id=owner.id,
            country="ES",
            region="Mallorca",
            max_guests=8,
        )
    )
    await store.set_listing_pricing(listing.id, high_season_pricing)
    return listing


@pytest.fixture
def submission(settings):
    """A well-formed guest submission rendered well before it was sent."""
    rendered_at = int(time.time() * 1000) - 60_000
    return {
        "fullName": "Ana Guest",
        "email": "ana@guest.test",
        "checkIn": "2026-07-01",
        "checkOut": "2026-07-08",
        "adults": "2",
        "children": "1",
        "notes": "Celebrating an anniversary",
        "phone": "+34 600 000 000",
        "slug": "villa-azul",
        "lang": "en",
        "company": "",
        "renderedAt": str(rendered_at),
    }


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, settings, email_sender, payment_provider):
    """Create a test FastAPI application."""
    from villa_inquiries.main import create_app

    app = create_app(settings, email_sender=email_sender, payment_provider=payment_provider)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
