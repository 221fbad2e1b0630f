"""FastAPI dependencies for the database session and the pipeline services."""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.availability import AvailabilityService
from ..services.checkout import CheckoutService, PaymentProvider
from ..services.inquiry_store import InquiryStore
from ..services.intake import InquiryIntakeService
from ..services.notifications import Notifier
from ..services.owner_actions import OwnerActionService
from ..services.signing import ActionLinkSigner
from .config import Settings
from .database import get_async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_async_session():
        yield session


# Collaborators are built once in create_app and parked on app.state

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_signer(request: Request) -> ActionLinkSigner:
    return request.app.state.signer


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_payment_provider(request: Request) -> Optional[PaymentProvider]:
    return request.app.state.payment_provider


DatabaseSession = Depends(get_db)
SettingsDep = Depends(get_settings)
SignerDep = Depends(get_signer)
NotifierDep = Depends(get_notifier)
PaymentProviderDep = Depends(get_payment_provider)


def get_store(db: AsyncSession = DatabaseSession) -> InquiryStore:
    return InquiryStore(db)


StoreDep = Depends(get_store)


def get_checkout_service(
    store: InquiryStore = StoreDep,
    provider: Optional[PaymentProvider] = PaymentProviderDep,
    notifier: Notifier = NotifierDep,
    settings: Settings = SettingsDep,
) -> CheckoutService:
    return CheckoutService(store, provider, notifier, settings)


CheckoutServiceDep = Depends(get_checkout_service)


def get_intake_service(
    store: InquiryStore = StoreDep,
    notifier: Notifier = NotifierDep,
    signer: ActionLinkSigner = SignerDep,
    settings: Settings = SettingsDep,
) -> InquiryIntakeService:
    return InquiryIntakeService(store, notifier, signer, settings)


def get_owner_action_service(
    store: InquiryStore = StoreDep,
    notifier: Notifier = NotifierDep,
    checkout: CheckoutService = CheckoutServiceDep,
    signer: ActionLinkSigner = SignerDep,
    settings: Settings = SettingsDep,
) -> OwnerActionService:
    return OwnerActionService(store, notifier, checkout, signer, settings)


def get_availability_service(store: InquiryStore = StoreDep) -> AvailabilityService:
    return AvailabilityService(store)


IntakeServiceDep = Depends(get_intake_service)
OwnerActionServiceDep = Depends(get_owner_action_service)
AvailabilityServiceDep = Depends(get_availability_service)
