"""Payment router: provider webhooks and checkout session re-creation."""

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, ConfigDict, Field

from ..core.dependencies import CheckoutServiceDep, StoreDep
from ..core.exceptions import ConflictError, DependencyError, NotFoundError, ServiceUnavailableError, ValidationError
from ..models.inquiry import InquiryStatus
from ..schemas.common import Problem
from ..services.checkout import CheckoutService
from ..services.inquiry_store import InquiryStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"])

# Define dependencies to avoid B008 linting errors
SIGNATURE_HEADER = Header(None, alias="Stripe-Signature")


class WebhookAck(BaseModel):
    received: bool = True


class CreateCheckoutRequest(BaseModel):
    inquiry_id: str = Field(..., alias="inquiryId", min_length=1)


class CreateCheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    url: str
    session_id: Optional[str] = Field(None, alias="sessionId")


@router.post(
    "/stripe-webhook",
    response_model=WebhookAck,
    responses={400: {"model": Problem}, 503: {"model": Problem}},
    summary="Payment provider webhook",
    description="Verifies the provider signature and reconciles checkout completion or expiry",
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = SIGNATURE_HEADER,
    checkout: CheckoutService = CheckoutServiceDep,
) -> WebhookAck:
    payload = await request.body()
    event = checkout.parse_webhook(payload, stripe_signature)
    logger.info(
        "Payment webhook received",
        extra={"provider_type": event.provider_type, "session_id": event.session_id}
    )
    await checkout.handle_event(event)
    return WebhookAck()


@router.post(
    "/create-checkout-session",
    response_model=CreateCheckoutResponse,
    response_model_by_alias=True,
    responses={
        400: {"model": Problem},
        404: {"model": Problem},
        409: {"model": Problem},
        500: {"model": Problem},
        503: {"model": Problem},
    },
    summary="Create a payment session",
    description="Issues a fresh hosted checkout for an approved inquiry whose previous session lapsed",
)
async def create_checkout_session(
    body: CreateCheckoutRequest,
    store: InquiryStore = StoreDep,
    checkout: CheckoutService = CheckoutServiceDep,
) -> CreateCheckoutResponse:
    if checkout.provider is None:
        raise ServiceUnavailableError("Payment provider is not configured")
    inquiry = await store.get_inquiry_by_id(body.inquiry_id)
    if inquiry is None:
        raise NotFoundError("Inquiry", body.inquiry_id)
    if inquiry.status != InquiryStatus.APPROVED.value:
        raise ConflictError(
            detail=f"Inquiry is {inquiry.status}; a payment session needs an approved inquiry",
            conflicting_resource={"status": inquiry.status},
        )
    if inquiry.quote_amount is None or Decimal(inquiry.quote_amount) <= 0:
        raise ValidationError(
            detail="Inquiry has no confirmed amount",
            errors={"inquiryId": "No confirmed amount"},
        )

    listing = await store.get_listing_by_id(inquiry.listing_id) if inquiry.listing_id else None
    ref = await checkout.start_payment(inquiry, listing, Decimal(inquiry.quote_amount), inquiry.currency)
    if ref is None:
        raise DependencyError("payment", detail="The payment session could not be created. Please try again shortly.")
    return CreateCheckoutResponse(url=ref.url, session_id=ref.id)
