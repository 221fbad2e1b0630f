"""Persistence operations for owners, listings, inquiries and bookings."""

import logging
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import utcnow
from ..models.booking import Booking, BookingStatus
from ..models.calendar import CalendarBlock
from ..models.inquiry import Inquiry, InquiryStatus
from ..models.listing import Listing, ListingPricing
from ..models.owner import Owner
from ..schemas.availability import CalendarBlockCreate
from ..schemas.booking import BookingCreate
from ..schemas.inquiry import InquiryCreate
from ..schemas.pricing import PricingConfig
from ..schemas.tenants import ListingCreate, OwnerCreate
from .pricing import pricing_config_from_row
from .state_machine import Transition

logger = logging.getLogger(__name__)

IdLike = Union[UUID, str]


def as_uuid(value: Optional[IdLike]) -> Optional[UUID]:
    """Coerce an id to UUID; None for anything that is not one."""
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _row(data) -> dict[str, Any]:
    """Column values of a create-shape, leaving out anything unset."""
    row = data.model_dump(exclude_none=True, mode="python")
    for key, value in row.items():
        # Status-like columns are stored as their string value
        if hasattr(value, "value") and isinstance(value, str):
            row[key] = value.value
    return row


class InquiryStore:
    """Store for the inquiry pipeline's entities."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Owners

    async def create_owner(self, data: OwnerCreate) -> Owner:
        row = _row(data)
        row["email"] = row["email"].strip().lower()
        owner = Owner(**row)
        self.db.add(owner)
        await self.db.commit()
        await self.db.refresh(owner)
        logger.info("Owner created", extra={"owner_id": str(owner.id)})
        return owner

    async def get_owner_by_id(self, owner_id: IdLike) -> Owner | None:
        owner_uuid = as_uuid(owner_id)
        if owner_uuid is None:
            return None
        result = await self.db.execute(select(Owner).where(Owner.id == owner_uuid))
        return result.scalar_one_or_none()

    async def find_owner_by_email(self, email: str) -> Owner | None:
        stmt = select(Owner).where(Owner.email == email.strip().lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_owner(self, data: OwnerCreate) -> Owner:
        """Look up an owner by email and create one only on a miss."""
        normalized = data.model_copy(update={"email": data.email.strip().lower()})
        existing = await self.find_owner_by_email(normalized.email)
        if existing:
            return existing
        try:
            return await self.create_owner(normalized)
        except IntegrityError:
            # Lost a race with another onboarding request for the same email
            await self.db.rollback()
            existing = await self.find_owner_by_email(normalized.email)
            if existing is None:
                raise
            return existing

    # Listings

    async def create_listing(self, data: ListingCreate) -> Listing:
        row = _row(data)
        if data.commission_percent is None and data.owner_id is not None:
            owner = await self.get_owner_by_id(data.owner_id)
            if owner:
                row["commission_percent"] = owner.commission_percent
        listing = Listing(**row)
        self.db.add(listing)
        await self.db.commit()
        await self.db.refresh(listing)
        logger.info("Listing created", extra={"listing_id": str(listing.id), "slug": listing.slug})
        return listing

    async def get_listing_by_slug(self, slug: str) -> Listing | None:
        result = await self.db.execute(select(Listing).where(Listing.slug == slug))
        return result.scalar_one_or_none()

    async def get_listing_by_id(self, listing_id: IdLike) -> Listing | None:
        listing_uuid = as_uuid(listing_id)
        if listing_uuid is None:
            return None
        result = await self.db.execute(select(Listing).where(Listing.id == listing_uuid))
        return result.scalar_one_or_none()

    async def set_listing_pricing(self, listing_id: IdLike, config: PricingConfig) -> ListingPricing:
        listing_uuid = as_uuid(listing_id)
        values = config.model_dump()
        values["peak_dates"] = list(config.peak_dates)

        existing = await self.db.get(ListingPricing, listing_uuid)
        if existing is None:
            row = {key: value for key, value in values.items() if value is not None}
            pricing = ListingPricing(listing_id=listing_uuid, **row)
            self.db.add(pricing)
        else:
            pricing = existing
            for key, value in values.items():
                setattr(pricing, key, value)
        await self.db.commit()
        await self.db.refresh(pricing)
        return pricing

    async def get_listing_pricing(self, listing_id: IdLike) -> PricingConfig | None:
        listing_uuid = as_uuid(listing_id)
        if listing_uuid is None:
            return None
        stmt = select(ListingPricing).where(ListingPricing.listing_id == listing_uuid)
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return pricing_config_from_row(row) if row else None

    # Calendar

    async def create_calendar_block(self, data: CalendarBlockCreate) -> CalendarBlock:
        block = CalendarBlock(**_row(data))
        self.db.add(block)
        await self.db.commit()
        await self.db.refresh(block)
        return block

    async def get_calendar_blocks_overlapping(
        self, listing_id: IdLike, check_in: str, check_out: str
    ) -> list[CalendarBlock]:
        """Blocks intersecting the half-open stay ``[check_in, check_out)``."""
        stmt = (
            select(CalendarBlock)
            .where(
                CalendarBlock.listing_id == as_uuid(listing_id),
                CalendarBlock.start_date < check_out,
                CalendarBlock.end_date > check_in,
            )
            .order_by(CalendarBlock.start_date)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    # Inquiries

    async def create_inquiry(
        self, data: InquiryCreate, status: InquiryStatus = InquiryStatus.PENDING_OWNER
    ) -> Inquiry:
        row = _row(data)
        now = utcnow()
        inquiry = Inquiry(
            **row,
            status=InquiryStatus(status).value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(inquiry)
        await self.db.commit()
        await self.db.refresh(inquiry)
        logger.info(
            "Inquiry created",
            extra={"inquiry_id": str(inquiry.id), "listing_id": str(inquiry.listing_id)}
        )
        return inquiry

    async def get_inquiry_by_id(self, inquiry_id: IdLike) -> Inquiry | None:
        inquiry_uuid = as_uuid(inquiry_id)
        if inquiry_uuid is None:
            return None
        stmt = (
            select(Inquiry)
            .where(Inquiry.id == inquiry_uuid)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_inquiry_status(
        self, inquiry_id: IdLike, status: InquiryStatus, **fields: Any
    ) -> Inquiry | None:
        """Unconditionally set an inquiry's status; pipeline code uses the compare-and-swap below."""
        inquiry_uuid = as_uuid(inquiry_id)
        if inquiry_uuid is None:
            return None
        stmt = (
            update(Inquiry)
            .where(Inquiry.id == inquiry_uuid)
            .values(status=InquiryStatus(status).value, updated_at=utcnow(), **fields)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(stmt)
        await self.db.commit()
        return await self.get_inquiry_by_id(inquiry_uuid)

    async def transition_inquiry_status(
        self,
        inquiry_id: IdLike,
        expected: InquiryStatus,
        new: InquiryStatus,
        **fields: Any,
    ) -> bool:
        """
        Move an inquiry from ``expected`` to ``new`` in one conditional write.

        Returns:
            True if this call made the change, False if the inquiry was missing
            or no longer in ``expected`` (another request got there first)
        """
        inquiry_uuid = as_uuid(inquiry_id)
        if inquiry_uuid is None:
            return False
        stmt = (
            update(Inquiry)
            .where(Inquiry.id == inquiry_uuid, Inquiry.status == InquiryStatus(expected).value)
            .values(status=InquiryStatus(new).value, updated_at=utcnow(), **fields)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        changed = result.rowcount == 1
        logger.info(
            "Inquiry status transition",
            extra={
                "inquiry_id": str(inquiry_uuid),
                "from_status": InquiryStatus(expected).value,
                "to_status": InquiryStatus(new).value,
                "applied": changed,
            }
        )
        return changed

    async def release_checkout_session(self, inquiry_id: IdLike, session_id: str, step: Transition) -> bool:
        """Apply an expiry transition only while ``session_id`` is still the inquiry's current session."""
        inquiry_uuid = as_uuid(inquiry_id)
        if inquiry_uuid is None:
            return False
        stmt = (
            update(Inquiry)
            .where(
                Inquiry.id == inquiry_uuid,
                Inquiry.status == step.source.value,
                Inquiry.checkout_session_id == session_id,
            )
            .values(status=step.target.value, checkout_session_id=None, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount == 1

    async def record_quote(self, inquiry_id: IdLike, amount: Decimal, currency: str) -> None:
        stmt = (
            update(Inquiry)
            .where(Inquiry.id == as_uuid(inquiry_id))
            .values(quote_amount=amount, currency=currency, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(stmt)
        await self.db.commit()

    # Bookings

    async def create_booking(self, data: BookingCreate) -> Booking:
        booking = Booking(**data.to_row())
        self.db.add(booking)
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    async def get_booking_by_id(self, booking_id: IdLike) -> Booking | None:
        booking_uuid = as_uuid(booking_id)
        if booking_uuid is None:
            return None
        result = await self.db.execute(select(Booking).where(Booking.id == booking_uuid))
        return result.scalar_one_or_none()

    async def get_booking_by_inquiry_id(self, inquiry_id: IdLike) -> Booking | None:
        stmt = select(Booking).where(Booking.inquiry_id == as_uuid(inquiry_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_booking_status(self, booking_id: IdLike, status: BookingStatus) -> Booking | None:
        booking = await self.get_booking_by_id(booking_id)
        if booking is None:
            return None
        booking.status = BookingStatus(status).value
        booking.updated_at = utcnow()
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    async def complete_payment(self, inquiry_id: IdLike, data: BookingCreate, step: Transition) -> Booking | None:
        """
        Apply a payment transition and create its booking in one transaction.

        Returns:
            The new booking, or None if the inquiry was no longer in
            ``step.source`` (a duplicate or late completion event)
        """
        inquiry_uuid = as_uuid(inquiry_id)
        now = utcnow()
        stmt = (
            update(Inquiry)
            .where(
                Inquiry.id == inquiry_uuid,
                Inquiry.status == step.source.value,
            )
            .values(status=step.target.value, paid_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            if result.rowcount != 1:
                await self.db.rollback()
                return None

            booking = Booking(**data.to_row())
            self.db.add(booking)
            await self.db.flush()
            await self.db.execute(
                update(Inquiry)
                .where(Inquiry.id == inquiry_uuid)
                .values(booking_id=booking.id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning("Booking already exists for inquiry", extra={"inquiry_id": str(inquiry_uuid)})
            return None

        await self.db.refresh(booking)
        logger.info(
            "Payment completed",
            extra={
                "inquiry_id": str(inquiry_uuid),
                "booking_id": str(booking.id),
                "total_amount": str(booking.total_amount),
            }
        )
        return booking
