#!/usr/bin/env python3
"""Setup script for the villa inquiry API: migrate the schema and seed a demo listing."""

import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from villa_inquiries.core.database import async_session_factory, close_db
from villa_inquiries.schemas.availability import CalendarBlockCreate
from villa_inquiries.schemas.pricing import PricingConfig
from villa_inquiries.schemas.tenants import ListingCreate, OwnerCreate
from villa_inquiries.services.inquiry_store import InquiryStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_SLUG = "villa-azul"


def run_migrations():
    """Bring the schema up to the latest revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data():
    """Create one owner with a priced listing and a blocked week."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        store = InquiryStore(db)
        if await store.get_listing_by_slug(SAMPLE_SLUG) is not None:
            logger.info("Sample data already exists, skipping...")
            return

        owner = await store.get_or_create_owner(
            OwnerCreate(name="Marta Ruiz", email="marta@example.com", commission_percent=Decimal("12"))
        )
        listing = await store.create_listing(
            ListingCreate(
                slug=SAMPLE_SLUG,
                name="Villa Azul",
                owner_id=owner.id,
                country="ES",
                region="Mallorca",
                city="Deià",
                max_guests=8,
            )
        )
        await store.set_listing_pricing(
            listing.id,
            PricingConfig(
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
            ),
        )
        await store.create_calendar_block(
            CalendarBlockCreate(listing_id=listing.id, start_date="2026-08-10", end_date="2026-08-17")
        )
        logger.info("Sample data created: /api/check-availability?slug=%s", SAMPLE_SLUG)


async def main():
    """Main setup function."""
    logger.info("Starting villa inquiry API setup...")

    await asyncio.to_thread(run_migrations)
    try:
        await create_sample_data()
    finally:
        await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn villa_inquiries.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
