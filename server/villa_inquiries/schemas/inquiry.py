"""Inquiry-related Pydantic schemas."""

import re
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.inquiry import InquiryOrigin

SUPPORTED_LANGUAGES = ("en", "fr", "es")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Column widths of the inquiries table
MAX_NAME_LENGTH = 255
MAX_EMAIL_LENGTH = 320
MAX_PHONE_LENGTH = 64
MAX_OCCASION_LENGTH = 255

# Canonical field -> accepted body keys, first non-empty wins
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "full_name": ("fullName", "name"),
    "email": ("email",),
    "check_in": ("checkIn", "checkInDate"),
    "check_out": ("checkOut", "checkOutDate"),
    "notes": ("notes", "message"),
    "occasion": ("occasion",),
    "phone": ("phone",),
    "slug": ("slug", "villa"),
    "lang": ("lang",),
    "rendered_at": ("renderedAt", "formRenderedAt", "ts"),
}


def parse_iso_date(value: str) -> Optional[date]:
    """Parse a strict YYYY-MM-DD date; None when malformed or not a real day."""
    if not value or not ISO_DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _first_text(raw: Mapping[str, Any], keys: Sequence[str]) -> str:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def _to_int(value: Any, default: int) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


class InquirySubmission(BaseModel):
    """
    Canonical shape of a guest's form submission.

    Built once by ``from_raw`` from a JSON or form body; everything downstream
    of intake reads only these fields, never the raw aliases.
    """

    model_config = ConfigDict(frozen=True)

    full_name: str = ""
    email: str = ""
    check_in: str = ""
    check_out: str = ""
    adults: int = 2
    children: int = 0
    notes: str = ""
    occasion: Optional[str] = None
    phone: Optional[str] = None
    slug: Optional[str] = None
    lang: str = "en"
    honeypot: str = Field("", description="Concatenated honeypot values; non-empty means bot")
    rendered_at_ms: Optional[int] = Field(None, description="Client page render time, epoch millis")

    @property
    def party_size(self) -> int:
        return self.adults + self.children

    @classmethod
    def from_raw(
        cls,
        raw: Mapping[str, Any],
        honeypot_fields: Sequence[str] = ("company",),
        max_notes_length: int = 2000,
        default_language: str = "en",
    ) -> "InquirySubmission":
        """Normalize alias keys, defaults and limits into the canonical shape."""
        values = {field: _first_text(raw, keys) for field, keys in FIELD_ALIASES.items()}

        lang = values["lang"].lower()[:2]
        if lang not in SUPPORTED_LANGUAGES:
            lang = default_language

        rendered_at = values["rendered_at"]
        try:
            rendered_at_ms = int(float(rendered_at)) if rendered_at else None
        except (ValueError, OverflowError):
            rendered_at_ms = None

        adults = _to_int(raw.get("adults"), 2) or 2
        return cls(
            full_name=values["full_name"],
            email=values["email"],
            check_in=values["check_in"],
            check_out=values["check_out"],
            adults=adults,
            children=_to_int(raw.get("children"), 0),
            notes=values["notes"][:max_notes_length],
            occasion=values["occasion"] or None,
            phone=values["phone"] or None,
            slug=values["slug"].lower() or None,
            lang=lang,
            honeypot="".join(_first_text(raw, (name,)) for name in honeypot_fields),
            rendered_at_ms=rendered_at_ms,
        )


class InquiryCreate(BaseModel):
    """Fields of a new inquiry record."""

    listing_id: Optional[UUID] = None
    guest_name: str = Field(..., min_length=1, max_length=MAX_NAME_LENGTH)
    guest_email: str = Field(..., min_length=3, max_length=MAX_EMAIL_LENGTH)
    guest_phone: Optional[str] = Field(None, max_length=MAX_PHONE_LENGTH)
    check_in: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    check_out: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    party_size: int = Field(..., ge=1)
    message: Optional[str] = None
    occasion: Optional[str] = Field(None, max_length=MAX_OCCASION_LENGTH)
    origin: InquiryOrigin = InquiryOrigin.VILLA_SITE
    language: str = "en"
    currency: str = Field("EUR", pattern=r"^[A-Z]{3}$")
    quote_amount: Optional[Decimal] = Field(None, ge=0)
    owner_email: Optional[str] = None


class IntakeResponse(BaseModel):
    """JSON body returned to the site's form script."""

    ok: bool = True
    inquiry_id: Optional[str] = Field(None, serialization_alias="inquiryId")
