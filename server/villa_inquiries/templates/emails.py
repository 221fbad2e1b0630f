"""Email bodies for the inquiry pipeline."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from html import escape
from typing import Optional

from ..services.pricing import format_money

LANGUAGE_TAGS = {"en": "[EN]", "fr": "[FR]", "es": "[ES]"}

BUTTON_STYLE = (
    "display:inline-block;color:#fff;text-decoration:none;padding:14px 28px;"
    "border-radius:8px;font-size:14px;font-weight:600;letter-spacing:0.5px;"
)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class StayDetails:
    """What every message says about the guest and the stay."""

    guest_name: str
    guest_email: str
    check_in: str
    check_out: str
    party_size: int
    listing_name: str
    adults: Optional[int] = None
    children: Optional[int] = None
    phone: Optional[str] = None
    occasion: Optional[str] = None
    notes: Optional[str] = None
    language: str = "en"

    @property
    def date_range(self) -> str:
        return f"{self.check_in} → {self.check_out}"

    @property
    def guests(self) -> str:
        if self.adults is not None:
            return f"{self.adults} adults, {self.children or 0} children"
        return f"{self.party_size} guests"


def language_tag(language: str) -> str:
    return LANGUAGE_TAGS.get(language, "[EN]")


def _page(title: str, body: str, footer: str) -> str:
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\">"
        "<meta name=\"viewport\" content=\"width=device-width,initial-scale=1\">"
        f"<title>{escape(title)}</title></head>"
        "<body style=\"margin:0;background:#f4f1ee;font-family:Inter,Segoe UI,Arial,sans-serif;color:#1a1a1a\">"
        "<div style=\"max-width:640px;margin:0 auto;background:#fff;padding:28px\">"
        f"{body}"
        f"<p style=\"margin-top:28px;color:#9ca3af;font-size:12px\">{footer}</p>"
        "</div></body></html>"
    )


def _items(rows: list[tuple[str, str]]) -> str:
    return "".join(f"<li><strong>{escape(label)}:</strong> {escape(value)}</li>" for label, value in rows)


def owner_inquiry_notice(
    stay: StayDetails,
    quote_amount: Optional[Decimal] = None,
    currency: Optional[str] = None,
    quote_breakdown: Optional[str] = None,
    approve_url: Optional[str] = None,
    decline_url: Optional[str] = None,
    link_ttl_hours: int = 72,
) -> RenderedEmail:
    """
    Notice to the operator inbox (owner in Bcc) about a new inquiry.

    Without a quote only the decline link is offered, since an approve link
    has to commit to a price.
    """
    tag = language_tag(stay.language)
    quote_display = format_money(quote_amount, currency) if quote_amount and currency else None

    rows = [
        ("Villa", stay.listing_name),
        ("Dates", stay.date_range),
        ("Guests", stay.guests),
        ("Email", stay.guest_email),
    ]
    if stay.phone:
        rows.append(("Phone", stay.phone))
    if stay.occasion:
        rows.append(("Occasion", stay.occasion))
    if quote_display:
        rows.append(("Proposed Quote", quote_display))
    rows.append(("Notes", stay.notes or "-"))

    buttons = []
    if approve_url and quote_display:
        buttons.append(
            f"<a href=\"{escape(approve_url)}\" style=\"{BUTTON_STYLE}background:#2d7d46\">"
            f"Approve {escape(quote_display)}</a>"
        )
    if decline_url:
        buttons.append(
            f"<a href=\"{escape(decline_url)}\" style=\"{BUTTON_STYLE}background:#c0392b\">Decline</a>"
        )

    actions_html = ""
    if buttons:
        price_prompt = ""
        if not quote_display:
            price_prompt = (
                "<p style=\"margin:0 0 12px\">No rate is configured for these dates. "
                "Reply with a price and we will send the guest a payment link.</p>"
            )
        actions_html = (
            "<div style=\"margin:24px 0;padding:20px;background:#f8f6f4;border-radius:12px;text-align:center\">"
            "<p style=\"margin:0 0 12px;color:#666\">Respond to this inquiry:</p>"
            f"{price_prompt}{' '.join(buttons)}"
            f"<p style=\"margin:16px 0 0;font-size:12px;color:#999\">Links expire in {link_ttl_hours} hours</p>"
            "</div>"
        )

    breakdown_html = ""
    if quote_breakdown:
        breakdown_html = f"<pre style=\"font-family:inherit\">{escape(quote_breakdown)}</pre>"

    body = (
        f"<p style=\"color:#6b7280\">New inquiry {escape(tag)}</p>"
        f"<h1 style=\"margin:0 0 8px\">{escape(stay.guest_name)}</h1>"
        f"<ul>{_items(rows)}</ul>{breakdown_html}{actions_html}"
    )
    html = _page(f"New Inquiry - {stay.guest_name}", body, f"{escape(stay.listing_name)} • Internal notification")

    lines = [
        f"New Inquiry {tag} - {stay.guest_name}",
        *(f"{label}: {value}" for label, value in rows),
    ]
    if quote_breakdown:
        lines += ["", quote_breakdown]
    if approve_url or decline_url:
        lines += ["", "--- ACTIONS ---"]
        if approve_url and quote_display:
            lines.append(f"APPROVE {quote_display}: {approve_url}")
        elif not quote_display:
            lines.append("No rate configured: reply with a price to proceed.")
        if decline_url:
            lines.append(f"DECLINE: {decline_url}")
        lines.append(f"(Links expire in {link_ttl_hours} hours)")

    subject = f"{tag} New Inquiry - {stay.guest_name} ({stay.check_in} → {stay.check_out})"
    return RenderedEmail(subject=subject, html=html, text="\n".join(lines))


def guest_receipt(stay: StayDetails, contact_email: str) -> RenderedEmail:
    rows = [("Name", stay.guest_name), ("Dates", stay.date_range), ("Guests", stay.guests)]
    if stay.notes:
        rows.append(("Notes", stay.notes))
    body = (
        "<h1 style=\"margin:0 0 8px\">Thank you, we've received your inquiry</h1>"
        "<p>Our team will confirm availability, total pricing and next steps.</p>"
        f"<ul>{_items(rows)}</ul>"
        "<p>Reply to this email if you need to adjust dates or guest count.</p>"
    )
    footer = f"{escape(stay.listing_name)} • {escape(contact_email)} • © {date.today().year}"
    text = (
        f"We've received your inquiry for {stay.listing_name}.\n"
        f"Dates: {stay.check_in} to {stay.check_out}\n"
        f"Guests: {stay.guests}\n"
        f"Notes: {stay.notes or '-'}\n\n"
        "We'll reply shortly with availability and next steps."
    )
    return RenderedEmail(
        subject=f"{stay.listing_name} - We received your inquiry ({stay.date_range})",
        html=_page("Inquiry received", body, footer),
        text=text,
    )


def guest_approval(
    stay: StayDetails,
    price: Decimal,
    currency: str,
    checkout_url: Optional[str],
    checkout_ttl_hours: int = 23,
) -> RenderedEmail:
    total = format_money(price, currency)
    if checkout_url:
        cta_html = (
            f"<p><a href=\"{escape(checkout_url)}\" style=\"{BUTTON_STYLE}background:#2d7d46\">"
            "Complete Your Booking</a></p>"
            f"<p style=\"font-size:14px;color:#666\">Payment link expires in {checkout_ttl_hours} hours</p>"
        )
        cta_text = f"Complete your booking: {checkout_url}\n(Payment link expires in {checkout_ttl_hours} hours)"
    else:
        cta_html = "<p><strong>Next Step:</strong> We'll send you a secure payment link shortly.</p>"
        cta_text = "Next step: we'll send you a secure payment link shortly."

    rows = [
        ("Check-in", stay.check_in),
        ("Check-out", stay.check_out),
        ("Guests", str(stay.party_size)),
        ("Total", total),
    ]
    body = (
        "<h1 style=\"color:#2d7d46;margin:0 0 8px\">Your Stay is Confirmed!</h1>"
        f"<p>Dear {escape(stay.guest_name)},</p>"
        f"<p>Great news! The owner of {escape(stay.listing_name)} has confirmed your requested dates.</p>"
        f"<ul>{_items(rows)}</ul>{cta_html}"
        "<p>If you have any questions, simply reply to this email.</p>"
    )
    text = (
        f"Dear {stay.guest_name},\n\n"
        f"Great news! The owner of {stay.listing_name} has confirmed your requested dates.\n\n"
        f"Check-in: {stay.check_in}\nCheck-out: {stay.check_out}\n"
        f"Guests: {stay.party_size}\nTotal: {total}\n\n{cta_text}"
    )
    return RenderedEmail(
        subject="Great News! Your Stay is Confirmed - Complete Your Booking",
        html=_page("Your stay is confirmed", body, escape(stay.listing_name)),
        text=text,
    )


def guest_decline(stay: StayDetails) -> RenderedEmail:
    body = (
        "<h1 style=\"margin:0 0 8px\">Update on Your Inquiry</h1>"
        f"<p>Dear {escape(stay.guest_name)},</p>"
        "<p>Thank you for your interest in booking with us.</p>"
        f"<p>Unfortunately, {escape(stay.listing_name)} is not available for your requested dates "
        f"({escape(stay.check_in)} to {escape(stay.check_out)}).</p>"
        "<p>If you're flexible, reply to this email with other dates and we'll check availability.</p>"
    )
    text = (
        f"Dear {stay.guest_name},\n\n"
        f"Unfortunately, {stay.listing_name} is not available for your requested dates "
        f"({stay.check_in} to {stay.check_out}).\n\n"
        "If you're flexible, reply with other dates and we'll check availability."
    )
    return RenderedEmail(
        subject="Update on Your Inquiry",
        html=_page("Update on your inquiry", body, escape(stay.listing_name)),
        text=text,
    )


def guest_payment_confirmation(
    stay: StayDetails, total: Decimal, currency: str, booking_reference: str
) -> RenderedEmail:
    paid = format_money(total, currency)
    rows = [
        ("Check-in", stay.check_in),
        ("Check-out", stay.check_out),
        ("Guests", str(stay.party_size)),
        ("Total Paid", paid),
        ("Booking Reference", booking_reference),
    ]
    body = (
        "<h1 style=\"color:#2d7d46;margin:0 0 8px\">Booking Confirmed!</h1>"
        f"<p>Dear {escape(stay.guest_name)},</p>"
        "<p>Your payment has been received and your booking is now confirmed.</p>"
        f"<ul>{_items(rows)}</ul>"
        "<p>We'll send you detailed arrival instructions closer to your check-in date.</p>"
    )
    text = "\n".join(
        [f"Dear {stay.guest_name},", "", "Your payment has been received and your booking is confirmed.", ""]
        + [f"{label}: {value}" for label, value in rows]
    )
    return RenderedEmail(
        subject=f"Booking Confirmed! {stay.listing_name} - {stay.date_range}",
        html=_page("Booking confirmed", body, escape(stay.listing_name)),
        text=text,
    )


def owner_payment_received(
    stay: StayDetails,
    total: Decimal,
    platform_fee_percent: Decimal,
    platform_fee_amount: Decimal,
    owner_amount: Decimal,
    currency: str,
    booking_reference: str,
) -> RenderedEmail:
    rows = [
        ("Villa", stay.listing_name),
        ("Guest", stay.guest_name),
        ("Dates", stay.date_range),
        ("Guests", str(stay.party_size)),
        ("Total Charged", format_money(total, currency)),
        (f"Platform Fee ({platform_fee_percent.normalize():f}%)", format_money(platform_fee_amount, currency)),
        ("Your Payout", format_money(owner_amount, currency)),
        ("Booking Reference", booking_reference),
    ]
    body = f"<h1 style=\"margin:0 0 8px\">Payment Received!</h1><ul>{_items(rows)}</ul>"
    text = "\n".join(["Payment Received!", ""] + [f"{label}: {value}" for label, value in rows])
    return RenderedEmail(
        subject=f"Payment Received! {stay.guest_name} - {stay.date_range}",
        html=_page("Payment received", body, f"{escape(stay.listing_name)} • Internal notification"),
        text=text,
    )
