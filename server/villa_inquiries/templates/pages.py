"""Standalone HTML pages shown to owners who open an action link."""

from decimal import Decimal
from html import escape
from typing import Optional

from ..services.pricing import format_money

ACCENTS = {"success": "#2d7d46", "error": "#b42318", "info": "#1d4ed8"}
ICONS = {"success": "&#10003;", "error": "&#10007;", "info": "&#8505;"}


def render_page(kind: str, title: str, message: str, detail_html: str = "") -> str:
    """Render a full page; ``message`` is escaped, ``detail_html`` is trusted markup."""
    accent = ACCENTS.get(kind, ACCENTS["info"])
    return (
        "<!doctype html><html lang=\"en\"><head><meta charset=\"utf-8\">"
        "<meta name=\"viewport\" content=\"width=device-width,initial-scale=1\">"
        "<meta name=\"robots\" content=\"noindex,nofollow\">"
        f"<title>{escape(title)}</title></head>"
        "<body style=\"margin:0;background:#f4f1ee;font-family:Inter,Segoe UI,Arial,sans-serif;color:#1a1a1a\">"
        "<main style=\"max-width:520px;margin:64px auto;background:#fff;padding:36px;border-radius:12px;"
        "text-align:center;box-shadow:0 2px 12px rgba(0,0,0,.06)\">"
        f"<div style=\"font-size:40px;color:{accent}\">{ICONS.get(kind, ICONS['info'])}</div>"
        f"<h1 style=\"color:{accent};margin:12px 0\">{escape(title)}</h1>"
        f"<p style=\"font-size:16px;line-height:1.5\">{escape(message)}</p>"
        f"{detail_html}"
        "</main></body></html>"
    )


def approved_page(
    guest_name: str,
    listing_name: str,
    price: Decimal,
    currency: str,
    payment_link_created: bool,
) -> str:
    if payment_link_created:
        note = "A secure payment link has been sent to the guest."
    else:
        note = (
            "The payment link could not be created. The guest has been told a link will follow; "
            "please contact us so we can resend it."
        )
    detail = (
        f"<p><strong>Total:</strong> {escape(format_money(price, currency))}</p>"
        f"<p style=\"color:#666;font-size:14px\">{escape(note)}</p>"
    )
    return render_page(
        "success",
        "Inquiry Approved",
        f"You approved the stay for {guest_name} at {listing_name}.",
        detail,
    )


def declined_page(guest_name: str, listing_name: str) -> str:
    return render_page(
        "success",
        "Inquiry Declined",
        f"You declined the stay for {guest_name} at {listing_name}. The guest has been notified.",
    )


STATUS_LABELS = {
    "approved": "approved",
    "awaiting_payment": "approved and is awaiting payment",
    "declined": "declined",
    "paid": "paid",
    "cancelled": "cancelled",
}


def already_processed_page(status: Optional[str]) -> str:
    label = STATUS_LABELS.get(status or "", "processed")
    return render_page(
        "info",
        "Already Processed",
        f"This inquiry has already been {label}. No further action needed.",
    )


def invalid_link_page() -> str:
    return render_page(
        "error",
        "Invalid or Expired Link",
        "This link is invalid or has expired. Please contact us if you still need to respond to this inquiry.",
    )


def not_found_page() -> str:
    return render_page("error", "Inquiry Not Found", "We could not find this inquiry.")


def error_page(message: str = "Something went wrong while processing your request. Please try again later.") -> str:
    return render_page("error", "Something Went Wrong", message)
