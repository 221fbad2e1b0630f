"""Tentative quote calculation from a seasonal rate table."""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..models.listing import Listing, ListingPricing, PricingStrategy
from ..schemas.pricing import NightlyRate, PricingConfig, QuoteBreakdown, Season

CENT = Decimal("0.01")

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "CHF": "CHF ",
    "COP": "COP $",
    "MXN": "MX$",
    "BRL": "R$",
    "ARS": "ARS $",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "ZAR": "R",
    "THB": "฿",
    "IDR": "Rp",
    "MYR": "RM",
    "AED": "AED ",
    "SAR": "SAR ",
    "INR": "₹",
    "JPY": "¥",
    "CNY": "¥",
    "KRW": "₩",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "CZK": "Kč",
    "HUF": "Ft",
    "TRY": "₺",
    "ILS": "₪",
    "HRK": "kn",
    "RON": "lei",
    "BGN": "лв",
}

# Currencies the payment provider expects without a fractional part
ZERO_DECIMAL_CURRENCIES = frozenset({
    "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
    "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
})


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")


def format_money(amount: Decimal, currency: str) -> str:
    """Format an amount with its currency symbol, e.g. ``€5,850`` or ``£99.50``."""
    value = Decimal(amount)
    if value == value.to_integral_value():
        text = f"{value:,.0f}"
    else:
        text = f"{value.quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"
    return f"{currency_symbol(currency)}{text}"


def to_minor_units(amount: Decimal, currency: str) -> int:
    value = Decimal(amount)
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int, currency: str) -> Decimal:
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(amount).quantize(CENT)
    return (Decimal(amount) / 100).quantize(CENT)


def pricing_config_from_row(row: ListingPricing) -> PricingConfig:
    return PricingConfig(
        currency=row.currency,
        low_season_rate=row.low_season_rate,
        high_season_rate=row.high_season_rate,
        peak_season_rate=row.peak_season_rate,
        high_season_start=row.high_season_start,
        high_season_end=row.high_season_end,
        peak_dates=tuple(row.peak_dates or ()),
        cleaning_fee=row.cleaning_fee,
        security_deposit=row.security_deposit,
        minimum_nights=row.minimum_nights,
        base_guests=row.base_guests,
        extra_guest_fee=row.extra_guest_fee,
    )


def is_rate_on_request(listing: Optional[Listing], pricing: Optional[PricingConfig]) -> bool:
    """True when no quote should be computed for the listing."""
    if listing is None or pricing is None:
        return True
    if listing.pricing_strategy == PricingStrategy.MANUAL.value:
        return True
    return pricing.low_season_rate <= 0


def season_for(night: date, pricing: PricingConfig) -> Season:
    mmdd = night.strftime("%m-%d")
    if mmdd in pricing.peak_dates:
        return Season.PEAK

    start, end = pricing.high_season_start, pricing.high_season_end
    if start <= end:
        if start <= mmdd <= end:
            return Season.HIGH
    elif mmdd >= start or mmdd <= end:
        # Range wraps across new year, e.g. 11-01..03-31
        return Season.HIGH
    return Season.LOW


def rate_for(night: date, pricing: PricingConfig) -> NightlyRate:
    season = season_for(night, pricing)
    if season is Season.PEAK:
        rate = pricing.peak_season_rate if pricing.peak_season_rate is not None else pricing.high_season_rate
    elif season is Season.HIGH:
        rate = pricing.high_season_rate
    else:
        rate = pricing.low_season_rate
    return NightlyRate(date=night.isoformat(), rate=rate, season=season)


def count_nights(check_in: str, check_out: str) -> int:
    return (date.fromisoformat(check_out) - date.fromisoformat(check_in)).days


def calculate_quote(
    pricing: PricingConfig,
    check_in: str,
    check_out: str,
    party_size: int,
) -> QuoteBreakdown:
    """
    Compute a non-binding quote for a stay.

    One rate lookup per night, so stays crossing a season boundary are priced
    night by night. The minimum-nights check is advisory only.

    Raises:
        ValueError: If the dates are not ISO dates or check-out is not after check-in
    """
    nights = count_nights(check_in, check_out)
    if nights <= 0:
        raise ValueError("check_out must be after check_in")

    first_night = date.fromisoformat(check_in)
    nightly_rates = tuple(rate_for(first_night + timedelta(days=i), pricing) for i in range(nights))
    accommodation_total = sum((n.rate for n in nightly_rates), Decimal("0"))

    extra_guest_fee = Decimal("0")
    if pricing.base_guests is not None and pricing.extra_guest_fee is not None:
        extra_guests = max(0, party_size - pricing.base_guests)
        extra_guest_fee = extra_guests * pricing.extra_guest_fee * nights

    total = accommodation_total + pricing.cleaning_fee + extra_guest_fee
    return QuoteBreakdown(
        nights=nights,
        nightly_rates=nightly_rates,
        accommodation_total=accommodation_total,
        cleaning_fee=pricing.cleaning_fee,
        extra_guest_fee=extra_guest_fee,
        total=total,
        currency=pricing.currency,
        minimum_nights_met=nights >= pricing.minimum_nights,
    )


def format_quote_for_email(quote: QuoteBreakdown) -> str:
    lines = [f"{quote.nights} nights accommodation: {format_money(quote.accommodation_total, quote.currency)}"]
    if quote.cleaning_fee > 0:
        lines.append(f"Cleaning fee: {format_money(quote.cleaning_fee, quote.currency)}")
    if quote.extra_guest_fee > 0:
        lines.append(f"Extra guest fee: {format_money(quote.extra_guest_fee, quote.currency)}")
    lines.append("")
    lines.append(f"Total: {format_money(quote.total, quote.currency)}")
    if not quote.minimum_nights_met:
        lines.append("")
        lines.append("Note: This stay is below the minimum night requirement.")
    return "\n".join(lines)
