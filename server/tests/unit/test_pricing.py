"""Unit tests for quote calculation and money formatting."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from villa_inquiries.models.listing import PricingStrategy
from villa_inquiries.schemas.pricing import PricingConfig, Season
from villa_inquiries.services.pricing import (
    calculate_quote,
    count_nights,
    currency_symbol,
    format_money,
    format_quote_for_email,
    from_minor_units,
    is_rate_on_request,
    season_for,
    to_minor_units,
)


def test_high_season_week_quote(high_season_pricing):
    """Seven high-season nights at 800 plus a 250 cleaning fee."""
    quote = calculate_quote(high_season_pricing, "2026-07-01", "2026-07-08", party_size=3)

    assert quote.nights == 7
    assert quote.accommodation_total == Decimal("5600")
    assert quote.cleaning_fee == Decimal("250")
    assert quote.extra_guest_fee == Decimal("0")
    assert quote.total == Decimal("5850")
    assert quote.currency == "EUR"
    assert quote.minimum_nights_met is True
    assert all(night.season is Season.HIGH for night in quote.nightly_rates)


def test_quote_crossing_season_boundary(high_season_pricing):
    """Each night is priced on its own; May 30 and 31 are low season."""
    quote = calculate_quote(high_season_pricing, "2026-05-30", "2026-06-03", party_size=2)

    seasons = [night.season for night in quote.nightly_rates]
    assert seasons == [Season.LOW, Season.LOW, Season.HIGH, Season.HIGH]
    assert quote.accommodation_total == Decimal("2600")
    assert quote.total == Decimal("2850")


def test_peak_dates_win_over_high_season():
    pricing = PricingConfig(
        currency="EUR",
        low_season_rate=Decimal("300"),
        high_season_rate=Decimal("450"),
        peak_season_rate=Decimal("900"),
        high_season_start="07-01",
        high_season_end="08-31",
        peak_dates=("08-15",),
    )
    assert season_for(date(2026, 8, 15), pricing) is Season.PEAK
    assert season_for(date(2026, 8, 16), pricing) is Season.HIGH


def test_peak_falls_back_to_high_rate():
    pricing = PricingConfig(
        currency="EUR",
        low_season_rate=Decimal("300"),
        high_season_rate=Decimal("450"),
        high_season_start="07-01",
        high_season_end="08-31",
        peak_dates=("12-31",),
    )
    quote = calculate_quote(pricing, "2026-12-31", "2027-01-01", party_size=2)
    assert quote.nightly_rates[0].season is Season.PEAK
    assert quote.total == Decimal("450")


def test_high_season_wrapping_new_year():
    pricing = PricingConfig(
        currency="USD",
        low_season_rate=Decimal("200"),
        high_season_rate=Decimal("350"),
        high_season_start="12-15",
        high_season_end="03-31",
    )
    assert season_for(date(2026, 12, 20), pricing) is Season.HIGH
    assert season_for(date(2027, 2, 1), pricing) is Season.HIGH
    assert season_for(date(2027, 4, 1), pricing) is Season.LOW
    assert season_for(date(2026, 12, 14), pricing) is Season.LOW


def test_extra_guest_fee_per_night(high_season_pricing):
    """Six guests against four included adds two guests for every night."""
    quote = calculate_quote(high_season_pricing, "2026-07-01", "2026-07-04", party_size=6)

    assert quote.extra_guest_fee == Decimal("240")
    assert quote.total == Decimal("2400") + Decimal("250") + Decimal("240")


def test_below_minimum_nights_is_advisory(high_season_pricing):
    quote = calculate_quote(high_season_pricing, "2026-07-01", "2026-07-03", party_size=2)

    assert quote.minimum_nights_met is False
    assert quote.total == Decimal("1850")
    assert "below the minimum night requirement" in format_quote_for_email(quote)


def test_security_deposit_is_never_quoted(high_season_pricing):
    quote = calculate_quote(high_season_pricing, "2026-07-01", "2026-07-08", party_size=2)
    assert quote.total == Decimal("5850")


@pytest.mark.parametrize("check_in,check_out", [
    ("2026-07-08", "2026-07-01"),
    ("2026-07-01", "2026-07-01"),
])
def test_non_positive_stay_is_rejected(high_season_pricing, check_in, check_out):
    with pytest.raises(ValueError):
        calculate_quote(high_season_pricing, check_in, check_out, party_size=2)


def test_count_nights():
    assert count_nights("2026-02-27", "2026-03-02") == 3


def test_rate_on_request(high_season_pricing):
    seasonal = SimpleNamespace(pricing_strategy=PricingStrategy.SEASONAL.value)
    manual = SimpleNamespace(pricing_strategy=PricingStrategy.MANUAL.value)
    free = high_season_pricing.model_copy(update={"low_season_rate": Decimal("0")})

    assert is_rate_on_request(seasonal, high_season_pricing) is False
    assert is_rate_on_request(manual, high_season_pricing) is True
    assert is_rate_on_request(seasonal, free) is True
    assert is_rate_on_request(seasonal, None) is True
    assert is_rate_on_request(None, high_season_pricing) is True


@pytest.mark.parametrize("amount,currency,expected", [
    (Decimal("5850"), "EUR", "€5,850"),
    (Decimal("99.5"), "GBP", "£99.50"),
    (Decimal("1200"), "USD", "$1,200"),
    (Decimal("15000"), "JPY", "¥15,000"),
    (Decimal("10"), "XYZ", "XYZ 10"),
])
def test_format_money(amount, currency, expected):
    assert format_money(amount, currency) == expected


def test_currency_symbol_is_case_insensitive():
    assert currency_symbol("eur") == "€"
    assert currency_symbol("chf") == "CHF "


@pytest.mark.parametrize("amount,currency,minor", [
    (Decimal("5850"), "EUR", 585000),
    (Decimal("10.005"), "USD", 1001),
    (Decimal("15000"), "JPY", 15000),
    (Decimal("1000.4"), "KRW", 1000),
])
def test_minor_units(amount, currency, minor):
    assert to_minor_units(amount, currency) == minor


def test_from_minor_units():
    assert from_minor_units(585000, "EUR") == Decimal("5850.00")
    assert from_minor_units(15000, "jpy") == Decimal("15000.00")


def test_quote_email_lines(high_season_pricing):
    quote = calculate_quote(high_season_pricing, "2026-07-01", "2026-07-08", party_size=6)
    text = format_quote_for_email(quote)

    assert "7 nights accommodation: €5,600" in text
    assert "Cleaning fee: €250" in text
    assert "Extra guest fee: €560" in text
    assert text.endswith("Total: €6,410")
