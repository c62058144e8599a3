"""Display helpers for travel fees, times and distances."""

from __future__ import annotations

from ...models.domain import TravelFeeRules

CURRENCY_SYMBOLS = {
    "ZAR": "R",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def currency_symbol(currency: str) -> str:
    """Prefix used before amounts; unknown codes are shown as the code itself."""
    code = currency.strip().upper()
    return CURRENCY_SYMBOLS.get(code, f"{code} ")


def format_travel_fee(fee: float, currency: str = "ZAR") -> str:
    if fee == 0:
        return "Free"
    return f"{currency_symbol(currency)}{fee:.0f}"


def format_travel_time(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def format_distance(km: float) -> str:
    if km < 1:
        return f"{round(km * 1000)}m"
    return f"{km:.1f}km"


def describe_tiers(rules: TravelFeeRules, currency: str = "ZAR") -> list[str]:
    """Human-readable description of each distance tier, in ascending order."""

    symbol = currency_symbol(currency)
    descriptions: list[str] = []
    previous_limit = 0.0
    for tier in rules.tiers:
        if tier.fee == 0:
            descriptions.append(f"Free within {tier.upto_km:g}km")
        else:
            descriptions.append(f"{symbol}{tier.fee:g} for {previous_limit:g}-{tier.upto_km:g}km")
        previous_limit = tier.upto_km
    return descriptions
