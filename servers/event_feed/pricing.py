"""
Price bucket classification from free-text price fields.

Sources report prices as display strings ("$20.00", "$15 - $30", "Free",
"Donation", "Unknown"), so buckets are derived by parsing the first number.
"""

import re
from typing import Optional

_NUMBER = re.compile(r"(\d+(?:\.\d+)?)")

UNKNOWN_PRICES = {"", "unknown"}


def parse_price(price: Optional[str]) -> float:
    """First number in the price text; 0 for free, donation, or no number."""
    if not price:
        return 0.0
    lower = price.lower()
    if "free" in lower or "donation" in lower:
        return 0.0
    match = _NUMBER.search(price)
    if match:
        return float(match.group(1))
    return 0.0


def is_free_price(price: Optional[str]) -> bool:
    """Unknown prices count as free."""
    if not price:
        return True
    lower = price.lower().strip()
    return (
        lower in UNKNOWN_PRICES
        or "free" in lower
        or "donation" in lower
        or parse_price(price) == 0
    )


def matches_price_filter(
    price: Optional[str], price_filter: str, max_price: Optional[float] = None
) -> bool:
    """
    Check a price against a feed price bucket.

    Args:
        price: Free-text price
        price_filter: any, free, under20, under100, or custom
        max_price: Upper bound for the custom bucket
    """
    if price_filter == "any":
        return True
    if price_filter == "free":
        return is_free_price(price)

    amount = parse_price(price)
    if price_filter == "under20":
        return amount <= 20
    if price_filter == "under100":
        return amount <= 100
    if price_filter == "custom":
        return max_price is None or amount <= max_price
    return True
