"""Integer arithmetic utilities for a cents-based marketplace.

All prices, amounts, fees and balances use int (cents). No float, no Decimal.
"""

from collections.abc import Iterable


def validate_positive_cents(amount: int, field: str = "amount") -> None:
    """Validate that a price/amount is a strictly positive number of cents."""
    if amount <= 0:
        raise ValueError(f"{field} must be a positive number of cents, got {amount}")


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def sum_cents(amounts: Iterable[int]) -> int:
    return sum(amounts, 0)


def floor_zero(cents: int) -> int:
    return cents if cents > 0 else 0
