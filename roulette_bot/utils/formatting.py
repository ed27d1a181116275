"""
Amount Formatting

Tips and pool balances are integers in the smallest currency unit.
These helpers render them as human-readable decimal strings.
"""

from typing import Iterable


def format_amount(amount: int, decimals: int = 18) -> str:
    """
    Format a base-unit amount as a decimal string.

    Trailing zeros of the fractional part are trimmed, so
    ``format_amount(150000000000000)`` is ``"0.00015"``.

    Args:
        amount: Non-negative integer amount in base units
        decimals: Number of decimal places of the currency

    Returns:
        str: Decimal representation
    """
    if decimals <= 0:
        return str(amount)

    whole, fraction = divmod(amount, 10 ** decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{fraction_str}" if fraction_str else str(whole)


def mention_list(labels: Iterable[str]) -> str:
    """Join player labels for a chat message."""
    return ", ".join(f"@{label}" for label in labels)
