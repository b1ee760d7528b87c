"""
Money amount parsing for request models

Amounts travel as strings so no precision is lost in JSON. Two shapes are
accepted:

- magnitudes (transaction and envelope amounts): never negative, the
  direction of a transaction comes from its type
- signed amounts (bulk statement import): the sign carries the direction,
  negative is an expense and positive is income
"""
import re
from decimal import Decimal, InvalidOperation


def normalize_decimal_input(value: str) -> str:
    """
    Trim and accept a comma as decimal separator

    Example:
        >>> normalize_decimal_input(" 100,50 ")
        "100.50"
    """
    return value.strip().replace(",", ".")


def _amount_pattern(max_decimal_places: int, signed: bool) -> str:
    sign = "-?" if signed else ""
    return rf"^{sign}\d+(\.\d{{1,{max_decimal_places}}})?$"


def validate_and_normalize_amount(value: str, max_decimal_places: int = 2, signed: bool = False) -> str:
    """
    Validate an amount string and return it normalised

    Args:
        value: raw client input, e.g. "1 200" is rejected, "1200,5" is accepted
        max_decimal_places: precision of the money column
        signed: accept a leading minus (statement rows); magnitudes refuse it

    Raises:
        ValueError: with a client-facing message
    """
    normalized = normalize_decimal_input(value)

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        raise ValueError("Invalid amount")

    if not signed and normalized.startswith("-"):
        raise ValueError("Amount cannot be negative")

    if not re.match(_amount_pattern(max_decimal_places, signed), normalized):
        raise ValueError(f"At most {max_decimal_places} decimal places")

    return normalized
