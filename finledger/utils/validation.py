"""
Validation utilities for money input coming from the API
"""
import re
from decimal import Decimal, InvalidOperation


def normalize_decimal_input(value: str) -> str:
    """
    Normalize an amount string: trim and use a dot as decimal separator

    Example:
        >>> normalize_decimal_input(" 1500,50 ")
        "1500.50"
    """
    return value.strip().replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Check that an amount string is a plain number with limited precision

    Sign is not checked here: "amount must be greater than zero" is a
    business rule and is reported by the use cases.

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100.50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "At most 2 decimal places allowed")
    """
    normalized = normalize_decimal_input(value)

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Invalid amount"

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        return False, f"At most {max_decimal_places} decimal places allowed"

    return True, None


def parse_amount(value: str | None, max_decimal_places: int = 2) -> Decimal | None:
    """
    Validate and convert an optional amount string to Decimal

    Raises:
        ValueError: malformed amount (pydantic turns it into a 400)
    """
    if value is None:
        return None
    is_valid, error = validate_decimal_amount(value, max_decimal_places)
    if not is_valid:
        raise ValueError(error)
    return Decimal(normalize_decimal_input(value))
