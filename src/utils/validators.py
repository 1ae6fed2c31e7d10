"""
Input validation functions for the PLM BOM engine.

This module provides validation functions for user input:
- Part number validation
- BOM quantity parsing (positive decimal strings)
- String validation (required fields, length)
- Unit validation
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from .constants import (
    ERROR_INVALID_QUANTITY,
    ERROR_REQUIRED_FIELD,
    MAX_PART_NUMBER_LENGTH,
    MAX_QUANTITY_DECIMAL_PLACES,
    MAX_QUANTITY_LENGTH,
    MAX_UNIT_LENGTH,
    PATH_SEPARATOR,
)

QUANTITY_PATTERN = re.compile(
    r"^(\d+(\.\d{1,%d})?|\.\d{1,%d})$" % (MAX_QUANTITY_DECIMAL_PLACES, MAX_QUANTITY_DECIMAL_PLACES)
)


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a string doesn't exceed maximum length.

    Args:
        value: The string value to validate
        max_length: Maximum allowed length
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def quantity_to_text(value) -> str:
    """
    Render a user-supplied quantity as the text that will be stored.

    Strings are stripped, ints and Decimals are written in plain positional
    notation. Floats go through ``repr`` so 0.1 stays "0.1".

    Raises:
        ValueError: If the value is None, a bool, or an unsupported type
    """
    if value is None or isinstance(value, bool):
        raise ValueError(ERROR_INVALID_QUANTITY)
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(ERROR_INVALID_QUANTITY)
        return format(value, "f")
    if isinstance(value, float):
        return repr(value)
    raise ValueError(ERROR_INVALID_QUANTITY)


def parse_quantity(value) -> Tuple[str, Decimal]:
    """
    Parse a BOM quantity.

    Accepts digits with an optional fractional part of up to
    MAX_QUANTITY_DECIMAL_PLACES digits ("1", "2.5", "0.125", ".5"). Signs,
    exponents, NaN/Infinity and zero are rejected.

    Args:
        value: Quantity as str, int, Decimal or float

    Returns:
        Tuple of (stored_text, decimal_value)

    Raises:
        ValueError: With a human-readable reason if the quantity is invalid
    """
    text = quantity_to_text(value)

    if text == "":
        raise ValueError(f"Quantity: {ERROR_REQUIRED_FIELD}")
    if len(text) > MAX_QUANTITY_LENGTH:
        raise ValueError(f"Quantity must be {MAX_QUANTITY_LENGTH} characters or less")
    if not QUANTITY_PATTERN.match(text):
        raise ValueError(ERROR_INVALID_QUANTITY)

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(ERROR_INVALID_QUANTITY)

    if amount <= 0:
        raise ValueError("Quantity must be greater than 0")

    return text, amount


def validate_part_number(
    part_number: Optional[str], field_name: str = "Part number"
) -> Tuple[bool, str]:
    """
    Validate a part number.

    Part numbers are joined with PATH_SEPARATOR to key each occurrence in a
    BOM tree, so the separator itself is not allowed.

    Returns:
        Tuple of (is_valid, error_message)
    """
    is_valid, error = validate_required_string(part_number, field_name)
    if not is_valid:
        return is_valid, error

    if PATH_SEPARATOR in part_number:
        return False, f"{field_name}: Must not contain '{PATH_SEPARATOR}'"

    return validate_string_length(part_number.strip(), MAX_PART_NUMBER_LENGTH, field_name)


def validate_quantity(value, field_name: str = "Quantity") -> Tuple[bool, str]:
    """
    Validate a BOM quantity without raising.

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        parse_quantity(value)
    except ValueError as e:
        return False, f"{field_name}: {e}"
    return True, ""


def validate_unit(unit: Optional[str], field_name: str = "Unit") -> Tuple[bool, str]:
    """
    Validate a unit of measure.

    Units are free text ("EA", "mm", "kg"), only presence and length are checked.

    Returns:
        Tuple of (is_valid, error_message)
    """
    is_valid, error = validate_required_string(unit, field_name)
    if not is_valid:
        return is_valid, error
    return validate_string_length(unit.strip(), MAX_UNIT_LENGTH, field_name)


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize string input by stripping whitespace.

    Args:
        value: String to sanitize

    Returns:
        Sanitized string or None if empty
    """
    if value is None:
        return None

    sanitized = value.strip()
    return sanitized if sanitized else None
