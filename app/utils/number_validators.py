"""Validation of the lookup subject (phone number).

Only plain ASCII digit strings of 10 to 15 characters are accepted. No
normalization is applied: separators, a leading ``+`` or surrounding
whitespace make the input invalid.
"""

from __future__ import annotations

import logging
import re

from app.core.errors import ErrorCode, ValidationAppError

logger = logging.getLogger(__name__)

MIN_NUMBER_LENGTH = 10
MAX_NUMBER_LENGTH = 15

# [0-9] rather than \d, which also matches non-ASCII digits
_NUMBER_PATTERN = re.compile(rf"[0-9]{{{MIN_NUMBER_LENGTH},{MAX_NUMBER_LENGTH}}}")


def is_valid_number(value: str) -> bool:
    """Return True if ``value`` is exactly 10-15 ASCII digits.

    Examples:
        >>> is_valid_number("1234567890")
        True
        >>> is_valid_number("+1234567890")
        False
    """
    return _NUMBER_PATTERN.fullmatch(value) is not None


def validate_number(value: str | None) -> str:
    """Validate the lookup subject and return it unchanged.

    Args:
        value: Raw ``number`` query parameter.

    Returns:
        The validated digit string.

    Raises:
        ValidationAppError: missing_parameter when absent or blank,
            invalid_format when it is not 10-15 ASCII digits.
    """
    if value is None or not value.strip():
        raise ValidationAppError(
            code=ErrorCode.MISSING_PARAMETER,
            message="Please provide number parameter",
        )

    if not is_valid_number(value):
        logger.info(
            "number.invalid_format",
            extra={"actual_length": len(value)},
        )
        raise ValidationAppError(
            code=ErrorCode.INVALID_FORMAT,
            message=f"Number must be {MIN_NUMBER_LENGTH}-{MAX_NUMBER_LENGTH} digits",
            details={
                "min_length": MIN_NUMBER_LENGTH,
                "max_length": MAX_NUMBER_LENGTH,
                "actual_length": len(value),
            },
        )

    return value
