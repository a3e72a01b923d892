"""
Scheduling Validators

Validation utilities for values coming from the booking UI
(query strings, form fields) before they reach the scheduling core.
"""

import re
from typing import Any, Optional

from session_scheduling.exceptions import ValidationError

SLOT_FLOWS = ("booking", "reschedule")

MAX_DURATION_MINUTES = 24 * 60


def validate_date_string(date_str: str, field_name: str = "date") -> str:
    """
    Validate date string format (YYYY-MM-DD).

    Args:
        date_str: Date string to validate
        field_name: Name of field for error messages

    Returns:
        str: Validated date string

    Raises:
        ValidationError: If date format is invalid
    """
    if not date_str:
        raise ValidationError(f"{field_name} is required")

    date_str = str(date_str).strip()

    # Basic format check
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid {field_name} format. Use YYYY-MM-DD")

    return date_str


def validate_datetime_string(datetime_str: str, field_name: str = "datetime") -> str:
    """
    Validate datetime string format.

    Accepts "YYYY-MM-DD HH:MM:SS" and ISO-8601 ("YYYY-MM-DDTHH:MM[:SS][.fff][Z|+HH:MM]").

    Raises:
        ValidationError: If datetime format is invalid
    """
    if not datetime_str:
        raise ValidationError(f"{field_name} is required")

    datetime_str = str(datetime_str).strip()

    pattern = (
        r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?"
        r"(Z|[+-]\d{2}:?\d{2})?$"
    )
    if not re.match(pattern, datetime_str):
        raise ValidationError(
            f"Invalid {field_name} format. Use YYYY-MM-DD HH:MM:SS or ISO-8601"
        )

    return datetime_str


def validate_time_string(time_str: str, field_name: str = "time") -> str:
    """
    Validate time-of-day string (HH:MM or HH:MM:SS, 24h).

    Raises:
        ValidationError: If time format is invalid
    """
    if not time_str:
        raise ValidationError(f"{field_name} is required")

    time_str = str(time_str).strip()

    if not re.match(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$", time_str):
        raise ValidationError(f"Invalid {field_name} format. Use HH:MM")

    return time_str


def validate_duration(duration: Any, field_name: str = "duration_minutes") -> int:
    """
    Validate a session duration in minutes.

    Returns:
        int: Validated duration

    Raises:
        ValidationError: If duration is not a positive integer up to one day
    """
    if duration is None or isinstance(duration, bool):
        raise ValidationError(f"{field_name} is required")

    try:
        value = int(duration)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer") from None

    if value != duration and str(value) != str(duration).strip():
        raise ValidationError(f"{field_name} must be an integer")

    if value <= 0 or value > MAX_DURATION_MINUTES:
        raise ValidationError(f"{field_name} must be between 1 and {MAX_DURATION_MINUTES}")

    return value


def validate_flow(flow: Optional[str]) -> str:
    """
    Validate the slot flow name.

    Raises:
        ValidationError: If flow is not "booking" or "reschedule"
    """
    flow = (flow or "").strip().lower()
    if flow not in SLOT_FLOWS:
        raise ValidationError(f"Invalid flow. Use one of: {', '.join(SLOT_FLOWS)}")
    return flow
