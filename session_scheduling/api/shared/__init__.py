"""
Shared utilities for the Session Scheduling API.

Input validators used by the booking and reschedule service functions.
"""

from .validators import (
    validate_date_string,
    validate_datetime_string,
    validate_duration,
    validate_flow,
    validate_time_string,
)

__all__ = [
    "validate_date_string",
    "validate_datetime_string",
    "validate_duration",
    "validate_flow",
    "validate_time_string",
]
