"""
Session Scheduling API

Service functions consumed by the booking UI.

Structure:
    api/
    ├── __init__.py              # This file
    ├── booking_api.py           # Slots, booking, group join, reschedule, policies
    └── shared/                  # Shared utilities
        ├── __init__.py
        └── validators.py        # Input validators

Usage:
    from session_scheduling.api import get_available_slots
    slots = get_available_slots(store, practitioner_id, "2026-01-19", 60, now)
"""

from .booking_api import (
    book_session,
    check_reschedule_policy,
    classify_session_cancellation,
    get_available_slots,
    get_reschedule_options,
    get_session_join_status,
    join_group_session,
    reschedule_session,
)

__all__ = [
    # Slots
    "get_available_slots",
    # Writes
    "book_session",
    "join_group_session",
    "reschedule_session",
    # Policies
    "check_reschedule_policy",
    "get_reschedule_options",
    "classify_session_cancellation",
    "get_session_join_status",
]
