"""
Scheduling Services Module

This module provides core business logic for session scheduling:
- Availability calculation (availability.py)
- Overlap detection (overlap.py)
- Slot generation for UI (slots.py)
- Reschedule, cancellation and join policies (policy.py)
"""
