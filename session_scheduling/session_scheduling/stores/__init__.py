"""
Scheduling Stores Module

Persistence collaborators for availability windows, bookings and
grace-cancellation flags.
"""

from .base import SchedulingStore
from .factory import get_store

__all__ = ["SchedulingStore", "get_store"]
