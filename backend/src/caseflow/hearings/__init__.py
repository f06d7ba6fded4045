"""Hearing scheduling, time predicates and reminders."""

from .predicates import (
    group_hearings_by_time,
    is_past,
    is_today,
    is_tomorrow,
    is_upcoming,
    sort_hearings,
)
from .scheduler import HearingScheduler, get_hearing_scheduler

__all__ = [
    "HearingScheduler",
    "get_hearing_scheduler",
    "group_hearings_by_time",
    "is_past",
    "is_today",
    "is_tomorrow",
    "is_upcoming",
    "sort_hearings",
]
