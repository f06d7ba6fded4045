"""Time predicates and ordering over hearings.

All functions work on a hearing's current date (the latest rescheduled
date, or the original one). Calendar boundaries (today, tomorrow, this week)
are taken in the timezone of ``now``; pass an aware ``now`` in the court's
timezone to get court-local days. Weeks start on Sunday.
"""

from collections.abc import Iterable
from datetime import datetime, time, timedelta, timezone

from ..cases.models import Hearing, HearingStatus, utc_now

GROUPS = ("past", "today", "tomorrow", "this_week", "future")


def _moment(hearing: Hearing | datetime) -> datetime:
    when = hearing.current_date if isinstance(hearing, Hearing) else hearing
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when


def _local(hearing: Hearing | datetime, now: datetime | None) -> tuple[datetime, datetime]:
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return _moment(hearing).astimezone(now.tzinfo), now


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def is_today(hearing: Hearing | datetime, now: datetime | None = None) -> bool:
    when, now = _local(hearing, now)
    return when.date() == now.date()


def is_tomorrow(hearing: Hearing | datetime, now: datetime | None = None) -> bool:
    when, now = _local(hearing, now)
    return when.date() == now.date() + timedelta(days=1)


def is_upcoming(hearing: Hearing | datetime, now: datetime | None = None) -> bool:
    """On or after the start of the current day; hearings earlier today count."""
    when, now = _local(hearing, now)
    return when >= start_of_day(now)


def is_past(hearing: Hearing | datetime, now: datetime | None = None) -> bool:
    when, now = _local(hearing, now)
    return when < now


def is_this_week(hearing: Hearing | datetime, now: datetime | None = None) -> bool:
    when, now = _local(hearing, now)
    # Python weekday(): Monday == 0; shift so the week starts on Sunday
    week_start = now.date() - timedelta(days=(now.weekday() + 1) % 7)
    return week_start <= when.date() < week_start + timedelta(days=7)


def sort_hearings(hearings: Iterable[Hearing], ascending: bool = True) -> list[Hearing]:
    """Order by current date. Equal dates keep their input order either way."""
    return sorted(hearings, key=_moment, reverse=not ascending)


def group_hearings_by_time(
    hearings: Iterable[Hearing], now: datetime | None = None
) -> dict[str, list[Hearing]]:
    """Bucket hearings into past, today, tomorrow, this_week and future."""
    now = now or utc_now()
    groups: dict[str, list[Hearing]] = {name: [] for name in GROUPS}
    for hearing in hearings:
        if is_today(hearing, now):
            groups["today"].append(hearing)
        elif is_past(hearing, now):
            groups["past"].append(hearing)
        elif is_tomorrow(hearing, now):
            groups["tomorrow"].append(hearing)
        elif is_this_week(hearing, now):
            groups["this_week"].append(hearing)
        else:
            groups["future"].append(hearing)
    return groups


def next_upcoming(hearings: Iterable[Hearing], now: datetime | None = None) -> Hearing | None:
    """Earliest hearing that has not started yet, ignoring cancelled ones."""
    now = now or utc_now()
    candidates = [
        h for h in hearings if h.status != HearingStatus.CANCELLED.value and not is_past(h, now)
    ]
    ordered = sort_hearings(candidates)
    return ordered[0] if ordered else None
