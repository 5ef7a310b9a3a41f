"""Date arithmetic shared by the calendar grids, dashboards and expiry lists.

Everything here is pure: no I/O, no mutation of the records passed in. Bad
input raises :class:`InvalidDateError` instead of guessing a plausible date.
"""

from __future__ import annotations

import calendar
import math
import re
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Iterable, Iterator
from zoneinfo import ZoneInfo

from ..core.config import settings

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
SECONDS_PER_DAY = 24 * 60 * 60


class InvalidDateError(ValueError):
    """Raised when a value cannot be read as a calendar date."""


class UrgencyBucket(str, Enum):
    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    MONITOR = "monitor"
    OK = "ok"

    @property
    def label(self) -> str:
        return BUCKET_LABELS[self]


BUCKET_LABELS = {
    UrgencyBucket.EXPIRED: "Expired",
    UrgencyBucket.CRITICAL: "0-30 days",
    UrgencyBucket.WARNING: "31-60 days",
    UrgencyBucket.MONITOR: "61-90 days",
    UrgencyBucket.OK: "90+ days",
}

# Upper bound (inclusive) of each band; anything above the last one is OK.
BUCKET_UPPER_BOUNDS = (
    (0, UrgencyBucket.EXPIRED),
    (30, UrgencyBucket.CRITICAL),
    (60, UrgencyBucket.WARNING),
    (90, UrgencyBucket.MONITOR),
)


def _local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TZ)


def parse_iso_date(value: Any) -> date:
    """Return ``value`` as a :class:`date`.

    Accepts ``date``, ``datetime`` and ISO-8601 strings (``YYYY-MM-DD`` or a
    full timestamp, whose date part is used).
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if ISO_DATE_RE.match(text):
                return date.fromisoformat(text)
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise InvalidDateError(f"Not an ISO-8601 date: {value!r}") from exc
    raise InvalidDateError(f"Not an ISO-8601 date: {value!r}")


def _iso_key(value: Any) -> str:
    if isinstance(value, str):
        if not ISO_DATE_RE.match(value):
            raise InvalidDateError(f"Expected YYYY-MM-DD, got {value!r}")
        # 2025-02-30 is fixed-width but not a date.
        parse_iso_date(value)
        return value
    return parse_iso_date(value).isoformat()


def is_within_inclusive_range(day: Any, start: Any, end: Any) -> bool:
    """True iff ``start <= day <= end``.

    Comparison is on the ``YYYY-MM-DD`` text, which orders the same way as the
    dates because the format is fixed-width and zero-padded.
    """

    return _iso_key(start) <= _iso_key(day) <= _iso_key(end)


def _to_aware(value: Any, tz: ZoneInfo) -> datetime:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if ISO_DATE_RE.match(text):
            dt = datetime.combine(parse_iso_date(text), time.min)
        else:
            try:
                dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError as exc:
                raise InvalidDateError(f"Not an ISO-8601 date: {value!r}") from exc
    else:
        raise InvalidDateError(f"Not an ISO-8601 date: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt


def days_until(target: Any, now: datetime | None = None) -> int | None:
    """Signed whole days from ``now`` until ``target``, rounded up.

    Date-only targets mean local midnight, so a deadline earlier today gives
    ``0`` and yesterday's gives ``-1``. ``None`` passes through.
    """

    if target is None:
        return None
    tz = _local_tz()
    target_dt = _to_aware(target, tz)
    current = _to_aware(now, tz) if now is not None else datetime.now(tz)
    return math.ceil((target_dt - current).total_seconds() / SECONDS_PER_DAY)


def urgency_bucket(days: int | None) -> UrgencyBucket:
    """Classify a day count; the 0/30/60/90 bands are inclusive at the top."""

    if days is None:
        return UrgencyBucket.OK
    for upper, bucket in BUCKET_UPPER_BOUNDS:
        if days <= upper:
            return bucket
    return UrgencyBucket.OK


def bucket_counts(values: Iterable[int | None]) -> dict[UrgencyBucket, int]:
    """Count day values per bucket; every bucket is present, totals add up."""

    counts = Counter(urgency_bucket(value) for value in values)
    return {bucket: counts.get(bucket, 0) for bucket in UrgencyBucket}


def build_month_grid(year: int, month: int) -> list[list[date | None]]:
    """Week rows (Monday first) for ``month``, padded with ``None``."""

    if not 1 <= month <= 12 or not date.min.year <= year <= date.max.year:
        raise InvalidDateError(f"Invalid month: {year}-{month}")
    weeks = calendar.Calendar(firstweekday=calendar.MONDAY).monthdayscalendar(year, month)
    return [[date(year, month, day) if day else None for day in week] for week in weeks]


def iter_days(start: Any, end: Any) -> Iterator[date]:
    """Yield each date from ``start`` to ``end`` inclusive."""

    current = parse_iso_date(start)
    last = parse_iso_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


@dataclass
class DayStats:
    holidays: int = 0
    leaves: int = 0
    visa: int = 0
    bg: int = 0

    @property
    def total(self) -> int:
        return self.holidays + self.leaves + self.visa + self.bg


# Calendar event ``type`` tag -> DayStats counter.
_STAT_FIELDS = {
    "holiday": "holidays",
    "leave": "leaves",
    "visa_expiry": "visa",
    "bg_verification": "bg",
}


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise InvalidDateError(f"Invalid month: {year}-{month}")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def calendar_day_stats(events: Any, year: int, month: int) -> dict[str, DayStats]:
    """Per-day event counts for one month, keyed by ``YYYY-MM-DD``.

    ``events`` is a :class:`~sponsor_portal.schemas.calendar.CalendarEvents`.
    A leave counts once on every day of its span that falls inside the month.
    """

    first, last = _month_bounds(year, month)
    stats: dict[str, DayStats] = {}

    def bump(day: date, field: str) -> None:
        if first <= day <= last:
            entry = stats.setdefault(day.isoformat(), DayStats())
            setattr(entry, field, getattr(entry, field) + 1)

    for event in events.all_events():
        field = _STAT_FIELDS[event.type]
        if event.type == "leave":
            for day in iter_days(max(event.start_date, first), min(event.end_date, last)):
                bump(day, field)
        else:
            bump(event.date, field)
    return stats


def events_on(events: Any, day: Any) -> dict[str, list[Any]]:
    """Events touching ``day``, grouped the way the day-detail panel shows them."""

    key = _iso_key(day)
    return {
        "holidays": [h for h in events.holidays if h.date.isoformat() == key],
        "leaves": [
            leave
            for leave in events.leaves
            if is_within_inclusive_range(key, leave.start_date, leave.end_date)
        ],
        "visa": [v for v in events.visa_expiries if v.date.isoformat() == key],
        "bg": [b for b in events.bg_verifications if b.date.isoformat() == key],
    }


__all__ = [
    "BUCKET_LABELS",
    "DayStats",
    "InvalidDateError",
    "UrgencyBucket",
    "bucket_counts",
    "build_month_grid",
    "calendar_day_stats",
    "days_until",
    "events_on",
    "is_within_inclusive_range",
    "iter_days",
    "parse_iso_date",
    "urgency_bucket",
]
