"""Helper utilities for teaching Jinja2 how to format portal data.

Templates are the presentation layer. This module builds the one shared
templates environment and registers the filters every page relies on: date
formatting in UK style and the visa countdown wording.
"""

from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from ..services.dates import InvalidDateError, UrgencyBucket, parse_iso_date, urgency_bucket
from .config import settings

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None


def _to_dt(value: Any) -> datetime | None:
    """Convert strings into timezone-aware datetimes for safe formatting."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None and _LOCAL_TZ:
        dt = dt.replace(tzinfo=_LOCAL_TZ)
    if _LOCAL_TZ:
        dt = dt.astimezone(_LOCAL_TZ)
    return dt


def _fmt_dt(value: Any, fmt: str = "%d %b %Y %H:%M") -> str:
    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else ""


def _fmt_date(value: Any, fmt: str = "%d %b %Y") -> str:
    """Format a calendar date as ``07 Mar 2025``; blank for missing values."""

    if value is None or value == "":
        return ""
    if isinstance(value, date):
        return value.strftime(fmt)
    try:
        return parse_iso_date(value).strftime(fmt)
    except InvalidDateError:
        return ""


def _days_left(value: Any) -> str:
    if value is None:
        return ""
    if urgency_bucket(value) is UrgencyBucket.EXPIRED:
        return "Expired"
    return f"{value} days left"


def _bucket_label(value: Any) -> str:
    if isinstance(value, UrgencyBucket):
        return value.label
    return urgency_bucket(value).label


@lru_cache(maxsize=1)
def get_templates() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(settings.templates_dir))
    templates.env.filters["fmt_dt"] = _fmt_dt
    templates.env.filters["fmt_date"] = _fmt_date
    templates.env.filters["days_left"] = _days_left
    templates.env.filters["bucket_label"] = _bucket_label
    return templates
