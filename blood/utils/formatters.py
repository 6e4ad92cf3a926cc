"""Display helpers shared by the portal templates and views."""

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from typing import Optional, Union

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

DateLike = Union[str, date, datetime, None]


def to_datetime(value: DateLike) -> Optional[datetime]:
    """Parse the API's ISO strings; naive values are taken as UTC."""

    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip().replace('Z', '+00:00')
        parsed = parse_datetime(text)
        if parsed is None:
            day = parse_date(text[:10])
            if day is None:
                return None
            parsed = datetime(day.year, day.month, day.day)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def format_date(value: DateLike, empty: str = '-') -> str:
    """``2026-01-05T03:00:00Z`` -> ``5 Jan 2026``."""

    parsed = to_datetime(value)
    if parsed is None:
        return empty
    local = timezone.localtime(parsed)
    return f"{local.day} {local.strftime('%b %Y')}"


def format_datetime(value: DateLike, empty: str = '-') -> str:
    parsed = to_datetime(value)
    if parsed is None:
        return empty
    local = timezone.localtime(parsed)
    return f"{local.day} {local.strftime('%b %Y, %H:%M')}"


def format_date_to_api(value: DateLike) -> str:
    """Render the ``d-M-yyyy H:mm`` form the pickup endpoints expect."""

    parsed = to_datetime(value)
    if parsed is None:
        return ''
    local = timezone.localtime(parsed)
    return f"{local.day}-{local.month}-{local.year} {local.hour}:{local.minute:02d}"


def pad_id(value, width: int = 5) -> str:
    return str(value).zfill(width)


def relative_time(value: DateLike, *, now: Optional[datetime] = None) -> str:
    parsed = to_datetime(value)
    if parsed is None:
        return ''
    now = now or timezone.now()
    seconds = int((now - parsed).total_seconds())
    if seconds < 60:
        return 'just now'
    minutes = seconds // 60
    if minutes < 60:
        return f'{minutes} min ago'
    hours = minutes // 60
    if hours < 24:
        return f'{hours} h ago'
    days = hours // 24
    if days < 7:
        return f'{days} d ago'
    return format_date(parsed)
