from datetime import datetime, time, timezone as dt_timezone

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


def parse_timestamp(value):
    """
    Parse a client supplied ISO 8601 timestamp or date.

    Returns an aware UTC datetime, or None when the value is missing, not a
    valid timestamp, or outside the range a datetime can hold in UTC. Naive
    values are read as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        value = str(value).strip()
        if not value:
            return None
        try:
            parsed = parse_datetime(value)
            if parsed is None:
                day = parse_date(value)
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            return None
        if parsed is None:
            return None

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    try:
        return parsed.astimezone(dt_timezone.utc)
    except OverflowError:
        return None
