# common/utils/global_functions.py
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def deep_merge(base: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``changes`` into a copy of ``base``; nested dicts are merged, everything else replaced."""
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[start, end) of a calendar day in UTC."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def month_bounds(day: Optional[date] = None) -> Tuple[datetime, datetime]:
    """[start, end) of the month containing ``day`` (default: today), in UTC."""
    day = day or utcnow().date()
    start = datetime(day.year, day.month, 1, tzinfo=timezone.utc)
    if day.month == 12:
        end = datetime(day.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(day.year, day.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def date_range_bounds(start_date: Optional[date], end_date: Optional[date]) -> Tuple[datetime, datetime]:
    """Inclusive date range as [start, end) datetimes; missing ends default to the current month."""
    month_start, month_end = month_bounds()
    start = day_bounds(start_date)[0] if start_date else month_start
    end = day_bounds(end_date)[1] if end_date else month_end
    return start, end


def to_float(value: Any) -> float:
    """Numeric/Decimal aggregate results as plain floats (``None`` -> 0.0)."""
    return float(value) if value is not None else 0.0


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
