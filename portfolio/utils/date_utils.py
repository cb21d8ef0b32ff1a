# portfolio/utils/date_utils.py
"""
Timestamp normalization.

Dates reach the service from several places: ORM reads return ``datetime``,
JSON bodies carry ISO strings or epoch milliseconds, and payloads copied from
the document store carry ``{"seconds": ..., "nanoseconds": ...}`` objects,
sometimes serialized a second time as a JSON string. Every converter in
``portfolio.schemas`` goes through ``to_datetime`` so they all agree on what
counts as a date.
"""
import json
import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import pandas as pd

from portfolio.logger import get_logger

logger = get_logger(__name__)

ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
CONVERSION_METHODS = ("to_datetime", "ToDatetime", "toDate")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    '''Current UTC time truncated to millisecond precision.'''
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_datetime(value: Any) -> Optional[datetime]:
    '''
    Convert any date-like value into a ``datetime``.

    Accepted shapes, in priority order:
    1. ``datetime`` (returned as-is) or ``date`` (midnight UTC)
    2. ISO-8601 string (``YYYY-MM-DD...`` prefix or containing ``T00:00:00``)
    3. any other string the generic parser understands
    4. int/float epoch milliseconds
    5. object exposing a zero-argument conversion method
    6. mapping/object with an integer ``seconds`` field
    7. JSON string holding a shape-6 object

    Never raises. Anything unrecognized, empty or unparseable gives ``None``,
    which callers treat as "unknown date", never as epoch zero.

    :param value: Raw value read from the database or a request body
    :type value: Any
    :return: Parsed datetime (timezone-aware unless the input was a naive datetime)
    :rtype: Optional[datetime]
    '''
    try:
        if not value:
            return None
        return _convert(value)
    except Exception as e:
        logger.debug(f"Could not convert {value!r} to datetime: {e}")
        return None


def _convert(value: Any) -> Optional[datetime]:
    # 1️⃣ native date objects
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, str):
        return _from_string(value.strip())

    # 4️⃣ epoch milliseconds
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _from_millis(value)

    # 5️⃣ lazily-materialized timestamp wrappers
    for method_name in CONVERSION_METHODS:
        method = getattr(value, method_name, None)
        if callable(method):
            result = method()
            if result is value:
                return None
            return to_datetime(result)

    # 6️⃣ {"seconds": ..., "nanoseconds": ...}
    return _from_seconds_object(value)


def _from_string(text: str) -> Optional[datetime]:
    if not text:
        return None

    # 7️⃣ serialized timestamp object
    if text.startswith("{") and ('"seconds"' in text or '"nanoseconds"' in text):
        return _from_seconds_object(json.loads(text))

    # 2️⃣ ISO strings
    if ISO_DATE_PREFIX.match(text) or "T00:00:00" in text:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        except ValueError:
            pass  # fall through to the generic parser

    # 3️⃣ generic parse
    parsed = pd.to_datetime(text, utc=True)
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def _from_millis(millis: float) -> Optional[datetime]:
    if isinstance(millis, float) and not math.isfinite(millis):
        return None
    return EPOCH + timedelta(milliseconds=millis)


def _from_seconds_object(value: Any) -> Optional[datetime]:
    if isinstance(value, timedelta):
        return None
    if isinstance(value, Mapping):
        seconds = value.get("seconds")
    else:
        seconds = getattr(value, "seconds", None)
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        return None
    return _from_millis(seconds * 1000)


def to_utc_datetime(value: Any) -> Optional[datetime]:
    '''Normalize and force UTC; naive datetimes are taken to already be UTC.'''
    parsed = to_datetime(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_epoch_millis(value: Any) -> Optional[int]:
    parsed = to_utc_datetime(value)
    if parsed is None:
        return None
    return round((parsed - EPOCH).total_seconds() * 1000)


def to_iso_string(value: Any) -> Optional[str]:
    '''ISO-8601 string with millisecond precision and a ``Z`` suffix.'''
    parsed = to_utc_datetime(value)
    if parsed is None:
        return None
    return parsed.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ======================================================
# 🖨️ Display helpers
# ======================================================

DATE_FORMATS = {
    "full": "%A, %B %d, %Y",
    "short": "%b %d, %Y",
    "datetime": "%b %d, %Y %H:%M",
    "time": "%H:%M",
}


def format_relative(value: Any, now: Optional[datetime] = None) -> str:
    '''Human friendly distance to now, e.g. "3 days ago".'''
    parsed = to_utc_datetime(value)
    if parsed is None:
        return "Invalid date"
    now = to_utc_datetime(now) or datetime.now(timezone.utc)

    diff_sec = round((now - parsed).total_seconds())
    diff_min = round(diff_sec / 60)
    diff_hour = round(diff_min / 60)
    diff_day = round(diff_hour / 24)
    diff_month = round(diff_day / 30)
    diff_year = round(diff_day / 365)

    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'s' if n > 1 else ''} ago"

    if diff_sec < 60:
        return "just now"
    if diff_min < 60:
        return plural(diff_min, "minute")
    if diff_hour < 24:
        return plural(diff_hour, "hour")
    if diff_day < 30:
        return plural(diff_day, "day")
    if diff_month < 12:
        return plural(diff_month, "month")
    return plural(diff_year, "year")


def format_date(value: Any, fmt: str = "full") -> str:
    '''
    Format a date-like value for display.

    :param value: Anything ``to_datetime`` accepts
    :type value: Any
    :param fmt: One of full, short, datetime, time, relative
    :type fmt: str
    :rtype: str
    '''
    if not value:
        return "N/A"
    parsed = to_datetime(value)
    if parsed is None:
        return "Invalid date"
    if fmt == "relative":
        return format_relative(parsed)
    return parsed.strftime(DATE_FORMATS.get(fmt, "%Y-%m-%d"))
