"""
Date normalization and week bucketing for records coming off the sheet.
Pure functions: every date the UI sees has been through normalize_date.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, List, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# Added to a UTC instant before reading its calendar day, so that a
# local midnight from any offset in -12:00..+12:00 lands mid-day.
PIVOT = timedelta(hours=12)

SPREADSHEET_EPOCH = date(1899, 12, 30)

MONTH_ABBR = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

_CANONICAL_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_TIME_RE = re.compile(r'\dT\d|:')
_EPOCH_RE = re.compile(r'^/?Date\((-?\d+)([+-]\d{4})?\)/?$')
_DMY_RE = re.compile(r'^(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})$')
_DAY_MON_YEAR_RE = re.compile(r'\b(\d{1,2})[-\s/]+([A-Za-z]{3})[A-Za-z]*\.?[-\s/,]+(\d{4})\b')
_MON_DAY_YEAR_RE = re.compile(r'\b([A-Za-z]{3})[A-Za-z]*\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b')
_YEAR_RE = re.compile(r'\d{4}')
_LEADING_YEAR_RE = re.compile(r'^\d{4}\D')
_ISO_DATE_HEAD_RE = re.compile(r'^\d{4}-\d{2}-\d{2}(?:[T ]|$)')
_JS_ZONE_NAME_RE = re.compile(r'\s*\([^)]*\)\s*$')
_JS_GMT_OFFSET_RE = re.compile(r'GMT([+-]\d{2}):?(\d{2})')

# Two unrelated defaults for dateutil; a field missing from the text shows
# up as a disagreement between the two parses.
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _pivot(instant: datetime) -> str:
    """Read the calendar day of an instant after applying the 12-hour pivot."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    try:
        shifted = instant.astimezone(timezone.utc) + PIVOT
    except OverflowError:
        return ''
    return shifted.date().isoformat()


def _build(year: int, month: int, day: int) -> str:
    """Return YYYY-MM-DD for a real calendar date, or '' if it does not exist."""
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return ''


def _from_epoch_marker(text: str) -> Optional[str]:
    match = _EPOCH_RE.match(text)
    if not match:
        return None
    # The optional +HHMM suffix only describes the writer's zone; the
    # millisecond count is already absolute.
    try:
        instant = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return ''
    return _pivot(instant)


def _clean_js_date(text: str) -> str:
    # "Mon Mar 04 2024 00:00:00 GMT+0100 (Central European Standard Time)"
    text = _JS_ZONE_NAME_RE.sub('', text)
    # dateutil reads "GMT+01" with POSIX sign semantics (i.e. as UTC-1)
    return _JS_GMT_OFFSET_RE.sub(r'\1:\2', text)


def _generic_parse(text: str) -> datetime:
    """
    dateutil parse that refuses partial dates.

    dateutil fills missing fields from its default (today), so the text is
    parsed against two different defaults and must agree on the day.
    """
    # dayfirst=True turns "2024-03-04" into April 3rd, so only ask for it
    # when the year is not leading.
    dayfirst = not _LEADING_YEAR_RE.match(text)
    first, second = (
        date_parser.parse(text, dayfirst=dayfirst, default=default)
        for default in _PARSE_DEFAULTS
    )
    if first.date() != second.date():
        raise ValueError(f"incomplete date: {text!r}")
    return first


def _from_timed_string(text: str) -> Optional[str]:
    if not _YEAR_RE.search(text):
        # A bare time would otherwise be dated today by dateutil
        return None
    cleaned = _clean_js_date(text)
    instant = None
    # isoparse fills a missing month or day with 1, so it only gets full dates
    if _ISO_DATE_HEAD_RE.match(cleaned):
        try:
            instant = date_parser.isoparse(cleaned)
        except (ValueError, OverflowError):
            pass
    if instant is None:
        try:
            instant = _generic_parse(cleaned)
        except (ValueError, OverflowError):
            return None
    return _pivot(instant)


def _from_dmy(text: str) -> Optional[str]:
    match = _DMY_RE.match(text)
    if not match:
        return None
    first, second, year = (int(g) for g in match.groups())
    if second > 12 >= first:
        day, month = second, first
    else:
        # Day-first unless only the second group can be a day
        day, month = first, second
    return _build(year, month, day)


def _from_month_name(text: str) -> Optional[str]:
    match = _DAY_MON_YEAR_RE.search(text)
    if match:
        day, abbr, year = match.groups()
    else:
        match = _MON_DAY_YEAR_RE.search(text)
        if not match:
            return None
        abbr, day, year = match.groups()
    month = MONTH_ABBR.get(abbr[:3].lower())
    if month is None:
        return None
    return _build(int(year), month, int(day))


def _fallback(text: str) -> str:
    if _YEAR_RE.search(text):
        try:
            return _pivot(_generic_parse(text))
        except (ValueError, OverflowError):
            pass
    head = text[:10]
    if _CANONICAL_RE.match(head) and _build(*(int(p) for p in head.split('-'))):
        return head
    return ''


def normalize_date(value: Any) -> str:
    """
    Normalize an arbitrary date value from the sheet to a canonical date.

    Accepted shapes: None, date, datetime (naive is read as UTC), a strict
    YYYY-MM-DD string, ISO or JavaScript strings with a time component,
    /Date(ms)/ epoch markers, D/M/Y numeric strings, strings with a month
    abbreviation, and spreadsheet serial day numbers.

    Args:
        value: Raw value as returned by the store

    Returns:
        'YYYY-MM-DD', or '' when no calendar date can be recovered.
        Never raises.
    """
    if value is None or isinstance(value, bool):
        return ''

    if isinstance(value, datetime):
        return _pivot(value)
    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, (int, float)):
        try:
            return (SPREADSHEET_EPOCH + timedelta(days=int(value))).isoformat()
        except (OverflowError, ValueError):
            return ''

    text = str(value).strip()
    if not text:
        return ''

    match = _CANONICAL_RE.match(text)
    if match:
        return text if _build(*(int(g) for g in match.groups())) else ''

    try:
        result = _from_epoch_marker(text)
        if result is not None:
            return result

        if _TIME_RE.search(text):
            result = _from_timed_string(text)
            if result is not None:
                return result

        for rule in (_from_dmy, _from_month_name):
            result = rule(text)
            if result is not None:
                return result

        return _fallback(text)
    except Exception:
        # dateutil has raised odd types on pathological input before
        logger.exception("Unexpected failure normalizing %r", text)
        return ''


def snap_to_monday(value: Any) -> Any:
    """
    Return the Monday (ISO week start) on or before the given date.

    The input is normalized again first since not every caller hands over a
    canonical string. Input that does not resolve to a date is returned
    unchanged.
    """
    canonical = normalize_date(value)
    parts = canonical.split('-')
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return value

    day = date(int(parts[0]), int(parts[1]), int(parts[2]))
    monday = day - timedelta(days=day.weekday())  # Monday=0
    return monday.isoformat()


def to_local_iso(moment: Optional[datetime] = None) -> str:
    """Local calendar day of a moment (now by default), never its UTC day."""
    moment = moment or datetime.now()
    if moment.tzinfo is not None:
        moment = moment.astimezone()
    return moment.date().isoformat()


def today_iso() -> str:
    return to_local_iso()


def shift_days(day_iso: str, days: int) -> str:
    """Add days to a canonical date string."""
    return (date.fromisoformat(day_iso) + timedelta(days=days)).isoformat()


def week_days(monday_iso: str) -> List[str]:
    """All 7 dates (Mon..Sun) of the week starting at monday_iso."""
    return [shift_days(monday_iso, i) for i in range(7)]


def format_date_friendly(day_iso: str) -> str:
    """Format 'YYYY-MM-DD' as e.g. 'Mon, Mar 4'. Non-dates are returned as-is."""
    canonical = normalize_date(day_iso)
    if not canonical:
        return day_iso or ''
    d = date.fromisoformat(canonical)
    return f"{d.strftime('%a, %b')} {d.day}"
