"""Deterministic per-segment entity extractors.

Each extractor is pure and independent and returns None (or an empty list)
when nothing matches. Malformed numeric components never raise.

Date priority: ISO > numeric (MM/DD/YYYY, YYYY/MM/DD) > month name > relative.
Duration priority: <h>h<m>m > hours > minutes > seconds.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta

from quickjot.models.result import TimeBlock
from quickjot.vocabularies.lexicon import (
    LOCATION_STOPWORDS,
    MONTHS,
    NON_PLACE_WORDS,
    NUMBER_WORDS,
    REQUEST_PREFIXES,
    TIME_WORDS,
    TITLE_LABELS,
    WEEKDAYS,
)

MIN_YEAR = 1900
MAX_YEAR = 2100

# Rule tags recorded in forced_rules_applied
RULE_ISO_DATE = "iso_date_detected"
RULE_NUMERIC_DATE = "numeric_date_detected"
RULE_MONTH_NAME_DATE = "month_name_date_detected"
RULE_RELATIVE_DATE = "relative_date_detected"
RULE_TIME = "time_detected"
RULE_DURATION = "duration_detected"
RULE_LOCATION = "location_detected"
RULE_SUBTASKS = "subtasks_detected"

LOCATION_MIN_CHARS = 3
LOCATION_MAX_CHARS = 100
SUBTASK_MAX_CHARS = 200
TITLE_MAX_WORDS = 12
TITLE_TRUNCATE_WORDS = 8


def _alternation(words) -> str:
    return "|".join(sorted((re.escape(w) for w in words), key=len, reverse=True))


# =============================================================================
# Dates and times
# =============================================================================

_MONTH = _alternation(MONTHS)
_FULL_WEEKDAYS = [w for w in WEEKDAYS if w.endswith("day")]

_ISO_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})(?:[T ](\d{2}):(\d{2}))?\b")
_MDY_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_YMD_RE = re.compile(r"\b(\d{4})/(\d{1,2})/(\d{1,2})\b")
_MONTH_DAY_RE = re.compile(
    rf"\b({_MONTH})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s+(\d{{4}})\b)?",
    re.IGNORECASE,
)
_DAY_MONTH_RE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?({_MONTH})\b\.?(?:,?\s+(\d{{4}})\b)?",
    re.IGNORECASE,
)

_NUMBER_BODY = rf"\d+(?:\.\d+)?|{_alternation(NUMBER_WORDS)}"
_NUMBER = rf"({_NUMBER_BODY})"

_RELATIVE_RES: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\bday after tomorrow\b", re.IGNORECASE), "day_after_tomorrow"),
    (re.compile(r"\btomorrow\b", re.IGNORECASE), "tomorrow"),
    (re.compile(r"\b(?:today|tonight)\b", re.IGNORECASE), "today"),
    (re.compile(rf"\bin\s+{_NUMBER}\s+(days?|weeks?)\b", re.IGNORECASE), "in_n"),
    (re.compile(r"\bnext week\b", re.IGNORECASE), "next_week"),
    (re.compile(rf"\b(?:next|this|on|by)\s+({_alternation(WEEKDAYS)})\b", re.IGNORECASE), "weekday"),
    (re.compile(rf"\b({_alternation(_FULL_WEEKDAYS)})\b", re.IGNORECASE), "weekday"),
]

_TIME_12H_MINUTES_RE = re.compile(r"\b(\d{1,2}):(\d{2})\s*([ap])\.?\s?m\.?(?!\w)", re.IGNORECASE)
_TIME_12H_RE = re.compile(r"\b(\d{1,2})\s*([ap])\.?\s?m\.?(?!\w)", re.IGNORECASE)
_TIME_24H_RE = re.compile(r"(?:\bat|@)\s*(\d{1,2}):(\d{2})\b", re.IGNORECASE)
_NOON_RE = re.compile(r"\bnoon\b", re.IGNORECASE)
_MIDNIGHT_RE = re.compile(r"\bmidnight\b", re.IGNORECASE)


@dataclass
class DateMatch:
    """A calendar date found in text."""

    value: date
    rule: str
    start: int
    end: int
    # ISO datetimes carry their own time
    time: tuple[int, int] | None = None


@dataclass
class TimeMatch:
    """A time of day found in text."""

    hour: int
    minute: int
    start: int
    end: int


@dataclass
class DueMatch:
    """Resolved due time plus the rules that produced it."""

    block: TimeBlock
    rules: list[str] = field(default_factory=list)


def _safe_date(year: int, month: int, day: int) -> date | None:
    if not (MIN_YEAR <= year <= MAX_YEAR and 1 <= month <= 12 and 1 <= day <= 31):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        # Feb 30 and friends
        return None


def _to_number(token: str) -> float | None:
    token = token.lower()
    if token in NUMBER_WORDS:
        return float(NUMBER_WORDS[token])
    try:
        return float(token)
    except ValueError:
        return None


def _match_iso(text: str) -> DateMatch | None:
    for m in _ISO_RE.finditer(text):
        value = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if value is None:
            continue
        time = None
        if m.group(4) is not None:
            hour, minute = int(m.group(4)), int(m.group(5))
            if hour <= 23 and minute <= 59:
                time = (hour, minute)
        return DateMatch(value, RULE_ISO_DATE, m.start(), m.end(), time)
    return None


def _match_numeric(text: str) -> DateMatch | None:
    for m in _MDY_RE.finditer(text):
        value = _safe_date(int(m.group(3)), int(m.group(1)), int(m.group(2)))
        if value is not None:
            return DateMatch(value, RULE_NUMERIC_DATE, m.start(), m.end())
    for m in _YMD_RE.finditer(text):
        value = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if value is not None:
            return DateMatch(value, RULE_NUMERIC_DATE, m.start(), m.end())
    return None


def _match_month_name(text: str, today: date) -> DateMatch | None:
    candidates = []
    for m in _MONTH_DAY_RE.finditer(text):
        candidates.append((m, m.group(1), m.group(2), m.group(3)))
    for m in _DAY_MONTH_RE.finditer(text):
        candidates.append((m, m.group(2), m.group(1), m.group(3)))
    candidates.sort(key=lambda c: c[0].start())

    for m, month_name, day, year in candidates:
        month = MONTHS[month_name.lower()]
        value = _safe_date(int(year) if year else today.year, month, int(day))
        if value is not None:
            return DateMatch(value, RULE_MONTH_NAME_DATE, m.start(), m.end())
    return None


def _match_relative(text: str, today: date) -> DateMatch | None:
    for pattern, kind in _RELATIVE_RES:
        m = pattern.search(text)
        if not m:
            continue
        if kind == "day_after_tomorrow":
            value = today + timedelta(days=2)
        elif kind == "tomorrow":
            value = today + timedelta(days=1)
        elif kind == "today":
            value = today
        elif kind == "next_week":
            value = today + timedelta(days=7)
        elif kind == "in_n":
            count = _to_number(m.group(1))
            if count is None or count != int(count) or count > 366:
                continue
            unit_days = 7 if m.group(2).lower().startswith("week") else 1
            value = today + timedelta(days=int(count) * unit_days)
        else:
            target = WEEKDAYS[m.group(1).lower()]
            days_ahead = (target - today.weekday()) % 7 or 7
            value = today + timedelta(days=days_ahead)
        return DateMatch(value, RULE_RELATIVE_DATE, m.start(), m.end())
    return None


def extract_date(text: str, today: date) -> DateMatch | None:
    """Find the highest-priority date in text."""
    if not text:
        return None
    return (
        _match_iso(text)
        or _match_numeric(text)
        or _match_month_name(text, today)
        or _match_relative(text, today)
    )


def extract_time(text: str) -> TimeMatch | None:
    """Find a time of day (12h, 24h after "at", noon, midnight)."""
    if not text:
        return None

    for m in _TIME_12H_MINUTES_RE.finditer(text):
        hour, minute = int(m.group(1)), int(m.group(2))
        if 1 <= hour <= 12 and minute <= 59:
            pm = m.group(3).lower() == "p"
            return TimeMatch(hour % 12 + (12 if pm else 0), minute, m.start(), m.end())

    for m in _TIME_12H_RE.finditer(text):
        hour = int(m.group(1))
        if 1 <= hour <= 12:
            pm = m.group(2).lower() == "p"
            return TimeMatch(hour % 12 + (12 if pm else 0), 0, m.start(), m.end())

    for m in _TIME_24H_RE.finditer(text):
        hour, minute = int(m.group(1)), int(m.group(2))
        if hour <= 23 and minute <= 59:
            return TimeMatch(hour, minute, m.start(), m.end())

    m = _NOON_RE.search(text)
    if m:
        return TimeMatch(12, 0, m.start(), m.end())
    m = _MIDNIGHT_RE.search(text)
    if m:
        return TimeMatch(0, 0, m.start(), m.end())
    return None


def match_due(text: str, today: date, tz: str | None = None) -> DueMatch | None:
    """Resolve a segment's due time into a TimeBlock.

    A time without a date falls on ``today``. A date without a time
    resolves to midnight. The ISO value is wall-clock time marked "Z".
    """
    date_match = extract_date(text, today)
    time_match = None
    hour_minute = None

    if date_match is not None and date_match.time is not None:
        hour_minute = date_match.time
    else:
        time_match = extract_time(text)
        if time_match is not None:
            hour_minute = (time_match.hour, time_match.minute)

    if date_match is None and hour_minute is None:
        return None

    rules = []
    spans = []
    if date_match is not None:
        rules.append(date_match.rule)
        spans.append((date_match.start, date_match.end))
        day = date_match.value
    else:
        day = today
    if hour_minute is not None:
        rules.append(RULE_TIME)
    if time_match is not None:
        spans.append((time_match.start, time_match.end))

    hour, minute = hour_minute or (0, 0)
    start = min(s for s, _ in spans)
    end = max(e for _, e in spans)

    block = TimeBlock(
        iso=f"{day.isoformat()}T{hour:02d}:{minute:02d}:00Z",
        date=day.isoformat(),
        time=f"{hour:02d}:{minute:02d}" if hour_minute is not None else None,
        tz=tz,
        when_text=text[start:end],
    )
    return DueMatch(block=block, rules=rules)


def extract_time_block(text: str, today: date, tz: str | None = None) -> TimeBlock | None:
    """Return the TimeBlock for a segment, or None."""
    match = match_due(text, today, tz)
    return match.block if match else None


def extract_due_iso(text: str, today: date) -> str | None:
    """Return the segment's due time as an ISO-8601 string, or None."""
    block = extract_time_block(text, today)
    return block.iso if block else None


# =============================================================================
# Duration
# =============================================================================

_HOUR_UNIT = r"(?:h|hrs?|hours?)"
_MINUTE_UNIT = r"(?:m|mins?|minutes?)"
_SECOND_UNIT = r"(?:s|secs?|seconds?)"

_HOURS_MINUTES_RE = re.compile(
    rf"\b{_NUMBER}\s*{_HOUR_UNIT}\s*(?:and\s+)?{_NUMBER}\s*{_MINUTE_UNIT}\b", re.IGNORECASE
)
_HOUR_AND_HALF_RE = re.compile(
    rf"\b(an|{_NUMBER_BODY})\s+hours?\s+and\s+a\s+half\b", re.IGNORECASE
)
_HALF_HOUR_RE = re.compile(r"\bhalf\s+an?\s+hour\b", re.IGNORECASE)
_AN_HOUR_RE = re.compile(r"\ban\s+hour\b", re.IGNORECASE)
_HOURS_RE = re.compile(rf"\b{_NUMBER}\s*{_HOUR_UNIT}\b", re.IGNORECASE)
_MINUTES_RE = re.compile(rf"\b{_NUMBER}\s*{_MINUTE_UNIT}\b", re.IGNORECASE)
_SECONDS_RE = re.compile(rf"\b{_NUMBER}\s*{_SECOND_UNIT}\b", re.IGNORECASE)


def extract_duration(text: str) -> int | None:
    """Extract a duration in whole minutes."""
    if not text:
        return None

    m = _HOURS_MINUTES_RE.search(text)
    if m:
        hours, minutes = _to_number(m.group(1)), _to_number(m.group(2))
        if hours is not None and minutes is not None:
            return int(hours * 60 + minutes)

    m = _HOUR_AND_HALF_RE.search(text)
    if m:
        hours = 1.0 if m.group(1).lower() == "an" else _to_number(m.group(1))
        if hours is not None:
            return int(hours * 60 + 30)

    if _HALF_HOUR_RE.search(text):
        return 30

    m = _HOURS_RE.search(text)
    if m:
        hours = _to_number(m.group(1))
        if hours is not None:
            return int(hours * 60 + 0.5)
    if _AN_HOUR_RE.search(text):
        return 60

    m = _MINUTES_RE.search(text)
    if m:
        minutes = _to_number(m.group(1))
        if minutes is not None:
            return int(minutes + 0.5)

    m = _SECONDS_RE.search(text)
    if m:
        seconds = _to_number(m.group(1))
        if seconds is not None:
            return max(1, int(seconds / 60 + 0.5))

    return None


# =============================================================================
# Location
# =============================================================================

_PLACE_BOUNDARY = (
    r"(?=\s+(?:for|with|about|today|tomorrow|tonight|next|this|on|at|by|from|until|to)\b"
    r"|\s*[.,;!?](?:\s|$)|\s*$)"
)
_LOCATION_RE = re.compile(
    r"(?:^|(?<=\s))(?:at|@|in)\s+(?P<place>[A-Za-z0-9][\w&'.-]*(?:\s+[\w&'.-]+)*?)" + _PLACE_BOUNDARY,
    re.IGNORECASE | re.MULTILINE,
)
_EXPLICIT_LOCATION_RE = re.compile(r"\blocation:\s*(?P<place>[^\n,;]+)", re.IGNORECASE)


def _is_plausible_place(place: str) -> bool:
    if not (LOCATION_MIN_CHARS <= len(place) <= LOCATION_MAX_CHARS):
        return False
    words = place.lower().split()
    if any(w in LOCATION_STOPWORDS for w in words):
        return False
    first = words[0].strip(".")
    # Times, dates and counts read as "at 5", "in March", "in 30 minutes"
    if not first or first[0].isdigit():
        return False
    if first in TIME_WORDS or first in NON_PLACE_WORDS or first in MONTHS or first in WEEKDAYS:
        return False
    return True


def extract_location(text: str) -> str | None:
    """Extract a place introduced by "at", "@", "in" or "location:"."""
    if not text:
        return None

    m = _EXPLICIT_LOCATION_RE.search(text)
    if m:
        place = m.group("place").strip().rstrip(".")
        if LOCATION_MIN_CHARS <= len(place) <= LOCATION_MAX_CHARS:
            return place

    for m in _LOCATION_RE.finditer(text):
        place = m.group("place").strip().rstrip(".")
        if _is_plausible_place(place):
            return place
    return None


# =============================================================================
# Subtasks
# =============================================================================

_SUBTASK_RES = (
    re.compile(r"^\s*[-•*]\s+(.+)$", re.MULTILINE),
    re.compile(r"^\s*\d+[.)]\s+(.+)$", re.MULTILINE),
    re.compile(r"^\s*[a-z]\)\s+(.+)$", re.MULTILINE),
)


def extract_subtasks(text: str) -> list[str]:
    """Extract bulleted, numbered and lettered list lines.

    Returns a deduplicated, lexically sorted list.
    """
    if not text:
        return []

    found = set()
    for pattern in _SUBTASK_RES:
        for m in pattern.finditer(text):
            subtask = m.group(1).strip().rstrip(".,;")
            if 2 <= len(subtask) <= SUBTASK_MAX_CHARS:
                found.add(subtask)
    return sorted(found)


# =============================================================================
# Title
# =============================================================================

_LIST_LINE_RE = re.compile(r"^\s*(?:[-•*]|\d+[.)]|[a-z]\))\s+")
_LABEL_RE = re.compile(rf"^(?:{_alternation(TITLE_LABELS)})\s*:\s*", re.IGNORECASE)
_REQUEST_PREFIX_RE = re.compile(rf"^(?:{_alternation(REQUEST_PREFIXES)})\b[\s,]*", re.IGNORECASE)


def extract_title(segment: str) -> str:
    """Derive a short title from a segment, keeping the writer's casing.

    List lines, leading labels ("task:") and request phrases ("remind me to")
    are dropped; long titles are cut to their first words.
    """
    lines = [line for line in segment.strip().split("\n") if line.strip()]
    if not lines:
        return segment.strip()
    head = _LIST_LINE_RE.sub("", lines[0]).strip()

    title = _LABEL_RE.sub("", head)
    while True:
        stripped = _REQUEST_PREFIX_RE.sub("", title, count=1)
        if stripped == title:
            break
        title = stripped
    title = title.strip().rstrip(" .,;:!?")

    words = title.split()
    if len(words) > TITLE_MAX_WORDS:
        title = " ".join(words[:TITLE_TRUNCATE_WORDS]) + "..."

    return title or head.rstrip(" .,;:!?") or head
