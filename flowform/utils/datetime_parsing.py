"""Natural-language datetime parsing for conversational answers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import dateparser
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from flowform.core.config import settings

DEFAULT_TIMEZONE = "UTC"

# Labels containing any of these tokens ask for a moment, not just a day.
TIME_REQUIRED_LABEL_TOKENS = ("time", "when", "schedule", "appointment", "booking")

# Named periods of the day resolve to a fixed clock time.
DAY_PERIOD_TIMES = {
    "morning": "09:00",
    "afternoon": "15:00",
    "evening": "18:00",
    "night": "20:00",
    "tonight": "20:00",
}

_TIME_OF_DAY_PATTERNS = (
    re.compile(r"(?<!\d)\d{1,2}:\d{2}(?!\d)"),
    re.compile(r"\b\d{1,2}\s*[ap]\.?m\b", re.IGNORECASE),
    re.compile(r"\bat\s+\d", re.IGNORECASE),
    re.compile(
        r"\b(?:noon|midday|midnight|morning|afternoon|evening|night|tonight)\b",
        re.IGNORECASE,
    ),
)

# English words that can anchor a date; answers with none of them (and no
# numeric date) are not handed to the parser, which would otherwise read "5"
# as the 5th of some month.
_DATE_WORD_RE = re.compile(
    r"\b(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
    r"|mon(?:day)?|tue(?:s(?:day)?)?|wed(?:nesday)?|thu(?:r(?:s(?:day)?)?)?|fri(?:day)?"
    r"|sat(?:urday)?|sun(?:day)?"
    r"|today|tonight|tomorrow|yesterday|now|noon|midday|midnight"
    r"|morning|afternoon|evening|night|next|last|this|coming|ago|in"
    r"|days?|weeks?|fortnight|months?|years?|hours?|minutes?)\b",
    re.IGNORECASE,
)
_NUMERIC_DATE_RE = re.compile(r"\d\s*[-/.:]\s*\d|\d\s*[ap]\.?m\b", re.IGNORECASE)

_WEEKDAYS = {
    "monday": MO,
    "tuesday": TU,
    "wednesday": WE,
    "thursday": TH,
    "friday": FR,
    "saturday": SA,
    "sunday": SU,
}
_WEEKDAY_RE = re.compile(
    r"\b(?:(?:next|this|coming)\s+)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    re.IGNORECASE,
)
_RELATIVE_DAY_RE = re.compile(r"\b(today|tonight|tomorrow)\b", re.IGNORECASE)
_NEXT_UNIT_RE = re.compile(r"\bnext\s+(week|month|year)\b", re.IGNORECASE)
_DAY_PERIOD_RE = re.compile(
    r"(?:\b(?:in\s+the|at|this)\s+)?\b(morning|afternoon|evening|night)\b",
    re.IGNORECASE,
)
_DAY_PERIOD_PRESENT_RE = re.compile(
    r"\b(?:morning|afternoon|evening|night|tonight)\b", re.IGNORECASE
)


@dataclass
class ParsedDatetime:
    value: datetime | None
    has_explicit_time: bool = False


def label_requires_time(label: str | None) -> bool:
    lowered = (label or "").lower()
    return any(token in lowered for token in TIME_REQUIRED_LABEL_TOKENS)


def has_explicit_time(text: str) -> bool:
    """Detect an explicit time of day (10:30, 3pm, at 4, noon, ...) in free text."""
    return any(pattern.search(text) for pattern in _TIME_OF_DAY_PATTERNS)


def looks_like_date(text: str, languages: list[str] | None = None) -> bool:
    """Cheap pre-check: does the text carry anything a date could be anchored on?"""
    if _NUMERIC_DATE_RE.search(text):
        return True
    if not any(ch.isalpha() for ch in text):
        return False
    if languages and set(languages) != {"en"}:
        # Word list is English only; other languages go straight to the parser.
        return True
    return bool(_DATE_WORD_RE.search(text))


def parse_natural_datetime(
    raw_value: str,
    *,
    timezone_name: str | None = None,
    relative_base: datetime | None = None,
) -> ParsedDatetime:
    """Parse phrases like "tomorrow at 3pm" or "January 15, 2026" into a UTC datetime.

    Relative phrases resolve against ``relative_base`` (default: now) and prefer
    future dates. Returns ``ParsedDatetime(value=None)`` when the text cannot be
    understood; callers must never guess in that case.
    """
    value = raw_value.strip()
    if not value:
        return ParsedDatetime(value=None)

    tz = _resolve_timezone(timezone_name or settings.DATE_PARSER_TIMEZONE)

    # ISO 8601 timestamps (including our own canonical values)
    try:
        iso = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    else:
        if iso.tzinfo is None:
            iso = iso.replace(tzinfo=tz)
        return ParsedDatetime(
            value=iso.astimezone(timezone.utc),
            has_explicit_time=has_explicit_time(value),
        )

    languages = settings.date_parser_languages_list or None
    if not looks_like_date(value, languages):
        return ParsedDatetime(value=None)

    base = relative_base or datetime.now(timezone.utc)
    if base.tzinfo is None:
        base = base.replace(tzinfo=timezone.utc)
    local_base = base.astimezone(tz).replace(tzinfo=None)

    parser_settings = {
        "PREFER_DATES_FROM": "future",
        "TIMEZONE": tz.key,
        "TO_TIMEZONE": "UTC",
        "RETURN_AS_TIMEZONE_AWARE": True,
        "RELATIVE_BASE": local_base,
    }

    if _DAY_PERIOD_PRESENT_RE.search(value):
        # The parser has no notion of "morning" or "tonight"; pin them to a date and clock time.
        parsed = dateparser.parse(
            _rewrite_relative_phrases(value, local_base),
            languages=languages,
            settings=parser_settings,
        )
    else:
        parsed = dateparser.parse(value, languages=languages, settings=parser_settings)
        if parsed is None:
            rewritten = _rewrite_relative_phrases(value, local_base)
            if rewritten != value:
                parsed = dateparser.parse(rewritten, languages=languages, settings=parser_settings)
    if parsed is None:
        return ParsedDatetime(value=None)

    return ParsedDatetime(
        value=parsed.astimezone(timezone.utc),
        has_explicit_time=has_explicit_time(value),
    )


def to_iso_utc(value: datetime) -> str:
    """Serialize as ISO-8601 UTC with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_iso_datetime(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _rewrite_relative_phrases(value: str, local_base: datetime) -> str:
    """Turn "tomorrow morning", "Friday afternoon", "next Tuesday" into explicit dates and times."""
    # An explicit clock time wins over a named period ("tomorrow evening at 7:30").
    clock_time = any(pattern.search(value) for pattern in _TIME_OF_DAY_PATTERNS[:3])
    text = _NEXT_UNIT_RE.sub(lambda m: f"in 1 {m.group(1).lower()}", value)
    text = _DAY_PERIOD_RE.sub(
        lambda m: "" if clock_time else DAY_PERIOD_TIMES[m.group(1).lower()], text
    )
    text = _RELATIVE_DAY_RE.sub(
        lambda m: _resolve_relative_day(m.group(1), local_base, clock_time), text
    )
    text = _WEEKDAY_RE.sub(lambda m: _resolve_weekday(m.group(1), local_base), text)
    return " ".join(text.split())


def _resolve_relative_day(word: str, local_base: datetime, clock_time: bool = False) -> str:
    word = word.lower()
    if word == "tomorrow":
        return (local_base + timedelta(days=1)).strftime("%Y-%m-%d")
    day = local_base.strftime("%Y-%m-%d")
    if word == "tonight" and not clock_time:
        return f"{day} {DAY_PERIOD_TIMES['tonight']}"
    return day


def _resolve_weekday(name: str, local_base: datetime) -> str:
    weekday = _WEEKDAYS[name.lower()]
    target = local_base + relativedelta(days=+1, weekday=weekday(+1))
    return target.strftime("%Y-%m-%d")


def _resolve_timezone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_TIMEZONE)
