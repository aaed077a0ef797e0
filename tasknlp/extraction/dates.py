"""Rule-based date/time extraction from free text.

Rules are an ordered list of :class:`DateRule` entries. The first rule whose
pattern matches *and* whose resolver yields a valid datetime wins; the matched
span is removed from the text. When nothing matches, the due date defaults to
``now + default_days``.

All datetimes are naive local wall-clock times.
"""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Resolver = Callable[[re.Match[str], datetime], datetime]

MONTHS = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

# Indexed like datetime.weekday(): Monday == 0
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_LEAD_IN = r"(?:by|due|on|before|until)"
_WEEKDAY = r"(?:" + "|".join(WEEKDAYS) + r")"
_MONTH = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?"
    r"|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\b"
)
_ORDINAL = r"(?:st|nd|rd|th)?"
_YEAR_SEP = r"(?:\s*,\s*|\s+)"

# Date literal shapes, without capture groups, for callers that need to
# recognise a date expression before handing it to DateTimeExtractor.
# "today"/"tonight" are not included; only the DateTimeExtractor rule
# resolves them.
DATE_LITERAL = (
    r"tomorrow\b(?:\s+at\s+\d{1,2}(?::\d{2})?\s*(?:am|pm)?\b)?"
    rf"|(?:next\s+)?{_WEEKDAY}\b"
    rf"|\d{{1,2}}{_ORDINAL}(?:\s+of)?\s+{_MONTH}(?:{_YEAR_SEP}\d{{4}}\b)?"
    rf"|{_MONTH}\s+\d{{1,2}}{_ORDINAL}\b(?:{_YEAR_SEP}\d{{4}}\b)?"
    r"|(?:\d{4}|\d{1,2})[/-]\d{1,2}[/-]\d{2,4}\b"
    r"|\d{1,2}(?::\d{2}\s*(?:am|pm)?|\s*(?:am|pm))\b"
)


@dataclass(frozen=True)
class DateRule:
    """A named pattern paired with the function that resolves its match."""

    name: str
    pattern: re.Pattern[str]
    resolver: Resolver


@dataclass(frozen=True)
class DateMatch:
    """Result of a date extraction.

    ``rule`` is the name of the rule that fired, or ``None`` when the default
    due date was applied.
    """

    date: datetime
    remaining_text: str
    rule: str | None = None


def end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=0)


def build_date(
    year: int,
    month: int,
    day: int,
    hour: int = 23,
    minute: int = 59,
    second: int = 59,
) -> datetime:
    """Build a datetime from a 1-based month that may be out of range.

    A month outside 1-12 carries into the adjacent year. If the month was out
    of range or the day does not exist in it, the result is the last day of
    the month *before* the requested one (Feb 30 -> Jan 31, month 13 of 2023
    -> Dec 31 2023).

    Raises:
        ValueError: If the resulting year is outside datetime's range.
    """
    month_in_range = 1 <= month <= 12
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1

    if month_in_range and 1 <= day <= calendar.monthrange(year, month)[1]:
        return datetime(year, month, day, hour, minute, second)

    if month == 1:
        year, month = year - 1, 12
    else:
        month -= 1
    return datetime(year, month, calendar.monthrange(year, month)[1], hour, minute, second)


def to_24_hour(hour: int, period: str | None) -> int:
    """Apply am/pm to a clock hour (``12am`` -> 0, ``1pm`` -> 13)."""
    period = (period or "").lower()
    if period == "pm" and hour < 12:
        return hour + 12
    if period == "am" and hour == 12:
        return 0
    return hour


def _month_index(token: str) -> int:
    """Return the 1-based month whose full name starts with *token*."""
    token = token.lower()
    return next(i for i, name in enumerate(MONTHS, 1) if name.startswith(token))


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def _resolve_today(match: re.Match[str], now: datetime) -> datetime:
    return end_of_day(now)


def _resolve_tomorrow(match: re.Match[str], now: datetime) -> datetime:
    tomorrow = now + timedelta(days=1)
    if match.group(1) is None:
        return end_of_day(tomorrow)
    hour = to_24_hour(int(match.group(1)), match.group(3))
    minute = int(match.group(2)) if match.group(2) else 0
    return tomorrow.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _resolve_weekday(match: re.Match[str], now: datetime) -> datetime:
    target = WEEKDAYS.index(match.group(1).lower())
    # Same weekday as today means a week from today, never today itself
    days_ahead = (target - now.weekday()) % 7 or 7
    return end_of_day(now + timedelta(days=days_ahead))


def _resolve_day_month(match: re.Match[str], now: datetime) -> datetime:
    year = int(match.group(3)) if match.group(3) else now.year
    return build_date(year, _month_index(match.group(2)), int(match.group(1)))


def _resolve_month_day(match: re.Match[str], now: datetime) -> datetime:
    year = int(match.group(3)) if match.group(3) else now.year
    return build_date(year, _month_index(match.group(1)), int(match.group(2)))


def _resolve_numeric(match: re.Match[str], now: datetime) -> datetime:
    first, second, third = match.group(1), match.group(2), match.group(3)

    if len(first) == 4:
        # ISO: YYYY-MM-DD
        return build_date(int(first), int(second), int(third))

    if len(third) == 4:
        if "/" in match.group(0):
            # DD/MM/YYYY
            return build_date(int(third), int(second), int(first))
        # Dash with a trailing 4-digit group is read as YYYY-MM-DD
        return build_date(int(first), int(second), int(third))

    day, month = int(first), int(second)
    if day <= 12 and month > 12:
        # MM/DD/YY
        day, month = month, day
    return build_date(2000 + int(third), month, day)


def _resolve_clock_time(match: re.Match[str], now: datetime) -> datetime:
    hour = to_24_hour(int(match.group(1)), match.group(3))
    minute = int(match.group(2)) if match.group(2) else 0
    return now.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _rule(name: str, pattern: str, resolver: Resolver) -> DateRule:
    return DateRule(name=name, pattern=re.compile(pattern, re.IGNORECASE), resolver=resolver)


DEFAULT_RULES: tuple[DateRule, ...] = (
    _rule("today", rf"\b{_LEAD_IN}\s+(?:today|tonight)\b", _resolve_today),
    _rule(
        "tomorrow",
        rf"\b{_LEAD_IN}\s+tomorrow\b(?:\s+at\s+(\d{{1,2}})(?::(\d{{2}}))?\s*(am|pm)?\b)?",
        _resolve_tomorrow,
    ),
    _rule("weekday", rf"\b{_LEAD_IN}\s+(?:next\s+)?({_WEEKDAY})\b", _resolve_weekday),
    _rule(
        "day_month",
        rf"\b(\d{{1,2}}){_ORDINAL}(?:\s+of)?\s+({_MONTH})(?:{_YEAR_SEP}(\d{{4}})\b)?",
        _resolve_day_month,
    ),
    _rule(
        "month_day",
        rf"\b({_MONTH})\s+(\d{{1,2}}){_ORDINAL}\b(?:{_YEAR_SEP}(\d{{4}})\b)?",
        _resolve_month_day,
    ),
    _rule("numeric", r"\b(\d{4}|\d{1,2})[/-](\d{1,2})[/-](\d{2,4})\b", _resolve_numeric),
    _rule("clock_time", r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", _resolve_clock_time),
)


class DateTimeExtractor:
    """Finds the first recognisable date/time expression in a piece of text.

    Args:
        clock: Zero-argument callable returning the current local time.
        default_days: Days ahead of *now* used when no expression is found.
        rules: Ordered rules to try; defaults to :data:`DEFAULT_RULES`.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        default_days: int = 7,
        rules: Sequence[DateRule] | None = None,
    ) -> None:
        self._clock = clock or datetime.now
        self._default_days = default_days
        self._rules = tuple(rules) if rules is not None else DEFAULT_RULES

    def default_due_date(self, now: datetime | None = None) -> datetime:
        return (now or self._clock()) + timedelta(days=self._default_days)

    def extract(self, text: str | None) -> DateMatch:
        """Extract the first date/time expression from *text*.

        Never raises: a resolver that produces an invalid date is skipped and
        the next rule is tried.
        """
        remaining = (text or "").strip()
        now = self._clock()

        for rule in self._rules:
            match = rule.pattern.search(remaining)
            if match is None:
                continue
            try:
                date = rule.resolver(match, now)
            except (ValueError, OverflowError) as exc:
                logger.debug("Discarded %s candidate %r: %s", rule.name, match.group(0), exc)
                continue

            remaining = (remaining[: match.start()] + remaining[match.end() :]).strip()
            return DateMatch(date=date, remaining_text=remaining, rule=rule.name)

        return DateMatch(date=self.default_due_date(now), remaining_text=remaining)


def format_date(dt: datetime) -> str:
    """Render *dt* for display, e.g. ``"January 5, 2025, 11:59 PM"``."""
    return f"{dt:%B} {dt.day}, {dt.year}, {dt:%I:%M %p}"
