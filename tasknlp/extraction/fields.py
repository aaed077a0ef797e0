"""Single-task field extraction: priority, assignee, due date, description, title.

Each stage takes ``(fields, remaining)`` and returns an updated pair with the
span it matched removed from ``remaining``. Stage order is significant: later
stages only ever see text earlier stages left behind.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from tasknlp.config import settings
from tasknlp.extraction.dates import DATE_LITERAL, DateTimeExtractor
from tasknlp.extraction.models import DEFAULT_TITLE, ParsedTaskFields, Priority

_PRIORITY_RE = re.compile(r"\b(priority\s*:?\s*)?(P[1-4])\b", re.IGNORECASE)
_ASSIGNEE_RE = re.compile(
    r"\b(?:assign(?:ed)?\s+to|assignee|to|for)\b\s*:?\s*([A-Za-z]+)(?:\s|$)",
    re.IGNORECASE,
)
_DUE_DATE_RE = re.compile(
    rf"\b(?:by|due|on|before|until)\s+(?:on\s+)?(?:the\s+)?({DATE_LITERAL})",
    re.IGNORECASE,
)
_DESCRIPTION_RE = re.compile(r"[:\-]\s*(.+)")
_WHITESPACE_RE = re.compile(r"\s+")

Stage = Callable[[ParsedTaskFields, str], tuple[ParsedTaskFields, str]]


def _cut(text: str, match: re.Match[str]) -> str:
    """Remove the matched span from *text*."""
    return (text[: match.start()] + text[match.end() :]).strip()


@dataclass(frozen=True)
class FieldExtractor:
    """Parses one line of free text into :class:`ParsedTaskFields`.

    Args:
        date_extractor: Resolves the due-date literal; also supplies the clock.
        title_max_length: Titles longer than this are split into title and
            description when no description was given.
    """

    date_extractor: DateTimeExtractor = field(default_factory=DateTimeExtractor)
    title_max_length: int = 50

    @property
    def stages(self) -> tuple[Stage, ...]:
        return (
            extract_priority,
            extract_assignee,
            self.extract_due_date,
            extract_description,
            self.extract_title,
        )

    def parse(self, text: str | None) -> ParsedTaskFields:
        fields = ParsedTaskFields(due_date=self.date_extractor.default_due_date())
        remaining = (text or "").strip()
        for stage in self.stages:
            fields, remaining = stage(fields, remaining)
        return fields

    def extract_due_date(self, fields: ParsedTaskFields, remaining: str) -> tuple[ParsedTaskFields, str]:
        match = _DUE_DATE_RE.search(remaining)
        if match is None:
            return fields, remaining

        result = self.date_extractor.extract(f"by {match.group(1)}")
        if result.rule is None:
            return fields, remaining
        return replace(fields, due_date=result.date), _cut(remaining, match)

    def extract_title(self, fields: ParsedTaskFields, remaining: str) -> tuple[ParsedTaskFields, str]:
        title = _WHITESPACE_RE.sub(" ", remaining).strip()
        if not title:
            return replace(fields, title=DEFAULT_TITLE), ""

        description = fields.description
        if len(title) > self.title_max_length and not description:
            # No space before the limit: the whole text moves to the description
            split_at = title.rfind(" ", 0, self.title_max_length + 1)
            title, description = title[: max(split_at, 0)], title[split_at + 1 :]
        return replace(fields, title=title or DEFAULT_TITLE, description=description), ""


def extract_priority(fields: ParsedTaskFields, remaining: str) -> tuple[ParsedTaskFields, str]:
    match = _PRIORITY_RE.search(remaining)
    if match is None:
        return fields, remaining
    return replace(fields, priority=Priority(match.group(2).upper())), _cut(remaining, match)


def extract_assignee(fields: ParsedTaskFields, remaining: str) -> tuple[ParsedTaskFields, str]:
    match = _ASSIGNEE_RE.search(remaining)
    if match is None:
        return fields, remaining
    return replace(fields, assignee=match.group(1)), _cut(remaining, match)


def extract_description(fields: ParsedTaskFields, remaining: str) -> tuple[ParsedTaskFields, str]:
    match = _DESCRIPTION_RE.search(remaining)
    if match is None:
        return fields, remaining
    return replace(fields, description=match.group(1).strip()), _cut(remaining, match)


def default_field_extractor() -> FieldExtractor:
    """Build a FieldExtractor from application settings."""
    return FieldExtractor(
        date_extractor=DateTimeExtractor(default_days=settings.default_due_days),
        title_max_length=settings.title_max_length,
    )


def parse_task_from_text(text: str | None) -> ParsedTaskFields:
    """Parse a single free-text task description.

    Never raises; unrecognised parts fall back to defaults (``P3``,
    ``"Unassigned"``, due in a week, ``"Untitled Task"``).
    """
    return default_field_extractor().parse(text)
