"""Multi-task extraction from meeting transcripts.

The transcript is split into sentence-like units. Each unit is attributed to a
person from a known-name roster, the attribution phrase is stripped, and the
remaining clause goes through :class:`FieldExtractor`. An optional AI source is
consulted first; the rule-based path only runs when it yields nothing.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from functools import lru_cache

from tasknlp.config import settings
from tasknlp.extraction.ai_source import NullTaskSource, TaskSource, default_task_source
from tasknlp.extraction.dates import end_of_day
from tasknlp.extraction.fields import FieldExtractor, default_field_extractor
from tasknlp.extraction.models import (
    DEFAULT_ASSIGNEE,
    DEFAULT_TITLE,
    CandidateTask,
    ExtractedTask,
    ParsedTaskFields,
    Priority,
    TaskStatus,
)

logger = logging.getLogger(__name__)

MIN_UNIT_LENGTH = 6
MIN_TITLE_LENGTH = 4
MAX_CLAUSE_TITLE_LENGTH = 100

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]\s+")
_LEADING_FILLER_RE = re.compile(r"^(?:you|please|can you|to)\s+")
_TRAILING_PUNCTUATION_RE = re.compile(r"[.,:;!?]\s*$")
_DATE_ONLY_RE = re.compile(r"\d{4}-?\d{2}-?\d{2}")

_CONNECTORS = r"(?:you|please|can you|will|should|needs to|has to|must|is going to|would)"
_OBLIGATIONS = r"(?:will|should|needs to|has to|must|is going to)"


@dataclass(frozen=True)
class NamePatterns:
    """Compiled attribution patterns for one roster name."""

    prefix: re.Pattern[str]
    prefix_connector: re.Pattern[str]
    prefix_space: re.Pattern[str]
    embedded: tuple[re.Pattern[str], ...]


@dataclass(frozen=True)
class Attribution:
    """Who a unit is attributed to, and the clause left to parse."""

    assignee: str | None
    clause: str


@lru_cache(maxsize=256)
def name_patterns(name: str) -> NamePatterns:
    n = re.escape(name)
    return NamePatterns(
        prefix=re.compile(rf"^[^a-zA-Z]*{n}\b", re.IGNORECASE),
        prefix_connector=re.compile(rf"^[^a-zA-Z]*{n}\s+{_CONNECTORS}\s+", re.IGNORECASE),
        prefix_space=re.compile(rf"^[^a-zA-Z]*{n}\s+", re.IGNORECASE),
        embedded=(
            re.compile(rf"\b{n}\s+{_OBLIGATIONS}\b", re.IGNORECASE),
            re.compile(rf"\bask\s+{n}\s+to\b", re.IGNORECASE),
            re.compile(rf"\bassign\s+to\s+{n}\b", re.IGNORECASE),
            re.compile(rf"\b{n}'s\s+responsibility\b", re.IGNORECASE),
        ),
    )


def split_units(transcript: str) -> list[str]:
    """Split a transcript into sentence-like units, dropping very short ones."""
    units = (u.strip() for u in _SENTENCE_SPLIT_RE.split(transcript or ""))
    return [u for u in units if len(u) >= MIN_UNIT_LENGTH]


def attribute_assignee(unit: str, roster: Sequence[str]) -> Attribution:
    """Find the roster name a unit is addressed to.

    A unit that *starts* with a name (``"Aman you take care of..."``) wins
    first and has the name and connecting words stripped. Otherwise the unit
    is searched for embedded forms (``"ask John to"``, ``"Sarah will"``,
    ``"assign to Mike"``, ``"Jane's responsibility"``) and left unstripped.
    Roster order decides between names.
    """
    for name in roster:
        patterns = name_patterns(name)
        if not patterns.prefix.match(unit):
            continue
        lead = patterns.prefix_connector.match(unit) or patterns.prefix_space.match(unit)
        clause = unit[lead.end() :].strip() if lead else unit
        return Attribution(assignee=name, clause=clause)

    for name in roster:
        if any(p.search(unit) for p in name_patterns(name).embedded):
            return Attribution(assignee=name, clause=unit)

    return Attribution(assignee=None, clause=unit)


def clean_title(title: str) -> str:
    """Drop one leading lowercase filler phrase and one trailing punctuation mark, then capitalise."""
    title = _LEADING_FILLER_RE.sub("", title.strip(), count=1)
    title = _TRAILING_PUNCTUATION_RE.sub("", title).strip()
    return title[:1].upper() + title[1:]


class TranscriptSegmenter:
    """Extracts a list of tasks from a meeting transcript.

    Args:
        field_extractor: Parses each attributed clause.
        roster: Known names, in matching priority order; defaults to
            ``settings.known_names``.
        source: Optional upstream source of already-structured tasks.
    """

    def __init__(
        self,
        field_extractor: FieldExtractor | None = None,
        roster: Sequence[str] | None = None,
        source: TaskSource | None = None,
    ) -> None:
        self.field_extractor = field_extractor or FieldExtractor()
        self.roster = tuple(roster if roster is not None else settings.known_names)
        self.source = source or NullTaskSource()

    def extract_tasks(self, transcript: str) -> list[ExtractedTask]:
        """Extract tasks, preferring the AI source and falling back to rules.

        Never raises.
        """
        try:
            candidates = self.source.extract_tasks(transcript)
            tasks = [self.task_from_candidate(c) for c in candidates]
        except Exception:
            logger.warning("AI task extraction failed, using rule-based fallback", exc_info=True)
            tasks = []

        if tasks:
            logger.info("AI source extracted %d tasks", len(tasks))
            return tasks

        return self.extract_tasks_with_rules(transcript)

    def extract_tasks_with_rules(self, transcript: str) -> list[ExtractedTask]:
        tasks: list[ExtractedTask] = []
        for unit in split_units(transcript):
            try:
                task = self.task_from_unit(unit)
            except Exception:
                logger.exception("Skipping transcript unit %r", unit)
                continue
            if task is not None:
                tasks.append(task)
        return tasks

    def task_from_unit(self, unit: str) -> ExtractedTask | None:
        """Turn one sentence into a task, or ``None`` if its title is too short."""
        attribution = attribute_assignee(unit, self.roster)
        parsed = self.field_extractor.parse(attribution.clause)

        title = clean_title(parsed.title or attribution.clause[:MAX_CLAUSE_TITLE_LENGTH])
        if len(title) < MIN_TITLE_LENGTH:
            return None

        assignee = attribution.assignee or parsed.assignee or DEFAULT_ASSIGNEE
        return ExtractedTask(
            fields=replace(parsed, title=title, assignee=assignee),
            status=TaskStatus.PENDING,
        )

    def task_from_candidate(self, candidate: CandidateTask) -> ExtractedTask:
        priority = (candidate.priority or "").strip().upper()
        fields = ParsedTaskFields(
            title=candidate.title.strip() or DEFAULT_TITLE,
            description=(candidate.description or "").strip(),
            assignee=(candidate.assignee or "").strip() or DEFAULT_ASSIGNEE,
            due_date=self._resolve_due_date(candidate.due_date),
            priority=Priority(priority) if priority in Priority.__members__ else Priority.P3,
        )
        return ExtractedTask(fields=fields, status=TaskStatus.TODO, is_ai=True)

    def _resolve_due_date(self, literal: str | None) -> datetime:
        dates = self.field_extractor.date_extractor
        literal = (literal or "").strip()
        if not literal:
            return dates.default_due_date()

        try:
            parsed = datetime.fromisoformat(literal)
        except ValueError:
            # Free-form phrase such as "next Friday"
            return dates.extract(f"by {literal}").date

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        if _DATE_ONLY_RE.fullmatch(literal):
            return end_of_day(parsed)
        return parsed


def default_segmenter() -> TranscriptSegmenter:
    """Build a TranscriptSegmenter from application settings."""
    return TranscriptSegmenter(
        field_extractor=default_field_extractor(),
        roster=settings.known_names,
        source=default_task_source(),
    )


def extract_tasks_from_transcript(transcript: str) -> list[ExtractedTask]:
    """Extract every task found in a meeting transcript.

    Never raises; returns an empty list when nothing qualifies.
    """
    return default_segmenter().extract_tasks(transcript)
