"""Data models for task extraction results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

DEFAULT_TITLE = "Untitled Task"
DEFAULT_ASSIGNEE = "Unassigned"


class Priority(StrEnum):
    """Task priority, P1 (critical) through P4 (low)."""

    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


class TaskStatus(StrEnum):
    """Initial status attached to an extracted task.

    ``PENDING`` is not part of the canonical ``todo/in_progress/done`` set; it
    is what the rule-based transcript path emits.
    """

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    PENDING = "pending"


class TaskType(StrEnum):
    """Where a task came from."""

    MANUAL = "manual"
    TRANSCRIPT = "transcript"


@dataclass(frozen=True)
class ParsedTaskFields:
    """Structured fields derived from a piece of free text."""

    due_date: datetime
    title: str = DEFAULT_TITLE
    description: str = ""
    assignee: str = DEFAULT_ASSIGNEE
    priority: Priority = Priority.P3


@dataclass(frozen=True)
class ExtractedTask:
    """A task extracted from a transcript, ready for the persistence layer."""

    fields: ParsedTaskFields
    status: TaskStatus
    type: TaskType = TaskType.TRANSCRIPT
    is_ai: bool = False

    @property
    def title(self) -> str:
        return self.fields.title

    @property
    def description(self) -> str:
        return self.fields.description

    @property
    def assignee(self) -> str:
        return self.fields.assignee

    @property
    def due_date(self) -> datetime:
        return self.fields.due_date

    @property
    def priority(self) -> Priority:
        return self.fields.priority


@dataclass
class CandidateTask:
    """An already-structured task returned by an AI extraction source."""

    title: str
    assignee: str | None = None
    due_date: str | None = None  # free-form literal, e.g. "2025-01-05" or "next Friday"
    priority: str | None = None
    description: str | None = None
