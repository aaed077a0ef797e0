"""Pydantic request/response schemas for the task extraction API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from tasknlp.extraction.dates import format_date
from tasknlp.extraction.models import ExtractedTask, ParsedTaskFields, Priority, TaskStatus, TaskType


class ParseTaskRequest(BaseModel):
    """Request body for the /api/tasks/parse endpoint."""

    text: str
    type: TaskType = TaskType.MANUAL


class TranscriptRequest(BaseModel):
    """Request body for the /api/tasks/transcript endpoint."""

    transcript: str


class TaskResponse(BaseModel):
    """A single parsed task, with its due date in ISO and display form."""

    title: str
    description: str = ""
    assignee: str
    due_date: datetime
    due_date_display: str
    priority: Priority
    status: TaskStatus
    type: TaskType
    is_ai: bool = False

    @classmethod
    def from_fields(
        cls,
        fields: ParsedTaskFields,
        status: TaskStatus = TaskStatus.TODO,
        type: TaskType = TaskType.MANUAL,
        is_ai: bool = False,
    ) -> TaskResponse:
        return cls(
            title=fields.title,
            description=fields.description,
            assignee=fields.assignee,
            due_date=fields.due_date,
            due_date_display=format_date(fields.due_date),
            priority=fields.priority,
            status=status,
            type=type,
            is_ai=is_ai,
        )

    @classmethod
    def from_task(cls, task: ExtractedTask) -> TaskResponse:
        return cls.from_fields(task.fields, status=task.status, type=task.type, is_ai=task.is_ai)


class TranscriptTasksResponse(BaseModel):
    """Response body for the /api/tasks/transcript endpoint."""

    tasks_extracted: int
    tasks: list[TaskResponse] = []
