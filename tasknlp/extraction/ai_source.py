"""Claude-powered task extraction, used ahead of the rule-based transcript parser."""

from __future__ import annotations

import json
from typing import Any, Protocol

from anthropic import Anthropic

from tasknlp.config import settings
from tasknlp.extraction.models import CandidateTask


class TaskSource(Protocol):
    """Anything that can turn a transcript into structured task candidates."""

    def extract_tasks(self, transcript: str) -> list[CandidateTask]: ...


class NullTaskSource:
    """A source that never finds anything, so the rule-based path always runs."""

    def extract_tasks(self, transcript: str) -> list[CandidateTask]:
        return []


# Tool definition for Claude structured output
EXTRACTION_TOOL: dict[str, Any] = {
    "name": "store_extracted_tasks",
    "description": (
        "Store the tasks extracted from a meeting transcript. "
        "Call this once with all extracted tasks."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "tasks": {
                "type": "array",
                "description": "Tasks someone needs to do.",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {
                            "type": "string",
                            "description": "Short imperative description of the task.",
                        },
                        "description": {
                            "type": "string",
                            "description": "Extra detail, if any.",
                        },
                        "assignee": {
                            "type": "string",
                            "description": "Person responsible (omit if unassigned).",
                        },
                        "due_date": {
                            "type": "string",
                            "description": "Deadline as YYYY-MM-DD, or the phrase used (e.g. 'next Friday').",
                        },
                        "priority": {
                            "type": "string",
                            "enum": ["P1", "P2", "P3", "P4"],
                            "description": "P1 critical, P2 high, P3 medium, P4 low.",
                        },
                    },
                    "required": ["title"],
                },
            },
        },
        "required": ["tasks"],
    },
}

SYSTEM_PROMPT = (
    "You are a meeting assistant. Extract action items and tasks from the "
    "meeting transcript provided.\n\n"
    "For each task identify:\n"
    "1. **Title**: what needs to be done.\n"
    "2. **Assignee**: who is responsible.\n"
    "3. **Due date**: if mentioned.\n"
    "4. **Priority**: P1 (critical), P2 (high), P3 (medium) or P4 (low).\n\n"
    "Use the store_extracted_tasks tool to return your results. "
    "Only extract tasks clearly supported by the transcript."
)


class ClaudeTaskSource:
    """Extracts task candidates from a transcript with a single Claude tool call.

    Errors from the Anthropic client are not caught here; the caller decides
    how to fall back.
    """

    def __init__(
        self,
        client: Anthropic | None = None,
        model: str | None = None,
        max_chars: int | None = None,
    ) -> None:
        self._client = client or Anthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.ai_timeout_seconds,
        )
        self._model = model or settings.llm_model
        self._max_chars = max_chars or settings.ai_max_transcript_chars

    def extract_tasks(self, transcript: str) -> list[CandidateTask]:
        response = self._client.messages.create(
            model=self._model,
            max_tokens=4096,
            system=SYSTEM_PROMPT,
            tools=[EXTRACTION_TOOL],
            tool_choice={"type": "tool", "name": "store_extracted_tasks"},
            messages=[
                {
                    "role": "user",
                    "content": (
                        "Extract the tasks from this meeting transcript:\n\n"
                        f"{transcript[: self._max_chars]}"
                    ),
                }
            ],
        )

        return _parse_tool_response(response)


def _parse_tool_response(response: Any) -> list[CandidateTask]:
    """Parse the Claude tool_use response into a CandidateTask list."""
    tasks: list[CandidateTask] = []

    for block in response.content:
        if block.type != "tool_use":
            continue
        if block.name != "store_extracted_tasks":
            continue

        data = block.input
        if isinstance(data, str):
            data = json.loads(data)

        for task in data.get("tasks", []):
            title = (task.get("title") or "").strip()
            if not title:
                continue
            tasks.append(
                CandidateTask(
                    title=title,
                    assignee=task.get("assignee"),
                    due_date=task.get("due_date"),
                    priority=task.get("priority"),
                    description=task.get("description"),
                )
            )

    return tasks


def default_task_source() -> TaskSource:
    """Pick the task source configured for this process."""
    if settings.ai_extraction_enabled and settings.anthropic_api_key:
        return ClaudeTaskSource()
    return NullTaskSource()
