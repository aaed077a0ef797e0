"""Task extraction endpoints: preview parsed tasks without storing them."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from tasknlp.api.models import (
    ParseTaskRequest,
    TaskResponse,
    TranscriptRequest,
    TranscriptTasksResponse,
)
from tasknlp.extraction.fields import parse_task_from_text
from tasknlp.extraction.transcript import extract_tasks_from_transcript

router = APIRouter()


@router.post("/api/tasks/parse", response_model=TaskResponse)
async def parse_task(request: ParseTaskRequest) -> TaskResponse:
    """Parse one natural-language task description into structured fields."""
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")

    fields = parse_task_from_text(request.text)
    return TaskResponse.from_fields(fields, type=request.type)


@router.post("/api/tasks/transcript", response_model=TranscriptTasksResponse)
async def parse_transcript(request: TranscriptRequest) -> TranscriptTasksResponse:
    """Extract every task from a meeting transcript.

    Uses the AI source when configured and falls back to rule-based
    extraction when it fails or finds nothing.
    """
    if not request.transcript.strip():
        raise HTTPException(status_code=400, detail="Transcript is required")

    tasks = extract_tasks_from_transcript(request.transcript)
    return TranscriptTasksResponse(
        tasks_extracted=len(tasks),
        tasks=[TaskResponse.from_task(t) for t in tasks],
    )
