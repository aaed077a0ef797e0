"""Tests for transcript segmentation, assignee attribution and AI fallback."""

from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from tasknlp.extraction.ai_source import NullTaskSource
from tasknlp.extraction.dates import DateTimeExtractor
from tasknlp.extraction.fields import FieldExtractor
from tasknlp.extraction.models import CandidateTask, Priority, TaskStatus, TaskType
from tasknlp.extraction.transcript import (
    TranscriptSegmenter,
    attribute_assignee,
    clean_title,
    extract_tasks_from_transcript,
    split_units,
)

# Wednesday
NOW = datetime(2025, 1, 15, 10, 30, 0)
ROSTER = ("Aman", "John", "Sarah", "Mike")


def _field_extractor() -> FieldExtractor:
    return FieldExtractor(date_extractor=DateTimeExtractor(clock=lambda: NOW))


@pytest.fixture
def segmenter() -> TranscriptSegmenter:
    return TranscriptSegmenter(
        field_extractor=_field_extractor(),
        roster=ROSTER,
        source=NullTaskSource(),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSplitUnits:
    def test_splits_on_sentence_punctuation(self) -> None:
        units = split_units("Hi all. Aman you ship the build! Is that ok? Sure")
        assert units == ["Hi all", "Aman you ship the build", "Is that ok"]

    def test_punctuation_without_whitespace_does_not_split(self) -> None:
        assert split_units("Version 2.5 ships today.") == ["Version 2.5 ships today."]

    def test_empty(self) -> None:
        assert split_units("") == []


class TestAttribution:
    def test_prefix_with_connector(self) -> None:
        result = attribute_assignee("Aman you take care of the deployment", ROSTER)
        assert result.assignee == "Aman"
        assert result.clause == "take care of the deployment"

    def test_prefix_with_multiword_connector(self) -> None:
        result = attribute_assignee("John is going to book the venue", ROSTER)
        assert result.assignee == "John"
        assert result.clause == "book the venue"

    def test_prefix_without_connector(self) -> None:
        result = attribute_assignee("John review the budget numbers", ROSTER)
        assert result.assignee == "John"
        assert result.clause == "review the budget numbers"

    def test_prefix_after_non_letters(self) -> None:
        result = attribute_assignee("- sarah please update the roadmap", ROSTER)
        assert result.assignee == "Sarah"
        assert result.clause == "update the roadmap"

    def test_prefix_must_be_whole_name(self) -> None:
        result = attribute_assignee("Johnny will cover support", ROSTER)
        assert result.assignee is None

    def test_prefix_with_comma_keeps_clause(self) -> None:
        result = attribute_assignee("John, ask Sarah to file the ticket", ROSTER)
        assert result.assignee == "John"
        assert result.clause == "John, ask Sarah to file the ticket"

    @pytest.mark.parametrize(
        ("unit", "expected"),
        [
            ("I think Sarah will draft the press release", "Sarah"),
            ("Let's ask Mike to renew the certificate", "Mike"),
            ("Please assign to John the invoice review", "John"),
            ("Onboarding docs are Aman's responsibility", "Aman"),
            ("Maybe Sarah needs to check the numbers", "Sarah"),
        ],
    )
    def test_embedded_forms(self, unit: str, expected: str) -> None:
        result = attribute_assignee(unit, ROSTER)
        assert result.assignee == expected
        assert result.clause == unit

    def test_embedded_uses_roster_order(self) -> None:
        result = attribute_assignee("Then Sarah will test it and John will deploy it", ROSTER)
        assert result.assignee == "John"

    def test_prefix_beats_embedded(self) -> None:
        result = attribute_assignee("Mike can ask John to help", ROSTER)
        assert result.assignee == "Mike"

    def test_alternate_roster(self) -> None:
        result = attribute_assignee("Priya will own the rollout", ("Priya",))
        assert result.assignee == "Priya"

    def test_no_match(self) -> None:
        result = attribute_assignee("Budget looks fine this quarter", ROSTER)
        assert result.assignee is None
        assert result.clause == "Budget looks fine this quarter"


class TestCleanTitle:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("you review the doc.", "Review the doc"),
            ("can you call the vendor?", "Call the vendor"),
            ("please send it!", "Send it"),
            ("to finalize budget ;", "Finalize budget"),
            ("already Clean", "Already Clean"),
            ("", ""),
        ],
    )
    def test_clean_title(self, raw: str, expected: str) -> None:
        assert clean_title(raw) == expected

    def test_capitalised_filler_is_kept(self) -> None:
        assert clean_title("Please send the report.") == "Please send the report"
        assert clean_title("You own the rollout") == "You own the rollout"

    def test_only_one_trailing_mark_is_removed(self) -> None:
        assert clean_title("Really?!") == "Really?"
        assert clean_title("wait... ") == "Wait.."


# ---------------------------------------------------------------------------
# Rule-based extraction
# ---------------------------------------------------------------------------


class TestRuleBasedExtraction:
    def test_prefix_attribution_example(self, segmenter: TranscriptSegmenter) -> None:
        tasks = segmenter.extract_tasks("Aman you take care of the deployment by Friday.")

        assert len(tasks) == 1
        task = tasks[0]
        assert task.assignee == "Aman"
        assert task.title == "Take care of the deployment"
        assert task.due_date == datetime(2025, 1, 17, 23, 59, 59)
        assert task.priority is Priority.P3
        assert task.status is TaskStatus.PENDING
        assert task.type is TaskType.TRANSCRIPT
        assert task.is_ai is False

    def test_multi_sentence_transcript(self, segmenter: TranscriptSegmenter) -> None:
        transcript = (
            "Good morning everyone. "
            "Mike must fix the login bug P1. "
            "Sarah please prepare the demo by tomorrow. "
            "Ok. "
            "Update the wiki page!"
        )
        tasks = segmenter.extract_tasks(transcript)

        assert [t.title for t in tasks] == [
            "Good morning everyone",
            "Fix the login bug",
            "Prepare the demo",
            "Update the wiki page",
        ]
        assert [t.assignee for t in tasks] == ["Unassigned", "Mike", "Sarah", "Unassigned"]
        assert tasks[1].priority is Priority.P1
        assert tasks[2].due_date == datetime(2025, 1, 16, 23, 59, 59)
        assert tasks[3].due_date == NOW + timedelta(days=7)

    def test_attribution_overrides_parsed_assignee(self, segmenter: TranscriptSegmenter) -> None:
        tasks = segmenter.extract_tasks("Aman you send the report to Priya by Friday.")
        assert tasks[0].assignee == "Aman"
        assert tasks[0].title == "Send the report"

    def test_parsed_assignee_used_without_attribution(
        self, segmenter: TranscriptSegmenter
    ) -> None:
        tasks = segmenter.extract_tasks("please email the minutes to Priya by tomorrow.")
        assert tasks[0].assignee == "Priya"
        assert tasks[0].title == "Email the minutes"

    def test_capitalised_filler_stays_in_title(self, segmenter: TranscriptSegmenter) -> None:
        tasks = segmenter.extract_tasks("Please email the minutes to Priya by tomorrow.")
        assert tasks[0].assignee == "Priya"
        assert tasks[0].title == "Please email the minutes"

    def test_unit_length_boundary(self, segmenter: TranscriptSegmenter) -> None:
        """Five-character units are discarded, six-character ones are kept."""
        assert split_units("Go on. Go now! Ship!") == ["Go now"]
        tasks = segmenter.extract_tasks("Abcde. Abcdef. Ok")
        assert [t.title for t in tasks] == ["Abcdef"]

    def test_title_length_boundary(self, segmenter: TranscriptSegmenter) -> None:
        """Three-character titles are dropped, four-character ones are kept."""
        tasks = segmenter.extract_tasks("John you run. Mike you test.")
        assert [t.title for t in tasks] == ["Test"]
        assert tasks[0].assignee == "Mike"

    def test_short_titles_are_dropped(self, segmenter: TranscriptSegmenter) -> None:
        assert segmenter.extract_tasks("Aman you go. John will do.") == []

    def test_empty_transcript(self, segmenter: TranscriptSegmenter) -> None:
        assert segmenter.extract_tasks("") == []

    def test_failing_unit_is_skipped(self) -> None:
        real = _field_extractor()

        def parse_or_fail(text: str) -> object:
            if "explode" in text:
                raise RuntimeError("boom")
            return real.parse(text)

        flaky = MagicMock()
        flaky.parse.side_effect = parse_or_fail
        flaky.date_extractor = real.date_extractor

        segmenter = TranscriptSegmenter(field_extractor=flaky, roster=ROSTER)
        tasks = segmenter.extract_tasks("Aman you explode the server. John you ship the release.")

        assert len(tasks) == 1
        assert tasks[0].assignee == "John"
        assert tasks[0].title == "Ship the release"

    def test_deterministic(self, segmenter: TranscriptSegmenter) -> None:
        transcript = "Sarah will write the launch post by next Monday. John you review it."
        assert segmenter.extract_tasks(transcript) == segmenter.extract_tasks(transcript)


# ---------------------------------------------------------------------------
# AI source and fallback
# ---------------------------------------------------------------------------


class TestAISource:
    def _segmenter(self, source: MagicMock) -> TranscriptSegmenter:
        return TranscriptSegmenter(field_extractor=_field_extractor(), roster=ROSTER, source=source)

    def test_ai_results_are_used_as_is(self) -> None:
        source = MagicMock()
        source.extract_tasks.return_value = [
            CandidateTask(title="Ship release", assignee="Aman", due_date="2025-02-01", priority="p1")
        ]

        tasks = self._segmenter(source).extract_tasks("John you review the plan.")

        assert len(tasks) == 1
        task = tasks[0]
        assert task.title == "Ship release"
        assert task.assignee == "Aman"
        assert task.due_date == datetime(2025, 2, 1, 23, 59, 59)
        assert task.priority is Priority.P1
        assert task.status is TaskStatus.TODO
        assert task.is_ai is True

    def test_ai_defaults(self) -> None:
        source = MagicMock()
        source.extract_tasks.return_value = [
            CandidateTask(title="Tidy backlog", assignee="", due_date=None, priority="urgent")
        ]

        task = self._segmenter(source).extract_tasks("anything at all")[0]

        assert task.assignee == "Unassigned"
        assert task.priority is Priority.P3
        assert task.due_date == NOW + timedelta(days=7)
        assert task.description == ""

    def test_ai_free_form_due_date(self) -> None:
        source = MagicMock()
        source.extract_tasks.return_value = [CandidateTask(title="Plan", due_date="next Friday")]

        task = self._segmenter(source).extract_tasks("anything at all")[0]

        assert task.due_date == datetime(2025, 1, 17, 23, 59, 59)

    def test_ai_iso_datetime_due_date(self) -> None:
        source = MagicMock()
        source.extract_tasks.return_value = [
            CandidateTask(title="Plan", due_date="2025-02-01T14:30:00")
        ]

        task = self._segmenter(source).extract_tasks("anything at all")[0]

        assert task.due_date == datetime(2025, 2, 1, 14, 30, 0)

    def test_ai_failure_falls_back_to_rules(self) -> None:
        source = MagicMock()
        source.extract_tasks.side_effect = RuntimeError("API down")

        tasks = self._segmenter(source).extract_tasks("John you review the plan.")

        assert len(tasks) == 1
        assert tasks[0].assignee == "John"
        assert tasks[0].is_ai is False
        assert tasks[0].status is TaskStatus.PENDING

    def test_empty_ai_result_falls_back_to_rules(self) -> None:
        source = MagicMock()
        source.extract_tasks.return_value = []

        tasks = self._segmenter(source).extract_tasks("John you review the plan.")

        source.extract_tasks.assert_called_once_with("John you review the plan.")
        assert [t.title for t in tasks] == ["Review the plan"]


class TestExtractTasksFromTranscript:
    @patch("tasknlp.extraction.transcript.default_task_source")
    def test_uses_configured_source(self, mock_source_factory: MagicMock) -> None:
        mock_source_factory.return_value = NullTaskSource()

        tasks = extract_tasks_from_transcript("Sarah you update the status page.")

        mock_source_factory.assert_called_once()
        assert len(tasks) == 1
        assert tasks[0].assignee == "Sarah"
        assert tasks[0].title == "Update the status page"
