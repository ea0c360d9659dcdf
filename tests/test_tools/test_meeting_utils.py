"""Tests for meeting list extraction and summary projection."""

import pytest

from fathom_mcp.models.meeting import UNTITLED_MEETING
from fathom_mcp.tools.meeting_utils import (
    extract_meetings,
    project_meeting,
    summarize_meetings,
)


@pytest.mark.unit
class TestExtractMeetings:
    """Tests for list envelope handling."""

    @pytest.mark.parametrize("key", ["items", "meetings", "data"])
    def test_wrapped_list(self, key: str, sample_meetings) -> None:
        assert extract_meetings({key: sample_meetings}) == sample_meetings

    def test_bare_list(self, sample_meetings) -> None:
        assert extract_meetings(sample_meetings) == sample_meetings

    def test_envelope_priority(self) -> None:
        payload = {"data": [{"id": "d"}], "items": [{"id": "i"}]}
        assert extract_meetings(payload) == [{"id": "i"}]

    def test_non_list_value_skipped(self) -> None:
        payload = {"items": None, "meetings": "nope", "data": [{"id": "d"}]}
        assert extract_meetings(payload) == [{"id": "d"}]

    @pytest.mark.parametrize("payload", [{}, {"limit": 10}, "text", None, 42])
    def test_unknown_shapes(self, payload) -> None:
        assert extract_meetings(payload) == []


@pytest.mark.unit
class TestProjectMeeting:
    """Tests for the summary projection."""

    def test_primary_keys(self, sample_meetings) -> None:
        summary = project_meeting(sample_meetings[0])

        assert summary.to_output() == {
            "id": "m1",
            "title": "Weekly sync",
            "date": "2026-02-20T10:00:00Z",
            "duration_seconds": 1800,
            "participants": ["Alice", "Bob"],
            "recording_id": "r1",
        }

    def test_fallback_keys(self, sample_meetings) -> None:
        summary = project_meeting(sample_meetings[1])

        assert summary.title == "Customer call"
        assert summary.date == "2026-02-21T15:00:00Z"
        assert summary.duration_seconds == 900
        assert summary.participants == ["Carol", "dave@example.com"]
        assert summary.recording_id == "r2"

    def test_sparse_record(self, sample_meetings) -> None:
        output = project_meeting(sample_meetings[2]).to_output()

        assert output == {
            "id": "m3",
            "title": UNTITLED_MEETING,
            "date": "2026-02-22T09:30:00Z",
            "duration_seconds": None,
            "participants": [],
        }

    def test_empty_title_uses_placeholder(self) -> None:
        assert project_meeting({"id": 1, "title": "", "name": ""}).title == UNTITLED_MEETING

    def test_zero_duration_is_kept(self) -> None:
        assert project_meeting({"id": 1, "duration": 0, "duration_seconds": 60}).duration_seconds == 0

    def test_transcript_only_when_requested(self) -> None:
        record = {"id": "m1", "transcript": [{"text": "hi"}]}

        assert "transcript" not in project_meeting(record).to_output()
        assert project_meeting(record, include_transcript=True).to_output()["transcript"] == [
            {"text": "hi"}
        ]

    def test_requested_transcript_missing_is_omitted(self) -> None:
        output = project_meeting({"id": "m1"}, include_transcript=True).to_output()
        assert "transcript" not in output


@pytest.mark.unit
class TestSummarizeMeetings:
    """Tests for list summarization and truncation."""

    def test_shape_invariance(self, sample_meetings) -> None:
        bare = summarize_meetings(sample_meetings).to_output()

        for key in ("items", "meetings", "data"):
            assert summarize_meetings({key: sample_meetings}).to_output() == bare

    def test_limit_truncates_from_front(self, sample_meetings) -> None:
        result = summarize_meetings({"items": sample_meetings}, limit=2)

        assert result.count == 2
        assert [m.id for m in result.meetings] == ["m1", "m2"]

    def test_limit_larger_than_list(self, sample_meetings) -> None:
        assert summarize_meetings(sample_meetings, limit=50).count == 3

    def test_default_limit(self) -> None:
        records = [{"id": i} for i in range(30)]
        assert summarize_meetings(records).count == 20

    def test_non_mapping_records_skipped(self) -> None:
        result = summarize_meetings([{"id": "m1"}, "junk", None, {"id": "m2"}])
        assert [m.id for m in result.meetings] == ["m1", "m2"]

    def test_unknown_payload_is_empty(self) -> None:
        assert summarize_meetings({"error": "weird"}).to_output() == {"count": 0, "meetings": []}
