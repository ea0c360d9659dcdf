"""Tests for tool input and meeting models."""

import pytest
from pydantic import ValidationError

from fathom_mcp.models import (
    GetMeetingDetailsInput,
    ListMeetingsInput,
    MeetingSummary,
    TranscriptLine,
    with_api_key,
)


@pytest.mark.unit
class TestListMeetingsInput:
    """Tests for list_meetings arguments."""

    def test_defaults(self) -> None:
        params = ListMeetingsInput()
        assert params.limit == 20
        assert params.include_transcript is False
        assert params.created_after is None

    @pytest.mark.parametrize(
        "value", ["2026-02-20", "2026-02-20T00:00:00Z", "2026-02-20T10:30:00+02:00"]
    )
    def test_accepts_iso_dates(self, value: str) -> None:
        assert ListMeetingsInput(created_after=value).created_after == value

    def test_rejects_free_text_date(self) -> None:
        with pytest.raises(ValidationError, match="ISO-8601"):
            ListMeetingsInput(created_before="yesterday")

    def test_unknown_arguments_ignored(self) -> None:
        assert ListMeetingsInput.model_validate({"limit": 3, "api_key": "k"}).limit == 3


@pytest.mark.unit
class TestWithApiKey:
    """Tests for the explicit-credential input variant."""

    def test_requires_api_key(self) -> None:
        model = with_api_key(GetMeetingDetailsInput)

        with pytest.raises(ValidationError):
            model.model_validate({"meeting_id": "m1"})
        assert model.model_validate({"meeting_id": "m1", "api_key": "k"}).meeting_id == "m1"

    def test_schema(self) -> None:
        schema = with_api_key(GetMeetingDetailsInput).model_json_schema()
        assert set(schema["required"]) == {"meeting_id", "api_key"}

    def test_empty_meeting_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            GetMeetingDetailsInput(meeting_id="   ")

    def test_errors_do_not_echo_api_key(self) -> None:
        model = with_api_key(ListMeetingsInput)

        with pytest.raises(ValidationError) as exc_info:
            model.model_validate({"limit": "many", "api_key": ["fathom-secret-value"]})

        assert "fathom-secret-value" not in str(exc_info.value)
        assert {e["loc"][0] for e in exc_info.value.errors()} == {"limit", "api_key"}

    def test_date_error_does_not_echo_value(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ListMeetingsInput(created_after="not-a-date-xyz")

        assert "not-a-date-xyz" not in str(exc_info.value)


@pytest.mark.unit
class TestMeetingModels:
    """Tests for output models."""

    def test_transcript_line_blank_speaker(self) -> None:
        assert TranscriptLine(speaker="", content="hi").render() == "[Unknown]: hi"

    def test_summary_omits_absent_optionals(self) -> None:
        output = MeetingSummary(id="m1").to_output()

        assert output == {
            "id": "m1",
            "title": "Untitled meeting",
            "date": None,
            "duration_seconds": None,
            "participants": [],
        }
