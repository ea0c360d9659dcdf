"""Normalized meeting and transcript models."""

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from fathom_mcp.models.base import FathomBaseModel

UNTITLED_MEETING = "Untitled meeting"
UNKNOWN_SPEAKER = "Unknown"


class TranscriptLine(FathomBaseModel):
    """A single speaker-attributed transcript line."""

    # Content is rendered verbatim
    model_config = ConfigDict(str_strip_whitespace=False)

    speaker: str = Field(UNKNOWN_SPEAKER, description="Speaker name")
    content: str = Field("", description="Spoken text")

    @field_validator("speaker")
    @classmethod
    def normalize_speaker(cls, v: str) -> str:
        """Default blank speakers to 'Unknown'."""
        return v or UNKNOWN_SPEAKER

    def render(self) -> str:
        return f"[{self.speaker}]: {self.content}"


class MeetingSummary(FathomBaseModel):
    """Fixed-shape projection of an upstream meeting record.

    Keys serialize in snake_case. ``recording_id`` and ``transcript`` are
    left out of the output when absent.
    """

    id: Any = Field(None, description="Upstream meeting ID, verbatim")
    title: str = Field(UNTITLED_MEETING, description="Meeting title")
    date: Any = Field(None, description="Creation or recording timestamp")
    duration_seconds: Any = Field(None, description="Duration in seconds")
    participants: list[str] = Field(
        default_factory=list, description="Participant names"
    )
    recording_id: Any = Field(None, description="Recording ID, if known")
    transcript: Any = Field(None, description="Inline transcript passthrough")

    def to_output(self) -> dict[str, Any]:
        """Serialize for the list_meetings tool payload."""
        optional = {
            name
            for name in ("recording_id", "transcript")
            if getattr(self, name) is None
        }
        return self.model_dump(exclude=optional)


class MeetingList(FathomBaseModel):
    """Payload of the list_meetings tool."""

    count: int = Field(0, ge=0)
    meetings: list[MeetingSummary] = Field(default_factory=list)

    def to_output(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "meetings": [meeting.to_output() for meeting in self.meetings],
        }
