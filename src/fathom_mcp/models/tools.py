"""Pydantic models for MCP tool input validation."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field, create_model, field_validator

from fathom_mcp.models.base import FathomBaseModel


def _validate_iso_datetime(v: Optional[str]) -> Optional[str]:
    """Accept ISO-8601 dates and datetimes, including a trailing 'Z'."""
    if v is None:
        return v
    try:
        datetime.fromisoformat(v.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(
            "Invalid ISO-8601 datetime. Example: 2026-02-20T00:00:00Z"
        ) from None
    return v


class ToolInput(FathomBaseModel):
    """Base for tool inputs; unknown arguments are dropped, not rejected."""

    model_config = ConfigDict(extra="ignore")


class ListMeetingsInput(ToolInput):
    """Input for listing meetings."""

    created_after: Optional[str] = Field(
        default=None,
        description="Only meetings created after this ISO-8601 datetime",
    )
    created_before: Optional[str] = Field(
        default=None,
        description="Only meetings created before this ISO-8601 datetime",
    )
    include_transcript: bool = Field(
        default=False,
        description=(
            "Include full transcript in response "
            "(default: false, use get_transcript for individual meetings)"
        ),
    )
    limit: int = Field(
        default=20,
        ge=1,
        description="Max meetings to return (default: 20)",
    )

    @field_validator("created_after", "created_before")
    @classmethod
    def validate_datetime(cls, v: Optional[str]) -> Optional[str]:
        return _validate_iso_datetime(v)


class GetTranscriptInput(ToolInput):
    """Input for fetching a meeting transcript."""

    meeting_id: str = Field(
        ..., min_length=1, description="The meeting ID (from list_meetings)"
    )
    recording_id: Optional[str] = Field(
        default=None,
        description="Optional recording ID if the meeting has multiple recordings",
    )


class GetMeetingDetailsInput(ToolInput):
    """Input for fetching full meeting details."""

    meeting_id: str = Field(
        ..., min_length=1, description="The meeting ID (from list_meetings)"
    )


def with_api_key(model: type[ToolInput]) -> type[ToolInput]:
    """Derive an input model that also requires an ``api_key`` argument.

    Used in deployments where the caller passes the Fathom API key with
    every tool call. Emptiness is checked by the credential resolver, so an
    empty string passes schema validation.
    """
    return create_model(
        f"{model.__name__}WithApiKey",
        __base__=model,
        api_key=(str, Field(..., description="Your Fathom API key")),
    )
