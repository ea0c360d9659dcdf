"""Pydantic models for fathom-mcp."""

from fathom_mcp.models.auth import (
    AuthorizationRequest,
    Credential,
    CredentialAuthorizationCode,
    CredentialRefreshToken,
    CredentialSource,
    MissingCredential,
    Session,
    SessionProps,
    ToolCallContext,
)
from fathom_mcp.models.base import FathomBaseModel
from fathom_mcp.models.meeting import (
    UNKNOWN_SPEAKER,
    UNTITLED_MEETING,
    MeetingList,
    MeetingSummary,
    TranscriptLine,
)
from fathom_mcp.models.tools import (
    GetMeetingDetailsInput,
    GetTranscriptInput,
    ListMeetingsInput,
    ToolInput,
    with_api_key,
)

__all__ = [
    "UNKNOWN_SPEAKER",
    "UNTITLED_MEETING",
    "AuthorizationRequest",
    "Credential",
    "CredentialAuthorizationCode",
    "CredentialRefreshToken",
    "CredentialSource",
    "FathomBaseModel",
    "GetMeetingDetailsInput",
    "GetTranscriptInput",
    "ListMeetingsInput",
    "MeetingList",
    "MeetingSummary",
    "MissingCredential",
    "Session",
    "SessionProps",
    "ToolCallContext",
    "ToolInput",
    "TranscriptLine",
    "with_api_key",
]
