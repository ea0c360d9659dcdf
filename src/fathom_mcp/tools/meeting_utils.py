"""Meeting list extraction and summary projection.

Upstream meeting records do not use stable field names, and the list
endpoint may answer with a bare array or with the array wrapped under
``items``, ``meetings`` or ``data``. Every summary field has an ordered
chain of source keys.
"""

import logging
from collections.abc import Mapping
from typing import Any

from fathom_mcp.models.meeting import UNTITLED_MEETING, MeetingList, MeetingSummary
from fathom_mcp.tools.transcript_utils import first_present, is_sequence

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20

# Checked in this order when the payload is an object
MEETING_LIST_KEYS = ("items", "meetings", "data")

TITLE_KEYS = ("title", "name")
DATE_KEYS = ("created_at", "date", "recorded_at")
DURATION_KEYS = ("duration", "duration_seconds")
PARTICIPANT_KEYS = ("participants", "attendees")
PARTICIPANT_NAME_KEYS = ("name", "display_name", "email")


def extract_meetings(payload: Any) -> list[Any]:
    """Pull the meeting sequence out of any list-endpoint envelope.

    Returns an empty list for payloads in no known shape.
    """
    if is_sequence(payload):
        return list(payload)

    if isinstance(payload, Mapping):
        for key in MEETING_LIST_KEYS:
            value = payload.get(key)
            if is_sequence(value):
                return list(value)

    logger.info(
        "No meeting list found in payload",
        extra={"extra_fields": {"payload_type": type(payload).__name__}},
    )
    return []


def _participant_name(participant: Any) -> str:
    if isinstance(participant, Mapping):
        name = first_present(participant, PARTICIPANT_NAME_KEYS)
        if name is not None:
            return str(name)
    return str(participant)


def _participants(record: Mapping[str, Any]) -> list[str]:
    value = first_present(record, PARTICIPANT_KEYS, default=[])
    if not is_sequence(value):
        value = [value]
    return [_participant_name(participant) for participant in value]


def _recording_id(record: Mapping[str, Any]) -> Any:
    recording_id = first_present(record, ("recording_id",))
    if recording_id is not None:
        return recording_id

    recordings = record.get("recordings")
    if is_sequence(recordings) and recordings and isinstance(recordings[0], Mapping):
        return recordings[0].get("id")
    return None


def project_meeting(
    record: Mapping[str, Any], include_transcript: bool = False
) -> MeetingSummary:
    """Project one upstream meeting record onto MeetingSummary.

    Args:
        record: Upstream meeting object
        include_transcript: Pass through a transcript already on the record.
            No extra request is made for it.

    Returns:
        MeetingSummary with a title that is never empty
    """
    title = first_present(record, TITLE_KEYS, default=UNTITLED_MEETING)
    title = str(title).strip() or UNTITLED_MEETING

    transcript = None
    if include_transcript:
        transcript = first_present(record, ("transcript",))

    return MeetingSummary(
        id=record.get("id"),
        title=title,
        date=first_present(record, DATE_KEYS),
        duration_seconds=first_present(record, DURATION_KEYS),
        participants=_participants(record),
        recording_id=_recording_id(record),
        transcript=transcript,
    )


def summarize_meetings(
    payload: Any,
    limit: int = DEFAULT_LIMIT,
    include_transcript: bool = False,
) -> MeetingList:
    """Normalize a list-endpoint payload into at most ``limit`` summaries.

    Truncation happens after extraction and projection, taking records from
    the front of the normalized sequence.
    """
    summaries = [
        project_meeting(record, include_transcript=include_transcript)
        for record in extract_meetings(payload)
        if isinstance(record, Mapping)
    ]
    selected = summaries[: max(limit, 0)]
    return MeetingList(count=len(selected), meetings=selected)
