"""Transcript fetching and normalization utilities.

The Fathom API returns transcripts in several envelopes: a flat string, an
object with a ``transcript`` field, an object with ``segments`` or
``utterances``, or a bare list of segments. This module reduces all of them
to newline-joined ``[speaker]: content`` lines, falling back to the
pretty-printed payload when no known shape matches.
"""

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from fathom_mcp.models.auth import Credential
from fathom_mcp.models.meeting import UNKNOWN_SPEAKER, TranscriptLine
from fathom_mcp.tools.fathom_api import FathomClient
from fathom_mcp.utils.errors import MCPServerError

logger = logging.getLogger(__name__)

SPEAKER_KEYS = ("speaker", "speaker_name")
CONTENT_KEYS = ("text", "content")
SPEAKER_OBJECT_KEYS = ("display_name", "name")
SEGMENT_LIST_KEYS = ("segments", "utterances")

MAX_NESTING = 3


def first_present(record: Mapping[str, Any], keys: Sequence[str], default: Any = None) -> Any:
    """Return the value of the first key holding a present value.

    Missing keys, ``None`` and empty strings count as absent; ``0``,
    ``False`` and empty containers count as present.
    """
    for key in keys:
        value = record.get(key)
        if value is None or value == "":
            continue
        return value
    return default


def is_sequence(value: Any) -> bool:
    """True for list-like payload values (strings and bytes excluded)."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _speaker_name(value: Any) -> str:
    if isinstance(value, Mapping):
        value = first_present(value, SPEAKER_OBJECT_KEYS)
    if value is None or value == "":
        return UNKNOWN_SPEAKER
    return str(value)


def to_transcript_line(segment: Any) -> TranscriptLine:
    """Map one upstream transcript element to a TranscriptLine."""
    if not isinstance(segment, Mapping):
        return TranscriptLine(speaker=UNKNOWN_SPEAKER, content=str(segment))

    content = first_present(segment, CONTENT_KEYS, default="")
    return TranscriptLine(
        speaker=_speaker_name(first_present(segment, SPEAKER_KEYS)),
        content=content if isinstance(content, str) else str(content),
    )


def render_segments(segments: Sequence[Any]) -> str:
    """Render a list of upstream segments as newline-joined lines."""
    return "\n".join(to_transcript_line(segment).render() for segment in segments)


def render_raw(payload: Any) -> str:
    """Last-resort rendering: the whole payload as indented JSON."""
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def _render_transcript_field(payload: Mapping[str, Any], depth: int) -> str:
    value = payload["transcript"]
    if is_sequence(value):
        return render_segments(value)
    if isinstance(value, Mapping):
        return normalize_transcript(value, _depth=depth + 1)
    return str(value)


def _render_segment_field(payload: Mapping[str, Any], depth: int) -> str:
    segments = next(
        payload[key] for key in SEGMENT_LIST_KEYS if is_sequence(payload.get(key))
    )
    return render_segments(segments)


ShapeRenderer = tuple[str, Callable[[Any], bool], Callable[[Any, int], str]]

# Tried in order; the first matching detector renders the payload.
TRANSCRIPT_SHAPES: tuple[ShapeRenderer, ...] = (
    ("text", lambda p: isinstance(p, str), lambda p, _depth: p),
    (
        "transcript_field",
        lambda p: isinstance(p, Mapping) and p.get("transcript") not in (None, ""),
        _render_transcript_field,
    ),
    (
        "segment_list",
        lambda p: isinstance(p, Mapping)
        and any(is_sequence(p.get(key)) for key in SEGMENT_LIST_KEYS),
        _render_segment_field,
    ),
    ("bare_list", is_sequence, lambda p, _depth: render_segments(p)),
)


def normalize_transcript(payload: Any, _depth: int = 0) -> str:
    """Reduce any upstream transcript payload to legible text.

    Never raises because of payload shape. A flat string is returned
    unchanged.

    Args:
        payload: Decoded upstream response

    Returns:
        Newline-joined ``[speaker]: content`` lines, the string itself, or
        pretty-printed JSON of an unrecognized payload
    """
    if _depth > MAX_NESTING:
        return render_raw(payload)

    for name, matches, render in TRANSCRIPT_SHAPES:
        if matches(payload):
            logger.debug(
                "Normalizing transcript",
                extra={"extra_fields": {"shape": name}},
            )
            return render(payload, _depth)

    logger.info("Unrecognized transcript payload, returning raw JSON")
    return render_raw(payload)


async def fetch_transcript_payload(
    client: FathomClient,
    credential: Credential,
    meeting_id: str,
    recording_id: str | None = None,
) -> Any:
    """Fetch a transcript, falling back from the recording to the meeting.

    The recording-scoped endpoint is tried first with ``recording_id`` or,
    when absent, ``meeting_id``. On any failure the meeting resource is
    fetched with ``include_transcript``. The second request starts only
    after the first has failed; its own failure propagates.

    Raises:
        UpstreamError: If the fallback request fails too
    """
    try:
        return await client.get_recording_transcript(
            credential, recording_id or meeting_id
        )
    except MCPServerError as e:
        logger.info(
            "Recording transcript unavailable, falling back to meeting",
            extra={
                "extra_fields": {
                    "meeting_id": meeting_id,
                    "recording_id": recording_id,
                    "error_code": e.error_code.value,
                }
            },
        )

    return await client.get_meeting(credential, meeting_id, include_transcript=True)


async def get_transcript_text(
    client: FathomClient,
    credential: Credential,
    meeting_id: str,
    recording_id: str | None = None,
) -> str:
    """Fetch and normalize a meeting transcript."""
    payload = await fetch_transcript_payload(
        client, credential, meeting_id, recording_id
    )
    return normalize_transcript(payload)
