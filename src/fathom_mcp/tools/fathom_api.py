"""Fathom API integration for the MCP server.

This module issues authenticated requests against the Fathom external API.
The caller's API key travels in the ``X-Api-Key`` header only; it is never
placed in a URL and never logged.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from fathom_mcp.models.auth import Credential
from fathom_mcp.utils.config import FATHOM_API_BASE_URL
from fathom_mcp.utils.errors import UpstreamError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"

JSONValue = Any


def encode_path_segment(value: str) -> str:
    """Percent-encode a caller-supplied ID for use as one path segment."""
    return quote(str(value).strip(), safe="")


def build_query(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drop parameters whose value is ``None``.

    Omitted parameters are left out of the query string entirely rather
    than being sent as empty strings.
    """
    if not params:
        return {}
    return {key: value for key, value in params.items() if value is not None}


class FathomClient:
    """Async client for the Fathom external API.

    One instance is shared by every tool call; it holds no per-user state.
    The credential is an explicit argument of each request.
    """

    def __init__(
        self,
        base_url: str = FATHOM_API_BASE_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API base URL, without trailing slash
            timeout: Request timeout in seconds
            http_client: Optional pre-built client (connection reuse, tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def fetch_json(
        self,
        credential: Credential,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> JSONValue:
        """GET ``path`` and decode the JSON body.

        No retries are attempted; the first failure is raised.

        Args:
            credential: Resolved Fathom credential
            path: API path starting with "/", e.g. "/meetings"
            params: Query parameters; ``None`` values are omitted

        Returns:
            Decoded JSON, or the raw text when the body is not JSON

        Raises:
            UpstreamError: On non-2xx status or transport failure
        """
        url = f"{self.base_url}{path}"
        query = build_query(params)
        headers = {
            API_KEY_HEADER: credential.secret,
            "Accept": "application/json",
        }

        logger.debug(
            "Fathom API request",
            extra={"extra_fields": {"path": path, "params": sorted(query)}},
        )

        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    url, params=query, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=query, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(
                "Fathom API request timed out",
                extra={"extra_fields": {"path": path}},
            )
            raise UpstreamError(
                status=None,
                body=f"request timed out after {self.timeout}s",
                path=path,
            ) from e
        except httpx.RequestError as e:
            logger.warning(
                "Fathom API request failed",
                extra={"extra_fields": {"path": path, "error_type": type(e).__name__}},
            )
            raise UpstreamError(status=None, body=str(e), path=path) from e

        if not response.is_success:
            logger.info(
                f"Fathom API returned HTTP {response.status_code}",
                extra={"extra_fields": {"path": path, "status_code": response.status_code}},
            )
            raise UpstreamError(
                status=response.status_code, body=response.text, path=path
            )

        try:
            return response.json()
        except ValueError:
            # Some endpoints answer with plain text transcripts
            return response.text

    async def list_meetings(
        self, credential: Credential, params: dict[str, Any] | None = None
    ) -> JSONValue:
        """List meetings visible to the credential's account."""
        return await self.fetch_json(credential, "/meetings", params)

    async def get_meeting(
        self,
        credential: Credential,
        meeting_id: str,
        include_transcript: bool = False,
    ) -> JSONValue:
        """Fetch one meeting record, optionally with its transcript inline."""
        params = {"include_transcript": True} if include_transcript else None
        return await self.fetch_json(
            credential, f"/meetings/{encode_path_segment(meeting_id)}", params
        )

    async def get_recording_transcript(
        self, credential: Credential, recording_id: str
    ) -> JSONValue:
        """Fetch the transcript resource of one recording."""
        return await self.fetch_json(
            credential,
            f"/recordings/{encode_path_segment(recording_id)}/transcript",
        )
