"""Tool registry: the three Fathom tools and their dispatch.

Every call goes through the same steps: input validation, credential
resolution, the tool handler, and conversion of any failure into an
error-flagged ``CallToolResult``. Failures are ordinary results for the
client, never transport errors.
"""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from mcp.types import CallToolResult, TextContent, Tool
from pydantic import ValidationError

from fathom_mcp.credentials import API_KEY_ARGUMENT, CredentialResolver
from fathom_mcp.models.auth import Credential, MissingCredential, ToolCallContext
from fathom_mcp.models.tools import (
    GetMeetingDetailsInput,
    GetTranscriptInput,
    ListMeetingsInput,
    ToolInput,
    with_api_key,
)
from fathom_mcp.tools.fathom_api import FathomClient
from fathom_mcp.tools.meeting_utils import summarize_meetings
from fathom_mcp.tools.transcript_utils import get_transcript_text
from fathom_mcp.utils.errors import MCPServerError, SchemaViolationError
from fathom_mcp.utils.logging_config import ContextLogger

ToolHandler = Callable[[Any, Credential], Awaitable[str]]


@dataclass(frozen=True)
class ToolDefinition:
    """One externally callable tool."""

    name: str
    description: str
    input_model: type[ToolInput]
    error_prefix: str
    handler: ToolHandler


def text_result(text: str, is_error: bool = False) -> CallToolResult:
    """Wrap text as a single-item tool result."""
    return CallToolResult(
        content=[TextContent(type="text", text=text)],
        isError=is_error,
    )


def format_schema_errors(error: ValidationError) -> list[str]:
    """Render pydantic validation errors as ``field: message`` strings."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        messages.append(f"{location}: {item['msg']}")
    return messages


def to_json_text(data: Any) -> str:
    """Pretty-print a JSON payload for a text result."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class FathomToolRegistry:
    """Exposes list_meetings, get_transcript and get_meeting_details."""

    def __init__(
        self,
        client: FathomClient,
        resolver: CredentialResolver,
        logger: ContextLogger | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            client: Upstream API client shared by all calls
            resolver: Credential strategy for this deployment
            logger: Optional logger; defaults to the registry logger
        """
        self.client = client
        self.resolver = resolver
        self.logger = logger or ContextLogger("tools")
        self.tools: dict[str, ToolDefinition] = {}

        self._register(
            name="list_meetings",
            description=(
                "List recent Fathom meetings. Returns meeting ID, title, date, "
                "duration, and participants. Use created_after/created_before for "
                "date filtering (ISO-8601 format, e.g. 2026-02-20T00:00:00Z)."
            ),
            input_model=ListMeetingsInput,
            error_prefix="Error listing meetings",
            handler=self._list_meetings,
        )
        self._register(
            name="get_transcript",
            description=(
                "Get the full transcript for a specific Fathom meeting or recording. "
                "Returns speaker-attributed transcript text."
            ),
            input_model=GetTranscriptInput,
            error_prefix="Error fetching transcript",
            handler=self._get_transcript,
        )
        self._register(
            name="get_meeting_details",
            description=(
                "Get full details for a specific Fathom meeting including summary, "
                "action items, and metadata."
            ),
            input_model=GetMeetingDetailsInput,
            error_prefix="Error fetching meeting details",
            handler=self._get_meeting_details,
        )

    def _register(
        self,
        name: str,
        description: str,
        input_model: type[ToolInput],
        error_prefix: str,
        handler: ToolHandler,
    ) -> None:
        if self.resolver.requires_api_key_argument:
            input_model = with_api_key(input_model)
        self.tools[name] = ToolDefinition(
            name=name,
            description=description,
            input_model=input_model,
            error_prefix=error_prefix,
            handler=handler,
        )

    def list_tools(self) -> list[Tool]:
        """MCP tool declarations with JSON schemas derived from the input models."""
        return [
            Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_model.model_json_schema(),
            )
            for tool in self.tools.values()
        ]

    def validate_arguments(self, tool: ToolDefinition, arguments: dict[str, Any]) -> ToolInput:
        """Validate raw arguments against the tool's input model.

        Raises:
            SchemaViolationError: If the arguments do not match the schema
        """
        try:
            return tool.input_model.model_validate(arguments)
        except ValidationError as e:
            raise SchemaViolationError(tool.name, format_schema_errors(e)) from e

    async def call(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        context: ToolCallContext | None = None,
    ) -> CallToolResult:
        """Validate, authenticate and run one tool call.

        Args:
            name: Tool name
            arguments: Raw tool arguments from the client
            context: Per-call context; built from ``arguments`` when omitted

        Returns:
            A text result, flagged as an error on any failure
        """
        arguments = arguments or {}
        if context is None:
            context = ToolCallContext(arguments=arguments)

        tool = self.tools.get(name)
        if tool is None:
            self.logger.warning("Unknown tool requested", extra={"tool": name})
            return text_result(f"Unknown tool: {name}", is_error=True)

        log = self.logger.bind(tool=name)
        log.info(
            "Tool call received",
            extra={"arguments": sorted(k for k in arguments if k != API_KEY_ARGUMENT)},
        )

        try:
            params = self.validate_arguments(tool, arguments)
        except SchemaViolationError as e:
            log.info("Tool arguments rejected", extra={"errors": e.errors})
            return text_result(e.message, is_error=True)

        credential = self.resolver.resolve(context)
        if isinstance(credential, MissingCredential):
            log.info(
                "Tool call without credential",
                extra={"credential_source": credential.source.value},
            )
            return text_result(
                f"Authentication required: {credential.reason}", is_error=True
            )

        try:
            text = await tool.handler(params, credential)
        except MCPServerError as e:
            log.warning(
                f"{tool.error_prefix}: {e.message}",
                extra={"error_code": e.error_code.value},
            )
            return text_result(f"{tool.error_prefix}: {e.message}", is_error=True)
        except Exception as e:
            log.exception(
                f"{tool.error_prefix}: unexpected failure",
                extra={"error_type": type(e).__name__},
            )
            return text_result(f"{tool.error_prefix}: {e}", is_error=True)

        log.info("Tool call completed", extra={"result_length": len(text)})
        return text_result(text)

    # ==================== Tool handlers ====================

    async def _list_meetings(self, params: ListMeetingsInput, credential: Credential) -> str:
        payload = await self.client.list_meetings(
            credential,
            {
                "created_after": params.created_after,
                "created_before": params.created_before,
                "include_transcript": True if params.include_transcript else None,
            },
        )
        meetings = summarize_meetings(
            payload,
            limit=params.limit,
            include_transcript=params.include_transcript,
        )
        return to_json_text(meetings.to_output())

    async def _get_transcript(self, params: GetTranscriptInput, credential: Credential) -> str:
        return await get_transcript_text(
            self.client,
            credential,
            meeting_id=params.meeting_id,
            recording_id=params.recording_id,
        )

    async def _get_meeting_details(
        self, params: GetMeetingDetailsInput, credential: Credential
    ) -> str:
        data = await self.client.get_meeting(credential, params.meeting_id)
        return to_json_text(data)
