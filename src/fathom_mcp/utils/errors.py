"""Error handling for the Fathom MCP server.

This module provides standardized error codes and the exception hierarchy
used across the upstream client, credential resolution, tool dispatch and
the OAuth credential-entry flow.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from mcp.types import CallToolResult


class ErrorCode(Enum):
    """Standard error codes for the MCP server."""

    INVALID_INPUT = "INVALID_INPUT"
    SCHEMA_VIOLATION = "SCHEMA_VIOLATION"
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    OAUTH_STATE_ERROR = "OAUTH_STATE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    TOOL_ERROR = "TOOL_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class MCPServerError(Exception):
    """Base exception for MCP server errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize MCP server error.

        Args:
            message: Human-readable error message
            error_code: Standard error code
            details: Additional error details
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class MissingCredentialError(MCPServerError):
    """No usable Fathom API key could be resolved for a tool call."""

    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            message=f"Authentication required: {reason}",
            error_code=ErrorCode.AUTHENTICATION_REQUIRED,
            details=details,
        )


class UpstreamError(MCPServerError):
    """The Fathom API answered with a non-2xx status or could not be reached.

    ``status`` is ``None`` for transport failures (timeouts, refused
    connections); ``body`` carries the response text or the failure cause.
    """

    def __init__(self, status: Optional[int], body: str, path: str = ""):
        self.status = status
        self.body = body
        prefix = f"Fathom API {status}" if status is not None else "Fathom API unreachable"
        super().__init__(
            message=f"{prefix}: {body}" if body else prefix,
            error_code=ErrorCode.UPSTREAM_ERROR,
            details={"status_code": status, "path": path},
        )


class SchemaViolationError(MCPServerError):
    """Tool arguments did not match the tool's input schema."""

    def __init__(self, tool_name: str, errors: list[str]):
        self.errors = errors
        super().__init__(
            message=f"Invalid arguments for {tool_name}: " + "; ".join(errors),
            error_code=ErrorCode.SCHEMA_VIOLATION,
            details={"tool_name": tool_name, "errors": errors},
        )


class OAuthStateError(MCPServerError):
    """The serialized authorization request could not be trusted or parsed."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code=ErrorCode.OAUTH_STATE_ERROR)


class ConfigurationError(MCPServerError):
    """Process configuration is unusable; raised at startup only."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code=ErrorCode.CONFIGURATION_ERROR)


class ToolCallError(MCPServerError):
    """Carries an error-flagged tool result out of a low-level call_tool handler.

    The MCP SDK converts exceptions raised by tool handlers into results
    with ``isError`` set and ``str(exc)`` as the text content.
    """

    def __init__(self, result: CallToolResult):
        self.result = result
        text = "\n".join(
            getattr(item, "text", "") for item in result.content
        )
        super().__init__(message=text, error_code=ErrorCode.TOOL_ERROR)
