"""MCP server for the Fathom meeting API.

Binds the tool registry to the low-level MCP ``Server``. The same server
instance backs the stdio transport and the streamable HTTP application;
only the credential resolver differs between deployment modes.
"""

import asyncio
import sys
from collections.abc import Mapping
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from fathom_mcp.credentials import CredentialResolver, build_call_context, build_resolver
from fathom_mcp.models.auth import ToolCallContext
from fathom_mcp.tools.fathom_api import FathomClient
from fathom_mcp.tools.registry import FathomToolRegistry
from fathom_mcp.utils.config import DeploymentMode, Settings, get_settings
from fathom_mcp.utils.errors import ConfigurationError, ToolCallError
from fathom_mcp.utils.logging_config import ContextLogger, setup_logging


class FathomMCPServer:
    """MCP server exposing the Fathom tools."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[FathomClient] = None,
        resolver: Optional[CredentialResolver] = None,
    ) -> None:
        """Initialize the MCP server.

        Args:
            settings: Application settings; defaults to the global settings
            client: Upstream client; built from settings when omitted
            resolver: Credential strategy; selected from the mode when omitted

        Raises:
            ConfigurationError: If the mode's resolver cannot be built
        """
        self.settings = settings or get_settings()
        self.logger = ContextLogger("mcp_server", {"mode": self.settings.mode.value})
        self.server = Server(
            self.settings.server.server_name, version=self.settings.server.version
        )

        self.client = client or FathomClient(
            base_url=self.settings.fathom.base_url,
            timeout=self.settings.fathom.timeout,
        )
        self.registry = FathomToolRegistry(
            self.client,
            resolver or build_resolver(self.settings),
            logger=ContextLogger("tools", {"mode": self.settings.mode.value}),
        )

        self._register_handlers()

        self.logger.info(
            "Fathom MCP server initialized",
            extra={
                "tools": sorted(self.registry.tools),
                "credential_source": self.registry.resolver.source.value,
            },
        )

    def _register_handlers(self) -> None:
        self.server.list_tools()(self._list_tools)
        # The registry validates arguments and words its own schema errors
        self.server.call_tool(validate_input=False)(self._call_tool)

    # ==================== Tools Primitive ====================

    async def _list_tools(self) -> list[Tool]:
        return self.registry.list_tools()

    def _request_scope(self) -> Optional[Mapping[str, Any]]:
        """ASGI scope of the request being handled, if the transport has one."""
        try:
            request_context = self.server.request_context
        except LookupError:
            return None
        request = getattr(request_context, "request", None)
        return getattr(request, "scope", None)

    def _build_context(self, arguments: dict[str, Any] | None) -> ToolCallContext:
        return build_call_context(arguments, self._request_scope())

    async def _call_tool(
        self, name: str, arguments: dict[str, Any] | None
    ) -> list[TextContent]:
        """Handle one tools/call request.

        Raises:
            ToolCallError: When the registry produced an error result; the SDK
                reports it to the client as an ``isError`` result
        """
        result = await self.registry.call(name, arguments, self._build_context(arguments))
        if result.isError:
            raise ToolCallError(result)
        return list(result.content)

    async def run(self) -> None:
        """Run the MCP server using stdio transport."""
        self.logger.info("Starting Fathom MCP server on stdio")

        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


def load_settings() -> Settings:
    """Read and cross-check settings.

    Raises:
        ConfigurationError: On invalid or incomplete configuration
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    settings.validate()
    return settings


def main() -> None:
    """Synchronous entry point for the MCP server (called by script entry point)."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        sys.exit(1)

    setup_logging(
        level=settings.server.log_level,
        structured=settings.server.structured_logging,
    )

    if settings.mode is DeploymentMode.STDIO:
        asyncio.run(FathomMCPServer(settings).run())
        return

    import uvicorn

    from fathom_mcp.http_app import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
