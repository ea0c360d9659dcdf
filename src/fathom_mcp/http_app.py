"""Streamable HTTP application for the hosted deployment modes.

Routes:

- ``GET /health`` (and ``GET /`` when the MCP endpoint lives elsewhere)
- the MCP endpoint at ``HTTP_MCP_PATH``
- in OAuth modes: the MCP SDK authorization server routes (``/authorize``,
  ``/token``, ``/register``, ``/revoke`` and the ``/.well-known`` metadata
  documents) plus the credential form at ``/authorize/credential``

In OAuth modes the SDK bearer middleware authenticates every request and
the MCP endpoint refuses unauthenticated ones. The session behind the
token is attached to a copy of that request's ASGI scope, together with
the session's API key in the request-scoped mode. Tool calls read their
credential from there; nothing is stored between requests.
"""

import contextlib
from collections.abc import AsyncIterator
from typing import Optional

from mcp.server.auth.middleware.auth_context import AuthContextMiddleware
from mcp.server.auth.middleware.bearer_auth import (
    AuthenticatedUser,
    BearerAuthBackend,
    RequireAuthMiddleware,
)
from mcp.server.auth.provider import ProviderTokenVerifier
from mcp.server.auth.routes import create_auth_routes, create_protected_resource_routes
from mcp.server.auth.settings import ClientRegistrationOptions, RevocationOptions
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from pydantic import AnyHttpUrl
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from starlette.routing import Route
from starlette.types import ASGIApp, Receive, Scope, Send

from fathom_mcp.auth.flow import AuthorizationFlow, FlowState
from fathom_mcp.auth.pages import render_authorize_form, render_error_page
from fathom_mcp.auth.provider import CREDENTIAL_FORM_PATH, InMemoryOAuthProvider, OAuthProvider
from fathom_mcp.auth.state import AuthorizationStateCodec
from fathom_mcp.credentials import CREDENTIAL_SCOPE_KEY, SESSION_SCOPE_KEY
from fathom_mcp.models.auth import Session
from fathom_mcp.server import FathomMCPServer
from fathom_mcp.tools.fathom_api import FathomClient
from fathom_mcp.utils.config import DeploymentMode, Settings, get_settings
from fathom_mcp.utils.errors import OAuthStateError
from fathom_mcp.utils.logging_config import ContextLogger


class MCPEndpoint:
    """ASGI endpoint in front of the streamable HTTP session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager, mode: DeploymentMode) -> None:
        self.session_manager = session_manager
        self.mode = mode

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        user = scope.get("user")
        if isinstance(user, AuthenticatedUser) and isinstance(user.access_token, Session):
            session = user.access_token
            scope = dict(scope)
            scope[SESSION_SCOPE_KEY] = session
            if self.mode is DeploymentMode.OAUTH_REQUEST:
                scope[CREDENTIAL_SCOPE_KEY] = session.props.api_key

        await self.session_manager.handle_request(scope, receive, send)


class CredentialFormEndpoint:
    """HTTP handler for the API-key form the provider redirects to."""

    def __init__(self, flow: AuthorizationFlow) -> None:
        self.flow = flow
        self.logger = ContextLogger("http.auth")

    def _rejected_state(self, error: OAuthStateError) -> Response:
        self.logger.warning("Rejected authorization form state", extra={"reason": error.message})
        return HTMLResponse(render_error_page(error.message), status_code=400)

    async def handle(self, request: Request) -> Response:
        if request.method == "POST":
            return await self._submit(request)

        try:
            outcome = await self.flow.begin(request.query_params.get("state") or "")
        except OAuthStateError as e:
            return self._rejected_state(e)

        return HTMLResponse(
            render_authorize_form(
                request.url.path, outcome.encoded_state, client_name=outcome.client_name
            )
        )

    async def _submit(self, request: Request) -> Response:
        form = await request.form()
        encoded_state = form.get("state")
        api_key = form.get("api_key")

        try:
            outcome = await self.flow.submit(
                encoded_state if isinstance(encoded_state, str) else "",
                api_key if isinstance(api_key, str) else None,
            )
        except OAuthStateError as e:
            return self._rejected_state(e)

        if outcome.state is FlowState.COMPLETED and outcome.redirect_url:
            return RedirectResponse(outcome.redirect_url, status_code=302)

        return HTMLResponse(
            render_authorize_form(request.url.path, outcome.encoded_state, error=outcome.error)
        )


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[FathomClient] = None,
    provider: Optional[OAuthProvider] = None,
) -> Starlette:
    """Build the Starlette application for an HTTP deployment mode.

    Args:
        settings: Application settings; defaults to the global settings
        client: Upstream client shared by tools and key validation
        provider: OAuth provider; an in-memory one is created in OAuth modes

    Returns:
        Starlette app whose lifespan runs the MCP session manager
    """
    settings = settings or get_settings()
    mode = settings.mode
    http = settings.http
    logger = ContextLogger("http", {"mode": mode.value})

    mcp_server = FathomMCPServer(settings, client=client)
    session_manager = StreamableHTTPSessionManager(
        app=mcp_server.server,
        event_store=None,
        json_response=http.json_response,
        stateless=mode.stateless,
    )

    async def health(request: Request) -> Response:
        return JSONResponse(
            {
                "name": settings.server.server_name,
                "version": settings.server.version,
                "status": "ok",
                "transport": "streamable-http",
                "endpoint": http.mcp_path,
            }
        )

    routes: list[Route] = [Route("/health", health, methods=["GET"])]
    if http.mcp_path != "/":
        routes.append(Route("/", health, methods=["GET"]))

    middleware: list[Middleware] = []
    mcp_endpoint: ASGIApp = MCPEndpoint(session_manager, mode)

    if mode.uses_oauth:
        scopes = settings.oauth.default_scopes
        issuer_url = AnyHttpUrl(http.public_url)
        codec = AuthorizationStateCodec(settings.oauth.state_secret.get_secret_value())
        provider = provider or InMemoryOAuthProvider(
            issuer_url=http.public_url,
            codec=codec,
            access_token_ttl=settings.oauth.access_token_ttl,
            default_scopes=scopes,
        )
        flow = AuthorizationFlow(provider, mcp_server.client, codec, default_scopes=scopes)

        resource_routes = create_protected_resource_routes(
            resource_url=AnyHttpUrl(f"{http.public_url}{http.mcp_path}"),
            authorization_servers=[issuer_url],
            scopes_supported=scopes,
        )
        routes += create_auth_routes(
            provider=provider,
            issuer_url=issuer_url,
            client_registration_options=ClientRegistrationOptions(
                enabled=True, valid_scopes=scopes, default_scopes=scopes
            ),
            revocation_options=RevocationOptions(enabled=True),
        )
        routes += resource_routes
        routes.append(
            Route(
                CREDENTIAL_FORM_PATH, CredentialFormEndpoint(flow).handle, methods=["GET", "POST"]
            )
        )

        middleware = [
            Middleware(
                AuthenticationMiddleware,
                backend=BearerAuthBackend(ProviderTokenVerifier(provider)),
            ),
            Middleware(AuthContextMiddleware),
        ]
        mcp_endpoint = RequireAuthMiddleware(
            mcp_endpoint,
            required_scopes=scopes,
            resource_metadata_url=AnyHttpUrl(f"{http.public_url}{resource_routes[0].path}"),
        )
    else:
        provider = None

    routes.append(Route(http.mcp_path, endpoint=mcp_endpoint))

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with session_manager.run():
            logger.info(
                "Fathom MCP HTTP application started",
                extra={"endpoint": http.mcp_path, "stateless": mode.stateless},
            )
            yield

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.mcp_server = mcp_server
    app.state.provider = provider
    return app
