"""Credential resolution strategies.

Each deployment mode picks one resolver at startup. All resolvers share one
contract: ``resolve(context)`` returns a ``Credential`` or a
``MissingCredential`` and never raises. Tool dispatch refuses to call the
upstream API on ``MissingCredential``.

Nothing here keeps per-request state. The request-scoped resolver reads the
slot carried by the per-call ``ToolCallContext``, which the HTTP layer
fills from that request's own ASGI scope.
"""

from collections.abc import Mapping
from typing import Any, Protocol

from pydantic import SecretStr

from fathom_mcp.models.auth import (
    Credential,
    CredentialSource,
    MissingCredential,
    ToolCallContext,
)
from fathom_mcp.utils.config import DeploymentMode, Settings
from fathom_mcp.utils.errors import ConfigurationError

API_KEY_ARGUMENT = "api_key"

# ASGI scope keys set by the HTTP layer on its per-request scope copy
SESSION_SCOPE_KEY = "fathom_mcp.session"
CREDENTIAL_SCOPE_KEY = "fathom_mcp.credential"


def _credential_or_missing(
    value: object, source: CredentialSource, missing_reason: str
) -> Credential | MissingCredential:
    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    if not isinstance(value, str) or not value.strip():
        return MissingCredential(source=source, reason=missing_reason)
    return Credential(api_key=SecretStr(value.strip()), source=source)


class CredentialResolver(Protocol):
    """Produces the Fathom credential for one tool call."""

    source: CredentialSource

    # Tools require an ``api_key`` argument when this is set
    requires_api_key_argument: bool

    def resolve(self, context: ToolCallContext) -> Credential | MissingCredential:
        ...


class StaticCredentialResolver:
    """API key read once from process configuration."""

    source = CredentialSource.STATIC
    requires_api_key_argument = False

    def __init__(self, api_key: SecretStr | str) -> None:
        if isinstance(api_key, str):
            api_key = SecretStr(api_key)
        self._api_key = api_key

    def resolve(self, context: ToolCallContext) -> Credential | MissingCredential:
        return _credential_or_missing(
            self._api_key,
            self.source,
            "FATHOM_API_KEY is not configured for this server.",
        )


class ExplicitCredentialResolver:
    """API key passed by the caller as the ``api_key`` tool argument."""

    source = CredentialSource.EXPLICIT
    requires_api_key_argument = True

    def resolve(self, context: ToolCallContext) -> Credential | MissingCredential:
        return _credential_or_missing(
            context.arguments.get(API_KEY_ARGUMENT),
            self.source,
            "No Fathom API key provided. Please pass your api_key parameter.",
        )


class SessionCredentialResolver:
    """API key stored in the props of the caller's OAuth session."""

    source = CredentialSource.SESSION
    requires_api_key_argument = False

    def resolve(self, context: ToolCallContext) -> Credential | MissingCredential:
        if context.session is None:
            return MissingCredential(
                source=self.source,
                reason="No authorized session. Connect and authorize with your Fathom API key.",
            )
        return _credential_or_missing(
            context.session.props.api_key,
            self.source,
            "The authorized session carries no Fathom API key.",
        )


class RequestScopedCredentialResolver:
    """API key placed in the current request's own context before dispatch."""

    source = CredentialSource.REQUEST
    requires_api_key_argument = False

    def resolve(self, context: ToolCallContext) -> Credential | MissingCredential:
        return _credential_or_missing(
            context.request_credential,
            self.source,
            "No Fathom API key is bound to this request.",
        )


def build_resolver(settings: Settings) -> CredentialResolver:
    """Select the resolver for the configured deployment mode.

    Raises:
        ConfigurationError: In stdio mode without FATHOM_API_KEY
    """
    mode = settings.mode
    if mode is DeploymentMode.STDIO:
        if not settings.fathom.is_configured:
            raise ConfigurationError("FATHOM_API_KEY environment variable is required")
        return StaticCredentialResolver(settings.fathom.api_key)
    if mode in (DeploymentMode.HTTP, DeploymentMode.STATEFUL_HTTP):
        return ExplicitCredentialResolver()
    if mode is DeploymentMode.OAUTH:
        return SessionCredentialResolver()
    return RequestScopedCredentialResolver()


def build_call_context(
    arguments: dict[str, Any] | None, scope: Mapping[str, Any] | None = None
) -> ToolCallContext:
    """Build the per-call context from tool arguments and the request scope.

    ``scope`` is the ASGI scope of the inbound request, or ``None`` on
    transports without one (stdio).
    """
    scope = scope or {}
    return ToolCallContext(
        arguments=arguments or {},
        session=scope.get(SESSION_SCOPE_KEY),
        request_credential=scope.get(CREDENTIAL_SCOPE_KEY),
    )
