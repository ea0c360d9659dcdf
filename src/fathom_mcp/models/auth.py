"""Credential, session and authorization-request models.

``Session``, ``CredentialAuthorizationCode`` and ``CredentialRefreshToken``
extend the MCP SDK's OAuth token types with the Fathom key granted on the
credential form, so the SDK token endpoint and bearer middleware hand our
own records back to us.
"""

from enum import Enum
from typing import Any, Optional

from mcp.server.auth.provider import AccessToken, AuthorizationCode, RefreshToken
from pydantic import ConfigDict, Field, SecretStr

from fathom_mcp.models.base import FathomBaseModel


class CredentialSource(str, Enum):
    """Where a resolved API key came from."""

    STATIC = "static"
    EXPLICIT = "explicit"
    SESSION = "session"
    REQUEST = "request"


class Credential(FathomBaseModel):
    """A Fathom API key scoped to one upstream account.

    The key is a ``SecretStr`` so it never shows up in reprs or logs.
    """

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr
    source: CredentialSource

    @property
    def secret(self) -> str:
        return self.api_key.get_secret_value()


class MissingCredential(FathomBaseModel):
    """Resolution outcome when no usable API key is available."""

    model_config = ConfigDict(frozen=True)

    source: CredentialSource
    reason: str


class SessionProps(FathomBaseModel):
    """Properties attached to an OAuth session."""

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr


class Session(AccessToken):
    """An issued access token bound to a Fathom credential."""

    scopes: list[str] = Field(default_factory=list)
    user_id: str
    props: SessionProps
    refresh_token: Optional[str] = None


class CredentialAuthorizationCode(AuthorizationCode):
    """Single-use authorization code carrying the granted credential."""

    user_id: str
    props: SessionProps


class CredentialRefreshToken(RefreshToken):
    """Refresh token paired with the access token it was issued alongside."""

    user_id: str
    props: SessionProps
    access_token: Optional[str] = None


class AuthorizationRequest(FathomBaseModel):
    """A pending OAuth authorization, carried through the credential form.

    Built from the parameters the SDK authorize handler has already checked:
    a known client, a registered redirect URI and an S256 PKCE challenge.
    """

    # Values must survive the form round-trip unchanged
    model_config = ConfigDict(frozen=True, str_strip_whitespace=False)

    client_id: str = Field(..., min_length=1)
    redirect_uri: str
    redirect_uri_provided_explicitly: bool = True
    scope: list[str] = Field(default_factory=list)
    state: Optional[str] = None
    code_challenge: str = Field(..., min_length=1)
    resource: Optional[str] = None


class ToolCallContext(FathomBaseModel):
    """Everything one tool call may use to find its credential.

    Built fresh for each call from the inbound request; nothing in it is
    shared between calls.
    """

    model_config = ConfigDict(frozen=True)

    arguments: dict[str, Any] = Field(default_factory=dict)
    session: Optional[Session] = None
    request_credential: Optional[SecretStr] = None
