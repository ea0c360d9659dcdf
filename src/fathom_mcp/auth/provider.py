"""OAuth authorization server backed by process-local storage.

``InMemoryOAuthProvider`` implements the MCP SDK's
``OAuthAuthorizationServerProvider``. The SDK routes own the protocol
(client registration, ``/authorize`` parameter checks, PKCE, client
authentication, ``/token`` and ``/revoke``, discovery metadata); the
provider only stores clients, codes and tokens.

Instead of a login, ``authorize`` sends the user to the credential form
with the pending request signed into its URL. ``complete_authorization``
is called by the form once the pasted Fathom key has been verified.

Storage is a set of TTL caches. Sessions are lost on restart.
"""

import logging
import secrets
import time
from typing import Protocol

from cachetools import TTLCache
from mcp.server.auth.provider import (
    AuthorizationParams,
    OAuthAuthorizationServerProvider,
    TokenError,
    construct_redirect_uri,
)
from mcp.shared.auth import OAuthClientInformationFull, OAuthToken
from pydantic import AnyUrl

from fathom_mcp.auth.state import AuthorizationStateCodec
from fathom_mcp.models.auth import (
    AuthorizationRequest,
    CredentialAuthorizationCode,
    CredentialRefreshToken,
    Session,
    SessionProps,
)

logger = logging.getLogger(__name__)

CREDENTIAL_FORM_PATH = "/authorize/credential"
AUTHORIZATION_CODE_TTL = 300
REFRESH_TOKEN_TTL = 30 * 24 * 3600
MAX_ENTRIES = 10_000


class OAuthProvider(
    OAuthAuthorizationServerProvider[CredentialAuthorizationCode, CredentialRefreshToken, Session],
    Protocol,
):
    """SDK authorization server interface plus the credential-form hook."""

    async def complete_authorization(
        self,
        request: AuthorizationRequest,
        user_id: str,
        scope: list[str],
        props: SessionProps,
    ) -> str:
        """Record a granted authorization and return the client redirect URL."""
        ...


class InMemoryOAuthProvider(
    OAuthAuthorizationServerProvider[CredentialAuthorizationCode, CredentialRefreshToken, Session]
):
    """Process-local OAuthProvider implementation."""

    def __init__(
        self,
        issuer_url: str,
        codec: AuthorizationStateCodec,
        access_token_ttl: int = 3600,
        default_scopes: list[str] | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            issuer_url: Public base URL of this server
            codec: Signs the pending request into the credential form URL
            access_token_ttl: Bearer token lifetime in seconds
            default_scopes: Scopes granted when neither request nor client names any
        """
        self.issuer_url = issuer_url.rstrip("/")
        self.codec = codec
        self.access_token_ttl = access_token_ttl
        self.default_scopes = default_scopes or ["read"]

        self._clients: dict[str, OAuthClientInformationFull] = {}
        self._codes: TTLCache = TTLCache(maxsize=MAX_ENTRIES, ttl=AUTHORIZATION_CODE_TTL)
        self._sessions: TTLCache = TTLCache(maxsize=MAX_ENTRIES, ttl=access_token_ttl)
        self._refresh_tokens: TTLCache = TTLCache(maxsize=MAX_ENTRIES, ttl=REFRESH_TOKEN_TTL)

    @property
    def credential_form_url(self) -> str:
        return f"{self.issuer_url}{CREDENTIAL_FORM_PATH}"

    # ==================== Clients ====================

    async def get_client(self, client_id: str) -> OAuthClientInformationFull | None:
        return self._clients.get(client_id)

    async def register_client(self, client_info: OAuthClientInformationFull) -> None:
        self._clients[client_info.client_id] = client_info
        logger.info(
            "Registered OAuth client",
            extra={
                "extra_fields": {
                    "client_id": client_info.client_id,
                    "client_name": client_info.client_name,
                }
            },
        )

    # ==================== Authorization ====================

    def _granted_scopes(
        self, client: OAuthClientInformationFull, requested: list[str] | None
    ) -> list[str]:
        if requested:
            return requested
        if client.scope:
            return client.scope.split()
        return list(self.default_scopes)

    async def authorize(
        self, client: OAuthClientInformationFull, params: AuthorizationParams
    ) -> str:
        """Send the user to the credential form for this request."""
        request = AuthorizationRequest(
            client_id=client.client_id,
            redirect_uri=str(params.redirect_uri),
            redirect_uri_provided_explicitly=params.redirect_uri_provided_explicitly,
            scope=self._granted_scopes(client, params.scopes),
            state=params.state,
            code_challenge=params.code_challenge,
            resource=params.resource,
        )
        return construct_redirect_uri(self.credential_form_url, state=self.codec.encode(request))

    async def complete_authorization(
        self,
        request: AuthorizationRequest,
        user_id: str,
        scope: list[str],
        props: SessionProps,
    ) -> str:
        code = CredentialAuthorizationCode(
            code=secrets.token_urlsafe(32),
            scopes=scope,
            expires_at=time.time() + AUTHORIZATION_CODE_TTL,
            client_id=request.client_id,
            code_challenge=request.code_challenge,
            redirect_uri=AnyUrl(request.redirect_uri),
            redirect_uri_provided_explicitly=request.redirect_uri_provided_explicitly,
            resource=request.resource,
            user_id=user_id,
            props=props,
        )
        self._codes[code.code] = code
        return construct_redirect_uri(request.redirect_uri, code=code.code, state=request.state)

    async def load_authorization_code(
        self, client: OAuthClientInformationFull, authorization_code: str
    ) -> CredentialAuthorizationCode | None:
        return self._codes.get(authorization_code)

    # ==================== Tokens ====================

    def _issue_tokens(
        self,
        client_id: str,
        scopes: list[str],
        user_id: str,
        props: SessionProps,
        resource: str | None = None,
    ) -> OAuthToken:
        access_token = secrets.token_urlsafe(32)
        refresh_token = secrets.token_urlsafe(32)
        now = int(time.time())

        self._sessions[access_token] = Session(
            token=access_token,
            client_id=client_id,
            scopes=scopes,
            expires_at=now + self.access_token_ttl,
            resource=resource,
            user_id=user_id,
            props=props,
            refresh_token=refresh_token,
        )
        self._refresh_tokens[refresh_token] = CredentialRefreshToken(
            token=refresh_token,
            client_id=client_id,
            scopes=scopes,
            expires_at=now + REFRESH_TOKEN_TTL,
            resource=resource,
            user_id=user_id,
            props=props,
            access_token=access_token,
        )
        logger.info(
            "Issued access token",
            extra={"extra_fields": {"client_id": client_id, "user_id": user_id}},
        )
        return OAuthToken(
            access_token=access_token,
            token_type="Bearer",
            expires_in=self.access_token_ttl,
            scope=" ".join(scopes) or None,
            refresh_token=refresh_token,
        )

    async def exchange_authorization_code(
        self, client: OAuthClientInformationFull, authorization_code: CredentialAuthorizationCode
    ) -> OAuthToken:
        # Codes are single use
        if self._codes.pop(authorization_code.code, None) is None:
            raise TokenError("invalid_grant", "authorization code does not exist")
        return self._issue_tokens(
            authorization_code.client_id,
            authorization_code.scopes,
            authorization_code.user_id,
            authorization_code.props,
            authorization_code.resource,
        )

    async def load_refresh_token(
        self, client: OAuthClientInformationFull, refresh_token: str
    ) -> CredentialRefreshToken | None:
        return self._refresh_tokens.get(refresh_token)

    async def exchange_refresh_token(
        self,
        client: OAuthClientInformationFull,
        refresh_token: CredentialRefreshToken,
        scopes: list[str],
    ) -> OAuthToken:
        if self._refresh_tokens.pop(refresh_token.token, None) is None:
            raise TokenError("invalid_grant", "refresh token does not exist")
        if refresh_token.access_token:
            self._sessions.pop(refresh_token.access_token, None)
        return self._issue_tokens(
            refresh_token.client_id,
            scopes,
            refresh_token.user_id,
            refresh_token.props,
            refresh_token.resource,
        )

    async def load_access_token(self, token: str) -> Session | None:
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.expires_at is not None and session.expires_at < time.time():
            self._sessions.pop(token, None)
            return None
        return session

    async def revoke_token(self, token: Session | CredentialRefreshToken) -> None:
        """Revoke a token together with its pair."""
        if isinstance(token, Session):
            self._sessions.pop(token.token, None)
            if token.refresh_token:
                self._refresh_tokens.pop(token.refresh_token, None)
        else:
            self._refresh_tokens.pop(token.token, None)
            if token.access_token:
                self._sessions.pop(token.access_token, None)
        logger.info(
            "Revoked token pair",
            extra={"extra_fields": {"client_id": token.client_id}},
        )
