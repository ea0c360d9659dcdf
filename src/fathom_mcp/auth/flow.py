"""Credential-entry authorization flow.

An OAuth client sends the user to ``/authorize``. The SDK checks the
request and the provider redirects to the credential form, where the user
pastes a Fathom API key instead of logging in. The key is checked with one
upstream call and, when accepted, becomes the ``props`` of a new session.

States::

    AWAITING_CREDENTIAL --submit--> VALIDATING --ok--> COMPLETED
            ^                            |
            +--------- rejected ---------+

The pending request rides in the form as signed hidden state. A re-rendered
form always carries the exact string that was submitted.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import SecretStr

from fathom_mcp.auth.provider import OAuthProvider
from fathom_mcp.auth.state import AuthorizationStateCodec
from fathom_mcp.models.auth import Credential, CredentialSource, SessionProps
from fathom_mcp.tools.fathom_api import FathomClient
from fathom_mcp.utils.errors import UpstreamError
from fathom_mcp.utils.logging_config import ContextLogger

API_KEY_REQUIRED = "API key is required"
API_KEY_REJECTED = "Fathom rejected this API key. Check it and try again."

# Cheapest call that proves the key works
VALIDATION_PATH = "/meetings"
VALIDATION_PARAMS = {"limit": 1}


class FlowState(str, Enum):
    AWAITING_CREDENTIAL = "awaiting_credential"
    VALIDATING = "validating"
    COMPLETED = "completed"


@dataclass(frozen=True)
class FlowOutcome:
    """What the HTTP layer should do next.

    ``AWAITING_CREDENTIAL`` renders the form with ``encoded_state`` and the
    optional ``error``; ``COMPLETED`` redirects to ``redirect_url``.
    """

    state: FlowState
    encoded_state: str = ""
    error: Optional[str] = None
    redirect_url: Optional[str] = None
    client_name: Optional[str] = None


def _rejection_message(error: UpstreamError) -> str:
    if error.status in (401, 403):
        return API_KEY_REJECTED
    return f"Could not verify the API key: {error.message}"


class AuthorizationFlow:
    """Runs the credential-entry form for OAuth deployments."""

    def __init__(
        self,
        provider: OAuthProvider,
        client: FathomClient,
        codec: AuthorizationStateCodec,
        default_scopes: list[str] | None = None,
        logger: ContextLogger | None = None,
    ) -> None:
        self.provider = provider
        self.client = client
        self.codec = codec
        self.default_scopes = default_scopes or ["read"]
        self.logger = logger or ContextLogger("auth.flow")

    async def begin(self, encoded_state: str) -> FlowOutcome:
        """Open the empty form for a request the provider signed.

        Raises:
            OAuthStateError: When the state does not verify
        """
        request = self.codec.decode(encoded_state)
        client = await self.provider.get_client(request.client_id)
        self.logger.info(
            "Authorization started", extra={"client_id": request.client_id}
        )
        return FlowOutcome(
            state=FlowState.AWAITING_CREDENTIAL,
            encoded_state=encoded_state,
            client_name=client.client_name if client else None,
        )

    async def submit(self, encoded_state: str, api_key: str | None) -> FlowOutcome:
        """Handle a form submission.

        Raises:
            OAuthStateError: When the hidden state does not verify
        """
        request = self.codec.decode(encoded_state)
        log = self.logger.bind(client_id=request.client_id)

        key = (api_key or "").strip()
        if not key:
            return FlowOutcome(
                state=FlowState.AWAITING_CREDENTIAL,
                encoded_state=encoded_state,
                error=API_KEY_REQUIRED,
            )

        credential = Credential(api_key=SecretStr(key), source=CredentialSource.SESSION)
        log.info("Validating submitted API key", extra={"state": FlowState.VALIDATING.value})
        try:
            await self.client.fetch_json(credential, VALIDATION_PATH, VALIDATION_PARAMS)
        except UpstreamError as e:
            log.info(
                "Submitted API key rejected",
                extra={"status_code": e.status},
            )
            return FlowOutcome(
                state=FlowState.AWAITING_CREDENTIAL,
                encoded_state=encoded_state,
                error=_rejection_message(e),
            )

        redirect_url = await self.provider.complete_authorization(
            request,
            user_id=uuid.uuid4().hex,
            scope=request.scope or list(self.default_scopes),
            props=SessionProps(api_key=credential.api_key),
        )
        log.info("Authorization completed")
        return FlowOutcome(state=FlowState.COMPLETED, redirect_url=redirect_url)
