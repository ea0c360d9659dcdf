"""Serialization of pending authorization requests for the credential form.

The request is embedded in the form as a hidden field and must come back
unchanged. Encoded state is ``<payload>.<signature>``: base64url JSON of the
request, then base64url HMAC-SHA256 of the payload. Anything that fails to
verify or parse raises ``OAuthStateError``; nothing is partially trusted.
"""

import base64
import binascii
import hashlib
import hmac
import json

from pydantic import ValidationError

from fathom_mcp.models.auth import AuthorizationRequest
from fathom_mcp.utils.errors import OAuthStateError


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


class AuthorizationStateCodec:
    """Signs and verifies AuthorizationRequest round-trips."""

    def __init__(self, secret: str | bytes) -> None:
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not secret:
            raise ValueError("state secret must not be empty")
        self._secret = secret

    def _sign(self, payload: str) -> str:
        digest = hmac.new(self._secret, payload.encode("ascii"), hashlib.sha256)
        return _b64encode(digest.digest())

    def encode(self, request: AuthorizationRequest) -> str:
        payload = _b64encode(
            json.dumps(
                request.model_dump(mode="json"),
                separators=(",", ":"),
                sort_keys=True,
            ).encode("utf-8")
        )
        return f"{payload}.{self._sign(payload)}"

    def decode(self, encoded: str) -> AuthorizationRequest:
        """Verify and parse encoded state.

        Raises:
            OAuthStateError: Missing, malformed, tampered or invalid state
        """
        if not encoded:
            raise OAuthStateError("Missing authorization state")

        payload, _, signature = encoded.strip().rpartition(".")
        if not payload or not signature:
            raise OAuthStateError("Malformed authorization state")

        try:
            expected = self._sign(payload)
        except UnicodeEncodeError:
            raise OAuthStateError("Malformed authorization state") from None
        if not hmac.compare_digest(expected, signature):
            raise OAuthStateError("Authorization state failed verification")

        try:
            data = json.loads(_b64decode(payload))
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise OAuthStateError("Authorization state is not valid JSON") from e

        if not isinstance(data, dict):
            raise OAuthStateError("Authorization state has an unexpected shape")

        try:
            return AuthorizationRequest.model_validate(data)
        except ValidationError as e:
            raise OAuthStateError(
                f"Authorization state is incomplete: {e.error_count()} invalid field(s)"
            ) from e
