"""Configuration management for the Fathom MCP server.

Settings are grouped by concern using Pydantic Settings; each group reads
its own environment prefix and the optional ``.env`` file.
"""

import secrets
from enum import Enum
from typing import Self

from mcp.server.auth.routes import validate_issuer_url
from pydantic import AnyHttpUrl, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fathom_mcp.utils.errors import ConfigurationError

# Valid logging levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

FATHOM_API_BASE_URL = "https://api.fathom.ai/external/v1"


class DeploymentMode(str, Enum):
    """How the server is exposed and where tool calls get their API key."""

    STDIO = "stdio"
    HTTP = "http"
    STATEFUL_HTTP = "stateful-http"
    OAUTH = "oauth"
    OAUTH_REQUEST = "oauth-request"

    @property
    def uses_oauth(self) -> bool:
        return self in (DeploymentMode.OAUTH, DeploymentMode.OAUTH_REQUEST)

    @property
    def stateless(self) -> bool:
        """Whether the MCP endpoint runs without per-client sessions."""
        return self in (DeploymentMode.HTTP, DeploymentMode.OAUTH_REQUEST)


class MCPServerSettings(BaseSettings):
    """Main MCP Server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MCP_", env_file=".env", extra="ignore"
    )

    server_name: str = Field(default="fathom-mcp", description="MCP server name")

    version: str = Field(default="1.0.0", description="Server version")

    log_level: str = Field(default="INFO", description="Logging level")

    structured_logging: bool = Field(
        default=True, description="Enable structured JSON logging"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {sorted(VALID_LOG_LEVELS)}"
            )
        return upper_v

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        """Validate server name is not empty."""
        if not v or not v.strip():
            raise ValueError("Server name cannot be empty")
        return v.strip()


class FathomSettings(BaseSettings):
    """Fathom API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FATHOM_", env_file=".env", extra="ignore"
    )

    # Static credential for the stdio deployment
    api_key: SecretStr = Field(
        default=SecretStr(""), description="Fathom API key (FATHOM_API_KEY)"
    )

    base_url: str = Field(
        default=FATHOM_API_BASE_URL, description="Fathom external API base URL"
    )

    timeout: float = Field(
        default=30.0, ge=1.0, le=300.0, description="API request timeout in seconds"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_configured(self) -> bool:
        """Check if a static API key is present."""
        return bool(self.api_key.get_secret_value().strip())


class HTTPSettings(BaseSettings):
    """Deployment and HTTP transport configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HTTP_", env_file=".env", extra="ignore"
    )

    mode: DeploymentMode = Field(
        default=DeploymentMode.STDIO, description="Deployment mode"
    )

    host: str = Field(default="127.0.0.1", description="Bind address")

    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")

    mcp_path: str = Field(default="/mcp", description="MCP endpoint path")

    json_response: bool = Field(
        default=False,
        description="Answer MCP POSTs with plain JSON instead of SSE streams",
    )

    public_url: str = Field(
        default="", description="Externally visible base URL (OAuth issuer)"
    )

    @field_validator("mcp_path")
    @classmethod
    def validate_mcp_path(cls, v: str) -> str:
        """MCP path must be absolute; a trailing slash is dropped."""
        if not v.startswith("/"):
            raise ValueError(f"MCP path must start with '/': {v!r}")
        return v.rstrip("/") or "/"

    @model_validator(mode="after")
    def default_public_url(self) -> Self:
        if not self.public_url:
            self.public_url = f"http://{self.host}:{self.port}"
        self.public_url = self.public_url.rstrip("/")
        return self


class OAuthSettings(BaseSettings):
    """OAuth credential-entry and token configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OAUTH_", env_file=".env", extra="ignore"
    )

    state_secret: SecretStr = Field(
        default_factory=lambda: SecretStr(secrets.token_urlsafe(32)),
        description="HMAC key protecting the authorization form state",
    )

    access_token_ttl: int = Field(
        default=3600, ge=60, le=30 * 24 * 3600, description="Access token lifetime (s)"
    )

    default_scopes: list[str] = Field(
        default_factory=lambda: ["read"],
        description="Scopes granted when the client requests none",
    )


class Settings:
    """Aggregated settings for the entire application."""

    def __init__(self) -> None:
        """Initialize all settings groups.

        Raises ValidationError if any individual group is invalid.
        """
        self.server = MCPServerSettings()
        self.fathom = FathomSettings()
        self.http = HTTPSettings()
        self.oauth = OAuthSettings()

    def validate(self) -> bool:
        """Cross-group validation that cannot be done per field.

        Returns:
            bool: True if all settings are valid

        Raises:
            ConfigurationError: If the selected mode cannot start
        """
        if self.http.mode is DeploymentMode.STDIO and not self.fathom.is_configured:
            raise ConfigurationError(
                "FATHOM_API_KEY environment variable is required"
            )
        if self.http.mode.uses_oauth:
            try:
                validate_issuer_url(AnyHttpUrl(self.http.public_url))
            except ValueError as e:
                raise ConfigurationError(
                    f"HTTP_PUBLIC_URL cannot be used as an OAuth issuer: {e}"
                ) from e
        return True

    @property
    def mode(self) -> DeploymentMode:
        return self.http.mode


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
