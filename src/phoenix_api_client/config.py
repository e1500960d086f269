"""Configuration for the Phoenix API client.

Uses Pydantic v2 for validation with defaults matching the hosted
Phoenix API and its account sign-in pages.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
    model_validator,
)

DEFAULT_SERVER_ERROR_ATTEMPTS = 3


class PersistenceScope(StrEnum):
    """Where the session survives: one tab, or the whole browser profile."""

    TAB = "tab"
    BROWSER = "browser"


class TelemetryConfig(BaseModel):
    """OpenTelemetry and structured logging configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "phoenix-api-client"
    trace_requests: bool = True
    log_level: str = "INFO"


class ClientConfig(BaseModel):
    """Main configuration for the Phoenix API client."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # Required
    client_id: str = Field(..., min_length=1)

    # Endpoints
    base_url: HttpUrl = HttpUrl("https://api.phone.com")
    authorization_endpoint: str = "https://accounts.phone.com/"
    endsession_endpoint: str = "https://oauth-api.phone.com/connect/endsession"

    # Retry policy
    handle_rate_limit: bool = True
    handle_server_error: bool | int = DEFAULT_SERVER_ERROR_ATTEMPTS
    server_error_delay: Annotated[float, Field(ge=0, le=60)] = 0.5

    # OAuth
    scopes: list[str] = Field(default_factory=lambda: ["account-owner"])
    ignore_anti_forgery_state: bool = False
    decode_identity_token: bool = False
    id_token_sign_out: bool = False
    sign_out_revokes_token: bool = True
    expiry_revokes_token: bool = False

    # Session persistence
    session_key: str = Field(default="phoenix-api-client-session", min_length=1)
    persistence_scope: PersistenceScope = PersistenceScope.TAB
    session_skew_ms: Annotated[int, Field(ge=0)] = 10_000

    # HTTP settings
    timeout: Annotated[float, Field(gt=0, le=300)] = 30.0
    download_timeout: Annotated[float, Field(gt=0, le=300)] = 30.0

    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("handle_server_error")
    @classmethod
    def validate_server_error_attempts(cls, v: bool | int) -> bool | int:
        """Reject negative attempt counts."""
        if not isinstance(v, bool) and v < 0:
            msg = "handle_server_error must be a boolean or a non-negative attempt count"
            raise ValueError(msg)
        return v

    @field_validator("persistence_scope", mode="before")
    @classmethod
    def validate_persistence_scope(cls, v: Any) -> Any:
        """Accept any casing of ``tab``/``browser``."""
        if isinstance(v, str):
            return v.lower()
        return v

    @model_validator(mode="after")
    def normalize_endpoints(self) -> Self:
        """Strip trailing slashes from the end-session endpoint."""
        # Use object.__setattr__ since model is frozen
        object.__setattr__(
            self, "endsession_endpoint", self.endsession_endpoint.rstrip("/")
        )
        return self

    @property
    def base_url_str(self) -> str:
        """Get base URL as string without trailing slash."""
        return str(self.base_url).rstrip("/")

    @property
    def scope_string(self) -> str:
        """Get scopes as space-separated string."""
        return " ".join(self.scopes)

    @property
    def openid(self) -> bool:
        """Whether the OpenID scope was requested."""
        return "openid" in self.scopes

    @property
    def max_server_error_attempts(self) -> int:
        """Maximum attempt number for which a 5xx is retried (0 disables)."""
        if self.handle_server_error is True:
            return DEFAULT_SERVER_ERROR_ATTEMPTS
        if self.handle_server_error is False:
            return 0
        return int(self.handle_server_error)

    @property
    def state_key(self) -> str:
        """Storage key of the anti-forgery state."""
        return f"{self.session_key}_state"

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "PHOENIX_API_") -> Self:
        """Create config from environment variables."""
        import os

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        client_id = get_env("CLIENT_ID")
        if not client_id:
            msg = f"{prefix}CLIENT_ID environment variable is required"
            raise ValueError(msg)

        data: dict[str, Any] = {"client_id": client_id}

        base_url = get_env("BASE_URL")
        if base_url:
            data["base_url"] = base_url

        scopes_str = get_env("SCOPES")
        if scopes_str:
            data["scopes"] = scopes_str.split()

        scope = get_env("PERSISTENCE_SCOPE")
        if scope:
            data["persistence_scope"] = scope

        session_key = get_env("SESSION_KEY")
        if session_key:
            data["session_key"] = session_key

        data["timeout"] = float(get_env("TIMEOUT", "30.0"))
        return cls(**data)
