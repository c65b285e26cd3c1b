"""Client configuration.

Centralizes protocol constants and the user-tunable settings, and knows how
to read the latter from the environment.
"""

import os
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# Wire protocol
DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
ERROR_SENTINEL = "Error:"
PROCESSING_STATUS = "processing"

# Credential slots in durable storage
TOKEN_KEY = "auth_token"
SESSION_KEY = "session_id"
TOKEN_EXPIRY_KEY = "token_expiry"

# Authentication
REFRESH_MARGIN_SECONDS = 300  # Refresh when the token expires within this window
DEFAULT_USER_ID = "mobile-user"

# Health probe
HEALTH_TIMEOUT_SECONDS = 5.0

# User-facing explanations placed on settled assistant messages
NO_RESPONSE_TEXT = "No response received. Please try again."
CONNECTION_ERROR_TEXT = "Connection error. Please try again."
AUTH_FAILED_TEXT = "Authentication failed. Please try again."
STOPPED_BY_USER_TEXT = "Request stopped by user."
TIMED_OUT_TEXT = "Request timed out."
UNEXPECTED_ERROR_TEXT = "Error processing message"

ENV_PREFIX = "STREAMCHAT_"


class TransportKind(str, Enum):
    """How reply bytes are delivered to the decoder."""

    CHUNKED = "chunked"
    PROGRESSIVE = "progressive"
    POLLING = "polling"


class BusyPolicy(str, Enum):
    """What send_message does while another turn is still running."""

    REJECT = "reject"
    SUPERSEDE = "supersede"


class ClientConfig(BaseModel):
    """Settings for one chat client instance."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default="http://localhost:8080", description="Backend base URL")
    user_id: str = Field(default=DEFAULT_USER_ID, description="Fixed client identity for /auth")
    password: str = Field(default="", description="Password sent with the client identity")
    transport: TransportKind = Field(default=TransportKind.CHUNKED)
    credentials_backend: str = Field(default="sqlite", pattern="^(memory|sqlite)$")
    credentials_path: Path = Field(
        default_factory=lambda: Path.home() / ".streamchat" / "credentials.db"
    )
    refresh_margin_seconds: int = Field(default=REFRESH_MARGIN_SECONDS, ge=0)
    request_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Abort a turn after this many seconds (None disables)"
    )
    health_timeout_seconds: float = Field(default=HEALTH_TIMEOUT_SECONDS, gt=0)
    busy_policy: BusyPolicy = Field(default=BusyPolicy.REJECT)
    greeting: str | None = Field(default=None, description="Assistant greeting seeded into new logs")

    @classmethod
    def from_env(cls, **overrides: object) -> "ClientConfig":
        """Build a config from STREAMCHAT_* environment variables.

        Environment variables:
            STREAMCHAT_BASE_URL, STREAMCHAT_USER_ID, STREAMCHAT_PASSWORD,
            STREAMCHAT_TRANSPORT, STREAMCHAT_CREDENTIALS_BACKEND,
            STREAMCHAT_CREDENTIALS_PATH, STREAMCHAT_REFRESH_MARGIN,
            STREAMCHAT_TIMEOUT, STREAMCHAT_HEALTH_TIMEOUT, STREAMCHAT_BUSY_POLICY,
            STREAMCHAT_GREETING

        Explicit keyword overrides win over the environment; None overrides
        are ignored so optional CLI flags can be passed straight through.
        """
        env_fields = {
            "base_url": "BASE_URL",
            "user_id": "USER_ID",
            "password": "PASSWORD",
            "transport": "TRANSPORT",
            "credentials_backend": "CREDENTIALS_BACKEND",
            "credentials_path": "CREDENTIALS_PATH",
            "refresh_margin_seconds": "REFRESH_MARGIN",
            "request_timeout_seconds": "TIMEOUT",
            "health_timeout_seconds": "HEALTH_TIMEOUT",
            "busy_policy": "BUSY_POLICY",
            "greeting": "GREETING",
        }
        values: dict[str, object] = {}
        for field_name, suffix in env_fields.items():
            raw = os.getenv(ENV_PREFIX + suffix)
            if raw is not None and raw != "":
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
