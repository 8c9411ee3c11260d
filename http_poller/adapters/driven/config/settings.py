"""Configuration loading from environment variables and files."""

import json
import logging
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from yarl import URL

from http_poller.adapters.driven.codec.codecs import CODECS

__all__ = ["Settings", "load_settings", "DEFAULT_METADATA_TARGET"]

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_METADATA_TARGET = "@metadata"

# Optional environment variable -> Settings field
_OPTIONAL_ENV = {
    "TARGET": "target",
    "CODEC": "codec",
    "HTTP_REQUEST_TIMEOUT": "request_timeout",
    "HTTP_CONNECT_TIMEOUT": "connect_timeout",
    "HTTP_SOCKET_TIMEOUT": "socket_timeout",
    "HTTP_AUTOMATIC_RETRIES": "automatic_retries",
    "HTTP_POOL_MAX": "pool_max",
    "HTTP_POOL_MAX_PER_ROUTE": "pool_max_per_route",
    "HTTP_KEEPALIVE": "keepalive",
    "HTTP_USER": "user",
    "HTTP_PASSWORD": "password",
    "HTTP_PROXY": "proxy",
}


class Settings(BaseModel):
    """Runtime configuration for the poller service.

    Attributes:
        interval_in_sec: Seconds between poll cycles (must be positive).
        urls_file_path: Path to JSON file with the named requests.
        urls: Raw named requests (loaded from file).
        metadata_target: Field receiving request metadata; None disables it.
        target: Field wrapping decoded content; None merges it at top level.
        codec: Name of the response body codec.
        request_timeout: Total timeout of one request in seconds.
        connect_timeout: Connection timeout in seconds.
        socket_timeout: Read timeout in seconds.
        automatic_retries: Retries on transient transport errors.
        pool_max: Maximum open connections.
        pool_max_per_route: Maximum open connections per host.
        keepalive: Reuse connections between requests.
        user: Basic auth user for every request.
        password: Basic auth password for every request.
        proxy: Proxy URL for every request.
    """

    interval_in_sec: float = Field(..., gt=0, description="Interval between poll cycles.")
    urls_file_path: str = Field(..., description="Path to JSON file with the named requests.")
    urls: dict[str, Any] = Field(
        default_factory=dict,
        description="Named requests: name -> URL or request spec (populated from file).",
    )
    metadata_target: str | None = Field(
        default=DEFAULT_METADATA_TARGET,
        description="Field receiving request metadata. If not set, no metadata is attached.",
    )
    target: str | None = Field(
        default=None,
        description="Field wrapping decoded content. If not set, content is top-level.",
    )
    codec: str = Field(default="json", description="Response body codec.")
    request_timeout: float = Field(default=60, gt=0)
    connect_timeout: float = Field(default=10, gt=0)
    socket_timeout: float = Field(default=10, gt=0)
    automatic_retries: int = Field(default=1, ge=0)
    pool_max: int = Field(default=50, gt=0)
    pool_max_per_route: int = Field(default=25, gt=0)
    keepalive: bool = True
    user: str | None = None
    password: str | None = None
    proxy: str | None = None

    @field_validator("metadata_target", "target")
    @classmethod
    def empty_target_disables(cls, v: str | None) -> str | None:
        """Treat an empty field name as not set."""
        return v or None

    @field_validator("codec")
    @classmethod
    def validate_codec(cls, v: str) -> str:
        """Validate that the codec is known.

        Args:
            v: Codec name.

        Returns:
            The codec name.

        Raises:
            ValueError: If codec is unknown.
        """
        if v not in CODECS:
            raise ValueError(f"Unknown codec '{v}', expected one of {sorted(CODECS)}")
        return v

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str | None) -> str | None:
        """Validate that proxy (if provided) is a valid HTTP(S) URL.

        Args:
            v: Proxy URL to validate (can be None).

        Returns:
            The validated URL or None.

        Raises:
            ValueError: If URL is invalid.
        """
        if not v:
            return None
        try:
            parsed = URL(v)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid proxy URL: {e}") from e
        if v != v.strip() or parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError(f"Invalid proxy URL: {v!r}")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "Settings":
        """Require global user and password together."""
        if bool(self.user) != bool(self.password):
            raise ValueError("HTTP_USER and HTTP_PASSWORD must be set together")
        return self

    def load_urls(self) -> None:
        """Load the named requests from the JSON file.

        Only the file shape is checked here; the entries themselves are
        validated by build_request_table().

        Raises:
            ValueError: If file not found, invalid JSON, wrong format, or empty.
        """
        try:
            with open(self.urls_file_path) as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ValueError(f"URLs file not found: {self.urls_file_path}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"URLs file contains invalid JSON: {self.urls_file_path}") from e

        if not isinstance(data, dict):
            raise ValueError("URLs file must be a JSON object of name -> URL or request spec")
        if not data:
            raise ValueError("URLs file is empty")

        self.urls = data
        logger.debug(f"Loaded {len(data)} requests from {self.urls_file_path}")


def load_settings() -> Settings:
    """Load and validate settings from environment and files.

    Required environment variables:
    - POLL_INTERVAL_SECONDS: Positive number of seconds between cycles.
    - POLL_URLS_FILE: Path to JSON file with the named requests.

    Optional:
    - METADATA_TARGET: Metadata field name ("@metadata"; empty disables).
    - TARGET, CODEC and the HTTP_* transport settings.

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If required env vars missing or invalid.
        ValueError: If configuration is invalid.
    """
    try:
        interval_raw = os.environ["POLL_INTERVAL_SECONDS"]
        urls_path = os.environ["POLL_URLS_FILE"]
    except KeyError as e:
        raise RuntimeError(f"Missing required environment variable: {e.args[0]}") from e

    try:
        interval_in_sec = float(interval_raw)
        if interval_in_sec <= 0:
            raise ValueError("Must be positive")
    except ValueError as e:
        raise RuntimeError(
            f"POLL_INTERVAL_SECONDS must be a positive number (got: {interval_raw})"
        ) from e

    optional = {field: os.environ[var] for var, field in _OPTIONAL_ENV.items() if var in os.environ}

    settings = Settings(
        interval_in_sec=interval_in_sec,
        urls_file_path=urls_path,
        metadata_target=os.getenv("METADATA_TARGET", DEFAULT_METADATA_TARGET),
        **optional,
    )

    # Load and validate the request file
    settings.load_urls()

    logger.info(
        f"Poller configured: interval={settings.interval_in_sec}s, "
        f"requests={list(settings.urls)}, "
        f"codec={settings.codec}, "
        f"metadata_target={settings.metadata_target or '<disabled>'}, "
        f"target={settings.target or '<top-level>'}"
    )

    return settings
