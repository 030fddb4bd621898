"""Gateway configuration loaded from environment variables.

All values have sensible defaults; Azure Functions app settings (or
``local.settings.json`` for local dev) are the source of truth.  The
loaded ``GatewayConfig`` is passed explicitly into the orchestration
facade; core logic never reads the environment itself.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric value
    is out of its valid range.  Missing upstream URL/key are *not*
    rejected here: they surface as ``ConfigurationError`` on the first
    call into the core, so the host still starts and reports a 500.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from ai_gateway.core import constants
from ai_gateway.core.exceptions import ConfigurationError


class ConfigValidationError(ConfigurationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class GatewayConfig:
    """Immutable gateway configuration.

    Attributes:
        upstream_url: Base URL of the OpenAI-compatible upstream API.
        api_key: Bearer token for the upstream API.
        provider: Adapter name (see ``providers.factory``).
        poll_initial_interval_s: First delay between poll calls.
        poll_backoff_multiplier: Growth factor applied after each poll.
        poll_max_interval_s: Upper bound for the poll delay.
        poll_failure_threshold: Consecutive poll failures that switch the
            backoff to its degraded path.
        poll_timeout_s: Overall deadline for one poll run.
        poll_max_attempts: Maximum poll calls for one poll run.
        poll_call_timeout_s: Network timeout of a single poll call.
        submit_timeout_s: Network timeout of the submit call.
        chat_timeout_s: Network timeout of chat completion calls.
        document_ttl_s: Lifetime of a cached document context.
        document_max_chars: Length bound for cached document text.
        image_records_container: Blob container for image records.
    """

    upstream_url: str = ""
    api_key: str = ""
    provider: str = "modelscope"
    poll_initial_interval_s: float = constants.DEFAULT_POLL_INITIAL_INTERVAL_SECONDS
    poll_backoff_multiplier: float = constants.DEFAULT_POLL_BACKOFF_MULTIPLIER
    poll_max_interval_s: float = constants.DEFAULT_POLL_MAX_INTERVAL_SECONDS
    poll_failure_threshold: int = constants.DEFAULT_POLL_FAILURE_THRESHOLD
    poll_timeout_s: float = constants.DEFAULT_POLL_TIMEOUT_SECONDS
    poll_max_attempts: int = constants.DEFAULT_POLL_MAX_ATTEMPTS
    poll_call_timeout_s: float = constants.DEFAULT_POLL_CALL_TIMEOUT_SECONDS
    submit_timeout_s: float = constants.DEFAULT_SUBMIT_TIMEOUT_SECONDS
    chat_timeout_s: float = constants.DEFAULT_CHAT_TIMEOUT_SECONDS
    document_ttl_s: float = constants.DEFAULT_DOCUMENT_CONTEXT_TTL_SECONDS
    document_max_chars: int = constants.DEFAULT_DOCUMENT_MAX_CHARS
    image_records_container: str = constants.DEFAULT_IMAGE_RECORDS_CONTAINER

    @property
    def has_upstream(self) -> bool:
        """Return ``True`` when both the upstream URL and API key are set."""
        return bool(self.upstream_url.strip() and self.api_key.strip())

    def require_upstream(self) -> None:
        """Raise ``ConfigurationError`` unless the upstream is configured."""
        missing = [
            name
            for name, value in (
                ("AI_UPSTREAM_URL", self.upstream_url),
                ("AI_SERVICE_API_KEY", self.api_key),
            )
            if not value.strip()
        ]
        if missing:
            msg = f"Upstream configuration missing: {', '.join(missing)}"
            raise ConfigurationError(msg)

    @classmethod
    def from_env(cls) -> GatewayConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range or
                a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``POLL_MAX_ATTEMPTS=abc``).
        """
        config = cls(
            upstream_url=os.getenv("AI_UPSTREAM_URL", "").rstrip("/"),
            api_key=os.getenv("AI_SERVICE_API_KEY", ""),
            provider=os.getenv("AI_PROVIDER", "modelscope"),
            poll_initial_interval_s=float(os.getenv("POLL_INITIAL_INTERVAL_SECONDS", "1.0")),
            poll_backoff_multiplier=float(os.getenv("POLL_BACKOFF_MULTIPLIER", "1.2")),
            poll_max_interval_s=float(os.getenv("POLL_MAX_INTERVAL_SECONDS", "5.0")),
            poll_failure_threshold=int(os.getenv("POLL_FAILURE_THRESHOLD", "3")),
            poll_timeout_s=float(os.getenv("POLL_TIMEOUT_SECONDS", "120")),
            poll_max_attempts=int(os.getenv("POLL_MAX_ATTEMPTS", "60")),
            poll_call_timeout_s=float(os.getenv("POLL_CALL_TIMEOUT_SECONDS", "10")),
            submit_timeout_s=float(os.getenv("SUBMIT_TIMEOUT_SECONDS", "60")),
            chat_timeout_s=float(os.getenv("CHAT_TIMEOUT_SECONDS", "120")),
            document_ttl_s=float(os.getenv("DOCUMENT_CONTEXT_TTL_SECONDS", "1800")),
            document_max_chars=int(os.getenv("DOCUMENT_MAX_CHARS", "15000")),
            image_records_container=os.getenv("IMAGE_RECORDS_CONTAINER", "image-records"),
        )
        _validate(config)
        return config


def _validate(config: GatewayConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    positive_seconds = (
        ("POLL_INITIAL_INTERVAL_SECONDS", config.poll_initial_interval_s),
        ("POLL_MAX_INTERVAL_SECONDS", config.poll_max_interval_s),
        ("POLL_TIMEOUT_SECONDS", config.poll_timeout_s),
        ("POLL_CALL_TIMEOUT_SECONDS", config.poll_call_timeout_s),
        ("SUBMIT_TIMEOUT_SECONDS", config.submit_timeout_s),
        ("CHAT_TIMEOUT_SECONDS", config.chat_timeout_s),
        ("DOCUMENT_CONTEXT_TTL_SECONDS", config.document_ttl_s),
    )
    for key, value in positive_seconds:
        if value <= 0:
            raise ConfigValidationError(key, value, "must be > 0 (seconds)")

    if config.poll_max_interval_s < config.poll_initial_interval_s:
        raise ConfigValidationError(
            "POLL_MAX_INTERVAL_SECONDS",
            config.poll_max_interval_s,
            "must be >= POLL_INITIAL_INTERVAL_SECONDS",
        )

    if config.poll_backoff_multiplier < 1.0:
        raise ConfigValidationError(
            "POLL_BACKOFF_MULTIPLIER",
            config.poll_backoff_multiplier,
            "must be >= 1.0",
        )

    if config.poll_failure_threshold < 1:
        raise ConfigValidationError(
            "POLL_FAILURE_THRESHOLD",
            config.poll_failure_threshold,
            "must be >= 1",
        )

    if config.poll_max_attempts < 1:
        raise ConfigValidationError(
            "POLL_MAX_ATTEMPTS",
            config.poll_max_attempts,
            "must be >= 1",
        )

    if config.document_max_chars <= len(constants.DOCUMENT_TRUNCATION_MARKER):
        raise ConfigValidationError(
            "DOCUMENT_MAX_CHARS",
            config.document_max_chars,
            f"must be > {len(constants.DOCUMENT_TRUNCATION_MARKER)} (characters)",
        )

    if not config.provider:
        raise ConfigValidationError("AI_PROVIDER", config.provider, "must not be empty")

    if not config.image_records_container:
        raise ConfigValidationError(
            "IMAGE_RECORDS_CONTAINER",
            config.image_records_container,
            "must not be empty",
        )
