"""Unified gateway exception taxonomy.

Provides a shared base exception hierarchy for the orchestration core,
the provider adapters and the HTTP layer.  Every domain exception
inherits from ``GatewayError`` and carries structured context fields
that drive retry decisions, HTTP status mapping and operator
diagnostics.

Taxonomy categories
-------------------
- ``ValidationError``: input/contract violations, never retryable.
- ``TransientError``: temporary failures (network, deadline), retryable.
- ``PermanentError``: unrecoverable failures, not retryable.
- ``ContractError``: upstream schema drift, never retryable.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for HTTP responses and logging.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base exception for all gateway-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Component where the error occurred
            (e.g. ``"poller"``, ``"streaming_proxy"``).
        code: Machine-readable error code (e.g. ``"GENERATION_TIMED_OUT"``).
        retryable: Whether retrying the request later is sensible.
        correlation_id: Request correlation identifier.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""
    #: HTTP status used when the error reaches the HTTP boundary.
    http_status: int = 500

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(GatewayError):
    """Input or domain-model validation failure. Never retryable."""

    http_status = 400

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(GatewayError):
    """Temporary failure that may succeed on retry."""

    http_status = 503

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(GatewayError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(GatewayError):
    """Payload or schema drift between the gateway and a peer. Never retryable."""

    http_status = 502

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Concrete gateway errors
# ---------------------------------------------------------------------------


class ConfigurationError(PermanentError):
    """Upstream URL or API key is missing, or a setting is unusable."""

    default_stage = "config"
    default_code = "CONFIGURATION_MISSING"
    http_status = 500


class AuthenticationRequiredError(ValidationError):
    """The request carries no authenticated principal."""

    default_stage = "ingress"
    default_code = "AUTHENTICATION_REQUIRED"
    http_status = 401


class TransientPollError(TransientError):
    """A single poll call failed at the network level.

    Counted and folded into backoff decisions by the poller; never
    surfaced to callers directly.
    """

    default_stage = "poll"
    default_code = "POLL_TRANSIENT_FAILURE"


class UpstreamRequestError(PermanentError):
    """The upstream service answered with a non-success HTTP status.

    Attributes:
        status_code: Upstream HTTP status (502/504 when no response arrived).
        body: Raw upstream response body, as text.
    """

    default_stage = "upstream"
    default_code = "UPSTREAM_REQUEST_FAILED"

    def __init__(self, status_code: int, body: str = "", message: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Upstream request failed with HTTP {status_code}")

    @property
    def http_status(self) -> int:  # type: ignore[override]
        return self.status_code if 400 <= self.status_code <= 599 else 502

    def to_error_dict(self) -> dict[str, object]:
        error = super().to_error_dict()
        error["upstream_status"] = self.status_code
        error["upstream_body"] = self.body
        return error


class GenerationFailedError(PermanentError):
    """The upstream service explicitly reported the task as failed."""

    default_stage = "poller"
    default_code = "GENERATION_FAILED"
    http_status = 502


class GenerationTimeoutError(TransientError):
    """The overall deadline or the attempt cap was reached."""

    default_stage = "poller"
    default_code = "GENERATION_TIMED_OUT"
    http_status = 504


class UnrecognizedResultError(ContractError):
    """Success was reported but no result location could be found."""

    default_stage = "result_extraction"
    default_code = "RESULT_FORMAT_UNRECOGNIZED"


class DocumentContextMissingError(ValidationError):
    """No fresh document context exists for the session; re-upload needed."""

    default_stage = "document_context"
    default_code = "DOCUMENT_CONTEXT_MISSING"
    http_status = 409
