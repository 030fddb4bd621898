"""GenerationProvider abstract base class.

Defines the contract that every upstream adapter must implement.  The
orchestration core interacts exclusively with this interface: it never
knows which concrete vendor API is behind it.

Lifecycle of an image generation:
    1. ``submit(request)``: hand the prompt to the upstream; returns a
       task id (asynchronous) or the result location (synchronous).
    2. ``poll(task_id)``: one status sample of an asynchronous task.

Chat:
    - ``open_chat_stream(payload)``: start a streamed completion and
      return a ``ChatStream`` once the upstream has accepted it.
    - ``complete_chat(payload)``: one non-streamed completion.

Error contract:
    - non-success HTTP status → ``UpstreamRequestError``
    - network failure or timeout during ``poll`` → ``TransientPollError``
    - network failure after a stream has started → ``StreamInterruptedError``
    - an upstream-reported FAILED task is *returned* as a status, not raised
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

from ai_gateway.core.exceptions import TransientError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ai_gateway.core.config import GatewayConfig
    from ai_gateway.models.generation import GenerationRequest
    from ai_gateway.models.upstream import Submission, UpstreamTask


class ChatStream(abc.ABC):
    """An accepted, not yet consumed, streamed completion."""

    @abc.abstractmethod
    def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the response body in arrival order, unmodified.

        Raises:
            StreamInterruptedError: If the connection fails mid-stream.
        """

    @abc.abstractmethod
    async def aclose(self) -> None:
        """Release the underlying connection.  Idempotent."""


class GenerationProvider(abc.ABC):
    """Abstract base class for upstream generative-AI adapters.

    The constructor receives the ``GatewayConfig`` which carries the
    upstream URL, API key and per-call timeouts.

    Example usage::

        provider = get_provider("modelscope", config)
        submission = await provider.submit(request)
        task = await provider.poll(submission.task_id)
    """

    #: Registry name of the adapter.
    name: str = ""

    def __init__(self, config: GatewayConfig) -> None:
        self._config = config

    @property
    def config(self) -> GatewayConfig:
        """Return the gateway configuration (read-only)."""
        return self._config

    # ------------------------------------------------------------------
    # Abstract methods (every adapter implements these)
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def submit(self, request: GenerationRequest) -> Submission:
        """Submit an image-generation request.

        Args:
            request: A validated request; ``request.expanded_prompt`` is
                what the upstream receives.

        Returns:
            A ``Submission`` carrying either a task id or a result URL.

        Raises:
            UpstreamRequestError: On a non-success HTTP status or a
                network failure.
            UnrecognizedResultError: If the response carries neither.
        """

    @abc.abstractmethod
    async def poll(self, task_id: str, *, timeout: float | None = None) -> UpstreamTask:
        """Return one status sample of an asynchronous task.

        Args:
            task_id: The upstream task identifier.
            timeout: Network timeout for this call in seconds; defaults
                to the configured per-call poll timeout.

        Raises:
            TransientPollError: On a network failure or client-side timeout.
            UpstreamRequestError: On a non-success HTTP status.
        """

    @abc.abstractmethod
    async def open_chat_stream(self, payload: dict[str, Any]) -> ChatStream:
        """Start a streamed chat completion.

        Returns only after the upstream answered with a success status,
        so a failure here never leaves a half-written response.

        Raises:
            UpstreamRequestError: On a non-success HTTP status or a
                network failure before the first byte.
        """

    @abc.abstractmethod
    async def complete_chat(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Run one non-streamed chat completion and return the decoded body.

        Raises:
            UpstreamRequestError: On a non-success HTTP status or a
                network failure.
            UnrecognizedResultError: If the body is not a JSON object.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class StreamInterruptedError(TransientError):
    """The upstream connection failed after streaming had begun."""

    default_stage = "streaming_proxy"
    default_code = "STREAM_INTERRUPTED"
