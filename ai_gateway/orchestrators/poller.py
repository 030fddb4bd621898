"""Async task poller: drive an upstream task to a terminal state.

State machine::

    STARTED ──► POLLING ──► SUCCEEDED
                       ├──► FAILED
                       └──► TIMED_OUT

A poller is created right after a submit call returned a task id
(STARTED) and entering ``run()`` moves it to POLLING.  Each loop
iteration sleeps, checks the overall deadline, then issues exactly one
poll call:

- ``TransientPollError``      → count the failure, widen the delay
  (degraded backoff once the failure threshold is reached)
- PENDING / RUNNING / UNKNOWN → reset the failure count, normal backoff
- SUCCEEDED                   → extract the result URL (ordered
  extractors); none found → FAILED with ``UnrecognizedResultError``
- FAILED                      → FAILED with ``GenerationFailedError``
- any other ``GatewayError``  → FAILED with that error

The run always ends within ``timeout_s`` of wall-clock time (sleeps and
per-call network timeouts are clamped to the remaining budget) and after
at most ``max_attempts`` poll calls.

Unknown statuses are polled again rather than rejected, so a task stuck
in a status this gateway has never seen ends in TIMED_OUT.

The clock is injected (``Clock``) so tests run on virtual time.
Cancelling the task that awaits ``run()`` interrupts the current sleep
or poll call; the adapter's ``async with`` client releases the socket.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from ai_gateway.core.constants import (
    DEFAULT_POLL_CALL_TIMEOUT_SECONDS,
    DEFAULT_POLL_MAX_ATTEMPTS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
)
from ai_gateway.core.exceptions import (
    GatewayError,
    GenerationFailedError,
    GenerationTimeoutError,
    TransientPollError,
    UnrecognizedResultError,
)
from ai_gateway.models.upstream import TaskStatus
from ai_gateway.orchestrators.backoff import DEFAULT_BACKOFF, BackoffPolicy, next_interval
from ai_gateway.utils.result_extractors import TASK_RESULT_EXTRACTORS, extract_result_url

if TYPE_CHECKING:
    from ai_gateway.providers.base import GenerationProvider

logger = logging.getLogger("ai_gateway.orchestrators.poller")

# Upstream failure detail kept in error messages.
_DETAIL_CHARS = 500


class Clock(Protocol):
    """Time source used by the poller."""

    def now(self) -> float:
        """Monotonic time in seconds."""

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for *seconds*."""


class SystemClock:
    """Real time: ``time.monotonic`` and ``asyncio.sleep``."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class PollState(enum.Enum):
    """Lifecycle state of one poll run."""

    STARTED = "started"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (PollState.SUCCEEDED, PollState.FAILED, PollState.TIMED_OUT)


@dataclass(frozen=True, slots=True)
class PollAttempt:
    """One iteration of the poll loop; recomputed every time, never stored.

    Attributes:
        sequence_number: Real status samples taken so far, this one included.
        interval_used: Delay slept before this call, in seconds.
        consecutive_failures: Transient failures since the last good sample.
        elapsed_since_start: Seconds since the run entered POLLING.
    """

    sequence_number: int
    interval_used: float
    consecutive_failures: int
    elapsed_since_start: float


@dataclass(frozen=True, slots=True)
class PollOutcome:
    """Terminal result of a poll run.

    Attributes:
        state: SUCCEEDED, FAILED or TIMED_OUT.
        task_id: The polled task.
        result_url: Result location (SUCCEEDED only).
        poll_calls: Poll calls issued, transient failures included.
        attempts: Real status samples received.
        elapsed_seconds: Time spent in POLLING.
        error: Typed error for FAILED and TIMED_OUT.
    """

    state: PollState
    task_id: str
    result_url: str | None = None
    poll_calls: int = 0
    attempts: int = 0
    elapsed_seconds: float = 0.0
    error: GatewayError | None = field(default=None)

    @property
    def succeeded(self) -> bool:
        return self.state is PollState.SUCCEEDED

    def raise_for_state(self) -> str:
        """Return the result URL, or raise the error that ended the run."""
        if self.state is PollState.SUCCEEDED and self.result_url:
            return self.result_url
        if self.error is not None:
            raise self.error
        msg = f"Task {self.task_id!r} ended in state {self.state.value} without a result"
        raise GenerationFailedError(msg)


class AsyncTaskPoller:
    """Poll one upstream task until it reaches a terminal state.

    A poller instance owns its task and is used for exactly one run.

    Args:
        provider: Adapter used for the poll calls.
        task_id: Upstream task identifier returned by ``submit``.
        policy: Backoff parameters.
        timeout_s: Overall deadline for the run.
        max_attempts: Maximum number of poll calls.
        call_timeout_s: Network timeout of a single poll call.
        clock: Time source; ``SystemClock`` by default.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        task_id: str,
        *,
        policy: BackoffPolicy = DEFAULT_BACKOFF,
        timeout_s: float = DEFAULT_POLL_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
        call_timeout_s: float = DEFAULT_POLL_CALL_TIMEOUT_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        if not task_id:
            msg = "AsyncTaskPoller requires a task_id"
            raise ValueError(msg)
        self._provider = provider
        self._task_id = task_id
        self._policy = policy
        self._timeout_s = timeout_s
        self._max_attempts = max_attempts
        self._call_timeout_s = call_timeout_s
        self._clock = clock or SystemClock()
        self._state = PollState.STARTED

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def task_id(self) -> str:
        return self._task_id

    async def run(self) -> PollOutcome:
        """Poll until SUCCEEDED, FAILED or TIMED_OUT and return the outcome.

        Raises:
            RuntimeError: If the poller has already been run.
        """
        if self._state is not PollState.STARTED:
            msg = f"Poller for task {self._task_id!r} already ran (state={self._state.value})"
            raise RuntimeError(msg)
        self._state = PollState.POLLING

        interval = self._policy.initial
        consecutive_failures = 0
        attempt = 0
        poll_calls = 0
        start = self._clock.now()

        logger.info(
            "Polling started | task_id=%s | timeout=%.0fs | max_attempts=%d",
            self._task_id,
            self._timeout_s,
            self._max_attempts,
        )

        while poll_calls < self._max_attempts:
            remaining = self._timeout_s - (self._clock.now() - start)
            await self._clock.sleep(max(0.0, min(interval, remaining)))

            elapsed = self._clock.now() - start
            remaining = self._timeout_s - elapsed
            if remaining <= 0:
                break

            poll_calls += 1
            sample = PollAttempt(
                sequence_number=attempt + 1,
                interval_used=interval,
                consecutive_failures=consecutive_failures,
                elapsed_since_start=elapsed,
            )

            try:
                task = await self._provider.poll(
                    self._task_id, timeout=min(self._call_timeout_s, remaining)
                )
            except TransientPollError as exc:
                consecutive_failures += 1
                interval = next_interval(interval, consecutive_failures, self._policy)
                logger.warning(
                    "Poll failed (transient) | task_id=%s | call=%d | failures=%d | "
                    "degraded=%s | next_interval=%.2fs | error=%s",
                    self._task_id,
                    poll_calls,
                    consecutive_failures,
                    self._policy.is_degraded(consecutive_failures),
                    interval,
                    exc,
                )
                continue
            except GatewayError as exc:
                return self._finish(
                    PollState.FAILED, start, poll_calls, attempt, error=exc
                )

            attempt = sample.sequence_number
            consecutive_failures = 0

            logger.info(
                "Poll result | task_id=%s | attempt=%d | status=%s | elapsed=%.1fs",
                self._task_id,
                attempt,
                task.raw_status or task.status.value,
                sample.elapsed_since_start,
            )

            if task.status is TaskStatus.SUCCEEDED:
                url = extract_result_url(task.payload, TASK_RESULT_EXTRACTORS)
                if url is None:
                    msg = (
                        f"Task {self._task_id!r} succeeded but no result location was "
                        f"recognised (keys: {sorted(task.payload)})"
                    )
                    return self._finish(
                        PollState.FAILED,
                        start,
                        poll_calls,
                        attempt,
                        error=UnrecognizedResultError(msg, stage="poller"),
                    )
                return self._finish(PollState.SUCCEEDED, start, poll_calls, attempt, result_url=url)

            if task.status is TaskStatus.FAILED:
                detail = str(task.payload.get("errors") or task.payload)[:_DETAIL_CHARS]
                msg = f"Upstream reported task {self._task_id!r} as failed: {detail}"
                return self._finish(
                    PollState.FAILED, start, poll_calls, attempt, error=GenerationFailedError(msg)
                )

            interval = next_interval(interval, 0, self._policy)

        elapsed = self._clock.now() - start
        msg = (
            f"Generation timed out after {elapsed:.1f}s "
            f"({poll_calls} poll calls, limit {self._max_attempts} calls / {self._timeout_s:.0f}s)"
        )
        return self._finish(
            PollState.TIMED_OUT, start, poll_calls, attempt, error=GenerationTimeoutError(msg)
        )

    def _finish(
        self,
        state: PollState,
        start: float,
        poll_calls: int,
        attempts: int,
        *,
        result_url: str | None = None,
        error: GatewayError | None = None,
    ) -> PollOutcome:
        self._state = state
        outcome = PollOutcome(
            state=state,
            task_id=self._task_id,
            result_url=result_url,
            poll_calls=poll_calls,
            attempts=attempts,
            elapsed_seconds=self._clock.now() - start,
            error=error,
        )
        log = logger.info if state is PollState.SUCCEEDED else logger.warning
        log(
            "Polling finished | task_id=%s | state=%s | poll_calls=%d | attempts=%d | "
            "elapsed=%.1fs | error=%s",
            self._task_id,
            state.value,
            poll_calls,
            attempts,
            outcome.elapsed_seconds,
            error.code if error else "",
        )
        return outcome
