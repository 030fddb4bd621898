"""Shared pytest fixtures for the AI Gateway test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

import pytest

from ai_gateway.core.config import GatewayConfig
from ai_gateway.models.upstream import Submission, TaskStatus, UpstreamTask
from ai_gateway.providers.base import ChatStream, GenerationProvider

# ---------------------------------------------------------------------------
# Virtual time
# ---------------------------------------------------------------------------


class VirtualClock:
    """Clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.time = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.time

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.time += seconds

    def advance(self, seconds: float) -> None:
        self.time += seconds


# ---------------------------------------------------------------------------
# Scripted provider
# ---------------------------------------------------------------------------

# A poll step is an UpstreamTask to return, an exception to raise, or a
# callable producing either.
PollStep = UpstreamTask | BaseException | Callable[[], UpstreamTask]


def running(task_id: str = "t1") -> UpstreamTask:
    return UpstreamTask(task_id=task_id, status=TaskStatus.RUNNING, raw_status="RUNNING")


def succeeded(url: str, task_id: str = "t1") -> UpstreamTask:
    return UpstreamTask(
        task_id=task_id,
        status=TaskStatus.SUCCEEDED,
        raw_status="SUCCEED",
        payload={"task_status": "SUCCEED", "output_images": [url]},
    )


def failed(detail: str = "boom", task_id: str = "t1") -> UpstreamTask:
    return UpstreamTask(
        task_id=task_id,
        status=TaskStatus.FAILED,
        raw_status="FAILED",
        payload={"task_status": "FAILED", "errors": {"message": detail}},
    )


class ListChatStream(ChatStream):
    """``ChatStream`` over a fixed list of chunks, optionally failing after them."""

    def __init__(self, chunks: Iterable[bytes], error: BaseException | None = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.closed = 0

    async def aiter_bytes(self):  # type: ignore[override]
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed += 1


class ScriptedProvider(GenerationProvider):
    """In-memory provider driven by scripted responses.

    ``poll_script`` is consumed one step per poll call; once exhausted
    the last step repeats.
    """

    name = "scripted"

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        submission: Submission | BaseException | None = None,
        poll_script: list[PollStep] | None = None,
        chat_stream: ChatStream | BaseException | None = None,
        completion: dict[str, Any] | BaseException | None = None,
        clock: VirtualClock | None = None,
        poll_cost: float = 0.0,
    ) -> None:
        super().__init__(config or GatewayConfig(upstream_url="https://upstream.test/v1", api_key="k"))
        self.submission = submission or Submission(task_id="t1")
        self.poll_script = poll_script or [running()]
        self.chat_stream = chat_stream
        self.completion = completion
        self.clock = clock
        self.poll_cost = poll_cost
        self.submitted: list[Any] = []
        self.poll_calls: list[tuple[str, float | None]] = []
        self.chat_payloads: list[dict[str, Any]] = []

    async def submit(self, request):  # type: ignore[override]
        self.submitted.append(request)
        if isinstance(self.submission, BaseException):
            raise self.submission
        return self.submission

    async def poll(self, task_id, *, timeout=None):  # type: ignore[override]
        self.poll_calls.append((task_id, timeout))
        if self.clock is not None and self.poll_cost:
            self.clock.advance(self.poll_cost)
        index = min(len(self.poll_calls), len(self.poll_script)) - 1
        step = self.poll_script[index]
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step()
        return step

    async def open_chat_stream(self, payload):  # type: ignore[override]
        self.chat_payloads.append(payload)
        if isinstance(self.chat_stream, BaseException):
            raise self.chat_stream
        return self.chat_stream or ListChatStream([])

    async def complete_chat(self, payload):  # type: ignore[override]
        self.chat_payloads.append(payload)
        if isinstance(self.completion, BaseException):
            raise self.completion
        return self.completion or {}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> VirtualClock:
    """A virtual clock starting at t=0."""
    return VirtualClock()


@pytest.fixture()
def config() -> GatewayConfig:
    """A configuration with the upstream set and default poll settings."""
    return GatewayConfig(upstream_url="https://upstream.test/v1", api_key="test-key")
