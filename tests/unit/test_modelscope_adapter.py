"""Tests for the ModelScope adapter wire protocol.

Every upstream call is served by ``httpx.MockTransport``; no network.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from ai_gateway.core.config import GatewayConfig
from ai_gateway.core.constants import ASYNC_IMAGE_MODEL
from ai_gateway.core.exceptions import (
    TransientPollError,
    UnrecognizedResultError,
    UpstreamRequestError,
)
from ai_gateway.models.generation import GenerationRequest
from ai_gateway.models.upstream import TaskStatus
from ai_gateway.providers.modelscope import ModelScopeAdapter

BASE = "https://upstream.test/v1"


def _adapter(handler) -> ModelScopeAdapter:  # noqa: ANN001
    config = GatewayConfig(upstream_url=BASE, api_key="secret")
    return ModelScopeAdapter(config, transport=httpx.MockTransport(handler))


class TestSubmit:
    """POST /images/generations."""

    def test_sync_model_returns_inline_url(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"data": [{"url": "https://img/1.png"}]})

        request = GenerationRequest(prompt="a cat", style="cyberpunk")
        submission = asyncio.run(_adapter(handler).submit(request))

        assert submission.result_url == "https://img/1.png"
        assert not submission.is_async
        sent = captured[0]
        assert str(sent.url) == f"{BASE}/images/generations"
        assert sent.headers["Authorization"] == "Bearer secret"
        assert "X-ModelScope-Async-Mode" not in sent.headers
        body = json.loads(sent.content)
        assert body["model"] == "Kwai-Kolors/Kolors"
        assert body["size"] == "1024x1024"
        assert body["n"] == 1
        assert body["prompt"] == request.expanded_prompt
        assert body["prompt"].startswith("a cat, cyberpunk style")

    def test_async_model_sends_async_header(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"task_id": "abc"})

        submission = asyncio.run(
            _adapter(handler).submit(GenerationRequest(prompt="x", model=ASYNC_IMAGE_MODEL))
        )
        assert submission.task_id == "abc"
        assert submission.is_async
        assert captured[0].headers["X-ModelScope-Async-Mode"] == "true"

    def test_submit_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="prompt rejected")

        with pytest.raises(UpstreamRequestError) as excinfo:
            asyncio.run(_adapter(handler).submit(GenerationRequest(prompt="x")))
        assert excinfo.value.status_code == 400
        assert excinfo.value.body == "prompt rejected"

    def test_submit_timeout_maps_to_504(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamRequestError) as excinfo:
            asyncio.run(_adapter(handler).submit(GenerationRequest(prompt="x")))
        assert excinfo.value.status_code == 504

    def test_submit_without_task_or_url(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"request_id": "r"})

        with pytest.raises(UnrecognizedResultError):
            asyncio.run(_adapter(handler).submit(GenerationRequest(prompt="x")))

    def test_submit_non_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(UnrecognizedResultError):
            asyncio.run(_adapter(handler).submit(GenerationRequest(prompt="x")))


class TestPoll:
    """GET /tasks/{id}."""

    def test_poll_parses_status_and_header(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200, json={"task_status": "SUCCEED", "output_images": ["https://img/2.png"]}
            )

        task = asyncio.run(_adapter(handler).poll("abc"))
        assert task.status is TaskStatus.SUCCEEDED
        assert task.raw_status == "SUCCEED"
        assert task.payload["output_images"] == ["https://img/2.png"]
        assert str(captured[0].url) == f"{BASE}/tasks/abc"
        assert captured[0].headers["X-ModelScope-Task-Type"] == "image_generation"

    @pytest.mark.parametrize("status", [429, 502, 503, 504])
    def test_overload_statuses_are_transient(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status)

        with pytest.raises(TransientPollError):
            asyncio.run(_adapter(handler).poll("abc"))

    def test_timeout_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransientPollError) as excinfo:
            asyncio.run(_adapter(handler).poll("abc", timeout=2.0))
        assert excinfo.value.retryable is True

    def test_connect_error_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientPollError):
            asyncio.run(_adapter(handler).poll("abc"))

    def test_client_error_is_permanent(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="no such task")

        with pytest.raises(UpstreamRequestError) as excinfo:
            asyncio.run(_adapter(handler).poll("abc"))
        assert excinfo.value.status_code == 404


class TestCompleteChat:
    """Non-streamed POST /chat/completions."""

    def test_forces_stream_false(self) -> None:
        bodies: list[dict[str, object]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        result = asyncio.run(
            _adapter(handler).complete_chat({"model": "m", "messages": [], "stream": True})
        )
        assert result["choices"][0]["message"]["content"] == "ok"
        assert bodies[0]["stream"] is False

    def test_non_object_body_rejected(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["not", "an", "object"])

        with pytest.raises(UnrecognizedResultError):
            asyncio.run(_adapter(handler).complete_chat({"messages": []}))


class TestBaseUrl:
    def test_trailing_slash_stripped(self) -> None:
        config = GatewayConfig(upstream_url=f"{BASE}/", api_key="k")
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"task_status": "RUNNING"})

        adapter = ModelScopeAdapter(config, transport=httpx.MockTransport(handler))
        asyncio.run(adapter.poll("t"))
        assert seen == [f"{BASE}/tasks/t"]


class TestChatStreamClose:
    def test_aclose_is_idempotent(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"data: x\n\n")

        async def scenario() -> None:
            stream = await _adapter(handler).open_chat_stream({"messages": []})
            await stream.aclose()
            await stream.aclose()

        asyncio.run(scenario())
