"""ModelScope API-Inference adapter (OpenAI-compatible REST API).

Concrete ``GenerationProvider`` for ModelScope's OpenAI-compatible
endpoints.  Most image models answer ``/images/generations``
synchronously; ``Tongyi-MAI/Z-Image-Turbo`` only runs as a background
task, requested with ``X-ModelScope-Async-Mode: true`` and queried via
``GET /tasks/{task_id}``.

Every call opens its own ``httpx.AsyncClient`` inside an ``async with``
block, so a cancelled caller always releases the connection.

Configuration:
    ``GatewayConfig.upstream_url`` (e.g.
    ``https://api-inference.modelscope.cn/v1``) and
    ``GatewayConfig.api_key``.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from ai_gateway.core.constants import (
    ASYNC_IMAGE_MODEL,
    ASYNC_MODE_HEADER,
    TASK_TYPE_HEADER,
    TASK_TYPE_IMAGE_GENERATION,
)
from ai_gateway.core.exceptions import (
    TransientPollError,
    UnrecognizedResultError,
    UpstreamRequestError,
)
from ai_gateway.models.upstream import Submission, UpstreamTask
from ai_gateway.providers.base import ChatStream, GenerationProvider, StreamInterruptedError
from ai_gateway.utils.result_extractors import SUBMIT_RESULT_EXTRACTORS, extract_result_url

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ai_gateway.core.config import GatewayConfig
    from ai_gateway.models.generation import GenerationRequest

logger = logging.getLogger("ai_gateway.providers.modelscope")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CONNECT_TIMEOUT_SECONDS = 10.0

# Poll statuses that mean "the upstream is overloaded, ask again later".
_TRANSIENT_POLL_STATUSES = frozenset({429, 502, 503, 504})

# Upstream body excerpt length kept in log lines.
_LOG_BODY_CHARS = 300


class _HttpxChatStream(ChatStream):
    """``ChatStream`` over an ``httpx`` response opened with ``stream=True``."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._closed = False

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as exc:
            msg = f"Upstream stream interrupted: {exc}"
            raise StreamInterruptedError(msg) from exc

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


class ModelScopeAdapter(GenerationProvider):
    """ModelScope OpenAI-compatible adapter.

    Args:
        config: Gateway configuration (URL, key, timeouts).
        transport: Optional ``httpx`` transport; tests pass an
            ``httpx.MockTransport`` here.
    """

    name = "modelscope"

    def __init__(
        self,
        config: GatewayConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config)
        self._base_url = config.upstream_url.rstrip("/")
        self._transport = transport

    # ------------------------------------------------------------------
    # Image generation
    # ------------------------------------------------------------------

    async def submit(self, request: GenerationRequest) -> Submission:
        headers = self._headers()
        if request.model == ASYNC_IMAGE_MODEL:
            headers[ASYNC_MODE_HEADER] = "true"

        body = {
            "model": request.model,
            "prompt": request.expanded_prompt,
            "size": request.size,
            "n": 1,
        }

        logger.info(
            "Submitting image generation | model=%s | size=%s | async_mode=%s",
            request.model,
            request.size,
            ASYNC_MODE_HEADER in headers,
        )

        async with self._client(self._config.submit_timeout_s) as client:
            response = await self._send(
                client, "POST", f"{self._base_url}/images/generations", headers=headers, json=body
            )

        data = _decode_object(response, stage="submit")

        task_id = data.get("task_id")
        if task_id:
            logger.info("Upstream accepted async task | task_id=%s", task_id)
            return Submission(task_id=str(task_id), payload=data)

        url = extract_result_url(data, SUBMIT_RESULT_EXTRACTORS)
        if url:
            return Submission(result_url=url, payload=data)

        msg = f"Submit response carries neither task_id nor an image URL (keys: {sorted(data)})"
        raise UnrecognizedResultError(msg, stage="submit")

    async def poll(self, task_id: str, *, timeout: float | None = None) -> UpstreamTask:
        headers = self._headers()
        headers[TASK_TYPE_HEADER] = TASK_TYPE_IMAGE_GENERATION
        call_timeout = timeout if timeout is not None else self._config.poll_call_timeout_s

        try:
            async with self._client(call_timeout) as client:
                response = await client.get(f"{self._base_url}/tasks/{task_id}", headers=headers)
        except httpx.TimeoutException as exc:
            msg = f"Poll timed out after {call_timeout:.1f}s for task {task_id!r}"
            raise TransientPollError(msg) from exc
        except httpx.TransportError as exc:
            msg = f"Poll transport failure for task {task_id!r}: {exc}"
            raise TransientPollError(msg) from exc

        if response.status_code in _TRANSIENT_POLL_STATUSES:
            msg = f"Poll for task {task_id!r} returned HTTP {response.status_code}"
            raise TransientPollError(msg)
        if not response.is_success:
            raise UpstreamRequestError(response.status_code, response.text)

        return UpstreamTask.from_response(task_id, _decode_object(response, stage="poll"))

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def open_chat_stream(self, payload: dict[str, Any]) -> ChatStream:
        client = self._client(self._config.chat_timeout_s)
        request = client.build_request(
            "POST",
            f"{self._base_url}/chat/completions",
            headers=self._headers(),
            json=payload,
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            await client.aclose()
            raise UpstreamRequestError(504, message=f"Chat stream timed out: {exc}") from exc
        except httpx.TransportError as exc:
            await client.aclose()
            raise UpstreamRequestError(502, message=f"Chat stream transport failure: {exc}") from exc
        except BaseException:
            await client.aclose()
            raise

        if not response.is_success:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            finally:
                await response.aclose()
                await client.aclose()
            logger.warning(
                "Chat stream rejected | status=%d | body=%s",
                response.status_code,
                body[:_LOG_BODY_CHARS],
            )
            raise UpstreamRequestError(response.status_code, body)

        return _HttpxChatStream(client, response)

    async def complete_chat(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = {**payload, "stream": False}
        async with self._client(self._config.chat_timeout_s) as client:
            response = await self._send(
                client,
                "POST",
                f"{self._base_url}/chat/completions",
                headers=self._headers(),
                json=body,
            )
        return _decode_object(response, stage="complete_chat")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(timeout, _CONNECT_TIMEOUT_SECONDS)),
            transport=self._transport,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.api_key}",
            "Content-Type": "application/json",
        }

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, mapping transport failures and error statuses."""
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamRequestError(504, message=f"Upstream timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise UpstreamRequestError(502, message=f"Upstream unreachable: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "Upstream request failed | method=%s | url=%s | status=%d | body=%s",
                method,
                url,
                response.status_code,
                response.text[:_LOG_BODY_CHARS],
            )
            raise UpstreamRequestError(response.status_code, response.text)
        return response


def _decode_object(response: httpx.Response, *, stage: str) -> dict[str, Any]:
    """Decode a JSON object body or raise ``UnrecognizedResultError``."""
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        msg = f"{stage}: upstream body is not valid JSON"
        raise UnrecognizedResultError(msg, stage=stage) from exc
    if not isinstance(data, dict):
        msg = f"{stage}: upstream body must be a JSON object, got {type(data).__name__}"
        raise UnrecognizedResultError(msg, stage=stage)
    return data
