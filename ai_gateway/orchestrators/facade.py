"""Orchestration facade: the single entry point for the HTTP layer.

``AIOrchestrator`` wires the configured provider adapter, the streaming
proxy, the async task poller, the document context cache and the image
record store behind one object built from an explicit ``GatewayConfig``.

Image generation flow::

    validate → style-expand → submit ─┬─ task_id → AsyncTaskPoller → url
                                      └─ inline url ─────────────────→ url
                                                   │
                                   background: ImageRecord → store

The background write never affects the response.  Its failure is logged
and the task is forgotten once done; ``drain_background()`` awaits any
writes still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ai_gateway.core.constants import DEFAULT_CHAT_MODEL, DEFAULT_HISTORY_LIMIT
from ai_gateway.core.exceptions import (
    DocumentContextMissingError,
    UnrecognizedResultError,
    ValidationError,
)
from ai_gateway.models.generation import GenerationRequest, validate_prompt
from ai_gateway.models.records import ImageRecord
from ai_gateway.orchestrators.backoff import BackoffPolicy
from ai_gateway.orchestrators.document_context import DocumentContextCache
from ai_gateway.orchestrators.poller import AsyncTaskPoller
from ai_gateway.orchestrators.streaming import StreamingProxy
from ai_gateway.providers.factory import get_provider

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ai_gateway.activities.record_image import ImageRecordStore
    from ai_gateway.core.config import GatewayConfig
    from ai_gateway.orchestrators.poller import Clock
    from ai_gateway.providers.base import GenerationProvider

logger = logging.getLogger("ai_gateway.orchestrators.facade")

_DOCUMENT_SYSTEM_PROMPT = (
    "You are a careful document analyst. Answer the user's request using the "
    "document below. If the document does not contain the answer, say so."
)


def build_document_messages(file_name: str, content: str, prompt: str) -> list[dict[str, str]]:
    """Return the chat messages for a document-augmented question."""
    return [
        {
            "role": "system",
            "content": f"{_DOCUMENT_SYSTEM_PROMPT}\n\n--- {file_name} ---\n{content}\n--- end ---",
        },
        {"role": "user", "content": prompt},
    ]


def extract_completion_text(body: dict[str, Any]) -> str:
    """Return ``choices[0].message.content`` from a completion body.

    Raises:
        UnrecognizedResultError: If the path is missing or not a string.
    """
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        msg = f"Completion body has no choices[0].message.content (keys: {sorted(body)})"
        raise UnrecognizedResultError(msg, stage="document_analysis") from exc
    if not isinstance(content, str):
        msg = f"Completion content must be a string, got {type(content).__name__}"
        raise UnrecognizedResultError(msg, stage="document_analysis")
    return content


async def _persist(store: ImageRecordStore, record: ImageRecord) -> None:
    """Write *record* off the event loop; failures are logged, never raised."""
    try:
        await asyncio.to_thread(store.save, record)
    except Exception:
        logger.exception(
            "Image record write failed | user=%s | record_id=%s",
            record.user_id,
            record.record_id,
        )


class AIOrchestrator:
    """Facade over the upstream orchestration core.

    Args:
        config: Gateway configuration.
        provider: Upstream adapter; built from ``config.provider`` when omitted.
        cache: Document context cache; built from the config when omitted.
        image_store: Image record store; records are not persisted when omitted.
        clock: Poller time source; real time when omitted.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        provider: GenerationProvider | None = None,
        cache: DocumentContextCache | None = None,
        image_store: ImageRecordStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._provider = provider
        self._cache = cache or DocumentContextCache(
            ttl_seconds=config.document_ttl_s,
            max_chars=config.document_max_chars,
        )
        self._image_store = image_store
        self._clock = clock
        self._policy = BackoffPolicy(
            initial=config.poll_initial_interval_s,
            multiplier=config.poll_backoff_multiplier,
            maximum=config.poll_max_interval_s,
            failure_threshold=config.poll_failure_threshold,
        )
        self._background: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def document_cache(self) -> DocumentContextCache:
        return self._cache

    @property
    def provider(self) -> GenerationProvider:
        """The upstream adapter, created on first use.

        Raises:
            ConfigurationError: If the upstream is not configured or the
                provider name is unknown.
        """
        self._config.require_upstream()
        if self._provider is None:
            self._provider = get_provider(self._config.provider, self._config)
        return self._provider

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def complete_chat(self, payload: dict[str, Any]) -> AsyncIterator[bytes]:
        """Open a streamed chat completion and return the byte relay.

        Raises:
            ConfigurationError: If the upstream is not configured.
            ValidationError: If ``messages`` is missing or empty.
            UpstreamRequestError: If the upstream rejects the request.
        """
        provider = self.provider
        messages = payload.get("messages")
        if not isinstance(messages, list) or not messages:
            msg = "messages must be a non-empty list"
            raise ValidationError(msg, stage="chat", code="MESSAGES_REQUIRED")
        return await StreamingProxy(provider).open(payload)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def generate_image(self, request: GenerationRequest, *, user_id: str) -> dict[str, str]:
        """Generate one image and return ``{"url": ...}``.

        Raises:
            ConfigurationError: If the upstream is not configured.
            UpstreamRequestError: If the submit call fails.
            GenerationFailedError: If the upstream reports the task failed.
            GenerationTimeoutError: If the deadline or attempt cap is hit.
            UnrecognizedResultError: If no result location can be found.
        """
        provider = self.provider
        logger.info(
            "Image generation requested | user=%s | model=%s | size=%s | style=%s | prompt_chars=%d",
            user_id,
            request.model,
            request.size,
            request.style,
            len(request.prompt),
        )

        submission = await provider.submit(request)
        if submission.task_id:
            poller = AsyncTaskPoller(
                provider,
                submission.task_id,
                policy=self._policy,
                timeout_s=self._config.poll_timeout_s,
                max_attempts=self._config.poll_max_attempts,
                call_timeout_s=self._config.poll_call_timeout_s,
                clock=self._clock,
            )
            outcome = await poller.run()
            url = outcome.raise_for_state()
        elif submission.result_url:
            url = submission.result_url
        else:
            msg = "Submit returned neither a task id nor a result location"
            raise UnrecognizedResultError(msg, stage="submit")

        self._schedule_record(
            ImageRecord(
                user_id=user_id,
                prompt=request.prompt,
                model=request.model,
                size=request.size,
                style=request.style,
                image_url=url,
            )
        )
        return {"url": url}

    async def list_images(self, user_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict[str, object]]:
        """Return the user's image records, newest first, as JSON-ready dicts."""
        if self._image_store is None:
            return []
        records = await asyncio.to_thread(self._image_store.list_for_user, user_id, limit=limit)
        return [record.to_dict() for record in records]

    def _schedule_record(self, record: ImageRecord) -> None:
        if self._image_store is None:
            return
        task = asyncio.create_task(_persist(self._image_store, record))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain_background(self) -> None:
        """Wait for every scheduled record write to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def store_document(self, session_key: str, file_name: str, content: str) -> dict[str, object]:
        """Cache decoded document text for *session_key*.

        Raises:
            ValidationError: If the content is empty or not text.
        """
        if not isinstance(content, str) or not content.strip():
            msg = "Document content must be non-empty text"
            raise ValidationError(msg, stage="document_context", code="DOCUMENT_EMPTY")
        name = file_name.strip() if isinstance(file_name, str) and file_name.strip() else "document"
        entry = self._cache.put(session_key, name, content)
        return {
            "fileName": entry.file_name,
            "characters": len(entry.content),
            "truncated": entry.truncated,
            "expiresInSeconds": int(self._cache.ttl_seconds),
        }

    async def complete_with_document(
        self,
        session_key: str,
        prompt: str,
        *,
        model: str | None = None,
    ) -> dict[str, str]:
        """Answer *prompt* against the session's cached document.

        The document is consumed only by a successful call; after a failure
        it stays cached (with its original expiry) for a retry.

        Raises:
            ConfigurationError: If the upstream is not configured.
            ModelValidationError: If the prompt is invalid.
            DocumentContextMissingError: If no fresh document is cached.
            UpstreamRequestError: If the completion call fails.
            UnrecognizedResultError: If the completion has no answer text.
        """
        provider = self.provider
        question = validate_prompt(prompt, model="DocumentAnalysis")

        entry = self._cache.take_if_fresh(session_key)
        if entry is None:
            msg = "No document context for this session (missing or expired); please re-upload"
            raise DocumentContextMissingError(msg)

        logger.info(
            "Document analysis requested | session=%s | file=%s | document_chars=%d | prompt_chars=%d",
            session_key,
            entry.file_name,
            len(entry.content),
            len(question),
        )

        try:
            body = await provider.complete_chat(
                {
                    "model": model or DEFAULT_CHAT_MODEL,
                    "messages": build_document_messages(entry.file_name, entry.content, question),
                }
            )
            analysis = extract_completion_text(body)
        except Exception:
            restored = self._cache.restore(entry)
            logger.warning(
                "Document analysis failed | session=%s | file=%s | context_restored=%s",
                session_key,
                entry.file_name,
                restored,
            )
            raise
        return {"analysis": analysis, "documentFileName": entry.file_name}
