"""Azure Functions entry point: AI Gateway.

This module registers the HTTP-triggered functions using the Python v2
programming model.  Request and response types come from the FastAPI
HTTP streaming extension so the chat route can relay the upstream event
stream as it arrives.

All business logic lives in the ai_gateway package. This file is purely
the wiring layer between the HTTP bindings and application code.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import azure.functions as func
from azurefunctions.extensions.http.fastapi import JSONResponse, Request, StreamingResponse

from ai_gateway.activities.record_image import BlobImageRecordStore
from ai_gateway.core.config import GatewayConfig
from ai_gateway.core.constants import DEFAULT_HISTORY_LIMIT
from ai_gateway.core.exceptions import ConfigurationError, GatewayError, ValidationError
from ai_gateway.core.ingress import (
    build_error_body,
    get_blob_service_client,
    parse_json_object,
    resolve_principal_id,
    resolve_session_key,
)
from ai_gateway.models.generation import GenerationRequest
from ai_gateway.models.payloads import (
    ChatCompletionInput,
    DocumentAnalysisInput,
    DocumentUploadInput,
    ImageGenerationInput,
    validate_payload,
)
from ai_gateway.orchestrators.facade import AIOrchestrator
from ai_gateway.orchestrators.streaming import STREAM_MEDIA_TYPE, STREAM_RESPONSE_HEADERS

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ai_gateway.activities.record_image import ImageRecordStore

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)

logger = logging.getLogger("ai_gateway.function_app")

_MAX_HISTORY_LIMIT = 200

_orchestrator: AIOrchestrator | None = None


def _image_store(config: GatewayConfig) -> ImageRecordStore | None:
    try:
        client = get_blob_service_client()
    except ConfigurationError:
        logger.warning("Image records disabled | reason=AzureWebJobsStorage not set")
        return None
    return BlobImageRecordStore(client, container=config.image_records_container)


def get_orchestrator() -> AIOrchestrator:
    """Return the process-wide orchestrator, built on first use."""
    global _orchestrator  # noqa: PLW0603
    if _orchestrator is None:
        config = GatewayConfig.from_env()
        _orchestrator = AIOrchestrator(config, image_store=_image_store(config))
        logger.info(
            "Orchestrator initialised | provider=%s | upstream_configured=%s",
            config.provider,
            config.has_upstream,
        )
    return _orchestrator


async def _handle(
    req: Request,
    handler: Callable[[], Awaitable[JSONResponse | StreamingResponse]],
) -> JSONResponse | StreamingResponse:
    """Run *handler*, converting errors into the JSON error shape."""
    path = req.url.path
    try:
        return await handler()
    except GatewayError as exc:
        log = logger.warning if exc.http_status < 500 else logger.error
        log(
            "Request failed | path=%s | code=%s | category=%s | status=%d | error=%s",
            path,
            exc.code,
            exc.category,
            exc.http_status,
            exc.message,
        )
        return JSONResponse(build_error_body(exc, path=path), status_code=exc.http_status)
    except Exception:
        logger.exception("Unhandled error | path=%s", path)
        return JSONResponse(
            {
                "success": False,
                "code": "INTERNAL_ERROR",
                "category": "permanent",
                "message": "Internal server error",
                "retryable": False,
                "timestamp": datetime.now(UTC).isoformat(),
                "path": path,
            },
            status_code=500,
        )


# ---------------------------------------------------------------------------
# Chat: streamed completion relay
# ---------------------------------------------------------------------------


@app.function_name("chat_completions")
@app.route(route="ai/chat/completions", methods=["POST"])
async def chat_completions(req: Request) -> JSONResponse | StreamingResponse:
    """Relay a streamed chat completion from the upstream, byte for byte."""

    async def handler() -> StreamingResponse:
        resolve_principal_id(req.headers)
        payload = parse_json_object(await req.body())
        validate_payload(payload, ChatCompletionInput, route="chat_completions")
        stream = await get_orchestrator().complete_chat(payload)
        return StreamingResponse(
            stream, media_type=STREAM_MEDIA_TYPE, headers=STREAM_RESPONSE_HEADERS
        )

    return await _handle(req, handler)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


@app.function_name("image_generations")
@app.route(route="ai/images/generations", methods=["POST"])
async def image_generations(req: Request) -> JSONResponse | StreamingResponse:
    """Generate one image and return ``{"url": ...}``."""

    async def handler() -> JSONResponse:
        user_id = resolve_principal_id(req.headers)
        payload = parse_json_object(await req.body())
        validate_payload(payload, ImageGenerationInput, route="image_generations")
        request = GenerationRequest.from_dict(payload)
        result = await get_orchestrator().generate_image(request, user_id=user_id)
        return JSONResponse(result)

    return await _handle(req, handler)


@app.function_name("image_history")
@app.route(route="ai/images/history", methods=["GET"])
async def image_history(req: Request) -> JSONResponse | StreamingResponse:
    """Return the caller's image records, newest first."""

    async def handler() -> JSONResponse:
        user_id = resolve_principal_id(req.headers)
        raw_limit = req.query_params.get("limit", str(DEFAULT_HISTORY_LIMIT))
        try:
            limit = int(raw_limit)
        except ValueError as exc:
            msg = f"limit must be an integer, got {raw_limit!r}"
            raise ValidationError(msg, stage="image_history", code="INVALID_LIMIT") from exc
        limit = max(1, min(limit, _MAX_HISTORY_LIMIT))
        records = await get_orchestrator().list_images(user_id, limit=limit)
        return JSONResponse(records)

    return await _handle(req, handler)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@app.function_name("document_upload")
@app.route(route="ai/documents", methods=["POST"])
async def document_upload(req: Request) -> JSONResponse | StreamingResponse:
    """Cache decoded document text for the caller's session."""

    async def handler() -> JSONResponse:
        session_key = resolve_session_key(req.headers)
        payload = parse_json_object(await req.body())
        validate_payload(payload, DocumentUploadInput, route="document_upload")
        result = get_orchestrator().store_document(
            session_key, str(payload["fileName"]), payload["content"]
        )
        return JSONResponse(result)

    return await _handle(req, handler)


@app.function_name("document_analyze")
@app.route(route="ai/documents/analyze", methods=["POST"])
async def document_analyze(req: Request) -> JSONResponse | StreamingResponse:
    """Answer a prompt against the session's cached document (single use)."""

    async def handler() -> JSONResponse:
        session_key = resolve_session_key(req.headers)
        payload = parse_json_object(await req.body())
        validate_payload(payload, DocumentAnalysisInput, route="document_analyze")
        model = payload.get("model")
        result = await get_orchestrator().complete_with_document(
            session_key,
            payload["prompt"],
            model=model if isinstance(model, str) and model else None,
        )
        return JSONResponse(result)

    return await _handle(req, handler)


# ---------------------------------------------------------------------------
# HTTP: health endpoint
# ---------------------------------------------------------------------------


@app.function_name("status")
@app.route(route="status", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def status(req: Request) -> JSONResponse:
    """Liveness probe; does not touch the upstream."""
    return JSONResponse({"status": "ok", "time": datetime.now(UTC).isoformat()})
