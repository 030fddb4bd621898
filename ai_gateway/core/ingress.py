"""Thin ingress boundary helpers for the HTTP entrypoints.

Centralises the transport concerns so that ``function_app.py`` contains
only route bindings and handoff:

- **parse_json_object**: decodes a request body into a ``dict``,
  raising a structured ``ValidationError`` for anything else.
- **resolve_principal_id** / **resolve_session_key**: read the
  platform-authenticated principal and the client session from headers.
- **build_error_body**: the stable JSON error shape returned to clients.
- **get_blob_service_client**: creates an ``azure.storage.blob``
  client from the ``AzureWebJobsStorage`` environment variable,
  failing fast with a structured error if unconfigured.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ai_gateway.core.exceptions import (
    AuthenticationRequiredError,
    ConfigurationError,
    GatewayError,
    ValidationError,
)

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

logger = logging.getLogger("ai_gateway.core.ingress")

PRINCIPAL_HEADER = "X-MS-CLIENT-PRINCIPAL-ID"
SESSION_HEADER = "X-Session-Id"


# ---------------------------------------------------------------------------
# Request body
# ---------------------------------------------------------------------------


def parse_json_object(raw: bytes | str | None) -> dict[str, Any]:
    """Decode a request body that must be a JSON object.

    Raises:
        ValidationError: If the body is empty, not JSON, or not an object.
    """
    if raw is None or not raw:
        msg = "Request body is required"
        raise ValidationError(msg, stage="ingress", code="EMPTY_BODY")
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        msg = f"Request body is not valid JSON: {exc}"
        raise ValidationError(msg, stage="ingress", code="INVALID_JSON") from exc
    if not isinstance(parsed, dict):
        msg = f"Request body must be a JSON object, got {type(parsed).__name__}"
        raise ValidationError(msg, stage="ingress", code="INVALID_INPUT_TYPE")
    return parsed


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def _header(headers: Mapping[str, str], name: str) -> str:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; host header maps are not.
        lowered = name.lower()
        value = next((v for k, v in headers.items() if k.lower() == lowered), "")
    return value.strip()


def resolve_principal_id(headers: Mapping[str, str]) -> str:
    """Return the authenticated principal id set by the hosting platform.

    Raises:
        AuthenticationRequiredError: If the header is missing or blank.
    """
    principal = _header(headers, PRINCIPAL_HEADER)
    if not principal:
        msg = "Authentication required"
        raise AuthenticationRequiredError(msg)
    return principal


def resolve_session_key(headers: Mapping[str, str]) -> str:
    """Return the document-context session key.

    The ``X-Session-Id`` header wins; without it the principal id is the
    session, so each user holds at most one document at a time.

    Raises:
        AuthenticationRequiredError: If neither header is present.
    """
    session = _header(headers, SESSION_HEADER)
    if session:
        return session
    return resolve_principal_id(headers)


# ---------------------------------------------------------------------------
# Error responses
# ---------------------------------------------------------------------------


def build_error_body(error: GatewayError, *, path: str = "") -> dict[str, object]:
    """Return the client-facing JSON body for *error*."""
    detail = error.to_error_dict()
    body: dict[str, object] = {
        "success": False,
        "code": detail["code"],
        "category": detail["category"],
        "message": detail["message"],
        "retryable": detail["retryable"],
        "timestamp": datetime.now(UTC).isoformat(),
        "path": path,
    }
    for key in ("upstream_status", "upstream_body"):
        if key in detail:
            body[key] = detail[key]
    return body


# ---------------------------------------------------------------------------
# Blob service client factory
# ---------------------------------------------------------------------------


def get_blob_service_client() -> BlobServiceClient:
    """Create a ``BlobServiceClient`` from the ``AzureWebJobsStorage`` env var.

    Raises:
        ConfigurationError: If the environment variable is not set.
    """
    from azure.storage.blob import BlobServiceClient

    connection_string = os.environ.get("AzureWebJobsStorage", "")  # noqa: SIM112
    if not connection_string:
        msg = "AzureWebJobsStorage environment variable is not set"
        raise ConfigurationError(msg, stage="ingress", code="MISSING_CONNECTION_STRING")

    return BlobServiceClient.from_connection_string(connection_string)
