"""Typed payload schemas for the HTTP routes.

Every route receives and returns a JSON object.  These ``TypedDict``
definitions make the request and response contracts explicit so that
pyright catches key mismatches at analysis time and
``validate_payload`` catches them at runtime.

Usage::

    from ai_gateway.models.payloads import DocumentUploadInput, validate_payload

    validate_payload(body, DocumentUploadInput, route="documents")
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

from ai_gateway.core.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Chat completion (streamed)
# ---------------------------------------------------------------------------


class ChatCompletionInput(TypedDict):
    """Client → ``/ai/chat/completions``; forwarded to the upstream verbatim."""

    messages: list[dict[str, Any]]
    model: NotRequired[str]
    stream: NotRequired[bool]


# ---------------------------------------------------------------------------
# Image generation
# ---------------------------------------------------------------------------


class ImageGenerationInput(TypedDict):
    """Client → ``/ai/images/generations``."""

    prompt: str
    model: NotRequired[str]
    size: NotRequired[str]
    style: NotRequired[str]


class ImageGenerationOutput(TypedDict):
    """``/ai/images/generations`` → client."""

    url: str


# ---------------------------------------------------------------------------
# Document context
# ---------------------------------------------------------------------------


class DocumentUploadInput(TypedDict):
    """Client → ``/ai/documents`` (text already extracted from the file)."""

    fileName: str
    content: str


class DocumentUploadOutput(TypedDict):
    """``/ai/documents`` → client."""

    fileName: str
    characters: int
    truncated: bool
    expiresInSeconds: int


class DocumentAnalysisInput(TypedDict):
    """Client → ``/ai/documents/analyze``."""

    prompt: str
    model: NotRequired[str]


class DocumentAnalysisOutput(TypedDict):
    """``/ai/documents/analyze`` → client."""

    analysis: str
    documentFileName: str


# ---------------------------------------------------------------------------
# Required-key registrations (used by validate_payload)
# ---------------------------------------------------------------------------

_REQUIRED_KEYS: dict[type, frozenset[str]] = {
    ChatCompletionInput: frozenset({"messages"}),
    ImageGenerationInput: frozenset({"prompt"}),
    DocumentUploadInput: frozenset({"fileName", "content"}),
    DocumentAnalysisInput: frozenset({"prompt"}),
}


# ---------------------------------------------------------------------------
# Runtime validation
# ---------------------------------------------------------------------------


def validate_payload(
    raw: dict[str, Any],
    schema: type,
    *,
    route: str,
) -> None:
    """Validate that *raw* contains the required keys for *schema*.

    Raises:
        ValidationError: If required keys are missing from the payload.
    """
    required = _REQUIRED_KEYS.get(schema)
    if required is None:
        return

    missing = required - raw.keys()
    if missing:
        msg = f"{route}: missing required payload key(s): {', '.join(sorted(missing))}"
        raise ValidationError(msg, stage=route, code="PAYLOAD_MISSING_KEYS")
