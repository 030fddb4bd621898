"""Typed model for image-generation requests.

``GenerationRequest`` validates its invariants on construction (prompt
length after trimming, size format) so that an instance reaching the
provider adapter is always well formed.  Style expansion is a separate
step: ``expanded_prompt`` is what the upstream sees, ``prompt`` is what
gets persisted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from ai_gateway.core.constants import (
    DEFAULT_IMAGE_MODEL,
    DEFAULT_IMAGE_SIZE,
    MAX_PROMPT_CHARS,
    STYLE_NONE,
    STYLE_PRESETS,
)
from ai_gateway.core.exceptions import ValidationError

_SIZE_RE = re.compile(r"^(\d{2,4})x(\d{2,4})$")
_MIN_SIDE_PX = 64
_MAX_SIDE_PX = 4096


class ModelValidationError(ValueError, ValidationError):
    """Raised when a request model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        ValidationError.__init__(self, f"{model}.{field_name}: {message}")


def validate_prompt(prompt: object, *, model: str = "GenerationRequest") -> str:
    """Return *prompt* stripped, or raise ``ModelValidationError``.

    A prompt must be a string that is non-empty after trimming and at
    most ``MAX_PROMPT_CHARS`` characters long once trimmed.
    """
    if not isinstance(prompt, str):
        raise ModelValidationError(model, "prompt", prompt, "must be a string")
    stripped = prompt.strip()
    if not stripped:
        raise ModelValidationError(model, "prompt", prompt, "must not be empty")
    if len(stripped) > MAX_PROMPT_CHARS:
        raise ModelValidationError(
            model,
            "prompt",
            f"<{len(stripped)} chars>",
            f"must be at most {MAX_PROMPT_CHARS} characters",
        )
    return stripped


def style_suffix(style: str | None) -> str:
    """Return the prompt suffix for *style*; ``""`` for none or unknown keys."""
    if not style:
        return ""
    return STYLE_PRESETS.get(style, "")


def expand_prompt(prompt: str, style: str | None) -> str:
    """Append the style suffix for *style* to *prompt* exactly once."""
    return prompt + style_suffix(style)


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """A validated image-generation request.

    Attributes:
        prompt: User prompt, trimmed, 1-2000 characters.  Persisted as-is.
        model: Upstream model identifier.
        size: Output size as ``"<width>x<height>"`` pixels.
        style: Optional key into ``STYLE_PRESETS``.
    """

    prompt: str
    model: str = DEFAULT_IMAGE_MODEL
    size: str = DEFAULT_IMAGE_SIZE
    style: str = STYLE_NONE

    def __post_init__(self) -> None:
        object.__setattr__(self, "prompt", validate_prompt(self.prompt))

        if not isinstance(self.model, str) or not self.model.strip():
            raise ModelValidationError("GenerationRequest", "model", self.model, "must not be empty")

        match = _SIZE_RE.match(self.size) if isinstance(self.size, str) else None
        if match is None:
            raise ModelValidationError(
                "GenerationRequest", "size", self.size, "must look like '1024x1024'"
            )
        for side in match.groups():
            if not _MIN_SIDE_PX <= int(side) <= _MAX_SIDE_PX:
                raise ModelValidationError(
                    "GenerationRequest",
                    "size",
                    self.size,
                    f"each side must be between {_MIN_SIDE_PX} and {_MAX_SIDE_PX} px",
                )

        if not isinstance(self.style, str):
            raise ModelValidationError("GenerationRequest", "style", self.style, "must be a string")

    @property
    def expanded_prompt(self) -> str:
        """Prompt with the style suffix applied; what the upstream receives."""
        return expand_prompt(self.prompt, self.style)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationRequest:
        """Build a request from a JSON body, applying defaults for absent keys."""
        return cls(
            prompt=data.get("prompt", ""),
            model=data.get("model") or DEFAULT_IMAGE_MODEL,
            size=data.get("size") or DEFAULT_IMAGE_SIZE,
            style=data.get("style") or STYLE_NONE,
        )
