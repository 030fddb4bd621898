"""Shared gateway constants: single source of truth.

Centralises upstream header names, model identifiers, polling defaults
and the style-suffix table that would otherwise be duplicated across
the provider adapter, the poller and the facade.
"""

from __future__ import annotations

from types import MappingProxyType

# ---------------------------------------------------------------------------
# Upstream models and wire headers
# ---------------------------------------------------------------------------

DEFAULT_IMAGE_MODEL: str = "Kwai-Kolors/Kolors"
"""Model used when an image request names none."""

DEFAULT_IMAGE_SIZE: str = "1024x1024"

ASYNC_IMAGE_MODEL: str = "Tongyi-MAI/Z-Image-Turbo"
"""Model that only accepts asynchronous (task-based) submissions."""

ASYNC_MODE_HEADER: str = "X-ModelScope-Async-Mode"
TASK_TYPE_HEADER: str = "X-ModelScope-Task-Type"
TASK_TYPE_IMAGE_GENERATION: str = "image_generation"

DEFAULT_CHAT_MODEL: str = "Qwen/Qwen2.5-72B-Instruct"
"""Model used by the document-augmented completion when none is given."""

# ---------------------------------------------------------------------------
# Poller defaults
# ---------------------------------------------------------------------------

DEFAULT_POLL_INITIAL_INTERVAL_SECONDS: float = 1.0
DEFAULT_POLL_BACKOFF_MULTIPLIER: float = 1.2
DEFAULT_POLL_MAX_INTERVAL_SECONDS: float = 5.0
DEFAULT_POLL_FAILURE_THRESHOLD: int = 3
DEFAULT_POLL_TIMEOUT_SECONDS: float = 120.0
DEFAULT_POLL_MAX_ATTEMPTS: int = 60
DEFAULT_POLL_CALL_TIMEOUT_SECONDS: float = 10.0
DEFAULT_SUBMIT_TIMEOUT_SECONDS: float = 60.0
DEFAULT_CHAT_TIMEOUT_SECONDS: float = 120.0

# ---------------------------------------------------------------------------
# Prompt and document limits
# ---------------------------------------------------------------------------

MAX_PROMPT_CHARS: int = 2000
DEFAULT_DOCUMENT_MAX_CHARS: int = 15_000
DEFAULT_DOCUMENT_CONTEXT_TTL_SECONDS: float = 30 * 60
DOCUMENT_TRUNCATION_MARKER: str = "\n\n[... document truncated ...]"

DEFAULT_IMAGE_RECORDS_CONTAINER: str = "image-records"
DEFAULT_HISTORY_LIMIT: int = 50

# ---------------------------------------------------------------------------
# Style presets
# ---------------------------------------------------------------------------

STYLE_NONE: str = "none"

STYLE_PRESETS: MappingProxyType[str, str] = MappingProxyType(
    {
        STYLE_NONE: "",
        "cinematic": (
            ", cinematic lighting, movie grain, dramatic atmosphere, highly detailed, "
            "8k, hyperrealistic"
        ),
        "cyberpunk": (
            ", cyberpunk style, neon lights, synthwave, futuristic city, high contrast, "
            "sci-fi, detailed"
        ),
        "ink": (
            ", traditional chinese ink painting, black and white, abstract, artistic, "
            "brush strokes, masterpiece"
        ),
        "3d": ", 3d render, blender, c4d, unreal engine, octane render, clay material, soft lighting",
    }
)
"""Style key → prompt suffix.  Unknown keys expand to ``""``."""
