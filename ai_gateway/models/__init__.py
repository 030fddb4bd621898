"""Data models and schemas.

Defines the data structures used throughout the gateway:
- GenerationRequest: Validated image-generation request
- UpstreamTask / Submission: Upstream task protocol samples
- ImageRecord: Persisted image-generation result
- Payload TypedDicts: HTTP request/response contracts
"""

from ai_gateway.models.generation import (
    GenerationRequest,
    ModelValidationError,
    expand_prompt,
    style_suffix,
    validate_prompt,
)
from ai_gateway.models.records import ImageRecord
from ai_gateway.models.upstream import Submission, TaskStatus, UpstreamTask

__all__ = [
    "GenerationRequest",
    "ImageRecord",
    "ModelValidationError",
    "Submission",
    "TaskStatus",
    "UpstreamTask",
    "expand_prompt",
    "style_suffix",
    "validate_prompt",
]
