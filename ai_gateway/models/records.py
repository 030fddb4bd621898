"""Pydantic model for persisted image-generation records.

One record is written to the storage collaborator per successful image
generation.  It is the audit trail of what a user asked for (the
un-expanded prompt) and what the upstream produced.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

# Schema version for forward compatibility
SCHEMA_VERSION = "image-record-v1"


class ImageRecord(BaseModel):
    """A stored image-generation result.

    Attributes:
        schema_version: Record schema identifier.
        record_id: Unique record identifier (hex UUID).
        user_id: Authenticated principal that requested the image.
        prompt: The prompt as the user typed it (no style suffix).
        model: Upstream model identifier.
        size: Requested output size (``"<w>x<h>"``).
        style: Style preset key (``"none"`` when unused).
        image_url: Result location returned by the upstream.
        created_at: UTC creation timestamp.
    """

    schema_version: str = SCHEMA_VERSION
    record_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    prompt: str
    model: str
    size: str
    style: str = "none"
    image_url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_json(self) -> str:
        """Serialise the record to a JSON string."""
        return self.model_dump_json(indent=2)

    def to_dict(self) -> dict[str, object]:
        """Serialise the record to a JSON-compatible dict."""
        return self.model_dump(mode="json")

    @classmethod
    def from_json(cls, raw: str | bytes) -> ImageRecord:
        return cls.model_validate_json(raw)
