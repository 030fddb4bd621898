"""Tests for typed route payload validation."""

from __future__ import annotations

import pytest

from ai_gateway.core.exceptions import ValidationError
from ai_gateway.models.payloads import (
    ChatCompletionInput,
    DocumentAnalysisInput,
    DocumentUploadInput,
    ImageGenerationInput,
    validate_payload,
)


class TestValidatePayload:
    @pytest.mark.parametrize(
        ("schema", "payload"),
        [
            (ChatCompletionInput, {"messages": []}),
            (ImageGenerationInput, {"prompt": "x"}),
            (DocumentUploadInput, {"fileName": "a.txt", "content": "x"}),
            (DocumentAnalysisInput, {"prompt": "x", "model": "m"}),
        ],
    )
    def test_valid(self, schema: type, payload: dict[str, object]) -> None:
        validate_payload(payload, schema, route="r")

    def test_missing_keys_listed(self) -> None:
        with pytest.raises(ValidationError) as excinfo:
            validate_payload({"fileName": "a.txt"}, DocumentUploadInput, route="document_upload")
        assert "content" in excinfo.value.message
        assert excinfo.value.code == "PAYLOAD_MISSING_KEYS"
        assert excinfo.value.stage == "document_upload"

    def test_unregistered_schema_passes(self) -> None:
        validate_payload({}, dict, route="r")
