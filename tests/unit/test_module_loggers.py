"""Every module logs under its own dotted module name."""

from __future__ import annotations

import importlib

import pytest

MODULES = [
    "ai_gateway.core.ingress",
    "ai_gateway.providers.factory",
    "ai_gateway.providers.modelscope",
    "ai_gateway.orchestrators.document_context",
    "ai_gateway.orchestrators.facade",
    "ai_gateway.orchestrators.poller",
    "ai_gateway.orchestrators.streaming",
    "ai_gateway.activities.record_image",
]


@pytest.mark.parametrize("module_name", MODULES)
def test_logger_named_after_module(module_name: str) -> None:
    module = importlib.import_module(module_name)
    assert module.logger.name == module_name
