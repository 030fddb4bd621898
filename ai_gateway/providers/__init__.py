"""Upstream generative-AI provider adapters.

Implements the provider-agnostic adapter pattern (Strategy pattern):
- GenerationProvider: Abstract base class defining the interface
- ModelScopeAdapter: ModelScope OpenAI-compatible API-Inference

The active provider is selected via configuration (``AI_PROVIDER``).
"""

from ai_gateway.providers.base import ChatStream, GenerationProvider, StreamInterruptedError
from ai_gateway.providers.factory import (
    MODELSCOPE,
    get_provider,
    list_providers,
    register_provider,
)

__all__ = [
    "MODELSCOPE",
    "ChatStream",
    "GenerationProvider",
    "StreamInterruptedError",
    "get_provider",
    "list_providers",
    "register_provider",
]
