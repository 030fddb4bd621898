"""Provider factory: selects the upstream adapter by name.

The factory maintains a registry of known adapters.  New adapters are
registered with ``register_provider``; the built-in ones are loaded
lazily on first use.

Usage::

    from ai_gateway.providers.factory import get_provider

    provider = get_provider("modelscope", config)
    submission = await provider.submit(request)

The provider name is read from the ``AI_PROVIDER`` environment variable
via ``GatewayConfig.provider``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ai_gateway.core.exceptions import ConfigurationError
from ai_gateway.providers.base import GenerationProvider

if TYPE_CHECKING:
    from collections.abc import Callable

    from ai_gateway.core.config import GatewayConfig

logger = logging.getLogger("ai_gateway.providers.factory")

# ---------------------------------------------------------------------------
# Provider name constants
# ---------------------------------------------------------------------------

MODELSCOPE = "modelscope"

# ---------------------------------------------------------------------------
# Lazy-import adapter registry
# ---------------------------------------------------------------------------

# Each entry maps a provider name to a callable that returns the adapter
# *class*, so an adapter's dependencies load only when it is selected.

_ADAPTER_REGISTRY: dict[str, Callable[[], type[GenerationProvider]]] = {}


def _register_builtin_adapters() -> None:
    """Register the built-in provider adapters."""

    def _modelscope() -> type[GenerationProvider]:
        from ai_gateway.providers.modelscope import ModelScopeAdapter

        return ModelScopeAdapter

    _ADAPTER_REGISTRY[MODELSCOPE] = _modelscope


def _ensure_registry() -> None:
    """Initialise the adapter registry once (idempotent)."""
    if not _ADAPTER_REGISTRY:
        _register_builtin_adapters()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_provider(
    name: str,
    loader: Callable[[], type[GenerationProvider]],
) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider name (e.g. ``"my_upstream"``).
        loader: A zero-argument callable that returns the adapter class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ADAPTER_REGISTRY[name] = loader
    logger.debug("Registered provider adapter: %s", name)


def get_provider(name: str, config: GatewayConfig, **kwargs: Any) -> GenerationProvider:
    """Create and return a provider adapter instance.

    Args:
        name: Provider identifier (e.g. ``"modelscope"``).
        config: Gateway configuration handed to the adapter.
        **kwargs: Extra adapter constructor arguments (e.g. ``transport``).

    Returns:
        A configured ``GenerationProvider``.

    Raises:
        ConfigurationError: If the named provider is not registered.
    """
    _ensure_registry()

    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Unknown AI provider: {name!r}. Available: {available}"
        raise ConfigurationError(msg, stage="provider", code="UNKNOWN_PROVIDER")

    adapter_cls = loader()
    logger.info("Creating AI provider: %s", name)
    return adapter_cls(config, **kwargs)


def list_providers() -> list[str]:
    """Return the names of all registered provider adapters."""
    _ensure_registry()
    return sorted(_ADAPTER_REGISTRY)
