"""Tests for the upstream provider factory.

Covers: get_provider, list_providers, register_provider, error handling,
and lazy import behaviour.
"""

from __future__ import annotations

import unittest

from conftest import ScriptedProvider

from ai_gateway.core.config import GatewayConfig
from ai_gateway.core.exceptions import ConfigurationError
from ai_gateway.providers.base import GenerationProvider
from ai_gateway.providers.factory import (
    _ADAPTER_REGISTRY,
    MODELSCOPE,
    get_provider,
    list_providers,
    register_provider,
)
from ai_gateway.providers.modelscope import ModelScopeAdapter

_CONFIG = GatewayConfig(upstream_url="https://upstream.test/v1", api_key="k")


class TestListProviders(unittest.TestCase):
    """list_providers returns known adapters."""

    def test_includes_builtin_providers(self) -> None:
        assert MODELSCOPE in list_providers()

    def test_returns_sorted(self) -> None:
        providers = list_providers()
        assert providers == sorted(providers)


class TestGetProvider(unittest.TestCase):
    """get_provider creates the correct adapter instance."""

    def test_modelscope(self) -> None:
        provider = get_provider(MODELSCOPE, _CONFIG)
        assert isinstance(provider, ModelScopeAdapter)
        assert isinstance(provider, GenerationProvider)
        assert provider.config is _CONFIG

    def test_unknown_provider_raises(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            get_provider("nonexistent_provider", _CONFIG)
        assert "nonexistent_provider" in str(ctx.exception)
        assert "Available:" in str(ctx.exception)
        assert ctx.exception.code == "UNKNOWN_PROVIDER"

    def test_kwargs_forwarded(self) -> None:
        import httpx

        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        provider = get_provider(MODELSCOPE, _CONFIG, transport=transport)
        assert provider._transport is transport  # type: ignore[attr-defined]


class TestRegisterProvider(unittest.TestCase):
    """Custom adapters can be registered."""

    def tearDown(self) -> None:
        _ADAPTER_REGISTRY.pop("scripted", None)

    def test_register_and_get(self) -> None:
        register_provider("scripted", lambda: ScriptedProvider)
        assert "scripted" in list_providers()
        provider = get_provider("scripted", _CONFIG)
        assert isinstance(provider, ScriptedProvider)

    def test_loader_called_lazily(self) -> None:
        calls: list[int] = []

        def loader() -> type[GenerationProvider]:
            calls.append(1)
            return ScriptedProvider

        register_provider("scripted", loader)
        assert calls == []
        get_provider("scripted", _CONFIG)
        assert calls == [1]

    def test_empty_name_rejected(self) -> None:
        with self.assertRaises(ValueError):
            register_provider("", lambda: ScriptedProvider)
