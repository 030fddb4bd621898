"""Tests for the per-session document context cache."""

from __future__ import annotations

import threading
import unittest

import pytest

from ai_gateway.core.constants import DOCUMENT_TRUNCATION_MARKER
from ai_gateway.orchestrators.document_context import (
    DocumentContextCache,
    bound_document_text,
)


class FakeTime:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestTakeIfFresh(unittest.TestCase):
    """Single use and TTL."""

    def setUp(self) -> None:
        self.time = FakeTime()
        self.cache = DocumentContextCache(ttl_seconds=1800, clock=self.time)

    def test_second_take_returns_none(self) -> None:
        self.cache.put("s1", "report.pdf", "hello")
        entry = self.cache.take_if_fresh("s1")
        assert entry is not None
        assert entry.content == "hello"
        assert entry.file_name == "report.pdf"
        assert self.cache.take_if_fresh("s1") is None

    def test_expired_entry_is_absent_and_removed(self) -> None:
        self.cache.put("s1", "a.txt", "hello")
        self.time.now = 1801
        assert self.cache.take_if_fresh("s1") is None
        assert "s1" not in self.cache

    def test_entry_at_ttl_boundary_is_fresh(self) -> None:
        self.cache.put("s1", "a.txt", "hello")
        self.time.now = 1800
        assert self.cache.take_if_fresh("s1") is not None

    def test_missing_session(self) -> None:
        assert self.cache.take_if_fresh("nobody") is None

    def test_upload_overwrites_previous(self) -> None:
        self.cache.put("s1", "old.txt", "old")
        self.cache.put("s1", "new.txt", "new")
        assert len(self.cache) == 1
        entry = self.cache.take_if_fresh("s1")
        assert entry is not None
        assert entry.file_name == "new.txt"

    def test_overwrite_restarts_ttl(self) -> None:
        self.cache.put("s1", "a.txt", "one")
        self.time.now = 1000
        self.cache.put("s1", "a.txt", "two")
        self.time.now = 2500
        assert self.cache.take_if_fresh("s1") is not None

    def test_sessions_are_isolated(self) -> None:
        self.cache.put("s1", "a.txt", "one")
        self.cache.put("s2", "b.txt", "two")
        assert self.cache.take_if_fresh("s1").content == "one"  # type: ignore[union-attr]
        assert self.cache.take_if_fresh("s2").content == "two"  # type: ignore[union-attr]

    def test_concurrent_take_yields_content_once(self) -> None:
        self.cache.put("s1", "a.txt", "hello")
        results: list[object] = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            results.append(self.cache.take_if_fresh("s1"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sum(r is not None for r in results) == 1


class TestRestore(unittest.TestCase):
    """Putting back an entry after a failed use."""

    def setUp(self) -> None:
        self.time = FakeTime()
        self.cache = DocumentContextCache(ttl_seconds=1800, clock=self.time)

    def test_restored_entry_can_be_taken_again(self) -> None:
        self.cache.put("s1", "a.txt", "text")
        entry = self.cache.take_if_fresh("s1")
        assert entry is not None
        assert self.cache.restore(entry) is True
        again = self.cache.take_if_fresh("s1")
        assert again is not None
        assert again.created_at == entry.created_at

    def test_newer_upload_not_overwritten(self) -> None:
        self.cache.put("s1", "old.txt", "old")
        entry = self.cache.take_if_fresh("s1")
        assert entry is not None
        self.cache.put("s1", "new.txt", "new")
        assert self.cache.restore(entry) is False
        assert self.cache.take_if_fresh("s1").file_name == "new.txt"  # type: ignore[union-attr]

    def test_expired_entry_not_restored(self) -> None:
        self.cache.put("s1", "a.txt", "text")
        entry = self.cache.take_if_fresh("s1")
        assert entry is not None
        self.time.now = 1801
        assert self.cache.restore(entry) is False
        assert "s1" not in self.cache


class TestTruncation:
    """Over-long content is cut so the stored text fits ``max_chars``."""

    def test_short_content_untouched(self) -> None:
        assert bound_document_text("abc", 100) == ("abc", False)

    def test_exact_length_untouched(self) -> None:
        text = "x" * 15000
        assert bound_document_text(text, 15000) == (text, False)

    def test_long_content_truncated_with_marker(self) -> None:
        cache = DocumentContextCache()
        entry = cache.put("s1", "big.txt", "x" * 20000)
        assert entry.truncated
        assert entry.original_chars == 20000
        assert len(entry.content) == 15000
        assert entry.content.endswith(DOCUMENT_TRUNCATION_MARKER)


class TestMaintenance:
    def test_purge_expired(self) -> None:
        time = FakeTime()
        cache = DocumentContextCache(ttl_seconds=10, clock=time)
        cache.put("old", "a", "1")
        time.now = 5
        cache.put("new", "b", "2")
        time.now = 12
        assert cache.purge_expired() == 1
        assert "old" not in cache
        assert "new" in cache

    def test_lru_eviction(self) -> None:
        cache = DocumentContextCache(maxsize=2)
        cache.put("a", "a", "1")
        cache.put("b", "b", "2")
        cache.put("c", "c", "3")
        assert "a" not in cache
        assert len(cache) == 2
        assert cache.eviction_count == 1

    @pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"maxsize": 0}])
    def test_invalid_arguments(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            DocumentContextCache(**kwargs)  # type: ignore[arg-type]
