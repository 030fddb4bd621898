"""Per-session document context cache.

Holds the decoded text of the last document a session uploaded, for a
bounded time, until one augmented completion consumes it.

Rules:
    - one entry per session key; a new upload replaces the old one
    - content longer than ``max_chars`` is cut and marked, so the stored
      text (marker included) never exceeds ``max_chars``
    - an entry older than ``ttl_seconds`` is treated as absent
    - ``take_if_fresh`` removes the entry it returns (single use);
      ``restore`` puts it back when the call that used it failed
    - at most ``maxsize`` sessions are held; the least recently written
      entry is evicted first

Every read-modify-delete happens under one lock, so two concurrent
``take_if_fresh`` calls for the same session can never both receive the
content.  The lock is a ``threading.Lock`` because the Functions host
may call in from worker threads as well as from the event loop; no
operation awaits while holding it.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ai_gateway.core.constants import (
    DEFAULT_DOCUMENT_CONTEXT_TTL_SECONDS,
    DEFAULT_DOCUMENT_MAX_CHARS,
    DOCUMENT_TRUNCATION_MARKER,
)

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("ai_gateway.orchestrators.document_context")

_DEFAULT_MAXSIZE = 1024


@dataclass(frozen=True, slots=True)
class DocumentContext:
    """Cached document text for one session.

    Attributes:
        session_key: Owning session.
        file_name: Name of the uploaded file, for display.
        content: Document text, at most ``max_chars`` long.
        created_at: Clock reading when the entry was stored.
        truncated: Whether ``content`` was cut to fit.
        original_chars: Length of the text before truncation.
    """

    session_key: str
    file_name: str
    content: str
    created_at: float
    truncated: bool = False
    original_chars: int = 0


def bound_document_text(content: str, max_chars: int) -> tuple[str, bool]:
    """Return *content* cut to *max_chars* (marker included) and whether it was cut."""
    if len(content) <= max_chars:
        return content, False
    keep = max(0, max_chars - len(DOCUMENT_TRUNCATION_MARKER))
    return content[:keep] + DOCUMENT_TRUNCATION_MARKER, True


class DocumentContextCache:
    """Single-slot-per-session, TTL-bounded, single-use document store.

    Args:
        ttl_seconds: Lifetime of an entry.
        max_chars: Length bound for stored text.
        maxsize: Maximum number of sessions held at once.
        clock: Monotonic time source (seconds).
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_DOCUMENT_CONTEXT_TTL_SECONDS,
        max_chars: int = DEFAULT_DOCUMENT_MAX_CHARS,
        maxsize: int = _DEFAULT_MAXSIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            msg = f"ttl_seconds must be > 0, got {ttl_seconds!r}"
            raise ValueError(msg)
        if maxsize < 1:
            msg = f"maxsize must be >= 1, got {maxsize!r}"
            raise ValueError(msg)
        self._ttl = ttl_seconds
        self._max_chars = max_chars
        self._maxsize = maxsize
        self._clock = clock
        self._data: OrderedDict[str, DocumentContext] = OrderedDict()
        self._eviction_count = 0
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def put(self, session_key: str, file_name: str, content: str) -> DocumentContext:
        """Store *content* for *session_key*, replacing any previous entry."""
        text, truncated = bound_document_text(content, self._max_chars)
        entry = DocumentContext(
            session_key=session_key,
            file_name=file_name,
            content=text,
            created_at=self._clock(),
            truncated=truncated,
            original_chars=len(content),
        )
        with self._lock:
            self._data.pop(session_key, None)
            self._data[session_key] = entry
            self._evict_overflow()

        logger.info(
            "Document context stored | session=%s | file=%s | chars=%d | truncated=%s",
            session_key,
            file_name,
            len(text),
            truncated,
        )
        return entry

    def take_if_fresh(self, session_key: str) -> DocumentContext | None:
        """Remove and return the session's entry if it is still fresh.

        Returns ``None`` when there is no entry or it has expired (an
        expired entry is removed as well).
        """
        with self._lock:
            entry = self._data.pop(session_key, None)
            now = self._clock()

        if entry is None:
            return None
        if now - entry.created_at > self._ttl:
            logger.warning(
                "Document context expired | session=%s | file=%s | age=%.0fs",
                session_key,
                entry.file_name,
                now - entry.created_at,
            )
            return None
        return entry

    def restore(self, entry: DocumentContext) -> bool:
        """Put back an entry returned by ``take_if_fresh``.

        The entry keeps its original ``created_at``, so restoring never
        extends its lifetime.  Nothing happens when the session already
        holds a newer upload or the entry has expired in the meantime.

        Returns:
            ``True`` if the entry was re-inserted.
        """
        with self._lock:
            if entry.session_key in self._data:
                return False
            if self._clock() - entry.created_at > self._ttl:
                return False
            self._data[entry.session_key] = entry
            self._evict_overflow()

        logger.info(
            "Document context restored | session=%s | file=%s",
            entry.session_key,
            entry.file_name,
        )
        return True

    def _evict_overflow(self) -> None:
        # Caller holds self._lock.
        while len(self._data) > self._maxsize:
            evicted_key, _ = self._data.popitem(last=False)
            self._eviction_count += 1
            logger.debug(
                "Document context eviction | session=%s | size=%d | total_evictions=%d",
                evicted_key,
                len(self._data),
                self._eviction_count,
            )

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were dropped."""
        with self._lock:
            now = self._clock()
            expired = [k for k, v in self._data.items() if now - v.created_at > self._ttl]
            for key in expired:
                del self._data[key]
        if expired:
            logger.debug("Purged expired document contexts | count=%d", len(expired))
        return len(expired)

    def __contains__(self, session_key: object) -> bool:
        with self._lock:
            return session_key in self._data

    def __len__(self) -> int:
        return len(self._data)

    @property
    def eviction_count(self) -> int:
        """Total number of entries evicted since construction."""
        return self._eviction_count
