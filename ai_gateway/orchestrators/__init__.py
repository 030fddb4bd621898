"""Upstream orchestration core.

- backoff: Adaptive poll-interval scheduling
- poller: Async task state machine (STARTED → POLLING → terminal)
- streaming: Byte-exact relay of streamed chat completions
- document_context: Per-session, TTL-bounded, single-use document cache
- facade: ``AIOrchestrator``, the entry point used by the HTTP layer
"""
