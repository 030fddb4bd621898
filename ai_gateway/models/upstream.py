"""Typed models for the upstream task protocol.

- ``TaskStatus``: Normalised lifecycle state of an upstream task
- ``UpstreamTask``: One status sample returned by a poll call
- ``Submission``: Outcome of a submit call (task id *or* inline result)

Design notes:
- Frozen dataclasses; the raw upstream payload is kept alongside the
  parsed fields so result extraction can run over it later.
- Status strings are normalised once, here.  Anything unrecognised
  becomes ``UNKNOWN`` and is polled again.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class TaskStatus(enum.Enum):
    """Lifecycle state of an upstream task.

    Values:
        PENDING:   Accepted, not started.
        RUNNING:   In progress.
        SUCCEEDED: Finished; a result location should be present.
        FAILED:    Upstream gave up on the task.
        UNKNOWN:   A status string this gateway does not know yet.
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: object) -> TaskStatus:
        """Map an upstream ``task_status`` string onto a ``TaskStatus``."""
        value = str(raw or "").strip().upper()
        return _STATUS_ALIASES.get(value, cls.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAILED)


_STATUS_ALIASES: dict[str, TaskStatus] = {
    "PENDING": TaskStatus.PENDING,
    "QUEUED": TaskStatus.PENDING,
    "RUNNING": TaskStatus.RUNNING,
    "PROCESSING": TaskStatus.RUNNING,
    "SUCCEEDED": TaskStatus.SUCCEEDED,
    "SUCCEED": TaskStatus.SUCCEEDED,
    "SUCCESS": TaskStatus.SUCCEEDED,
    "FAILED": TaskStatus.FAILED,
    "FAILURE": TaskStatus.FAILED,
}


@dataclass(frozen=True, slots=True)
class UpstreamTask:
    """A single status sample of an upstream task.

    Attributes:
        task_id: Opaque upstream task identifier.
        status: Normalised task status.
        raw_status: Status string exactly as the upstream sent it.
        payload: Full decoded poll response body.
        result_url: Result location, filled in once extracted.
    """

    task_id: str
    status: TaskStatus
    raw_status: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    result_url: str | None = None

    @classmethod
    def from_response(cls, task_id: str, body: dict[str, Any]) -> UpstreamTask:
        raw_status = str(body.get("task_status", ""))
        return cls(
            task_id=task_id,
            status=TaskStatus.parse(raw_status),
            raw_status=raw_status,
            payload=body,
        )


@dataclass(frozen=True, slots=True)
class Submission:
    """Outcome of a successful submit call.

    Exactly one of ``task_id`` (asynchronous) and ``result_url``
    (synchronous) is set; ``payload`` is the decoded response body.
    """

    task_id: str | None = None
    result_url: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_async(self) -> bool:
        return self.task_id is not None
