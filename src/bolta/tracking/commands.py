"""Session commands: messages from background jobs to a tracking session.

Scheduled work (rollover checks, external-sync polls, periodic flushes)
never touches the store directly.  It submits a :class:`SessionCommand`
and the session's single consumer task executes it.
"""

from __future__ import annotations

import enum
import time
import uuid
from dataclasses import dataclass, field
from typing import Any


class CommandKind(enum.StrEnum):
    ROLLOVER_CHECK = "rollover_check"
    EXTERNAL_SYNC = "external_sync"
    FLUSH = "flush"


@dataclass
class SessionCommand:
    kind: CommandKind
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: float = field(default_factory=time.time)
    job_id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def rollover_check(cls, job_id: str = "", metadata: dict[str, Any] | None = None) -> SessionCommand:
        return cls(kind=CommandKind.ROLLOVER_CHECK, job_id=job_id, metadata=metadata or {})

    @classmethod
    def external_sync(cls, job_id: str = "", metadata: dict[str, Any] | None = None) -> SessionCommand:
        return cls(kind=CommandKind.EXTERNAL_SYNC, job_id=job_id, metadata=metadata or {})

    @classmethod
    def flush(cls, job_id: str = "") -> SessionCommand:
        return cls(kind=CommandKind.FLUSH, job_id=job_id)
