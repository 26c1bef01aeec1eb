"""Run-scoped context passed through every engine component."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def new_run_id() -> str:
    return f"run_{uuid.uuid4()}"


@dataclass
class RunContext:
    """State of one engine invocation.

    There is no process-wide "current run": each component receives the
    context it operates under. Nothing here outlives the run.

    Attributes:
        run_id: Unique identifier for the run
        started_at: When the run started (UTC)
        now: Reference time for age evaluation, fixed for the whole run
        dry_run: Evaluate and report without deleting anything
        cancel_event: Set when the run is cancelled (e.g. on timeout)
    """

    run_id: str = field(default_factory=new_run_id)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    now: Optional[datetime] = None
    dry_run: bool = False
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def __post_init__(self) -> None:
        if self.now is None:
            self.now = self.started_at

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()
