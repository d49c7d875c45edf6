"""QueueProgressAdapter: progress events as a stream the orchestrator subscribes to."""

import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Iterator, Optional

from mediascribe.ports.progress import ProgressPort


@dataclass
class ProgressEvent:
    job_id: str
    stage: str
    progress: float = 0.0
    detail: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


class QueueProgressAdapter(ProgressPort):
    def __init__(self, maxsize: int = 1000):
        self._queue: "queue.Queue[ProgressEvent]" = queue.Queue(maxsize=maxsize)
        self._put_lock = threading.Lock()

    def report(
        self,
        job_id: str,
        stage: str,
        progress: float = 0.0,
        detail: Optional[str] = None,
    ) -> None:
        event = ProgressEvent(job_id=job_id, stage=stage, progress=progress, detail=detail)
        # Only reporters add events, so under this lock an eviction always frees a slot.
        with self._put_lock:
            try:
                self._queue.put_nowait(event)
            except queue.Full:
                # Nobody is listening; keep the newest events.
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass
                self._queue.put_nowait(event)

    def events(self, timeout: Optional[float] = None) -> Iterator[ProgressEvent]:
        """Yield events as they arrive; stops after ``timeout`` seconds of silence."""
        while True:
            try:
                yield self._queue.get(timeout=timeout)
            except queue.Empty:
                return

    def drain(self) -> list[ProgressEvent]:
        """Return every pending event without blocking."""
        drained = []
        while True:
            try:
                drained.append(self._queue.get_nowait())
            except queue.Empty:
                return drained
