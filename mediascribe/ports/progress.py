"""ProgressPort: where long-running jobs publish their stage changes.

Stages, in the order a job moves through them:
  transcription: converting -> transcribing -> completed | failed
  voice scan:    scanning -> embedding -> clustering -> completed | failed
"""

from abc import ABC, abstractmethod
from typing import Optional

TERMINAL_STAGES = ("completed", "failed")


class ProgressPort(ABC):
    @abstractmethod
    def report(
        self,
        job_id: str,
        stage: str,
        progress: float = 0.0,
        detail: Optional[str] = None,
    ) -> None:
        """Publish one event; must not block the reporting job."""
