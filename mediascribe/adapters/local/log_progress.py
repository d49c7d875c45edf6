"""LogProgressAdapter: progress events written to the service log."""

import logging
from typing import Optional

from mediascribe.ports.progress import TERMINAL_STAGES, ProgressPort

logger = logging.getLogger(__name__)


class LogProgressAdapter(ProgressPort):
    """Intermediate stages go to DEBUG so per-chunk events don't flood INFO."""

    def report(
        self,
        job_id: str,
        stage: str,
        progress: float = 0.0,
        detail: Optional[str] = None,
    ) -> None:
        msg = f"job {job_id}: {stage}"
        if 0 < progress < 1:
            msg += f" at {progress:.0%}"
        if detail:
            msg += f" ({detail})"

        if stage == "failed":
            logger.warning(msg)
        elif stage in TERMINAL_STAGES or progress == 0:
            logger.info(msg)
        else:
            logger.debug(msg)
