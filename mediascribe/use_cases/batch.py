"""BatchTranscribeUseCase: transcribe many files, isolating per-file failures."""

import logging
from dataclasses import dataclass
from typing import Iterable

from mediascribe.domain.models import TranscriptionResult, TranscriptionStatus
from mediascribe.ports.media_store import MediaStorePort
from mediascribe.use_cases.transcribe import TranscriptionEngine

logger = logging.getLogger(__name__)


@dataclass
class BatchItem:
    path: str
    result: TranscriptionResult


class BatchTranscribeUseCase:
    def __init__(self, engine: TranscriptionEngine, store: MediaStorePort):
        self._engine = engine
        self._store = store

    def execute(self, paths: Iterable[str], force_refresh: bool = False) -> list[BatchItem]:
        items: list[BatchItem] = []
        paths = list(paths)

        for i, path in enumerate(paths):
            logger.info(f"Batch {i + 1}/{len(paths)}: {path}")
            try:
                record = self._store.get_or_create(path)
                result = self._engine.transcribe(record, force_refresh=force_refresh)
                if result.status is TranscriptionStatus.TRANSCRIBED:
                    self._store.save(record)
            except Exception as e:
                logger.error(f"Batch item {path} failed: {e}", exc_info=True)
                result = TranscriptionResult(status=TranscriptionStatus.FAILED, error=str(e))
            items.append(BatchItem(path=path, result=result))

        failed = sum(1 for item in items if not item.result.ok)
        logger.info(f"Batch finished: {len(items) - failed} ok, {failed} failed")
        return items
