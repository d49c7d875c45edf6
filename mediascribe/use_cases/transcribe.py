"""TranscriptionEngine: cached, versioned transcription of media records.

Accepts its ports via dependency injection. The model handle is owned by the
composition root (config.py) and shared by reference.

Lifecycle: UNINITIALIZED -> LOADING -> READY. READY is terminal; a failed
load raises ModelLoadError and drops back to UNINITIALIZED so the caller
may try again later.

Concurrent transcribe() calls for the same record are not deduplicated.
Callers that want at most one transcription per record must serialize
their own submissions. There is no cancellation: once decode or inference
has started it runs to completion.
"""

import logging
import threading
import uuid

from mediascribe.domain.models import (
    EngineState, MediaRecord, TranscriptionResult, TranscriptionStatus, TranscriptVersion,
)
from mediascribe.exceptions import ExtractionError, InferenceError, ModelLoadError
from mediascribe.ports.audio import AudioExtractionPort
from mediascribe.ports.progress import ProgressPort
from mediascribe.ports.transcription import TranscriptionPort

logger = logging.getLogger(__name__)


class TranscriptionEngine:
    def __init__(
        self,
        transcription: TranscriptionPort,
        audio: AudioExtractionPort,
        progress: ProgressPort,
    ):
        self._transcription = transcription
        self._audio = audio
        self._progress = progress
        self._state = EngineState.UNINITIALIZED
        self._state_changed = threading.Condition()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def model_id(self) -> str:
        return self._transcription.model_name()

    def initialize(self) -> None:
        """Load the model. No-op once READY; waits if another thread is loading."""
        with self._state_changed:
            while self._state is EngineState.LOADING:
                self._state_changed.wait()
            if self._state is EngineState.READY:
                return
            self._state = EngineState.LOADING

        try:
            if self._transcription.is_loaded():
                logger.info(f"Model handle {self.model_id} already loaded")
            else:
                self._transcription.load()
        except ModelLoadError:
            self._set_state(EngineState.UNINITIALIZED)
            raise
        except Exception as e:
            self._set_state(EngineState.UNINITIALIZED)
            raise ModelLoadError(f"Unexpected error loading {self.model_id}: {e}") from e

        self._set_state(EngineState.READY)
        logger.info(f"Transcription engine ready ({self.model_id})")

    def _set_state(self, state: EngineState) -> None:
        with self._state_changed:
            self._state = state
            self._state_changed.notify_all()

    def transcribe(self, record: MediaRecord, force_refresh: bool = False) -> TranscriptionResult:
        """Return the record's transcript, running the model only when needed.

        Appends a new TranscriptVersion on success. The caller persists the
        record afterwards.
        """
        if self._state is not EngineState.READY:
            logger.warning(f"Transcription requested for {record.path} before the engine is ready")
            return TranscriptionResult(status=TranscriptionStatus.NOT_READY)

        latest = record.latest_version()
        if not force_refresh and latest is not None:
            logger.debug(f"Using cached transcript {latest.id} for {record.path}")
            return TranscriptionResult(
                status=TranscriptionStatus.CACHED,
                segments=list(latest.segments),
                version=latest,
            )

        job_id = uuid.uuid4().hex[:12]

        def _on_chunk(done: int, total: int) -> None:
            self._progress.report(
                job_id, "transcribing",
                progress=done / total,
                detail=f"chunk {done}/{total}",
            )

        try:
            self._progress.report(job_id, "converting", detail=record.path)
            with self._audio.extracted(record.path) as wav_file:
                self._progress.report(job_id, "transcribing")
                segments = self._transcription.transcribe(wav_file, on_chunk=_on_chunk)

        except ExtractionError as e:
            logger.error(f"Audio extraction failed for {record.path}: {e}")
            self._progress.report(job_id, "failed", detail=str(e))
            return TranscriptionResult(status=TranscriptionStatus.FAILED, error=str(e))

        except InferenceError as e:
            logger.error(f"Transcription failed for {record.path}: {e}")
            self._progress.report(job_id, "failed", detail=str(e))
            return TranscriptionResult(
                status=TranscriptionStatus.FAILED,
                segments=sorted(e.partial, key=lambda s: s.start),
                error=str(e),
            )

        except Exception as e:
            logger.error(f"Unexpected transcription error for {record.path}: {e}", exc_info=True)
            self._progress.report(job_id, "failed", detail=str(e))
            return TranscriptionResult(status=TranscriptionStatus.FAILED, error=str(e))

        version = TranscriptVersion.create(self.model_id, segments)
        record.add_version(version)
        self._progress.report(job_id, "completed", progress=1.0, detail=f"{len(version.segments)} segments")
        logger.info(f"Transcribed {record.path}: {len(version.segments)} segments (version {version.id})")

        return TranscriptionResult(
            status=TranscriptionStatus.TRANSCRIBED,
            segments=list(version.segments),
            version=version,
        )
