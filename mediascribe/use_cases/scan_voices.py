"""VoiceScanUseCase: group a record's speech segments by approximate voice.

Flow: transcript (cached when available) -> decode the media once ->
slice the decoded samples by segment time range -> embed each slice ->
cluster the surviving (segment, embedding) pairs in start order.
"""

import logging
import uuid
from typing import Optional

import numpy as np

from mediascribe.clustering import (
    DEFAULT_SIMILARITY_THRESHOLD, MIN_SEGMENT_SECONDS, cluster_speakers, select_segments,
)
from mediascribe.domain.models import MediaRecord, SpeakerCluster, TranscriptSegment
from mediascribe.exceptions import ExtractionError
from mediascribe.ports.audio import AudioExtractionPort
from mediascribe.ports.embedding import EmbeddingPort
from mediascribe.ports.progress import ProgressPort
from mediascribe.use_cases.transcribe import TranscriptionEngine

logger = logging.getLogger(__name__)

MIN_SLICE_SAMPLES = 1600


class VoiceScanUseCase:
    def __init__(
        self,
        engine: TranscriptionEngine,
        embedding: EmbeddingPort,
        audio: AudioExtractionPort,
        progress: ProgressPort,
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        min_segment_seconds: float = MIN_SEGMENT_SECONDS,
    ):
        self._engine = engine
        self._embedding = embedding
        self._audio = audio
        self._progress = progress
        self._threshold = threshold
        self._min_segment_seconds = min_segment_seconds

    def execute(self, record: MediaRecord, threshold: Optional[float] = None) -> list[SpeakerCluster]:
        """Return speaker clusters in creation order; empty when nothing usable was found."""
        job_id = uuid.uuid4().hex[:12]
        threshold = self._threshold if threshold is None else threshold

        if not self._embedding.is_available():
            logger.warning("Voice ID disabled: embedding model unavailable")
            return []

        self._progress.report(job_id, "scanning", detail=record.path)
        result = self._engine.transcribe(record)
        candidates = select_segments(result.segments, self._min_segment_seconds)
        if not candidates:
            logger.info(f"No segments of {self._min_segment_seconds}s or longer in {record.path}")
            self._progress.report(job_id, "completed", progress=1.0, detail="no usable segments")
            return []

        try:
            with self._audio.extracted(record.path) as wav_file:
                samples, sample_rate = self._audio.read_samples(wav_file)
        except ExtractionError as e:
            logger.error(f"Voice scan could not decode {record.path}: {e}")
            self._progress.report(job_id, "failed", detail=str(e))
            return []

        pairs = self._embed_segments(job_id, candidates, samples, sample_rate)

        self._progress.report(job_id, "clustering", detail=f"{len(pairs)} voiced segments")
        clusters = cluster_speakers(pairs, threshold=threshold)
        self._progress.report(job_id, "completed", progress=1.0, detail=f"{len(clusters)} speakers")
        return clusters

    def _embed_segments(
        self,
        job_id: str,
        segments: list[TranscriptSegment],
        samples: np.ndarray,
        sample_rate: int,
    ) -> list[tuple[TranscriptSegment, np.ndarray]]:
        pairs = []
        for i, seg in enumerate(segments):
            self._progress.report(
                job_id, "embedding",
                progress=(i + 1) / len(segments),
                detail=f"segment {i + 1}/{len(segments)}",
            )
            start = int(seg.start * sample_rate)
            end = min(int(seg.end * sample_rate), len(samples))
            chunk = samples[start:end]
            if len(chunk) < MIN_SLICE_SAMPLES:
                logger.debug(f"Skipping segment at {seg.start:.2f}s: only {len(chunk)} samples")
                continue

            vector = self._embedding.embed(chunk)
            if vector.size == 0:
                logger.debug(f"No voice signal for segment at {seg.start:.2f}s")
                continue
            pairs.append((seg, vector))

        logger.info(f"Embedded {len(pairs)}/{len(segments)} segments")
        return pairs
