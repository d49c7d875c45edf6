"""SherpaTranscriptionAdapter: offline transducer ASR with token timestamps.

Splits audio into sub-chunks that fit the encoder's attention window (~100s max),
decodes them one after another on the shared recognizer, offset-corrects the
token timestamps and groups tokens into sentence-like segments based on
silence gaps.

The recognizer is one long-lived handle; every call into it holds a lock
because concurrent decode on the same recognizer is not documented as safe.
"""

import logging
import os
import shutil
import threading
from typing import Optional

import httpx
import numpy as np
import soundfile

from mediascribe.adapters.sherpa.model_fetch import DEFAULT_MODEL_BASE_URL, fetch_model
from mediascribe.domain.models import TranscriptSegment
from mediascribe.exceptions import InferenceError, ModelLoadError
from mediascribe.ports.audio import SAMPLE_RATE
from mediascribe.ports.transcription import ChunkCallback, TranscriptionPort

logger = logging.getLogger(__name__)

REQUIRED_FILES = ["encoder.int8.onnx", "decoder.int8.onnx", "joiner.int8.onnx", "tokens.txt"]

DEFAULT_MODEL_ID = "sherpa-onnx-nemo-parakeet-tdt-0.6b-v2-int8"
DEFAULT_MODELS_DIR = "/models/sherpa-onnx"

# Max duration per sub-chunk (seconds). Parakeet TDT's self-attention supports
# ~1250 frames at 12.5 fps = 100s. Use 80s for safety margin.
MAX_CHUNK_SECONDS = 80

# Silence gap (seconds) between tokens that triggers a new segment.
SEGMENT_SILENCE_THRESHOLD = 0.25

# Max segment duration (seconds). Keeps a segment within one speaker's
# utterance so the voice scan can attribute it to a single cluster.
MAX_SEGMENT_DURATION = 6.0

# Tokens carry a start time only; this is the assumed length of the last one.
TOKEN_TAIL_SECONDS = 0.1


class SherpaTranscriptionAdapter(TranscriptionPort):
    def __init__(
        self,
        model_id: str = DEFAULT_MODEL_ID,
        models_dir: str = DEFAULT_MODELS_DIR,
        provider: str = "cpu",
        num_threads: int = 4,
        auto_download: bool = True,
        base_url: str = DEFAULT_MODEL_BASE_URL,
        http_client: Optional[httpx.Client] = None,
    ):
        self._model_id = model_id
        self._models_dir = models_dir
        self._provider = provider
        self._num_threads = num_threads
        self._auto_download = auto_download
        self._base_url = base_url
        self._http_client = http_client
        self._recognizer = None
        self._lock = threading.Lock()

    @property
    def model_dir(self) -> str:
        return os.path.join(self._models_dir, self._model_id)

    def load(self) -> None:
        """Load ASR model, fetching it first when missing and allowed."""
        if self._recognizer is not None:
            return

        created_dir = self._ensure_models()

        logger.info(f"Loading Sherpa-ONNX ASR model {self._model_id} (provider={self._provider})...")
        try:
            import sherpa_onnx

            recognizer = sherpa_onnx.OfflineRecognizer.from_transducer(
                encoder=os.path.join(self.model_dir, "encoder.int8.onnx"),
                decoder=os.path.join(self.model_dir, "decoder.int8.onnx"),
                joiner=os.path.join(self.model_dir, "joiner.int8.onnx"),
                tokens=os.path.join(self.model_dir, "tokens.txt"),
                model_type="nemo_transducer",
                provider=self._provider,
                num_threads=self._num_threads,
            )
        except Exception as e:
            logger.error(f"Failed to load ASR model from {self.model_dir}: {e}")
            if created_dir:
                shutil.rmtree(self.model_dir, ignore_errors=True)
            raise ModelLoadError(f"Could not load ASR model {self._model_id}: {e}") from e

        self._recognizer = recognizer
        logger.info(f"Sherpa transcription adapter ready: {self.model_dir}")

    def transcribe(
        self,
        audio_path: str,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> list[TranscriptSegment]:
        if self._recognizer is None:
            raise InferenceError("Sherpa adapter not loaded")

        all_tokens: list[str] = []
        all_timestamps: list[float] = []
        duration = 0.0

        try:
            logger.info(f"Loading audio: {audio_path}")
            audio, sample_rate = soundfile.read(audio_path, dtype="float32")

            if len(audio.shape) > 1:
                audio = audio.mean(axis=1)

            # The extraction port should already have produced 16kHz mono
            if sample_rate != SAMPLE_RATE:
                logger.warning(f"Audio is {sample_rate}Hz, expected {SAMPLE_RATE}Hz")
                target_len = int(len(audio) * SAMPLE_RATE / sample_rate)
                indices = np.linspace(0, len(audio) - 1, target_len)
                audio = np.interp(indices, np.arange(len(audio)), audio).astype(np.float32)
                sample_rate = SAMPLE_RATE

            duration = len(audio) / sample_rate
            logger.info(f"Audio loaded: {duration:.2f}s @ {sample_rate}Hz")
            if len(audio) == 0:
                return []

            chunk_samples = MAX_CHUNK_SECONDS * sample_rate
            num_chunks = max(1, int(np.ceil(len(audio) / chunk_samples)))

            for i in range(num_chunks):
                start_sample = i * chunk_samples
                chunk = audio[start_sample:min((i + 1) * chunk_samples, len(audio))]
                offset = start_sample / sample_rate

                with self._lock:
                    stream = self._recognizer.create_stream()
                    stream.accept_waveform(sample_rate, chunk)
                    self._recognizer.decode_stream(stream)
                result = stream.result

                if result.tokens:
                    all_tokens.extend(result.tokens)
                    all_timestamps.extend(t + offset for t in result.timestamps)

                logger.debug(f"Decoded chunk {i + 1}/{num_chunks}")
                if on_chunk:
                    on_chunk(i + 1, num_chunks)

        except Exception as e:
            partial = self._group_tokens_into_segments(all_tokens, all_timestamps, duration)
            logger.error(f"Sherpa transcription error: {e}", exc_info=True)
            raise InferenceError(f"Transcription failed for {audio_path}: {e}", partial=partial) from e

        segments = self._group_tokens_into_segments(all_tokens, all_timestamps, duration)
        if not segments:
            logger.warning("No speech detected")
        else:
            logger.info(f"Grouped {len(all_tokens)} tokens into {len(segments)} segments")
        return segments

    def _group_tokens_into_segments(
        self,
        tokens: list,
        timestamps: list,
        audio_duration: float,
    ) -> list[TranscriptSegment]:
        """Group tokens into segments by detecting silence gaps between them.

        Each token has a timestamp (seconds from audio start). When the gap
        between consecutive tokens exceeds SEGMENT_SILENCE_THRESHOLD, or the
        segment would grow past MAX_SEGMENT_DURATION, a new segment starts.
        """
        if not tokens:
            return []

        segments: list[TranscriptSegment] = []
        current_tokens: list[str] = [tokens[0]]
        current_start: float = timestamps[0]
        prev_timestamp: float = timestamps[0]

        for i in range(1, len(tokens)):
            gap = timestamps[i] - prev_timestamp
            segment_duration = timestamps[i] - current_start
            if gap > SEGMENT_SILENCE_THRESHOLD or segment_duration > MAX_SEGMENT_DURATION:
                text = "".join(current_tokens).strip()
                if text:
                    segments.append(TranscriptSegment(
                        start=current_start,
                        end=prev_timestamp + TOKEN_TAIL_SECONDS,
                        text=text,
                    ))
                current_tokens = [tokens[i]]
                current_start = timestamps[i]
            else:
                current_tokens.append(tokens[i])
            prev_timestamp = timestamps[i]

        text = "".join(current_tokens).strip()
        if text:
            end = min(prev_timestamp + TOKEN_TAIL_SECONDS, audio_duration)
            segments.append(TranscriptSegment(
                start=current_start,
                end=max(end, current_start),
                text=text,
            ))

        return segments

    def model_name(self) -> str:
        return self._model_id

    def is_loaded(self) -> bool:
        return self._recognizer is not None

    def _missing_files(self) -> list[str]:
        missing = []
        for f in REQUIRED_FILES:
            path = os.path.join(self.model_dir, f)
            if os.path.exists(path) and os.path.getsize(path) == 0:
                logger.warning(f"  {f} is empty, removing")
                os.unlink(path)
            if os.path.exists(path):
                size_mb = os.path.getsize(path) / (1024 * 1024)
                logger.info(f"  asr: {f} ({size_mb:.1f} MB)")
            else:
                missing.append(f)
                logger.warning(f"  asr: {f} MISSING")
        return missing

    def _ensure_models(self) -> bool:
        """Verify the model files, fetching them when allowed.

        Returns True when this call created the model directory, so a later
        load failure may remove it.
        """
        missing = self._missing_files()
        if not missing:
            logger.info("All sherpa-onnx models verified")
            return False

        if not self._auto_download:
            raise ModelLoadError(f"Missing model files in {self.model_dir}: {missing}")

        created_dir = not os.path.exists(self.model_dir)
        fetch_model(self._model_id, self._models_dir, self._base_url, client=self._http_client)

        missing = self._missing_files()
        if missing:
            if created_dir:
                shutil.rmtree(self.model_dir, ignore_errors=True)
            raise ModelLoadError(
                f"Model archive for {self._model_id} did not contain {missing}"
            )
        return created_dir
