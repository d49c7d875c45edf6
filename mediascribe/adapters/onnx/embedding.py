"""OnnxSpeakerEmbeddingAdapter: speaker vectors from a VoxCeleb-style ONNX model.

The model takes a fixed block of MFCC frames shaped [1, 1, 80, 200]
(80 coefficients x 200 frames of 10 ms hop, about 2 s of speech) and
returns one identity vector. Short input is rejected rather than padded.
"""

import os
import logging
import threading
from typing import Optional

import librosa
import numpy as np

from mediascribe.exceptions import InferenceError
from mediascribe.ports.audio import SAMPLE_RATE
from mediascribe.ports.embedding import EMPTY_EMBEDDING, EmbeddingPort

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "/models/voxceleb.onnx"

MIN_SAMPLES = 1600          # 0.1 s
FEATURE_COUNT = 80
WINDOW_SAMPLES = 400        # 25 ms
HOP_SAMPLES = 160           # 10 ms
REQUIRED_FRAMES = 200       # 2 s


def compute_mfcc(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """MFCC matrix shaped (FEATURE_COUNT, frames)."""
    return librosa.feature.mfcc(
        y=np.asarray(samples, dtype=np.float32),
        sr=sample_rate,
        n_mfcc=FEATURE_COUNT,
        n_mels=FEATURE_COUNT,
        n_fft=WINDOW_SAMPLES,
        win_length=WINDOW_SAMPLES,
        hop_length=HOP_SAMPLES,
        center=False,
    )


class OnnxSpeakerEmbeddingAdapter(EmbeddingPort):
    def __init__(self, model_path: str = DEFAULT_EMBEDDING_MODEL, provider: str = "cpu"):
        self._model_path = model_path
        self._provider = provider
        self._session = None
        self._lock = threading.Lock()

    def load(self) -> None:
        if self._session is not None:
            return
        if not os.path.exists(self._model_path):
            logger.warning(f"Embedding model not found at {self._model_path}; voice ID disabled")
            return

        import onnxruntime

        providers = ["CUDAExecutionProvider", "CPUExecutionProvider"] if self._provider == "cuda" else ["CPUExecutionProvider"]
        try:
            self._session = onnxruntime.InferenceSession(self._model_path, providers=providers)
        except Exception as e:
            logger.error(f"Failed to open embedding model {self._model_path}: {e}")
            return
        logger.info(f"Embedding model loaded: {self._model_path}")

    def is_available(self) -> bool:
        return self._session is not None

    def embed(self, samples: np.ndarray) -> np.ndarray:
        if self._session is None:
            return EMPTY_EMBEDDING
        if len(samples) < MIN_SAMPLES:
            logger.debug(f"Embedding skipped: {len(samples)} samples is below {MIN_SAMPLES}")
            return EMPTY_EMBEDDING

        try:
            block = self._feature_block(samples)
            if block is None:
                return EMPTY_EMBEDDING
            return self._run(block)
        except InferenceError as e:
            logger.error(str(e))
            return EMPTY_EMBEDDING

    def _feature_block(self, samples: np.ndarray) -> Optional[np.ndarray]:
        mfcc = compute_mfcc(samples)
        frames = mfcc.shape[1]
        if frames < REQUIRED_FRAMES:
            logger.debug(f"Embedding skipped: {frames} MFCC frames, need {REQUIRED_FRAMES}")
            return None
        block = mfcc[:, :REQUIRED_FRAMES]
        return block.reshape(1, 1, FEATURE_COUNT, REQUIRED_FRAMES).astype(np.float32)

    def _run(self, block: np.ndarray) -> np.ndarray:
        try:
            with self._lock:
                input_name = self._session.get_inputs()[0].name
                outputs = self._session.run(None, {input_name: block})
        except Exception as e:
            raise InferenceError(f"Embedding inference failed: {e}") from e
        return np.asarray(outputs[0], dtype=np.float32).reshape(-1)
