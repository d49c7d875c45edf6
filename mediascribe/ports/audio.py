"""AudioExtractionPort: abstract interface for decoding media to 16kHz mono PCM."""

import os
import logging
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional

import numpy as np
import soundfile

logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000


class AudioExtractionPort(ABC):
    temp_dir: Optional[str] = None

    @abstractmethod
    def extract(
        self,
        input_path: str,
        output_path: str,
        start: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> str:
        """Decode input_path (optionally a time window) to 16kHz mono PCM WAV at output_path.

        Raises ExtractionError when the decoder is missing or fails.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the decoder can be invoked at all."""

    @contextmanager
    def extracted(
        self,
        input_path: str,
        start: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> Iterator[str]:
        """Decode into a temporary WAV that is removed on every exit path."""
        temp_file = tempfile.NamedTemporaryFile(suffix=".wav", delete=False, dir=self.temp_dir)
        temp_file.close()
        output_path = temp_file.name
        try:
            yield self.extract(input_path, output_path, start=start, duration=duration)
        finally:
            if os.path.exists(output_path):
                os.unlink(output_path)
                logger.debug(f"Removed temporary audio {output_path}")

    def read_samples(self, audio_path: str) -> tuple[np.ndarray, int]:
        """Read decoded PCM as float32 in [-1, 1]."""
        audio, sample_rate = soundfile.read(audio_path, dtype="float32")
        if audio.ndim > 1:
            audio = audio.mean(axis=1)
        if sample_rate != SAMPLE_RATE:
            logger.warning(f"Audio is {sample_rate}Hz, expected {SAMPLE_RATE}Hz")
        return audio, sample_rate
