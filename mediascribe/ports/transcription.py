"""TranscriptionPort: abstract interface for the ASR model handle."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from mediascribe.domain.models import TranscriptSegment

ChunkCallback = Callable[[int, int], None]


class TranscriptionPort(ABC):
    @abstractmethod
    def load(self) -> None:
        """Load the model, fetching weights if allowed. Raises ModelLoadError."""

    @abstractmethod
    def transcribe(
        self,
        audio_path: str,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> list[TranscriptSegment]:
        """Transcribe a 16kHz mono WAV into start-ordered segments.

        on_chunk(done, total) is called after each decoded sub-chunk.
        Raises InferenceError.
        """

    @abstractmethod
    def model_name(self) -> str:
        """Identifier recorded on every TranscriptVersion."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the model is loaded and ready for inference."""
