"""EmbeddingPort: abstract interface for speaker-embedding models."""

from abc import ABC, abstractmethod

import numpy as np

EMPTY_EMBEDDING = np.empty(0, dtype=np.float32)


class EmbeddingPort(ABC):
    @abstractmethod
    def load(self) -> None:
        """Open the model if its artifact exists. Never fetches weights."""

    @abstractmethod
    def embed(self, samples: np.ndarray) -> np.ndarray:
        """Return a fixed-length vector, or an empty one when there is no usable signal."""

    @abstractmethod
    def is_available(self) -> bool:
        """False means the voice-ID feature is disabled."""
