"""sherpa-onnx transducer ASR and its release-archive fetcher."""

from .model_fetch import fetch_model
from .transcription import SherpaTranscriptionAdapter

__all__ = ["SherpaTranscriptionAdapter", "fetch_model"]
