import os
import logging
from typing import Dict, Any
from pathlib import Path

from dotenv import load_dotenv

from mediascribe.adapters.onnx.embedding import DEFAULT_EMBEDDING_MODEL
from mediascribe.adapters.sherpa.model_fetch import DEFAULT_MODEL_BASE_URL
from mediascribe.adapters.sherpa.transcription import DEFAULT_MODEL_ID, DEFAULT_MODELS_DIR

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8011
DEFAULT_TEMP_DIR = "/tmp/mediascribe"
DEFAULT_STORE_PATH = "/data/media-index.json"


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self.host = os.environ.get("HOST", DEFAULT_HOST)
        self.port = int(os.environ.get("PORT", DEFAULT_PORT))
        self.debug = os.environ.get("DEBUG", "0") == "1"
        self.model_id = os.environ.get("MODEL_ID", "").strip() or DEFAULT_MODEL_ID
        self.models_dir = os.environ.get("MODELS_DIR", DEFAULT_MODELS_DIR)
        self.model_base_url = os.environ.get("MODEL_BASE_URL", DEFAULT_MODEL_BASE_URL)
        self.auto_download = _env_bool("AUTO_DOWNLOAD", "true")
        self.provider = os.environ.get("PROVIDER", "cpu").lower()
        self.num_threads = int(os.environ.get("NUM_THREADS", "4"))
        self.embedding_model = os.environ.get("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)
        self.ffmpeg_binary = os.environ.get("FFMPEG_BINARY", "ffmpeg")
        self.temp_dir = os.environ.get("TEMP_DIR", DEFAULT_TEMP_DIR)
        self.store_path = os.environ.get("STORE_PATH", DEFAULT_STORE_PATH)
        self.progress = os.environ.get("PROGRESS", "queue").lower()
        self.similarity_threshold = float(os.environ.get("SIMILARITY_THRESHOLD", "0.80"))
        self.min_segment_seconds = float(os.environ.get("MIN_SEGMENT_SECONDS", "0.5"))
        Path(self.temp_dir).mkdir(parents=True, exist_ok=True)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "model_id": self.model_id,
            "models_dir": self.models_dir,
            "auto_download": self.auto_download,
            "provider": self.provider,
            "num_threads": self.num_threads,
            "embedding_model": self.embedding_model,
            "ffmpeg_binary": self.ffmpeg_binary,
            "temp_dir": self.temp_dir,
            "store_path": self.store_path,
            "progress": self.progress,
            "similarity_threshold": self.similarity_threshold,
            "min_segment_seconds": self.min_segment_seconds,
        }


def get_config() -> Config:
    return Config()


def create_audio_adapter(cfg: Config):
    """Create the audio extraction adapter (always FFmpeg)."""
    from mediascribe.adapters.ffmpeg.audio import FFmpegAudioAdapter
    return FFmpegAudioAdapter(binary=cfg.ffmpeg_binary, temp_dir=cfg.temp_dir)


def create_transcription_engine(cfg: Config, audio, progress):
    """Create the shared ASR model handle and the engine that owns its lifecycle."""
    from mediascribe.adapters.sherpa.transcription import SherpaTranscriptionAdapter
    from mediascribe.use_cases.transcribe import TranscriptionEngine

    transcription = SherpaTranscriptionAdapter(
        model_id=cfg.model_id,
        models_dir=cfg.models_dir,
        provider=cfg.provider,
        num_threads=cfg.num_threads,
        auto_download=cfg.auto_download,
        base_url=cfg.model_base_url,
    )
    logger.info(f"Transcription: {type(transcription).__name__} model={cfg.model_id}")
    return TranscriptionEngine(transcription, audio, progress)


def create_embedding_adapter(cfg: Config):
    from mediascribe.adapters.onnx.embedding import OnnxSpeakerEmbeddingAdapter
    return OnnxSpeakerEmbeddingAdapter(model_path=cfg.embedding_model, provider=cfg.provider)


def create_infra_adapters(cfg: Config):
    """Create the progress channel and media record store."""
    from mediascribe.adapters.local.json_media_store import JsonMediaStore
    from mediascribe.adapters.local.log_progress import LogProgressAdapter
    from mediascribe.adapters.local.queue_progress import QueueProgressAdapter

    if cfg.progress == "queue":
        progress = QueueProgressAdapter()
    elif cfg.progress == "log":
        progress = LogProgressAdapter()
    else:
        raise ValueError(f"Unknown PROGRESS: {cfg.progress!r}. Valid options: queue, log")

    adapters = {
        "progress": progress,
        "store": JsonMediaStore(cfg.store_path),
    }
    logger.info(f"Infra adapters: {', '.join(type(v).__name__ for v in adapters.values())}")
    return adapters
