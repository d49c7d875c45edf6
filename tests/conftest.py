import os
import threading
import time
from typing import Optional

import numpy as np
import pytest
import soundfile

from mediascribe.adapters.local.queue_progress import QueueProgressAdapter
from mediascribe.domain.models import MediaRecord, TranscriptSegment
from mediascribe.exceptions import ExtractionError, InferenceError
from mediascribe.ports.audio import AudioExtractionPort, SAMPLE_RATE
from mediascribe.ports.embedding import EMPTY_EMBEDDING, EmbeddingPort
from mediascribe.ports.media_store import MediaStorePort
from mediascribe.ports.transcription import TranscriptionPort
from mediascribe.use_cases.transcribe import TranscriptionEngine


class FakeDecoder(AudioExtractionPort):
    """Writes synthetic PCM instead of running ffmpeg, and counts invocations."""

    def __init__(self, temp_dir: str, seconds: float = 10.0, fail_paths: Optional[set] = None):
        self.temp_dir = temp_dir
        rng = np.random.default_rng(0)
        self.samples = (rng.standard_normal(int(seconds * SAMPLE_RATE)) * 0.1).astype(np.float32)
        self.fail_paths = fail_paths or set()
        self.calls: list[str] = []

    def extract(self, input_path, output_path, start=None, duration=None):
        self.calls.append(input_path)
        if input_path in self.fail_paths or "*" in self.fail_paths:
            raise ExtractionError(f"decoder failed for {input_path}")
        soundfile.write(output_path, self.samples, SAMPLE_RATE, subtype="PCM_16")
        return output_path

    def is_available(self) -> bool:
        return True


class FakeTranscriber(TranscriptionPort):
    def __init__(self, segments=None, model="fake-asr-base"):
        self.segments = segments if segments is not None else [
            TranscriptSegment(0.5, 3.0, " hello there"),
            TranscriptSegment(3.0, 5.5, "general kenobi"),
        ]
        self.model = model
        self.loaded = False
        self.load_calls = 0
        self.load_error: Optional[Exception] = None
        self.inference_error: Optional[InferenceError] = None
        self.transcribed_paths: list[str] = []

    def load(self) -> None:
        self.load_calls += 1
        if self.load_error is not None:
            raise self.load_error
        self.loaded = True

    def transcribe(self, audio_path, on_chunk=None):
        assert os.path.exists(audio_path)
        self.transcribed_paths.append(audio_path)
        if self.inference_error is not None:
            raise self.inference_error
        if on_chunk:
            on_chunk(1, 1)
        return list(self.segments)

    def model_name(self) -> str:
        return self.model

    def is_loaded(self) -> bool:
        return self.loaded


class FakeEmbedder(EmbeddingPort):
    """Returns queued vectors in call order and records the slice lengths."""

    def __init__(self, vectors=None, available: bool = True):
        self.vectors = list(vectors or [])
        self.available = available
        self.sample_counts: list[int] = []

    def load(self) -> None:
        pass

    def embed(self, samples):
        self.sample_counts.append(len(samples))
        if not self.vectors:
            return EMPTY_EMBEDDING
        return np.asarray(self.vectors.pop(0), dtype=np.float32)

    def is_available(self) -> bool:
        return self.available


class InMemoryStore(MediaStorePort):
    def __init__(self, fail_paths: Optional[set] = None):
        self.records: dict[str, MediaRecord] = {}
        self.saved: list[str] = []
        self.fail_paths = fail_paths or set()

    def get(self, path):
        return self.records.get(path)

    def get_or_create(self, path):
        if path in self.fail_paths:
            raise OSError(f"store unavailable for {path}")
        return self.records.get(path) or MediaRecord(path=path)

    def save(self, record):
        self.records[record.path] = record
        self.saved.append(record.path)

    def all(self):
        return list(self.records.values())


@pytest.fixture
def decoder(tmp_path):
    work = tmp_path / "work"
    work.mkdir()
    return FakeDecoder(str(work))


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def progress():
    return QueueProgressAdapter()


@pytest.fixture
def engine(transcriber, decoder, progress):
    return TranscriptionEngine(transcriber, decoder, progress)


@pytest.fixture
def ready_engine(engine):
    engine.initialize()
    return engine


@pytest.fixture
def record():
    return MediaRecord(path="/media/holiday.mp4")


@pytest.fixture
def store():
    return InMemoryStore()



class InFlight:
    """Context manager counting how many callers are inside it at once."""

    def __init__(self, hold_seconds: float = 0.05):
        self.hold_seconds = hold_seconds
        self.current = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __enter__(self):
        with self._lock:
            self.current += 1
            self.peak = max(self.peak, self.current)
        time.sleep(self.hold_seconds)
        return self

    def __exit__(self, *exc):
        with self._lock:
            self.current -= 1
        return False


def run_together(target, count: int = 4) -> list:
    """Start ``count`` threads on ``target`` at the same moment; return what they raised."""
    barrier = threading.Barrier(count)
    errors = []

    def worker():
        barrier.wait()
        try:
            target()
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return errors
