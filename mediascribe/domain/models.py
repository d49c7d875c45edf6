"""Framework-agnostic domain models for mediascribe.

Pydantic DTOs in models.py are the persistence/API shapes; mappers.py
converts at the boundary.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import numpy as np

PREVIEW_MAX_CHARS = 120


@dataclass
class TranscriptSegment:
    """A single transcribed speech segment, times in seconds from media start."""
    start: float
    end: float
    text: str

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"segment end {self.end} precedes start {self.start}")

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class TranscriptVersion:
    """One immutable transcription run."""
    id: str
    model: str
    created: datetime
    segments: tuple[TranscriptSegment, ...] = ()

    @classmethod
    def create(cls, model: str, segments: list[TranscriptSegment]) -> "TranscriptVersion":
        ordered = sorted(segments, key=lambda s: s.start)
        return cls(
            id=uuid.uuid4().hex,
            model=model,
            created=datetime.now(timezone.utc),
            segments=tuple(ordered),
        )


@dataclass
class MediaRecord:
    """A media file and its transcript history.

    Owned and persisted by a MediaStorePort; the engine only appends
    versions and refreshes the preview.
    """
    path: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    versions: list[TranscriptVersion] = field(default_factory=list)
    preview: Optional[str] = None

    def latest_version(self) -> Optional[TranscriptVersion]:
        return self.versions[-1] if self.versions else None

    def add_version(self, version: TranscriptVersion) -> None:
        self.versions.append(version)
        self._refresh_preview()

    def delete_version(self, version_id: str) -> bool:
        remaining = [v for v in self.versions if v.id != version_id]
        if len(remaining) == len(self.versions):
            return False
        self.versions = remaining
        self._refresh_preview()
        return True

    def _refresh_preview(self) -> None:
        latest = self.latest_version()
        if latest is None or not latest.segments:
            self.preview = None
            return
        self.preview = latest.segments[0].text.strip()[:PREVIEW_MAX_CHARS]


@dataclass
class SpeakerCluster:
    """A group of segments attributed to one (approximate) voice.

    Recomputed on every scan and never persisted.
    """
    label: str
    centroid: np.ndarray
    segments: list[TranscriptSegment] = field(default_factory=list)

    @property
    def total_duration(self) -> float:
        return sum(seg.duration for seg in self.segments)

    def rename(self, label: str) -> None:
        self.label = label


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class TranscriptionStatus(str, Enum):
    CACHED = "cached"
    TRANSCRIBED = "transcribed"
    NOT_READY = "not_ready"
    FAILED = "failed"


@dataclass
class TranscriptionResult:
    """Outcome of TranscriptionEngine.transcribe."""
    status: TranscriptionStatus
    segments: list[TranscriptSegment] = field(default_factory=list)
    version: Optional[TranscriptVersion] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (TranscriptionStatus.CACHED, TranscriptionStatus.TRANSCRIBED)
