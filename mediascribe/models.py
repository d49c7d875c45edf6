from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SegmentModel(BaseModel):
    """One transcript segment as stored and served."""
    start: float
    end: float
    text: str


class TranscriptVersionModel(BaseModel):
    """Persisted shape of one transcription run."""
    id: str
    model: str
    created: datetime
    segments: List[SegmentModel] = []


class MediaRecordModel(BaseModel):
    """Persisted shape of a media record; versions are opaque JSON blobs."""
    id: str
    path: str
    preview: Optional[str] = None
    versions: List[str] = []


class TranscribeBody(BaseModel):
    path: str
    force_refresh: bool = False


class BatchTranscribeBody(BaseModel):
    paths: List[str]
    force_refresh: bool = False


class VoiceScanBody(BaseModel):
    path: str
    similarity_threshold: Optional[float] = Field(default=None, ge=-1.0, le=1.0)


class TranscriptionResponse(BaseModel):
    """Response for a transcription request"""
    path: str
    status: str
    model: Optional[str] = None
    version_id: Optional[str] = None
    preview: Optional[str] = None
    segments: List[SegmentModel] = []
    error: Optional[str] = None


class BatchTranscriptionResponse(BaseModel):
    items: List[TranscriptionResponse] = []
    failed: int = 0


class MediaSummary(BaseModel):
    """One stored media record without its transcript bodies."""
    id: str
    path: str
    preview: Optional[str] = None
    version_count: int = 0
    latest_version_id: Optional[str] = None


class TranscriptList(BaseModel):
    path: str
    preview: Optional[str] = None
    versions: List[TranscriptVersionModel] = []


class SpeakerClusterModel(BaseModel):
    label: str
    total_duration: float
    segment_count: int
    segments: List[SegmentModel] = []


class VoiceScanResponse(BaseModel):
    """Approximate speaker grouping; not a verified speaker count."""
    path: str
    speakers: List[SpeakerClusterModel] = []


class ProgressEventModel(BaseModel):
    job_id: str
    stage: str
    progress: float = 0.0
    detail: Optional[str] = None
    timestamp: float


class HealthResponse(BaseModel):
    status: str
    engine_state: str
    model: Optional[str] = None
    voice_id_available: bool
    decoder_available: bool
    load_error: Optional[str] = None
