"""Local HTTP control surface.

Endpoints are plain ``def`` functions so FastAPI runs them in its threadpool;
decode and inference never block the event loop. Collaborators default to
the ones built by config.py and can be injected for tests.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from starlette.concurrency import run_in_threadpool

from mediascribe.adapters.local.queue_progress import QueueProgressAdapter
from mediascribe.config import (
    Config, get_config, create_audio_adapter, create_embedding_adapter,
    create_infra_adapters, create_transcription_engine,
)
from mediascribe.domain.models import EngineState, TranscriptionResult, TranscriptionStatus
from mediascribe.exceptions import ModelLoadError
from mediascribe.mappers import cluster_to_dto, segments_to_dtos, version_to_dto
from mediascribe.models import (
    BatchTranscribeBody, BatchTranscriptionResponse, HealthResponse, MediaSummary, ProgressEventModel,
    TranscribeBody, TranscriptionResponse, TranscriptList, VoiceScanBody, VoiceScanResponse,
)
from mediascribe.ports.audio import AudioExtractionPort
from mediascribe.ports.embedding import EmbeddingPort
from mediascribe.ports.media_store import MediaStorePort
from mediascribe.ports.progress import ProgressPort
from mediascribe.use_cases.batch import BatchTranscribeUseCase
from mediascribe.use_cases.scan_voices import VoiceScanUseCase
from mediascribe.use_cases.transcribe import TranscriptionEngine

logger = logging.getLogger(__name__)


def _to_response(path: str, result: TranscriptionResult, preview: Optional[str]) -> TranscriptionResponse:
    return TranscriptionResponse(
        path=path,
        status=result.status.value,
        model=result.version.model if result.version else None,
        version_id=result.version.id if result.version else None,
        preview=preview,
        segments=segments_to_dtos(result.segments),
        error=result.error,
    )


def create_app(
    cfg: Optional[Config] = None,
    engine: Optional[TranscriptionEngine] = None,
    embedding: Optional[EmbeddingPort] = None,
    audio: Optional[AudioExtractionPort] = None,
    store: Optional[MediaStorePort] = None,
    progress: Optional[ProgressPort] = None,
) -> FastAPI:
    cfg = cfg or get_config()
    if store is None or progress is None:
        infra = create_infra_adapters(cfg)
        store = store or infra["store"]
        progress = progress or infra["progress"]
    audio = audio or create_audio_adapter(cfg)
    engine = engine or create_transcription_engine(cfg, audio, progress)
    embedding = embedding or create_embedding_adapter(cfg)

    batch = BatchTranscribeUseCase(engine, store)
    voice_scan = VoiceScanUseCase(
        engine, embedding, audio, progress,
        threshold=cfg.similarity_threshold,
        min_segment_seconds=cfg.min_segment_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await run_in_threadpool(engine.initialize)
        except ModelLoadError as e:
            app.state.load_error = str(e)
            logger.error(f"Transcription disabled: {e}")
        await run_in_threadpool(embedding.load)
        yield

    app = FastAPI(title="mediascribe", lifespan=lifespan)
    app.state.load_error = None

    def _require_record(path: str):
        record = store.get(path)
        if record is None:
            raise HTTPException(status_code=404, detail=f"No media record for {path}")
        return record

    def _require_ready():
        if engine.state is not EngineState.READY:
            raise HTTPException(status_code=503, detail="Transcription model is not loaded")

    @app.get("/health", response_model=HealthResponse)
    def health():
        ready = engine.state is EngineState.READY
        return HealthResponse(
            status="ok" if ready else "degraded",
            engine_state=engine.state.value,
            model=engine.model_id,
            voice_id_available=embedding.is_available(),
            decoder_available=audio.is_available(),
            load_error=app.state.load_error,
        )

    @app.post("/v1/engine/initialize", response_model=HealthResponse)
    def initialize_engine():
        try:
            engine.initialize()
        except ModelLoadError as e:
            app.state.load_error = str(e)
            raise HTTPException(status_code=503, detail=str(e))
        app.state.load_error = None
        return health()

    @app.post("/v1/transcripts", response_model=TranscriptionResponse)
    def transcribe(body: TranscribeBody):
        _require_ready()
        record = store.get_or_create(body.path)
        result = engine.transcribe(record, force_refresh=body.force_refresh)

        if result.status is TranscriptionStatus.NOT_READY:
            raise HTTPException(status_code=503, detail="Transcription model is not loaded")
        if result.status is TranscriptionStatus.TRANSCRIBED:
            store.save(record)
        return _to_response(record.path, result, record.preview)

    @app.post("/v1/transcripts/batch", response_model=BatchTranscriptionResponse)
    def transcribe_batch(body: BatchTranscribeBody):
        _require_ready()
        items = batch.execute(body.paths, force_refresh=body.force_refresh)
        responses = []
        for item in items:
            record = store.get(item.path)
            responses.append(_to_response(item.path, item.result, record.preview if record else None))
        return BatchTranscriptionResponse(
            items=responses,
            failed=sum(1 for item in items if not item.result.ok),
        )

    @app.get("/v1/media", response_model=List[MediaSummary])
    def list_media():
        return [
            MediaSummary(
                id=r.id, path=r.path, preview=r.preview,
                version_count=len(r.versions),
                latest_version_id=r.latest_version().id if r.versions else None,
            )
            for r in sorted(store.all(), key=lambda r: r.path)
        ]

    @app.get("/v1/transcripts", response_model=TranscriptList)
    def list_transcripts(path: str = Query(...)):
        record = _require_record(path)
        return TranscriptList(
            path=record.path,
            preview=record.preview,
            versions=[version_to_dto(v) for v in record.versions],
        )

    @app.delete("/v1/transcripts/{version_id}", response_model=TranscriptList)
    def delete_transcript(version_id: str, path: str = Query(...)):
        record = _require_record(path)
        if not record.delete_version(version_id):
            raise HTTPException(status_code=404, detail=f"No transcript version {version_id}")
        store.save(record)
        return list_transcripts(path)

    @app.post("/v1/voices", response_model=VoiceScanResponse)
    def scan_voices(body: VoiceScanBody):
        if not embedding.is_available():
            raise HTTPException(status_code=503, detail="Voice ID is disabled: embedding model not found")
        _require_ready()
        record = store.get_or_create(body.path)
        versions_before = len(record.versions)
        clusters = voice_scan.execute(record, threshold=body.similarity_threshold)
        if len(record.versions) != versions_before:
            store.save(record)
        return VoiceScanResponse(path=record.path, speakers=[cluster_to_dto(c) for c in clusters])

    @app.get("/v1/progress", response_model=List[ProgressEventModel])
    def progress_events():
        if not isinstance(progress, QueueProgressAdapter):
            return []
        return [
            ProgressEventModel(
                job_id=e.job_id, stage=e.stage, progress=e.progress,
                detail=e.detail, timestamp=e.timestamp,
            )
            for e in progress.drain()
        ]

    return app
