"""Domain <-> DTO mappers.

Converts between the dataclasses in domain.models and the Pydantic models
used for persistence blobs and API responses.
"""

from mediascribe.domain.models import MediaRecord, SpeakerCluster, TranscriptSegment, TranscriptVersion
from mediascribe.models import (
    MediaRecordModel, SegmentModel, SpeakerClusterModel, TranscriptVersionModel,
)


def segment_to_dto(seg: TranscriptSegment) -> SegmentModel:
    return SegmentModel(start=seg.start, end=seg.end, text=seg.text)


def dto_to_segment(dto: SegmentModel) -> TranscriptSegment:
    return TranscriptSegment(start=dto.start, end=dto.end, text=dto.text)


def segments_to_dtos(segments: list[TranscriptSegment]) -> list[SegmentModel]:
    """Convert a list of domain segments to DTOs, preserving order."""
    return [segment_to_dto(seg) for seg in segments]


def version_to_dto(version: TranscriptVersion) -> TranscriptVersionModel:
    return TranscriptVersionModel(
        id=version.id,
        model=version.model,
        created=version.created,
        segments=segments_to_dtos(list(version.segments)),
    )


def dto_to_version(dto: TranscriptVersionModel) -> TranscriptVersion:
    return TranscriptVersion(
        id=dto.id,
        model=dto.model,
        created=dto.created,
        segments=tuple(dto_to_segment(s) for s in dto.segments),
    )


def version_to_blob(version: TranscriptVersion) -> str:
    """Serialize a version to the opaque blob the record store keeps."""
    return version_to_dto(version).model_dump_json()


def blob_to_version(blob: str) -> TranscriptVersion:
    return dto_to_version(TranscriptVersionModel.model_validate_json(blob))


def record_to_dto(record: MediaRecord) -> MediaRecordModel:
    return MediaRecordModel(
        id=record.id,
        path=record.path,
        preview=record.preview,
        versions=[version_to_blob(v) for v in record.versions],
    )


def dto_to_record(dto: MediaRecordModel) -> MediaRecord:
    return MediaRecord(
        id=dto.id,
        path=dto.path,
        preview=dto.preview,
        versions=[blob_to_version(b) for b in dto.versions],
    )


def cluster_to_dto(cluster: SpeakerCluster) -> SpeakerClusterModel:
    return SpeakerClusterModel(
        label=cluster.label,
        total_duration=round(cluster.total_duration, 3),
        segment_count=len(cluster.segments),
        segments=segments_to_dtos(cluster.segments),
    )
