"""Approximate speaker grouping by single-pass greedy online clustering.

Each (segment, embedding) pair is compared, in chronological order, with the
centroid of every cluster formed so far. It joins the most similar cluster
whose cosine similarity reaches the threshold, otherwise it starts a new one.
Centroids are running means of the embeddings assigned to them.

The result depends on input order and there is no re-clustering, merge/split
correction or prior on the number of speakers, so cluster counts are a
heuristic and not a verified speaker count.
"""

import logging
from typing import Iterable

import numpy as np

from mediascribe.domain.models import SpeakerCluster, TranscriptSegment

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.80
MIN_SEGMENT_SECONDS = 0.5
LABEL_PREFIX = "Speaker "


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity; 0.0 for mismatched lengths or a zero vector."""
    if a.shape != b.shape:
        return 0.0
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def select_segments(
    segments: Iterable[TranscriptSegment],
    min_duration: float = MIN_SEGMENT_SECONDS,
) -> list[TranscriptSegment]:
    """Segments long enough to carry a voice, in start order."""
    return [seg for seg in sorted(segments, key=lambda s: s.start) if seg.duration >= min_duration]


def cluster_speakers(
    pairs: Iterable[tuple[TranscriptSegment, np.ndarray]],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[SpeakerCluster]:
    """Group (segment, embedding) pairs into speaker clusters.

    Pairs must already be in chronological order. The threshold is
    inclusive. When several clusters score the same, the one created
    first wins. Clusters are returned in creation order.
    """
    clusters: list[SpeakerCluster] = []

    for segment, embedding in pairs:
        vector = np.asarray(embedding, dtype=np.float64).reshape(-1)
        if vector.size == 0:
            continue

        best = None
        best_score = -np.inf
        for cluster in clusters:
            score = cosine_similarity(vector, cluster.centroid)
            if score >= threshold and score > best_score:
                best = cluster
                best_score = score

        if best is not None:
            best.segments.append(segment)
            n = len(best.segments)
            best.centroid = best.centroid + (vector - best.centroid) / n
        else:
            clusters.append(SpeakerCluster(
                label=f"{LABEL_PREFIX}{len(clusters) + 1}",
                centroid=vector.copy(),
                segments=[segment],
            ))

    logger.info(f"Clustered segments into {len(clusters)} speaker group(s)")
    return clusters
