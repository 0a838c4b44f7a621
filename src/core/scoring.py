"""
Module to score candidate clusters
"""
from datetime import datetime, timedelta
from typing import List

from core.entities import CandidateCluster, Item
from core.similarity import title_similarity
from core.vendors import is_release_like

MEMBER_WEIGHT = 0.2
RELEASE_WEIGHT = 0.3
RECENCY_WEIGHT = 0.2
SIMILARITY_WEIGHT = 0.3


def mean_pairwise_similarity(items: List[Item]) -> float:
    """
    Average title similarity over all pairs. A single item is trivially 1.0.
    """
    if len(items) <= 1:
        return 1.0

    total = 0.0
    comparisons = 0
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            total += title_similarity(items[i].title, items[j].title)
            comparisons += 1

    return total / comparisons


def cluster_confidence(
    items: List[Item],
    *,
    now: datetime,
    recent_hours: int = 24,
) -> float:
    """
    Weighted sum of corroboration signals, capped at 1.0:
    member count, release-like share, recent share and mean title similarity.
    """
    if not items:
        return 0.0

    confidence = min(len(items) * MEMBER_WEIGHT, 1.0)

    release_like = sum(1 for item in items if is_release_like(item.title, item.text))
    confidence += (release_like / len(items)) * RELEASE_WEIGHT

    cutoff = now - timedelta(hours=recent_hours)
    recent = sum(1 for item in items if cutoff <= item.published_at)
    confidence += (recent / len(items)) * RECENCY_WEIGHT

    confidence += mean_pairwise_similarity(items) * SIMILARITY_WEIGHT

    return min(confidence, 1.0)


def passes_threshold(cluster: CandidateCluster, min_confidence: float) -> bool:
    """
    Determines whether a cluster is worth enriching.
    """
    return cluster.confidence >= min_confidence
