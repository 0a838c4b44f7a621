import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from core.entities import CandidateCluster, Item
from core.scoring import cluster_confidence, mean_pairwise_similarity
from core.similarity import title_similarity
from core.vendors import resolve_vendor_product
from services.config import ClusteringConfig

logger = logging.getLogger(__name__)


def group_by_vendor_product(items: List[Item]) -> Dict[Tuple[str, str], List[Item]]:
    """
    Group items by exact (vendor, product). Items where either side
    cannot be resolved are dropped.
    """
    groups: Dict[Tuple[str, str], List[Item]] = defaultdict(list)

    for item in items:
        vendor, product = resolve_vendor_product(item)
        if vendor and product:
            groups[(vendor, product)].append(item)

    return groups


def split_by_time(items: List[Item], window_hours: float) -> List[List[Item]]:
    """
    Single forward scan over items sorted by published_at.
    A gap larger than the window starts a new group.
    """
    if len(items) <= 1:
        return [items]

    window = timedelta(hours=window_hours)
    groups: List[List[Item]] = []
    current = [items[0]]

    for item in items[1:]:
        if item.published_at - current[-1].published_at <= window:
            current.append(item)
        else:
            groups.append(current)
            current = [item]

    groups.append(current)
    return groups


def split_by_similarity(items: List[Item], threshold: float) -> List[List[Item]]:
    """
    Greedy seed clustering: each unprocessed item seeds a group and absorbs
    every later unprocessed item whose title is similar to the seed.
    Similarity to non-seed members is never considered.
    """
    if len(items) <= 1:
        return [items]

    groups: List[List[Item]] = []
    processed: set[str] = set()

    for i, seed in enumerate(items):
        if seed.id in processed:
            continue

        group = [seed]
        processed.add(seed.id)

        for candidate in items[i + 1:]:
            if candidate.id in processed:
                continue
            if title_similarity(seed.title, candidate.title) >= threshold:
                group.append(candidate)
                processed.add(candidate.id)

        groups.append(group)

    return groups


def cluster_candidates(
    items: List[Item],
    config: Optional[ClusteringConfig] = None,
    now: Optional[datetime] = None,
) -> List[CandidateCluster]:
    """
    Group items into scored candidate clusters, highest confidence first.
    Clusters never mix (vendor, product) pairs and always hold at least two items.
    """
    config = config or ClusteringConfig()
    now = now or datetime.now(timezone.utc)

    if not items:
        return []

    min_size = max(config.min_cluster_size, 2)
    clusters: List[CandidateCluster] = []

    for (vendor, product), group in group_by_vendor_product(items).items():
        group = sorted(group, key=lambda item: item.published_at)

        for time_group in split_by_time(group, config.time_window_hours):
            for members in split_by_similarity(time_group, config.similarity_threshold):
                if len(members) < min_size:
                    continue

                clusters.append(CandidateCluster(
                    vendor=vendor,
                    product=product,
                    items=members,
                    confidence=cluster_confidence(members, now=now, recent_hours=config.recent_hours),
                    window_start=members[0].published_at,
                    window_end=members[-1].published_at,
                    title_similarity=mean_pairwise_similarity(members),
                ))

    clusters.sort(key=lambda cluster: cluster.confidence, reverse=True)

    logger.info(
        f"Clustered {len(items)} items into {len(clusters)} candidate clusters",
        extra={"clusters": [f"{c.vendor}:{c.product}" for c in clusters]},
    )
    return clusters


def get_best_cluster(
    clusters: List[CandidateCluster],
    vendor: str,
    product: str,
) -> Optional[CandidateCluster]:
    matching = [c for c in clusters if c.vendor == vendor and c.product == product]
    if not matching:
        return None
    return max(matching, key=lambda c: c.confidence)


def get_clusters_by_vendor(clusters: List[CandidateCluster], vendor: str) -> List[CandidateCluster]:
    return [c for c in clusters if c.vendor == vendor]


def get_top_clusters(clusters: List[CandidateCluster], limit: int = 10) -> List[CandidateCluster]:
    """Highest-confidence clusters first."""
    return sorted(clusters, key=lambda c: c.confidence, reverse=True)[:limit]
