import logging
from datetime import timedelta
from typing import List, Optional, Sequence

from .config import ClusteringConfig
from .models import Cluster, PhotoRecord

logger = logging.getLogger(__name__)


def timeline_order(photo: PhotoRecord):
    """Sort key shared by every stage: anchor instant, then id."""
    return photo.anchor, photo.id


def select_key_photo(photos: Sequence[PhotoRecord]) -> PhotoRecord:
    """
    Picks the representative photo of a group.

    Captioned photos win over uncaptioned ones; among the candidates the
    earliest wins, ties broken by id.
    """
    if not photos:
        raise ValueError("Cannot select a key photo from an empty list")
    captioned = [photo for photo in photos if photo.has_caption]
    candidates = captioned or list(photos)
    return min(candidates, key=timeline_order)


def find_bursts(
    photos: Sequence[PhotoRecord],
    gap_threshold: timedelta,
    min_count: int,
    max_count: Optional[int] = None,
) -> List[List[str]]:
    """
    Finds rapid-fire runs of photos.

    A burst is a maximal run of at least ``min_count`` consecutive photos whose
    capture times are each at most ``gap_threshold`` apart. Runs longer than
    ``max_count`` are cut into consecutive chunks; a trailing chunk shorter
    than ``min_count`` is not a burst. Fuzzy-dated photos have no exact time
    and always break a run.

    Returns:
        Burst member ids, each burst in timeline order.
    """
    bursts: List[List[str]] = []

    def _flush(run: List[PhotoRecord]) -> None:
        if len(run) < min_count:
            return
        size = max_count or len(run)
        for i in range(0, len(run), size):
            chunk = run[i : i + size]
            if len(chunk) >= min_count:
                bursts.append([photo.id for photo in chunk])

    current: List[PhotoRecord] = []
    for photo in sorted(photos, key=timeline_order):
        if not photo.is_exact:
            _flush(current)
            current = []
            continue

        if current and photo.captured_at - current[-1].captured_at <= gap_threshold:
            current.append(photo)
        else:
            _flush(current)
            current = [photo]

    _flush(current)
    return bursts


def detect_bursts(cluster: Cluster, config: ClusteringConfig) -> Cluster:
    """Annotates a refined cluster with its bursts and key photo.

    Membership is never changed: a burst stays inside its event.
    """
    cluster.bursts = find_bursts(
        cluster.members,
        config.burst_gap_threshold,
        config.burst_min_count,
        config.burst_max_count,
    )
    cluster.key_photo_id = select_key_photo(cluster.members).id

    if cluster.bursts:
        logger.debug(
            f"Cluster starting {cluster.start} has {len(cluster.bursts)} burst(s), "
            f"key photo {cluster.key_photo_id}"
        )
    return cluster
