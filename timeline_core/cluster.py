import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .burst import detect_bursts, timeline_order
from .config import ClusteringConfig, settings
from .errors import ConfigurationError
from .geo import haversine_meters
from .materialize import materialize_event, merge_attributes, stable_event_id
from .models import Cluster, PhotoRecord, TimelineContext, TimelineEvent
from .normalize import normalize_photos
from .policies import AttributePolicy, EventTypeResolver, default_event_type

logger = logging.getLogger(__name__)


def group_by_time(records: Sequence[PhotoRecord], time_window: timedelta) -> List[Cluster]:
    """
    Groups records into candidate clusters using a single-pass O(n) chain.

    Precisely timestamped records are sorted and walked once: a new cluster
    starts whenever the gap to the previous record exceeds ``time_window``, so
    a cluster may span far more than the window as long as each step is small.
    Fuzzy-dated records are grouped per fuzzy period and never join a precise
    cluster.

    Args:
        records: Normalized photos, in any order.
        time_window: Largest gap allowed between neighbours of one cluster.

    Returns:
        Clusters with members in timeline order. Precise clusters come first.
    """
    precise = sorted((r for r in records if r.is_exact), key=timeline_order)
    fuzzy_lanes: Dict[Any, List[PhotoRecord]] = {}
    for record in records:
        if not record.is_exact:
            fuzzy_lanes.setdefault(record.fuzzy_date.period_key, []).append(record)

    clusters: List[Cluster] = []
    if precise:
        current = [precise[0]]
        for prev, nxt in zip(precise, precise[1:]):
            if nxt.captured_at - prev.captured_at <= time_window:
                current.append(nxt)
            else:
                clusters.append(Cluster(members=current))
                current = [nxt]
        clusters.append(Cluster(members=current))

    for period_key in sorted(fuzzy_lanes):
        clusters.append(Cluster(members=sorted(fuzzy_lanes[period_key], key=timeline_order)))

    logger.debug(
        f"Grouped {len(records)} photos into {len(clusters)} temporal clusters "
        f"({len(fuzzy_lanes)} fuzzy)"
    )
    return clusters


def refine_by_distance(cluster: Cluster, distance_threshold: float) -> List[Cluster]:
    """
    Splits a temporal cluster where the photographer moved too far.

    Each located photo is compared with the most recent located photo before
    it; a distance above ``distance_threshold`` meters starts a new
    sub-cluster. Photos without GPS never cause a split and stay with the
    sub-cluster being built.
    """
    sub_clusters: List[Cluster] = []
    current: List[PhotoRecord] = []
    last_located: Optional[PhotoRecord] = None

    for photo in cluster.members:
        if (
            photo.location is not None
            and last_located is not None
            and haversine_meters(last_located.location, photo.location) > distance_threshold
        ):
            sub_clusters.append(Cluster(members=current))
            current = []
        current.append(photo)
        if photo.location is not None:
            last_located = photo

    if current:
        sub_clusters.append(Cluster(members=current))
    return sub_clusters


def _refine_and_detect(cluster: Cluster, config: ClusteringConfig) -> List[Cluster]:
    return [detect_bursts(sub, config) for sub in refine_by_distance(cluster, config.distance_threshold)]


def _unique_id(candidate: str, used: Set[str], context_id: str) -> str:
    event_id = candidate
    attempt = 1
    while event_id in used:
        event_id = stable_event_id(context_id, [candidate, str(attempt)])
        attempt += 1
    return event_id


def _inherit(
    clusters: Sequence[Cluster],
    previous_events: Iterable[TimelineEvent],
    context: TimelineContext,
) -> List[Tuple[Optional[TimelineEvent], Optional[Dict[str, Any]]]]:
    """
    Matches each new cluster with the earlier events it re-clusters.

    A cluster takes over the id, type, title and description of the earlier
    event it shares most photos with (ties by id), unless an earlier cluster
    already claimed that event. Attributes of every overlapping earlier event
    are merged into it either way.

    Returns:
        One ``(previous, attributes)`` pair per cluster. ``previous`` is the
        claimed event carrying the merged attributes, or None when the
        cluster starts fresh and only inherits ``attributes``.
    """
    owner_of: Dict[str, TimelineEvent] = {}
    for event in previous_events:
        if event.context_id != context.id:
            continue
        for photo_id in event.member_photo_ids:
            owner_of[photo_id] = event

    claimed: Set[str] = set()
    inherited: List[Tuple[Optional[TimelineEvent], Optional[Dict[str, Any]]]] = []
    for cluster in clusters:
        overlap: Dict[str, int] = {}
        events: Dict[str, TimelineEvent] = {}
        for photo_id in cluster.member_ids:
            event = owner_of.get(photo_id)
            if event is not None:
                overlap[event.id] = overlap.get(event.id, 0) + 1
                events[event.id] = event
        if not events:
            inherited.append((None, None))
            continue

        attributes = merge_attributes(events.values())
        ranked = sorted(events, key=lambda eid: (-overlap[eid], eid))
        event_id = next((eid for eid in ranked if eid not in claimed), None)
        if event_id is None:
            inherited.append((None, attributes))
            continue

        claimed.add(event_id)
        previous = events[event_id].model_copy(update={"custom_attributes": attributes})
        inherited.append((previous, attributes))
    return inherited


def cluster(
    records: Iterable[Any],
    config: ClusteringConfig,
    context: TimelineContext,
    *,
    event_type_resolver: EventTypeResolver = default_event_type,
    attribute_policy: Optional[AttributePolicy] = None,
    previous_events: Optional[Iterable[TimelineEvent]] = None,
    max_workers: Optional[int] = None,
) -> List[TimelineEvent]:
    """
    Runs the automatic pass: normalize, group by time, refine by distance,
    detect bursts and materialize one event per final cluster.

    Args:
        records: Raw photo metadata mappings or PhotoRecords.
        config: Thresholds for this context; checked before anything else runs.
        context: Context that owns the resulting events.
        event_type_resolver: Derives each event's type.
        attribute_policy: Supplies default custom attributes per event type.
        previous_events: Events from an earlier run over the same photos;
                         their ids, titles and attributes carry over.
        max_workers: Threads for the per-cluster stage (``CLUSTER_MAX_WORKERS``
                     by default).

    Returns:
        Events in timeline order. Every photo is in exactly one event.

    Raises:
        ConfigurationError: a threshold or the worker count is out of range.
        MissingTemporalAnchor: photos without timestamp or fuzzy date.
        InvalidPhotoRecord: malformed or duplicate photo metadata.
    """
    config.check()
    photos = normalize_photos(records, context_type=context.context_type)
    if not photos:
        return []

    temporal = group_by_time(photos, config.time_window)

    workers = max_workers if max_workers is not None else settings.CLUSTER_MAX_WORKERS
    if workers < 1:
        raise ConfigurationError(f"max_workers must be at least 1, got {workers}")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        refined = executor.map(lambda c: _refine_and_detect(c, config), temporal)
        final = [sub for subs in refined for sub in subs]

    final.sort(key=lambda c: (c.start, c.member_ids[0]))

    inherited: List[Tuple[Optional[TimelineEvent], Optional[Dict[str, Any]]]] = [(None, None)] * len(final)
    if previous_events is not None:
        inherited = _inherit(final, previous_events, context)

    used_ids: Set[str] = set()
    events: List[TimelineEvent] = []
    for final_cluster, (previous, attributes) in zip(final, inherited):
        candidate = previous.id if previous is not None else None
        event_id = _unique_id(
            candidate or stable_event_id(context.id, final_cluster.member_ids),
            used_ids,
            context.id,
        )
        used_ids.add(event_id)
        events.append(
            materialize_event(
                final_cluster,
                context,
                event_id=event_id,
                event_type_resolver=event_type_resolver,
                attribute_policy=attribute_policy,
                caption_separator=config.caption_separator,
                previous=previous,
                attributes=attributes,
            )
        )

    logger.info(f"Clustered {len(photos)} photos into {len(events)} events for context {context.id}")
    return events
