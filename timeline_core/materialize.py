import copy
import logging
import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .burst import select_key_photo, timeline_order
from .config import DEFAULT_CAPTION_SEPARATOR
from .fuzzy_date import FuzzyDate, FuzzyGranularity
from .geo import compute_centroid
from .models import Cluster, PhotoRecord, TimelineContext, TimelineEvent
from .policies import AttributePolicy, EventTypeResolver, default_event_type

logger = logging.getLogger(__name__)

EVENT_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "timeline_core:timeline-event")

_NEVER_UPDATED = datetime.min.replace(tzinfo=timezone.utc)
_GRANULARITY_ORDER = list(FuzzyGranularity)


def stable_event_id(context_id: str, member_ids: Sequence[str]) -> str:
    """Same context and membership always give the same id."""
    return str(uuid.uuid5(EVENT_ID_NAMESPACE, f"{context_id}:{'|'.join(member_ids)}"))


def dominant_fuzzy_date(photos: Iterable[PhotoRecord]) -> Optional[FuzzyDate]:
    """Most common fuzzy date among the photos; ties go to the earliest, then the finest."""
    counts = Counter(photo.fuzzy_date for photo in photos if photo.fuzzy_date is not None)
    if not counts:
        return None
    return min(
        counts,
        key=lambda fd: (-counts[fd], fd.start, -_GRANULARITY_ORDER.index(fd.granularity)),
    )


def collect_captions(photos: Sequence[PhotoRecord]) -> List[str]:
    """Distinct non-empty captions in timeline order, each exactly as written."""
    captions: List[str] = []
    for photo in sorted(photos, key=timeline_order):
        if photo.has_caption and photo.caption not in captions:
            captions.append(photo.caption)
    return captions


def join_texts(texts: Sequence[str], separator: str) -> Optional[str]:
    if not texts:
        return None
    if len(texts) == 1:
        return texts[0]
    return separator.join(texts)


def resolve_placement(
    photos: Sequence[PhotoRecord], key_photo: Optional[PhotoRecord] = None
) -> Dict[str, Any]:
    """
    Derives where an event sits on the timeline and map from its photos.

    Args:
        photos: All members of the event.
        key_photo: Representative photo; selected from ``photos`` when omitted.

    Returns:
        ``key_photo_id``, ``timestamp`` (the key photo's capture time when it has
        one), ``fuzzy_date`` (the dominant fuzzy date otherwise) and
        ``location`` (centroid of located photos, or None).
    """
    if key_photo is None:
        key_photo = select_key_photo(photos)
    if key_photo.is_exact:
        timestamp, fuzzy_date = key_photo.captured_at, None
    else:
        timestamp, fuzzy_date = None, dominant_fuzzy_date(photos)

    return {
        "key_photo_id": key_photo.id,
        "timestamp": timestamp,
        "fuzzy_date": fuzzy_date,
        "location": compute_centroid(p.location for p in photos if p.location is not None),
    }


def attribute_precedence(event: TimelineEvent):
    """Sort key for colliding attributes: later updates win, then the larger id."""
    return (event.updated_at or _NEVER_UPDATED, event.id)


def merge_attributes(events: Iterable[TimelineEvent]) -> Dict[str, Any]:
    """Union of the events' custom attributes. Colliding keys resolve by attribute_precedence."""
    merged: Dict[str, Any] = {}
    for event in sorted(events, key=attribute_precedence):
        merged.update(copy.deepcopy(event.custom_attributes))
    return merged


def seed_defaults(attributes: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Adds default keys that are absent. Keys already present are never touched."""
    seeded = copy.deepcopy(attributes)
    for key, value in defaults.items():
        if key not in seeded:
            seeded[key] = copy.deepcopy(value)
    return seeded


def materialize_event(
    cluster: Cluster,
    context: TimelineContext,
    *,
    event_id: Optional[str] = None,
    event_type_resolver: EventTypeResolver = default_event_type,
    attribute_policy: Optional[AttributePolicy] = None,
    caption_separator: str = DEFAULT_CAPTION_SEPARATOR,
    previous: Optional[TimelineEvent] = None,
    attributes: Optional[Dict[str, Any]] = None,
) -> TimelineEvent:
    """
    Turns one finalized cluster into a TimelineEvent.

    Args:
        cluster: Members in timeline order, annotated by the burst detector.
        context: Owning context; supplies context and owner ids.
        event_id: Id to use; defaults to a stable id derived from the membership.
        event_type_resolver: Derives the event type from the cluster.
        attribute_policy: ``(context_id, event_type) -> defaults``.
        caption_separator: Joins several distinct captions into the description.
        previous: Event this cluster replaces in a re-run. Its id, event type,
                  title, description and custom attributes carry over.
        attributes: Custom attributes to start from when there is no
                    ``previous`` event, e.g. those of re-clustered events
                    another cluster took over.

    Returns:
        The event. Nothing is persisted.
    """
    key_photo = None
    if cluster.key_photo_id is not None:
        key_photo = next(p for p in cluster.members if p.id == cluster.key_photo_id)
    placement = resolve_placement(cluster.members, key_photo)

    captions = collect_captions(cluster.members)
    title = captions[0] if len(captions) == 1 else None
    description = join_texts(captions, caption_separator)

    if previous is not None:
        event_id = event_id or previous.id
        event_type = previous.event_type
        attributes = previous.attributes_copy()
        if previous.title is not None:
            title = previous.title
        if previous.description is not None:
            description = previous.description
    else:
        event_type = event_type_resolver(cluster, context)
        attributes = copy.deepcopy(attributes) if attributes else {}

    if attribute_policy is not None:
        attributes = seed_defaults(attributes, attribute_policy(context.id, event_type))

    event = TimelineEvent(
        id=event_id or stable_event_id(context.id, cluster.member_ids),
        context_id=context.id,
        owner_id=context.owner_id,
        event_type=event_type,
        custom_attributes=attributes,
        member_photo_ids=cluster.member_ids,
        title=title,
        description=description,
        is_burst=cluster.is_burst,
        bursts=[list(burst) for burst in cluster.bursts],
        **placement,
    )
    logger.debug(f"Materialized event {event.id} ({event.event_type}) with {len(cluster.members)} photos")
    return event
