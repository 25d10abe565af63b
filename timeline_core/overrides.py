"""
Manual split / merge / move / key-photo overrides on materialized events.

The module-level functions are pure: they validate first, then return new
events and never touch their inputs. ``EventRepository`` owns the shared event
set and serializes overrides per context.
"""
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .burst import find_bursts
from .cluster import cluster
from .config import DEFAULT_CAPTION_SEPARATOR, ClusteringConfig
from .errors import (
    EventNotFound,
    IncompatibleMerge,
    InvalidKeyPhoto,
    InvalidMove,
    InvalidSplit,
    OverrideError,
)
from .materialize import join_texts, merge_attributes, resolve_placement
from .models import PhotoRecord, TimelineContext, TimelineEvent
from .normalize import normalize_photos

logger = logging.getLogger(__name__)

PhotoIndex = Mapping[str, PhotoRecord]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _records(member_ids: Sequence[str], photos: PhotoIndex) -> List[PhotoRecord]:
    missing = [pid for pid in member_ids if pid not in photos]
    if missing:
        raise OverrideError(f"No photo records for {', '.join(missing)}")
    return [photos[pid] for pid in member_ids]


def _dedupe(ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for photo_id in ids:
        if photo_id not in seen:
            seen.add(photo_id)
            result.append(photo_id)
    return result


def _bursts_for(
    member_ids: Sequence[str],
    members: Sequence[PhotoRecord],
    config: Optional[ClusteringConfig],
    previous_bursts: Iterable[Sequence[str]],
) -> List[List[str]]:
    if config is not None:
        return find_bursts(
            members,
            config.burst_gap_threshold,
            config.burst_min_count,
            config.burst_max_count,
        )
    remaining = set(member_ids)
    return [list(burst) for burst in previous_bursts if set(burst) <= remaining]


def rebuild_event(
    event: TimelineEvent,
    member_ids: Sequence[str],
    photos: PhotoIndex,
    *,
    config: Optional[ClusteringConfig] = None,
    previous_bursts: Optional[Iterable[Sequence[str]]] = None,
    key_photo_id: Optional[str] = None,
    now: Optional[datetime] = None,
    **updates: Any,
) -> TimelineEvent:
    """
    Returns a copy of ``event`` with a new membership.

    Key photo, timestamp, fuzzy date, location and bursts are re-derived from
    the members; ``updates`` override any other field. Custom attributes are
    deep-copied unless ``updates`` supplies them.
    """
    members = _records(member_ids, photos)
    key_photo = photos[key_photo_id] if key_photo_id is not None else None
    placement = resolve_placement(members, key_photo)
    bursts = _bursts_for(
        member_ids,
        members,
        config,
        event.bursts if previous_bursts is None else previous_bursts,
    )

    fields = {
        **event.model_dump(exclude={"custom_attributes"}),
        "custom_attributes": event.attributes_copy(),
        **placement,
        "member_photo_ids": list(member_ids),
        "bursts": bursts,
        "is_burst": bool(bursts),
        "updated_at": now or _utcnow(),
    }
    fields.update(updates)
    return TimelineEvent.model_validate(fields)


def split_event(
    event: TimelineEvent,
    photo_ids: Iterable[str],
    photos: PhotoIndex,
    *,
    config: Optional[ClusteringConfig] = None,
    new_event_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[TimelineEvent, TimelineEvent]:
    """
    Splits ``photo_ids`` out of ``event`` into a new event.

    Returns:
        ``(remainder, split_off)``. The remainder keeps the original id; the
        split-off event gets ``new_event_id`` or a fresh UUID. Both carry an
        identical copy of the original custom attributes, title and description.

    Raises:
        InvalidSplit: the subset is empty, is the whole event, or contains
                      photos that are not members.
    """
    subset = _dedupe(photo_ids)
    if not subset:
        raise InvalidSplit(f"Split of event {event.id} needs at least one photo")
    strangers = [pid for pid in subset if pid not in event.member_photo_ids]
    if strangers:
        raise InvalidSplit(f"Photos {', '.join(strangers)} are not members of event {event.id}")
    if len(subset) == len(event.member_photo_ids):
        raise InvalidSplit(f"Split of event {event.id} would leave it empty")

    now = now or _utcnow()
    chosen = set(subset)
    remaining_ids = [pid for pid in event.member_photo_ids if pid not in chosen]
    split_ids = [pid for pid in event.member_photo_ids if pid in chosen]

    remainder = rebuild_event(event, remaining_ids, photos, config=config, now=now)
    split_off = rebuild_event(
        event,
        split_ids,
        photos,
        config=config,
        now=now,
        id=new_event_id or str(uuid.uuid4()),
    )
    logger.info(f"Split {len(split_ids)} photos out of event {event.id} into {split_off.id}")
    return remainder, split_off


def merge_events(
    event_a: TimelineEvent,
    event_b: TimelineEvent,
    photos: PhotoIndex,
    *,
    config: Optional[ClusteringConfig] = None,
    now: Optional[datetime] = None,
) -> TimelineEvent:
    """
    Merges ``event_b`` into ``event_a``.

    The merged event keeps A's id, owner and event type. Members are A's
    followed by B's, without duplicates. Custom attributes are the union of
    both; on a colliding key the more recently updated event wins and equal
    update times go to the larger id.

    Raises:
        IncompatibleMerge: the events are the same event or live in different contexts.
    """
    if event_a.id == event_b.id:
        raise IncompatibleMerge(f"Cannot merge event {event_a.id} with itself")
    if event_a.context_id != event_b.context_id:
        raise IncompatibleMerge(
            f"Events {event_a.id} and {event_b.id} belong to different contexts "
            f"({event_a.context_id}, {event_b.context_id})"
        )

    separator = config.caption_separator if config is not None else DEFAULT_CAPTION_SEPARATOR
    descriptions = _dedupe(d for d in (event_a.description, event_b.description) if d)

    merged = rebuild_event(
        event_a,
        _dedupe(event_a.member_photo_ids + event_b.member_photo_ids),
        photos,
        config=config,
        previous_bursts=event_a.bursts + event_b.bursts,
        now=now,
        custom_attributes=merge_attributes([event_a, event_b]),
        title=event_a.title if event_a.title is not None else event_b.title,
        description=join_texts(descriptions, separator),
    )
    logger.info(f"Merged event {event_b.id} into {event_a.id}")
    return merged


def move_photos(
    source: TimelineEvent,
    target: TimelineEvent,
    photo_ids: Iterable[str],
    photos: PhotoIndex,
    *,
    config: Optional[ClusteringConfig] = None,
    now: Optional[datetime] = None,
) -> Tuple[TimelineEvent, TimelineEvent]:
    """Moves photos from ``source`` to ``target``. Attributes of both stay as they were."""
    moving = _dedupe(photo_ids)
    if source.id == target.id:
        raise InvalidMove(f"Source and target are the same event {source.id}")
    if source.context_id != target.context_id:
        raise InvalidMove(f"Events {source.id} and {target.id} belong to different contexts")
    if not moving:
        raise InvalidMove("No photos to move")
    strangers = [pid for pid in moving if pid not in source.member_photo_ids]
    if strangers:
        raise InvalidMove(f"Photos {', '.join(strangers)} are not members of event {source.id}")
    if len(moving) == len(source.member_photo_ids):
        raise InvalidMove(f"Moving every photo would leave event {source.id} empty; merge instead")

    now = now or _utcnow()
    chosen = set(moving)
    moved_in_order = [pid for pid in source.member_photo_ids if pid in chosen]
    new_source = rebuild_event(
        source,
        [pid for pid in source.member_photo_ids if pid not in chosen],
        photos,
        config=config,
        now=now,
    )
    new_target = rebuild_event(
        target,
        target.member_photo_ids + moved_in_order,
        photos,
        config=config,
        previous_bursts=target.bursts + source.bursts,
        now=now,
    )
    logger.info(f"Moved {len(moving)} photos from event {source.id} to {target.id}")
    return new_source, new_target


def set_key_photo(
    event: TimelineEvent,
    photo_id: str,
    photos: PhotoIndex,
    *,
    now: Optional[datetime] = None,
) -> TimelineEvent:
    if photo_id not in event.member_photo_ids:
        raise InvalidKeyPhoto(f"Photo {photo_id} is not a member of event {event.id}")
    return rebuild_event(
        event,
        event.member_photo_ids,
        photos,
        previous_bursts=event.bursts,
        key_photo_id=photo_id,
        now=now,
    )


class EventRepository:
    """
    In-memory home of materialized events and their photo records.

    Every write to a context happens under that context's lock, so two
    overrides in one context never see stale membership while different
    contexts never contend. Operations validate and compute before they
    commit; a failure leaves the stored events untouched.
    """

    def __init__(self):
        # context id -> event id -> event; each inner map is only written under its context's lock
        self._events: Dict[str, Dict[str, TimelineEvent]] = {}
        self._context_of: Dict[str, str] = {}
        self._photos: Dict[str, Dict[str, PhotoRecord]] = {}
        self._configs: Dict[str, ClusteringConfig] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, context_id: str) -> threading.Lock:
        with self._locks_guard:
            if context_id not in self._locks:
                self._locks[context_id] = threading.Lock()
            return self._locks[context_id]

    def get(self, event_id: str) -> TimelineEvent:
        context_id = self._context_of.get(event_id)
        event = self._events.get(context_id, {}).get(event_id)
        if event is None:
            raise EventNotFound(event_id)
        return event

    def events_for_context(self, context_id: str) -> List[TimelineEvent]:
        events = list(self._events.get(context_id, {}).values())
        return sorted(events, key=lambda e: e.sort_key)

    def photos_for_context(self, context_id: str) -> Dict[str, PhotoRecord]:
        return dict(self._photos.get(context_id, {}))

    def photos_for_event(self, event_id: str) -> List[PhotoRecord]:
        event = self.get(event_id)
        return _records(event.member_photo_ids, self._photos.get(event.context_id, {}))

    def _replace(
        self, context_id: str, remove: Iterable[str], add: Iterable[TimelineEvent]
    ) -> None:
        events = dict(self._events.get(context_id, {}))
        added = list(add)
        for event_id in remove:
            events.pop(event_id, None)
            self._context_of.pop(event_id, None)
        for event in added:
            events[event.id] = event
            self._context_of[event.id] = context_id
        self._events[context_id] = events

    def commit_clustering(
        self,
        context_id: str,
        events: Sequence[TimelineEvent],
        records: Iterable[PhotoRecord],
        config: Optional[ClusteringConfig] = None,
    ) -> None:
        """Replaces every event of a context with the result of a clustering run over all its photos."""
        foreign = [e.id for e in events if e.context_id != context_id]
        if foreign:
            raise OverrideError(f"Events {', '.join(foreign)} do not belong to context {context_id}")
        with self.lock_for(context_id):
            self._photos[context_id] = {}
            self._commit_clustering(context_id, list(self._events.get(context_id, {})), events, records, config)

    def _commit_clustering(self, context_id, remove, events, records, config) -> None:
        photos = dict(self._photos.get(context_id, {}))
        photos.update((record.id, record) for record in records)
        self._photos[context_id] = photos
        if config is not None:
            self._configs[context_id] = config
        self._replace(context_id, remove, events)
        logger.info(f"Committed {len(events)} events for context {context_id}")

    def cluster_context(
        self,
        context: TimelineContext,
        raw_photos: Iterable[Any],
        config: ClusteringConfig,
        **kwargs: Any,
    ) -> List[TimelineEvent]:
        """
        Clusters one import batch into ``context`` and commits it.

        Events holding none of the batch's photos are kept as they are. Events
        that do hold some (a re-import) are re-clustered together with the
        batch, so their ids, titles and custom attributes carry over and every
        photo stays in exactly one event.

        Returns:
            The events produced by this batch, in timeline order.
        """
        config.check()
        records = normalize_photos(raw_photos, context_type=context.context_type)
        batch_ids = {record.id for record in records}
        with self.lock_for(context.id):
            stored = self._photos.get(context.id, {})
            affected = [
                event
                for event in self.events_for_context(context.id)
                if batch_ids.intersection(event.member_photo_ids)
            ]
            carried = [
                photo
                for event in affected
                for photo in _records(event.member_photo_ids, stored)
                if photo.id not in batch_ids
            ]
            events = cluster(
                records + carried,
                config,
                context,
                previous_events=affected,
                **kwargs,
            )
            self._commit_clustering(context.id, [e.id for e in affected], events, records, config)
        return events

    def split(self, event_id: str, photo_ids: Iterable[str]) -> Tuple[TimelineEvent, TimelineEvent]:
        context_id = self.get(event_id).context_id
        with self.lock_for(context_id):
            event = self.get(event_id)
            remainder, split_off = split_event(
                event,
                photo_ids,
                self._photos.get(context_id, {}),
                config=self._configs.get(context_id),
            )
            self._replace(context_id, [], [remainder, split_off])
        return remainder, split_off

    def merge(self, event_id_a: str, event_id_b: str) -> TimelineEvent:
        event_a, event_b = self.get(event_id_a), self.get(event_id_b)
        if event_a.context_id != event_b.context_id or event_a.id == event_b.id:
            # Raises IncompatibleMerge without touching either context
            merge_events(event_a, event_b, {})

        context_id = event_a.context_id
        with self.lock_for(context_id):
            event_a, event_b = self.get(event_id_a), self.get(event_id_b)
            merged = merge_events(
                event_a,
                event_b,
                self._photos.get(context_id, {}),
                config=self._configs.get(context_id),
            )
            self._replace(context_id, [event_b.id], [merged])
        return merged

    def move_photos(
        self, source_id: str, target_id: str, photo_ids: Iterable[str]
    ) -> Tuple[TimelineEvent, TimelineEvent]:
        source, target = self.get(source_id), self.get(target_id)
        if source.context_id != target.context_id:
            raise InvalidMove(f"Events {source_id} and {target_id} belong to different contexts")

        context_id = source.context_id
        with self.lock_for(context_id):
            new_source, new_target = move_photos(
                self.get(source_id),
                self.get(target_id),
                photo_ids,
                self._photos.get(context_id, {}),
                config=self._configs.get(context_id),
            )
            self._replace(context_id, [], [new_source, new_target])
        return new_source, new_target

    def set_key_photo(self, event_id: str, photo_id: str) -> TimelineEvent:
        context_id = self.get(event_id).context_id
        with self.lock_for(context_id):
            updated = set_key_photo(self.get(event_id), photo_id, self._photos.get(context_id, {}))
            self._replace(context_id, [], [updated])
        return updated
