import logging

from fastapi import APIRouter, Depends

from ..deps import get_repository
from ..errors import TimelineError
from ..geo import bounding_box, event_track
from ..models import TimelineEvent
from ..overrides import EventRepository
from ..schemas import (
    KeyPhotoRequest,
    MergeRequest,
    MoveRequest,
    MoveResponse,
    SplitRequest,
    SplitResponse,
    TrackResponse,
)
from .errors import to_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/merge", response_model=TimelineEvent)
def merge_events(
    request: MergeRequest,
    repository: EventRepository = Depends(get_repository),
):
    """Merge event B into event A."""
    try:
        return repository.merge(request.event_id_a, request.event_id_b)
    except TimelineError as e:
        raise to_http_error(e) from e


@router.get("/{event_id}", response_model=TimelineEvent)
def get_event(
    event_id: str,
    repository: EventRepository = Depends(get_repository),
):
    """Get a specific event."""
    try:
        return repository.get(event_id)
    except TimelineError as e:
        raise to_http_error(e) from e


@router.get("/{event_id}/track", response_model=TrackResponse)
def get_event_track(
    event_id: str,
    repository: EventRepository = Depends(get_repository),
):
    """GPS track and bounding box of an event."""
    try:
        photos = repository.photos_for_event(event_id)
    except TimelineError as e:
        raise to_http_error(e) from e

    response = TrackResponse(event_id=event_id, track_gps=event_track(photos))
    bounds = bounding_box(p.location for p in photos if p.location is not None)
    if bounds:
        (
            response.bbox_north,
            response.bbox_south,
            response.bbox_east,
            response.bbox_west,
        ) = bounds
    return response


@router.post("/{event_id}/split", response_model=SplitResponse)
def split_event(
    event_id: str,
    request: SplitRequest,
    repository: EventRepository = Depends(get_repository),
):
    """Split photos out of an event into a new one."""
    try:
        remainder, split_off = repository.split(event_id, request.photo_ids)
    except TimelineError as e:
        raise to_http_error(e) from e
    return SplitResponse(remainder=remainder, split_off=split_off)


@router.post("/{event_id}/move", response_model=MoveResponse)
def move_photos(
    event_id: str,
    request: MoveRequest,
    repository: EventRepository = Depends(get_repository),
):
    """Move photos from this event to another event of the same context."""
    try:
        source, target = repository.move_photos(
            event_id, request.target_event_id, request.photo_ids
        )
    except TimelineError as e:
        raise to_http_error(e) from e
    return MoveResponse(source=source, target=target)


@router.put("/{event_id}/key-photo", response_model=TimelineEvent)
def set_key_photo(
    event_id: str,
    request: KeyPhotoRequest,
    repository: EventRepository = Depends(get_repository),
):
    """Choose the event's representative photo."""
    try:
        return repository.set_key_photo(event_id, request.photo_id)
    except TimelineError as e:
        raise to_http_error(e) from e
