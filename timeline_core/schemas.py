from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .config import ClusteringConfig
from .models import ContextType, TimelineEvent


class ClusterRequest(BaseModel):
    """Photos of one import batch for a context."""

    owner_id: str
    context_type: ContextType = ContextType.PERSON
    photos: List[Dict[str, Any]]
    # Falls back to the context type's preset plus TIMELINE_* overrides
    config: Optional[ClusteringConfig] = None


class SplitRequest(BaseModel):
    photo_ids: List[str]


class SplitResponse(BaseModel):
    remainder: TimelineEvent
    split_off: TimelineEvent


class MergeRequest(BaseModel):
    """Merge event B into event A."""

    event_id_a: str
    event_id_b: str


class MoveRequest(BaseModel):
    target_event_id: str
    photo_ids: List[str]


class MoveResponse(BaseModel):
    source: TimelineEvent
    target: TimelineEvent


class KeyPhotoRequest(BaseModel):
    photo_id: str


class TrackResponse(BaseModel):
    """GPS polyline and bounds of an event."""

    event_id: str
    track_gps: Optional[List[List[float]]]
    bbox_north: Optional[float] = None
    bbox_south: Optional[float] = None
    bbox_east: Optional[float] = None
    bbox_west: Optional[float] = None
