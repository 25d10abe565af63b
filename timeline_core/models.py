import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator, model_validator

from .fuzzy_date import FuzzyDate


class ContextType(str, Enum):
    """Thematic owner of a timeline. Contexts never share events."""

    PERSON = "person"
    PET = "pet"
    PROJECT = "project"
    BUSINESS = "business"


class TimelineContext(BaseModel):
    """The context a clustering run materializes events for."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str
    context_type: ContextType = ContextType.PERSON


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    def as_pair(self) -> List[float]:
        return [self.latitude, self.longitude]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PhotoRecord(BaseModel):
    """A normalized photo: one exact UTC instant or one fuzzy date, never neither."""

    model_config = ConfigDict(frozen=True)

    id: str
    captured_at: Optional[datetime] = None
    fuzzy_date: Optional[FuzzyDate] = None
    location: Optional[GeoPoint] = None
    caption: Optional[str] = None

    @field_validator("captured_at")
    @classmethod
    def _captured_at_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _one_anchor(self) -> "PhotoRecord":
        if self.captured_at is None and self.fuzzy_date is None:
            raise ValueError(f"photo {self.id} needs captured_at or fuzzy_date")
        if self.captured_at is not None and self.fuzzy_date is not None:
            raise ValueError(f"photo {self.id} cannot have both captured_at and fuzzy_date")
        return self

    @property
    def is_exact(self) -> bool:
        return self.captured_at is not None

    @property
    def anchor(self) -> datetime:
        """The instant used for ordering: capture time, or the fuzzy range midpoint."""
        if self.captured_at is not None:
            return self.captured_at
        return self.fuzzy_date.midpoint

    @property
    def has_caption(self) -> bool:
        return bool(self.caption)


class TimelineEvent(BaseModel):
    """A group of photos rendered, annotated and shared as one timeline entry."""

    id: str
    context_id: str
    owner_id: str
    event_type: str

    timestamp: Optional[datetime] = None
    fuzzy_date: Optional[FuzzyDate] = None
    location: Optional[GeoPoint] = None

    # Open, context-specific data; the clustering engine never validates it.
    custom_attributes: Dict[str, JsonValue] = Field(default_factory=dict)

    member_photo_ids: List[str] = Field(min_length=1)
    key_photo_id: str

    title: Optional[str] = None
    description: Optional[str] = None

    # Rendering hints
    is_burst: bool = False
    bursts: List[List[str]] = Field(default_factory=list)

    # Unset until the first manual override touches the event
    updated_at: Optional[datetime] = None

    @field_validator("timestamp", "updated_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _key_photo_is_member(self) -> "TimelineEvent":
        if self.key_photo_id not in self.member_photo_ids:
            raise ValueError(
                f"key photo {self.key_photo_id} is not a member of event {self.id}"
            )
        if len(set(self.member_photo_ids)) != len(self.member_photo_ids):
            raise ValueError(f"event {self.id} lists a photo more than once")
        return self

    @property
    def sort_key(self) -> Any:
        anchor = self.timestamp
        if anchor is None and self.fuzzy_date is not None:
            anchor = self.fuzzy_date.midpoint
        return (anchor, self.id)

    def attributes_copy(self) -> Dict[str, JsonValue]:
        return copy.deepcopy(self.custom_attributes)


@dataclass
class Cluster:
    """Working group of photos inside one clustering run. Members stay in timeline order."""

    members: List[PhotoRecord]
    key_photo_id: Optional[str] = None
    bursts: List[List[str]] = field(default_factory=list)

    @property
    def member_ids(self) -> List[str]:
        return [photo.id for photo in self.members]

    @property
    def start(self) -> datetime:
        return min(photo.anchor for photo in self.members)

    @property
    def end(self) -> datetime:
        return max(photo.anchor for photo in self.members)

    @property
    def is_burst(self) -> bool:
        return bool(self.bursts)

    @property
    def locations(self) -> List[GeoPoint]:
        return [photo.location for photo in self.members if photo.location is not None]

    @property
    def centroid(self) -> Optional[GeoPoint]:
        # Import here to avoid circular imports
        from .geo import compute_centroid

        return compute_centroid(self.locations)

    @property
    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        from .geo import bounding_box

        return bounding_box(self.locations)
