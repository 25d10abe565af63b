# timeline_core/__init__.py

from .cluster import cluster, group_by_time, refine_by_distance
from .config import ClusteringConfig, Settings, settings
from .errors import (
    ConfigurationError,
    EventNotFound,
    IncompatibleMerge,
    InvalidKeyPhoto,
    InvalidMove,
    InvalidPhotoRecord,
    InvalidSplit,
    MissingTemporalAnchor,
    OverrideError,
    TimelineError,
)
from .fuzzy_date import FuzzyDate, FuzzyGranularity, Season
from .models import Cluster, ContextType, GeoPoint, PhotoRecord, TimelineContext, TimelineEvent
from .normalize import normalize_photo, normalize_photos
from .overrides import EventRepository, merge_events, move_photos, set_key_photo, split_event
from .policies import DefaultAttributePolicy, default_event_type

__all__ = [
    "cluster",
    "group_by_time",
    "refine_by_distance",
    "ClusteringConfig",
    "Settings",
    "settings",
    "ConfigurationError",
    "EventNotFound",
    "IncompatibleMerge",
    "InvalidKeyPhoto",
    "InvalidMove",
    "InvalidPhotoRecord",
    "InvalidSplit",
    "MissingTemporalAnchor",
    "OverrideError",
    "TimelineError",
    "FuzzyDate",
    "FuzzyGranularity",
    "Season",
    "Cluster",
    "ContextType",
    "GeoPoint",
    "PhotoRecord",
    "TimelineContext",
    "TimelineEvent",
    "normalize_photo",
    "normalize_photos",
    "EventRepository",
    "merge_events",
    "move_photos",
    "set_key_photo",
    "split_event",
    "DefaultAttributePolicy",
    "default_event_type",
]
