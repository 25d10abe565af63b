import logging
from datetime import timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .models import ContextType

logger = logging.getLogger(__name__)

DEFAULT_CAPTION_SEPARATOR = "\n"


class Settings(BaseSettings):
    """Process-wide settings, read from TIMELINE_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="TIMELINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Fan-out width for the per-cluster refine/burst stage
    CLUSTER_MAX_WORKERS: int = Field(default=4, ge=1)

    CAPTION_SEPARATOR: str = DEFAULT_CAPTION_SEPARATOR

    # Optional overrides applied on top of a context preset
    TIME_WINDOW_MINUTES: Optional[float] = None
    DISTANCE_THRESHOLD_METERS: Optional[float] = None
    BURST_MIN_COUNT: Optional[int] = None
    BURST_GAP_SECONDS: Optional[float] = None

    DEBUG: bool = False


class ClusteringConfig(BaseModel):
    """
    Thresholds for one context's clustering run.

    The four thresholds have no defaults: each context supplies its own,
    either explicitly or through ``for_context_type``.
    """

    model_config = ConfigDict(frozen=True)

    time_window: timedelta
    distance_threshold: float  # meters
    burst_min_count: int
    burst_gap_threshold: timedelta
    burst_max_count: Optional[int] = None
    caption_separator: str = DEFAULT_CAPTION_SEPARATOR

    def check(self) -> "ClusteringConfig":
        """Raise ConfigurationError if any threshold is out of range."""
        if self.time_window < timedelta(0):
            raise ConfigurationError(f"time_window must not be negative, got {self.time_window}")
        if self.distance_threshold <= 0:
            raise ConfigurationError(
                f"distance_threshold must be positive, got {self.distance_threshold}"
            )
        if self.burst_gap_threshold <= timedelta(0):
            raise ConfigurationError(
                f"burst_gap_threshold must be positive, got {self.burst_gap_threshold}"
            )
        if self.burst_min_count <= 0:
            raise ConfigurationError(f"burst_min_count must be positive, got {self.burst_min_count}")
        if self.burst_max_count is not None:
            if self.burst_max_count <= 0:
                raise ConfigurationError(
                    f"burst_max_count must be positive, got {self.burst_max_count}"
                )
            if self.burst_max_count < self.burst_min_count:
                raise ConfigurationError("burst_max_count must not be below burst_min_count")
        return self

    @classmethod
    def for_context_type(cls, context_type: ContextType) -> "ClusteringConfig":
        """Tuned thresholds per context type (e.g. tight radius for a renovation site)."""
        return CONTEXT_PRESETS[ContextType(context_type)]

    @classmethod
    def from_settings(
        cls, context_type: ContextType, app_settings: Optional[Settings] = None
    ) -> "ClusteringConfig":
        """Context preset with any TIMELINE_* overrides applied."""
        app_settings = app_settings or settings
        preset = cls.for_context_type(context_type)

        updates = {"caption_separator": app_settings.CAPTION_SEPARATOR}
        if app_settings.TIME_WINDOW_MINUTES is not None:
            updates["time_window"] = timedelta(minutes=app_settings.TIME_WINDOW_MINUTES)
        if app_settings.DISTANCE_THRESHOLD_METERS is not None:
            updates["distance_threshold"] = app_settings.DISTANCE_THRESHOLD_METERS
        if app_settings.BURST_MIN_COUNT is not None:
            updates["burst_min_count"] = app_settings.BURST_MIN_COUNT
        if app_settings.BURST_GAP_SECONDS is not None:
            updates["burst_gap_threshold"] = timedelta(seconds=app_settings.BURST_GAP_SECONDS)

        config = preset.model_copy(update=updates)
        logger.debug(f"Clustering config for {context_type}: {config}")
        return config


CONTEXT_PRESETS = {
    ContextType.PERSON: ClusteringConfig(
        time_window=timedelta(hours=2),
        distance_threshold=500.0,
        burst_min_count=3,
        burst_gap_threshold=timedelta(seconds=60),
        burst_max_count=50,
    ),
    ContextType.PET: ClusteringConfig(
        time_window=timedelta(minutes=30),
        distance_threshold=100.0,  # home and yard
        burst_min_count=3,
        burst_gap_threshold=timedelta(seconds=15),
        burst_max_count=50,
    ),
    ContextType.PROJECT: ClusteringConfig(
        time_window=timedelta(hours=4),
        distance_threshold=50.0,  # one job site
        burst_min_count=3,
        burst_gap_threshold=timedelta(seconds=30),
        burst_max_count=50,
    ),
    ContextType.BUSINESS: ClusteringConfig(
        time_window=timedelta(hours=8),
        distance_threshold=1000.0,
        burst_min_count=3,
        burst_gap_threshold=timedelta(seconds=120),
        burst_max_count=50,
    ),
}

settings = Settings()
