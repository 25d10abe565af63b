import pytest
from datetime import timedelta

from timeline_core.config import CONTEXT_PRESETS, ClusteringConfig, Settings
from timeline_core.errors import ConfigurationError
from timeline_core.models import ContextType


def make_config(**overrides):
    values = {
        "time_window": timedelta(minutes=30),
        "distance_threshold": 500.0,
        "burst_min_count": 3,
        "burst_gap_threshold": timedelta(seconds=2),
    }
    values.update(overrides)
    return ClusteringConfig(**values)


class TestClusteringConfig:
    def test_valid_config_passes(self):
        config = make_config()
        assert config.check() is config

    def test_zero_window_allowed(self):
        make_config(time_window=timedelta(0)).check()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"time_window": timedelta(minutes=-1)},
            {"distance_threshold": 0.0},
            {"distance_threshold": -5.0},
            {"burst_min_count": 0},
            {"burst_gap_threshold": timedelta(0)},
            {"burst_max_count": 0},
            {"burst_max_count": 2},
        ],
    )
    def test_out_of_range_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            make_config(**overrides).check()

    def test_durations_accept_seconds(self):
        config = ClusteringConfig(
            time_window=1800,
            distance_threshold=500,
            burst_min_count=3,
            burst_gap_threshold=2,
        )
        assert config.time_window == timedelta(minutes=30)
        assert config.burst_gap_threshold == timedelta(seconds=2)

    def test_thresholds_are_required(self):
        with pytest.raises(ValueError):
            ClusteringConfig(distance_threshold=500)


class TestPresets:
    def test_every_context_type_has_a_valid_preset(self):
        for context_type in ContextType:
            ClusteringConfig.for_context_type(context_type).check()

    def test_project_preset_is_tight(self):
        """Renovation sites use a short radius."""
        project = ClusteringConfig.for_context_type(ContextType.PROJECT)
        person = ClusteringConfig.for_context_type("person")

        assert project.distance_threshold < person.distance_threshold
        assert project.time_window == timedelta(hours=4)
        assert project.burst_max_count == 50

    def test_settings_override_preset(self):
        app_settings = Settings(TIME_WINDOW_MINUTES=15, BURST_GAP_SECONDS=5, CAPTION_SEPARATOR=" / ")

        config = ClusteringConfig.from_settings(ContextType.PET, app_settings)

        assert config.time_window == timedelta(minutes=15)
        assert config.burst_gap_threshold == timedelta(seconds=5)
        assert config.distance_threshold == CONTEXT_PRESETS[ContextType.PET].distance_threshold
        assert config.caption_separator == " / "

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("TIMELINE_CLUSTER_MAX_WORKERS", "2")
        monkeypatch.setenv("TIMELINE_DISTANCE_THRESHOLD_METERS", "75")

        app_settings = Settings()

        assert app_settings.CLUSTER_MAX_WORKERS == 2
        assert ClusteringConfig.from_settings(ContextType.PERSON, app_settings).distance_threshold == 75.0

    @pytest.mark.parametrize("workers", ["0", "-1"])
    def test_worker_count_must_be_positive(self, monkeypatch, workers):
        monkeypatch.setenv("TIMELINE_CLUSTER_MAX_WORKERS", workers)

        with pytest.raises(ValueError):
            Settings()
