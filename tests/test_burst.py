import pytest
from datetime import datetime, timedelta, timezone

from timeline_core.burst import detect_bursts, find_bursts, select_key_photo
from timeline_core.cluster import cluster
from timeline_core.config import ClusteringConfig
from timeline_core.fuzzy_date import FuzzyDate
from timeline_core.models import Cluster, PhotoRecord, TimelineContext

BASE = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)


def shot(photo_id, seconds, caption=None):
    return PhotoRecord(
        id=photo_id, captured_at=BASE + timedelta(seconds=seconds), caption=caption
    )


@pytest.fixture
def config():
    return ClusteringConfig(
        time_window=timedelta(hours=1),
        distance_threshold=500.0,
        burst_min_count=3,
        burst_gap_threshold=timedelta(seconds=2),
        burst_max_count=5,
    )


class TestFindBursts:
    def test_rapid_run_is_a_burst(self):
        photos = [shot("a", 0), shot("b", 1), shot("c", 2), shot("d", 60)]
        assert find_bursts(photos, timedelta(seconds=2), 3) == [["a", "b", "c"]]

    def test_gap_equal_to_threshold_continues_run(self):
        photos = [shot("a", 0), shot("b", 2), shot("c", 4)]
        assert find_bursts(photos, timedelta(seconds=2), 3) == [["a", "b", "c"]]

    def test_run_too_short(self):
        photos = [shot("a", 0), shot("b", 1), shot("c", 30)]
        assert find_bursts(photos, timedelta(seconds=2), 3) == []

    def test_long_run_is_chunked(self):
        """Runs longer than the maximum are cut; a short tail is not a burst."""
        photos = [shot(f"p{i:02d}", i) for i in range(12)]

        bursts = find_bursts(photos, timedelta(seconds=2), 3, max_count=5)

        assert [len(b) for b in bursts] == [5, 5]
        assert bursts[0][0] == "p00"

    def test_fuzzy_photo_breaks_run(self):
        photos = [
            shot("a", 0),
            shot("b", 1),
            PhotoRecord(id="old", fuzzy_date=FuzzyDate.parse("1995")),
        ]
        assert find_bursts(photos, timedelta(seconds=2), 2) == [["a", "b"]]

    def test_unsorted_input(self):
        photos = [shot("c", 2), shot("a", 0), shot("b", 1)]
        assert find_bursts(photos, timedelta(seconds=2), 3) == [["a", "b", "c"]]


class TestSelectKeyPhoto:
    def test_earliest_without_captions(self):
        assert select_key_photo([shot("b", 5), shot("a", 9), shot("c", 1)]).id == "c"

    def test_captioned_wins(self):
        photos = [shot("a", 0), shot("b", 1, caption="Blowing out candles"), shot("c", 2)]
        assert select_key_photo(photos).id == "b"

    def test_earliest_captioned_wins(self):
        photos = [shot("a", 0), shot("b", 5, caption="later"), shot("c", 3, caption="sooner")]
        assert select_key_photo(photos).id == "c"

    def test_empty_caption_does_not_count(self):
        photos = [shot("a", 0), shot("b", 1, caption="")]
        assert select_key_photo(photos).id == "a"

    def test_tie_broken_by_id(self):
        assert select_key_photo([shot("b", 0), shot("a", 0)]).id == "a"

    def test_empty(self):
        with pytest.raises(ValueError):
            select_key_photo([])


class TestDetectBursts:
    def test_annotates_without_changing_members(self, config):
        members = [shot("a", 0), shot("b", 1), shot("c", 2), shot("d", 300)]
        c = Cluster(members=list(members))

        detect_bursts(c, config)

        assert c.members == members
        assert c.bursts == [["a", "b", "c"]]
        assert c.key_photo_id == "a"
        assert c.is_burst

    def test_burst_collapses_into_one_event(self, config):
        """A burst lands in one event with exactly one key photo."""
        context = TimelineContext(id="ctx", owner_id="me")
        photos = [shot(f"p{i}", i) for i in range(4)]

        events = cluster(photos, config, context)

        assert len(events) == 1
        assert events[0].is_burst
        assert events[0].key_photo_id == "p0"
        assert events[0].event_type == "photo_burst"
