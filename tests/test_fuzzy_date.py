import pytest
from datetime import datetime, timezone

from timeline_core.fuzzy_date import FuzzyDate, FuzzyGranularity, Season, season_for_month


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestFuzzyDateRange:
    def test_decade(self):
        fd = FuzzyDate(granularity=FuzzyGranularity.DECADE, year=1995)
        assert fd.range == (utc(1990, 1, 1), utc(2000, 1, 1))
        assert fd.display_text == "1990s"

    def test_year(self):
        fd = FuzzyDate(granularity=FuzzyGranularity.YEAR, year=1995)
        assert fd.range == (utc(1995, 1, 1), utc(1996, 1, 1))
        assert fd.midpoint == utc(1995, 7, 2, 12)

    def test_summer(self):
        fd = FuzzyDate(granularity=FuzzyGranularity.SEASON, year=1995, season=Season.SUMMER)
        assert fd.range == (utc(1995, 6, 1), utc(1995, 9, 1))
        assert str(fd) == "Summer 1995"

    def test_winter_crosses_new_year(self):
        """Winter 1995 runs from December 1995 through February 1996."""
        fd = FuzzyDate(granularity=FuzzyGranularity.SEASON, year=1995, season=Season.WINTER)
        assert fd.range == (utc(1995, 12, 1), utc(1996, 3, 1))

    def test_month_and_day(self):
        month = FuzzyDate(granularity=FuzzyGranularity.MONTH, year=1995, month=12)
        day = FuzzyDate(granularity=FuzzyGranularity.DAY, year=1995, month=6, day=3)

        assert month.range == (utc(1995, 12, 1), utc(1996, 1, 1))
        assert day.range == (utc(1995, 6, 3), utc(1995, 6, 4))
        assert month.display_text == "December 1995"
        assert day.display_text == "June 3, 1995"

    def test_period_key_ignores_spelling(self):
        """Two decade dates for the same decade cover the same period."""
        a = FuzzyDate(granularity=FuzzyGranularity.DECADE, year=1990)
        b = FuzzyDate(granularity=FuzzyGranularity.DECADE, year=1997)
        assert a.period_key == b.period_key


class TestFuzzyDateValidation:
    def test_season_required(self):
        with pytest.raises(ValueError):
            FuzzyDate(granularity=FuzzyGranularity.SEASON, year=1995)

    def test_invalid_day(self):
        with pytest.raises(ValueError):
            FuzzyDate(granularity=FuzzyGranularity.DAY, year=1995, month=2, day=30)

    def test_year_out_of_range(self):
        with pytest.raises(ValueError):
            FuzzyDate(granularity=FuzzyGranularity.YEAR, year=1)


class TestFuzzyDateConstruction:
    @pytest.mark.parametrize(
        "text,granularity",
        [
            ("1990s", FuzzyGranularity.DECADE),
            ("1995", FuzzyGranularity.YEAR),
            ("summer 1995", FuzzyGranularity.SEASON),
            ("1995-06", FuzzyGranularity.MONTH),
            ("1995-06-03", FuzzyGranularity.DAY),
        ],
    )
    def test_parse(self, text, granularity):
        assert FuzzyDate.parse(text).granularity == granularity

    def test_parse_autumn(self):
        assert FuzzyDate.parse("Autumn 2001").season == Season.FALL

    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            FuzzyDate.parse("a while ago")

    def test_season_for_month(self):
        assert season_for_month(1) == (Season.WINTER, -1)
        assert season_for_month(12) == (Season.WINTER, 0)
        assert season_for_month(4) == (Season.SPRING, 0)

    def test_from_datetime_january_is_previous_winter(self):
        fd = FuzzyDate.from_datetime(utc(1996, 1, 15), FuzzyGranularity.SEASON)
        assert fd.year == 1995
        assert fd.season == Season.WINTER
        assert fd.start <= utc(1996, 1, 15) < fd.end

    def test_from_datetime_decade(self):
        fd = FuzzyDate.from_datetime(utc(1987, 5, 1), FuzzyGranularity.DECADE)
        assert fd.display_text == "1980s"
