"""
Fuzzy dates: approximate capture times expressed as a calendar range.

A fuzzy date is used when a photo has no usable timestamp (scanned prints,
stripped metadata). Every fuzzy date resolves to a half-open UTC range
``[start, end)`` and sorts by the midpoint of that range.
"""
import calendar
import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator


class FuzzyGranularity(str, Enum):
    """How wide the range of a fuzzy date is, coarsest first."""

    DECADE = "decade"
    YEAR = "year"
    SEASON = "season"
    MONTH = "month"
    DAY = "day"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"


# Meteorological seasons. Winter of year Y runs Dec Y through Feb Y+1.
SEASON_START_MONTH = {
    Season.SPRING: 3,
    Season.SUMMER: 6,
    Season.FALL: 9,
    Season.WINTER: 12,
}

MONTH_NAMES = [
    "",
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

MIN_YEAR = 10
MAX_YEAR = 9989

_DECADE_RE = re.compile(r"^(\d{3,4})0s$")
_YEAR_RE = re.compile(r"^(\d{4})$")
_SEASON_RE = re.compile(r"^(spring|summer|fall|autumn|winter)\s+(\d{4})$", re.IGNORECASE)
_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")
_DAY_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _add_months(start: datetime, months: int) -> datetime:
    index = start.month - 1 + months
    return _utc(start.year + index // 12, index % 12 + 1, 1)


def season_for_month(month: int) -> Tuple[Season, int]:
    """Return the season a month falls in and the year offset of that season.

    January and February belong to the winter that started the previous year,
    so they return an offset of -1.
    """
    if month in (1, 2):
        return Season.WINTER, -1
    if month == 12:
        return Season.WINTER, 0
    if month in (3, 4, 5):
        return Season.SPRING, 0
    if month in (6, 7, 8):
        return Season.SUMMER, 0
    if month in (9, 10, 11):
        return Season.FALL, 0
    raise ValueError(f"Invalid month: {month}")


class FuzzyDate(BaseModel):
    """An approximate date: a decade, year, season, month or day."""

    model_config = ConfigDict(frozen=True)

    granularity: FuzzyGranularity
    year: int
    season: Optional[Season] = None
    month: Optional[int] = None
    day: Optional[int] = None

    @model_validator(mode="after")
    def _check_fields(self) -> "FuzzyDate":
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise ValueError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")

        if self.granularity == FuzzyGranularity.SEASON and self.season is None:
            raise ValueError("season is required for season granularity")

        if self.granularity in (FuzzyGranularity.MONTH, FuzzyGranularity.DAY):
            if self.month is None or not 1 <= self.month <= 12:
                raise ValueError("month (1-12) is required for month/day granularity")

        if self.granularity == FuzzyGranularity.DAY:
            days_in_month = calendar.monthrange(self.year, self.month)[1]
            if self.day is None or not 1 <= self.day <= days_in_month:
                raise ValueError(f"day (1-{days_in_month}) is required for day granularity")

        return self

    @property
    def range(self) -> Tuple[datetime, datetime]:
        """Half-open UTC range covered by this fuzzy date."""
        if self.granularity == FuzzyGranularity.DECADE:
            first_year = (self.year // 10) * 10
            return _utc(first_year, 1, 1), _utc(first_year + 10, 1, 1)

        if self.granularity == FuzzyGranularity.YEAR:
            return _utc(self.year, 1, 1), _utc(self.year + 1, 1, 1)

        if self.granularity == FuzzyGranularity.SEASON:
            start = _utc(self.year, SEASON_START_MONTH[self.season], 1)
            return start, _add_months(start, 3)

        if self.granularity == FuzzyGranularity.MONTH:
            start = _utc(self.year, self.month, 1)
            return start, _add_months(start, 1)

        start = _utc(self.year, self.month, self.day)
        return start, start + timedelta(days=1)

    @property
    def start(self) -> datetime:
        return self.range[0]

    @property
    def end(self) -> datetime:
        return self.range[1]

    @property
    def midpoint(self) -> datetime:
        start, end = self.range
        return start + (end - start) / 2

    @property
    def period_key(self) -> Tuple[str, datetime]:
        """Identity of the period: two fuzzy dates with equal keys cover the same range."""
        return self.granularity.value, self.start

    @property
    def display_text(self) -> str:
        if self.granularity == FuzzyGranularity.DECADE:
            return f"{(self.year // 10) * 10}s"
        if self.granularity == FuzzyGranularity.YEAR:
            return str(self.year)
        if self.granularity == FuzzyGranularity.SEASON:
            return f"{self.season.value.capitalize()} {self.year}"
        if self.granularity == FuzzyGranularity.MONTH:
            return f"{MONTH_NAMES[self.month]} {self.year}"
        return f"{MONTH_NAMES[self.month]} {self.day}, {self.year}"

    def __str__(self) -> str:
        return self.display_text

    @classmethod
    def from_datetime(cls, value: datetime, granularity: FuzzyGranularity) -> "FuzzyDate":
        """Coarsen an exact instant to the given granularity."""
        granularity = FuzzyGranularity(granularity)
        if granularity == FuzzyGranularity.DECADE:
            return cls(granularity=granularity, year=(value.year // 10) * 10)
        if granularity == FuzzyGranularity.YEAR:
            return cls(granularity=granularity, year=value.year)
        if granularity == FuzzyGranularity.SEASON:
            season, offset = season_for_month(value.month)
            return cls(granularity=granularity, year=value.year + offset, season=season)
        if granularity == FuzzyGranularity.MONTH:
            return cls(granularity=granularity, year=value.year, month=value.month)
        return cls(
            granularity=granularity,
            year=value.year,
            month=value.month,
            day=value.day,
        )

    @classmethod
    def parse(cls, text: str) -> "FuzzyDate":
        """
        Parse the short text forms a user types for an approximate date.

        Accepted: ``1990s``, ``1995``, ``Summer 1995``, ``1995-06``, ``1995-06-03``.

        Raises:
            ValueError: if the text matches none of the forms.
        """
        value = text.strip()

        match = _DECADE_RE.match(value)
        if match:
            return cls(granularity=FuzzyGranularity.DECADE, year=int(match.group(1)) * 10)

        match = _YEAR_RE.match(value)
        if match:
            return cls(granularity=FuzzyGranularity.YEAR, year=int(match.group(1)))

        match = _SEASON_RE.match(value)
        if match:
            name = match.group(1).lower()
            season = Season.FALL if name == "autumn" else Season(name)
            return cls(
                granularity=FuzzyGranularity.SEASON,
                year=int(match.group(2)),
                season=season,
            )

        match = _MONTH_RE.match(value)
        if match:
            return cls(
                granularity=FuzzyGranularity.MONTH,
                year=int(match.group(1)),
                month=int(match.group(2)),
            )

        match = _DAY_RE.match(value)
        if match:
            return cls(
                granularity=FuzzyGranularity.DAY,
                year=int(match.group(1)),
                month=int(match.group(2)),
                day=int(match.group(3)),
            )

        raise ValueError(f"Unrecognised fuzzy date: {text!r}")
