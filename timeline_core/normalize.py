import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from .errors import InvalidPhotoRecord, MissingTemporalAnchor
from .fuzzy_date import FuzzyDate, FuzzyGranularity
from .models import ContextType, GeoPoint, PhotoRecord

logger = logging.getLogger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# Fuzzy granularities a user may pick per context type
CONTEXT_GRANULARITIES: Dict[ContextType, List[FuzzyGranularity]] = {
    ContextType.PERSON: [
        FuzzyGranularity.DAY,
        FuzzyGranularity.MONTH,
        FuzzyGranularity.SEASON,
        FuzzyGranularity.YEAR,
        FuzzyGranularity.DECADE,
    ],
    ContextType.PET: [
        FuzzyGranularity.DAY,
        FuzzyGranularity.MONTH,
        FuzzyGranularity.SEASON,
        FuzzyGranularity.YEAR,
    ],
    ContextType.PROJECT: [
        FuzzyGranularity.DAY,
        FuzzyGranularity.MONTH,
        FuzzyGranularity.YEAR,
    ],
    ContextType.BUSINESS: [
        FuzzyGranularity.MONTH,
        FuzzyGranularity.SEASON,
        FuzzyGranularity.YEAR,
    ],
}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an EXIF or ISO-8601 timestamp. Returns None if it cannot be parsed."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        logger.warning(f"Ignoring timestamp of unsupported type {type(value).__name__}")
        return None

    try:
        return datetime.strptime(value, EXIF_DATETIME_FORMAT)
    except ValueError:
        pass

    try:
        iso_value = value[:-1] + "+00:00" if value.endswith("Z") else value
        return datetime.fromisoformat(iso_value)
    except ValueError:
        logger.warning(f"Could not parse timestamp: {value}")
        return None


def _parse_fuzzy_date(photo_id: str, value: Any) -> Optional[FuzzyDate]:
    if value is None:
        return None
    try:
        if isinstance(value, FuzzyDate):
            return value
        if isinstance(value, str):
            return FuzzyDate.parse(value)
        return FuzzyDate.model_validate(value)
    except (ValueError, ValidationError) as e:
        raise InvalidPhotoRecord(f"Photo {photo_id} has an invalid fuzzy date: {e}") from e


def _parse_location(photo_id: str, raw: Mapping[str, Any]) -> Optional[GeoPoint]:
    location = raw.get("location")
    if isinstance(location, GeoPoint):
        return location
    if isinstance(location, Mapping):
        lat, lon = location.get("latitude"), location.get("longitude")
    elif isinstance(location, (list, tuple)) and len(location) == 2:
        lat, lon = location
    elif raw.get("latitude") is not None or raw.get("longitude") is not None:
        lat, lon = raw.get("latitude"), raw.get("longitude")
    else:
        lat, lon = raw.get("GPSLat"), raw.get("GPSLong")

    if lat is None or lon is None:
        return None

    try:
        return GeoPoint(latitude=float(lat), longitude=float(lon))
    except (TypeError, ValueError) as e:
        raise InvalidPhotoRecord(f"Photo {photo_id} has an invalid GPS coordinate: {e}") from e


def _check_granularity(photo_id: str, fuzzy_date: FuzzyDate, context_type: ContextType) -> None:
    allowed = CONTEXT_GRANULARITIES[ContextType(context_type)]
    if fuzzy_date.granularity not in allowed:
        raise InvalidPhotoRecord(
            f"Photo {photo_id}: {fuzzy_date.granularity.value} dates are not "
            f"available for {ContextType(context_type).value} timelines"
        )


def normalize_photo(
    raw: Mapping[str, Any],
    context_type: Optional[ContextType] = None,
) -> PhotoRecord:
    """
    Converts raw photo metadata into a PhotoRecord.

    Accepts the keys produced by EXIF extraction (``DateTimeOriginal``,
    ``GPSLat``, ``GPSLong``) as well as ``captured_at``, ``latitude``,
    ``longitude``, ``location``, ``fuzzy_date`` and ``caption``.

    Args:
        raw: Metadata for a single photo; any field but ``id`` may be missing.
        context_type: When given, fuzzy dates must use a granularity this
                      context type offers.

    Returns:
        The normalized record. The caption is carried over unchanged.

    Raises:
        MissingTemporalAnchor: the photo has neither a usable timestamp nor a fuzzy date.
        InvalidPhotoRecord: the id is missing or a field is malformed.
    """
    photo_id = raw.get("id")
    if photo_id is None or photo_id == "":
        raise InvalidPhotoRecord("Photo metadata is missing an id")
    photo_id = str(photo_id)

    caption = raw.get("caption")
    if caption is not None and not isinstance(caption, str):
        raise InvalidPhotoRecord(f"Photo {photo_id} caption must be text")

    timestamp = raw.get("captured_at")
    if timestamp is None:
        timestamp = raw.get("DateTimeOriginal")
    captured_at = parse_timestamp(timestamp)

    fuzzy_date = None
    if captured_at is None:
        fuzzy_date = _parse_fuzzy_date(photo_id, raw.get("fuzzy_date"))
        if fuzzy_date is None:
            raise MissingTemporalAnchor([photo_id])

        if context_type is not None:
            _check_granularity(photo_id, fuzzy_date, context_type)

    return PhotoRecord(
        id=photo_id,
        captured_at=captured_at,
        fuzzy_date=fuzzy_date,
        location=_parse_location(photo_id, raw),
        caption=caption,
    )


def normalize_photos(
    raws: Iterable[Any],
    context_type: Optional[ContextType] = None,
) -> List[PhotoRecord]:
    """
    Normalizes a whole import batch.

    Already-normalized PhotoRecords pass through, subject to the same
    granularity check as raw metadata. Every photo lacking a
    temporal anchor is reported together in a single MissingTemporalAnchor so
    the user can date them all at once; nothing is dropped.
    """
    records: List[PhotoRecord] = []
    missing: List[str] = []
    seen = set()

    for raw in raws:
        if isinstance(raw, PhotoRecord):
            record = raw
            if context_type is not None and record.captured_at is None and record.fuzzy_date is not None:
                _check_granularity(record.id, record.fuzzy_date, context_type)
        else:
            try:
                record = normalize_photo(raw, context_type=context_type)
            except MissingTemporalAnchor as e:
                missing.extend(e.photo_ids)
                continue

        if record.id in seen:
            raise InvalidPhotoRecord(f"Photo {record.id} appears more than once in the batch")
        seen.add(record.id)
        records.append(record)

    if missing:
        logger.warning(f"{len(missing)} photos need a manual date before clustering")
        raise MissingTemporalAnchor(missing)

    return records
