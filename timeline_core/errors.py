from typing import Iterable, List


class TimelineError(Exception):
    """Base class for every error raised by timeline_core."""


class MissingTemporalAnchor(TimelineError):
    """One or more photos have neither a capture timestamp nor a fuzzy date.

    These photos cannot enter clustering; the caller is expected to ask the
    user for a manual date and retry the batch.
    """

    def __init__(self, photo_ids: Iterable[str]):
        self.photo_ids: List[str] = list(photo_ids)
        super().__init__(
            f"{len(self.photo_ids)} photo(s) have no timestamp or fuzzy date: "
            f"{', '.join(self.photo_ids)}"
        )


class InvalidPhotoRecord(TimelineError):
    """Raw photo metadata that cannot be turned into a PhotoRecord."""


class ConfigurationError(TimelineError):
    """A clustering threshold is out of range."""


class OverrideError(TimelineError):
    """Base class for manual override failures. The event set is left untouched."""


class EventNotFound(OverrideError):
    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Timeline event {event_id} not found")


class InvalidSplit(OverrideError):
    pass


class IncompatibleMerge(OverrideError):
    pass


class InvalidMove(OverrideError):
    pass


class InvalidKeyPhoto(OverrideError):
    pass
