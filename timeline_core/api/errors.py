from fastapi import HTTPException, status

from ..errors import (
    ConfigurationError,
    EventNotFound,
    IncompatibleMerge,
    InvalidPhotoRecord,
    MissingTemporalAnchor,
    OverrideError,
    TimelineError,
)


def to_http_error(error: TimelineError) -> HTTPException:
    """Maps a timeline error to the HTTP error the client sees."""
    if isinstance(error, EventNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, IncompatibleMerge):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, MissingTemporalAnchor):
        # The client asks the user to date these photos and resubmits
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(error), "photo_ids": error.photo_ids},
        )
    if isinstance(error, (ConfigurationError, InvalidPhotoRecord)):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(error))
    if isinstance(error, OverrideError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
