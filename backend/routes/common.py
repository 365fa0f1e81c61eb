from fastapi import HTTPException

from errors import (
    GradebookError,
    LoadFailure,
    NotFoundError,
    SaveFailure,
    SaveInProgressError,
    StaleIdentifierSaveFailure,
)


def to_http(e: GradebookError) -> HTTPException:
    """Map an engine error to the HTTP status the frontend expects."""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, (SaveInProgressError, StaleIdentifierSaveFailure)):
        return HTTPException(status_code=409, detail={"message": e.message, **e.details})
    if isinstance(e, SaveFailure):
        return HTTPException(status_code=502, detail={"message": e.message, **e.details})
    if isinstance(e, LoadFailure):
        return HTTPException(status_code=502, detail=e.message)
    return HTTPException(status_code=400, detail=e.message)
