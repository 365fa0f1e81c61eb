"""Exceptions raised by the gradebook engine and its storage layer."""
from typing import Any, Dict, List, Optional


class GradebookError(Exception):
    """Base class for every gradebook failure."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StorageError(GradebookError):
    """The backing store could not complete a read or a write."""


class StaleIdentifierError(StorageError):
    """An update referenced grade rows that no longer exist."""

    def __init__(self, stale_ids: List[str]):
        super().__init__(
            f"{len(stale_ids)} grade row(s) no longer exist: {', '.join(stale_ids)}",
            {"stale_ids": list(stale_ids)},
        )
        self.stale_ids = list(stale_ids)


class LoadFailure(GradebookError):
    """Reading dimensions or persisted grades failed."""


class SaveFailure(GradebookError):
    """Writing the update or insert batch failed.

    ``updates_applied`` and ``inserts_applied`` tell the caller which batches
    reached the store before the failure, so "nothing was written" can be told
    apart from a half-applied save.
    """

    def __init__(self, message: str, updates_applied: bool = False,
                 inserts_applied: bool = False, cause: Optional[Exception] = None):
        super().__init__(message, {
            "updates_applied": updates_applied,
            "inserts_applied": inserts_applied,
        })
        self.updates_applied = updates_applied
        self.inserts_applied = inserts_applied
        self.cause = cause


class StaleIdentifierSaveFailure(SaveFailure):
    def __init__(self, stale_ids: List[str], cause: Optional[Exception] = None):
        super().__init__(
            f"Update refused: {len(stale_ids)} grade row(s) were deleted since they were read",
            cause=cause,
        )
        self.stale_ids = list(stale_ids)
        self.details["stale_ids"] = self.stale_ids


class SaveInProgressError(GradebookError):
    """A save was requested while another one is still running on the same session."""


class NotFoundError(GradebookError):
    """A course, semester, student or topic id is not part of the current view."""


class SessionNotFoundError(NotFoundError):
    pass


class InvalidScaleError(GradebookError):
    pass
