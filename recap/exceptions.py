"""
Error types shared by the upload, folder, deletion and playback services.

Every failure a caller is expected to handle derives from :class:`RecapError`,
so presentation code can map outcomes to responses without catching bare
``Exception``.
"""

from typing import Optional


class RecapError(Exception):
    """Base class for all errors raised by this package."""


class NotFoundError(RecapError):
    """
    The requested row does not exist *or* is not owned by the caller.

    Both cases produce the same message so that a non-owner
    cannot discover someone else's records.
    """

    def __init__(self, kind: str = "upload", identifier: Optional[str] = None) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found")


class RecordStoreError(RecapError):
    """The relational store rejected or failed an operation."""


class RecordConflictError(RecordStoreError):
    """A unique constraint rejected an insert."""


class ObjectStoreError(RecapError):
    """The object store could not complete a put/remove (includes timeouts)."""


class StorageRemovalFailed(RecapError):
    """Blob removal failed during deletion. Recorded on the result, never raised to callers."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to remove blob '{path}': {reason}")


class RecordDeletionFailed(RecapError):
    """The upload record could not be deleted; the caller decides whether to retry."""

    def __init__(self, upload_id: str, reason: str) -> None:
        self.upload_id = upload_id
        self.reason = reason
        super().__init__(f"Failed to delete upload {upload_id}: {reason}")


class PlaybackAcquisitionFailed(RecapError):
    """The audio engine could not load or start the requested upload."""

    def __init__(self, upload_id: Optional[str], reason: str) -> None:
        self.upload_id = upload_id
        self.reason = reason
        super().__init__(f"Could not start playback for upload {upload_id}: {reason}")
