"""
Upload deletion: blob first, records second.

The two phases are strictly ordered and are not transactional
across each other:

1. Remove the blob from object storage.  A failure here is logged and
   recorded on the result; a stray blob is an acceptable residue.
2. Delete the upload row with a predicate on *both* id and owner.  The
   database cascade removes transcriptions, document texts, summaries, key
   points and folder associations.  When the store has no cascade support
   the dependents are deleted explicitly in the same transaction.  A failure
   here raises :class:`RecordDeletionFailed`; the blob is not restored.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from recap.config import settings
from recap.exceptions import (
    NotFoundError,
    ObjectStoreError,
    RecordDeletionFailed,
    RecordStoreError,
    StorageRemovalFailed,
)
from recap.store.objects import ObjectStore, blob_path_for
from recap.store.records import UPLOAD_DEPENDENTS, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class DeletionResult:
    upload_id: str
    blob_path: Optional[str] = None
    storage_error: Optional[StorageRemovalFailed] = None

    @property
    def storage_removed(self) -> bool:
        return self.blob_path is not None and self.storage_error is None

    def to_dict(self) -> dict:
        return {
            "status": "success",
            "upload_id": self.upload_id,
            "blob_path": self.blob_path,
            "storage_removed": self.storage_removed,
            "storage_error": str(self.storage_error) if self.storage_error else None,
        }


@dataclass
class BulkDeletionResult:
    deleted: list[DeletionResult] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class DeletionCoordinator:
    def __init__(self, store: RecordStore, object_store: ObjectStore, bucket: Optional[str] = None) -> None:
        self.store = store
        self.object_store = object_store
        self.bucket = bucket or settings.storage_bucket

    def _remove_blob(self, upload_id: str, path: Optional[str]) -> Optional[StorageRemovalFailed]:
        if path is None:
            logger.warning(f"Could not determine blob path for upload {upload_id}, skipping storage deletion")
            return None
        try:
            self.object_store.remove(self.bucket, path)
        except ObjectStoreError as e:
            logger.warning(f"Storage removal failed for upload {upload_id} ({path}), continuing: {e}")
            return StorageRemovalFailed(path, str(e))
        except Exception as e:
            # A store that raises outside its contract must not block the record phase
            logger.warning(f"Unexpected error removing blob {path} for upload {upload_id}, continuing: {e!r}")
            return StorageRemovalFailed(path, repr(e))
        logger.info(f"Removed blob {path} for upload {upload_id}")
        return None

    def _delete_records(self, upload_id: str, owner_id: str) -> int:
        predicate = {"id": upload_id, "user_id": owner_id}
        if self.store.supports_cascade:
            return self.store.delete("uploads", predicate)

        # No FK cascade: remove dependents of the *owned* row, then the row, in one transaction
        owned = [u.id for u in self.store.select("uploads", predicate)]
        for collection in UPLOAD_DEPENDENTS:
            if owned:
                self.store.delete(collection, {"upload_id": owned}, commit=False)
        return self.store.delete("uploads", predicate)

    def delete_upload(self, upload_id: str, owner_id: str) -> DeletionResult:
        """
        Delete one upload with its blob and every dependent record.

        Raises:
            NotFoundError: no upload with this id belongs to *owner_id*.
            RecordDeletionFailed: the record phase failed; nothing was committed.
        """
        rows = self.store.select("uploads", {"id": upload_id, "user_id": owner_id})
        if not rows:
            raise NotFoundError("upload", upload_id)

        logger.info(f"Deleting upload {upload_id} ({rows[0].file_name}) for owner={owner_id}")

        # Phase 1: object storage
        path = blob_path_for(rows[0].file_url, owner_id)
        storage_error = self._remove_blob(upload_id, path)

        # Phase 2: records
        try:
            count = self._delete_records(upload_id, owner_id)
        except RecordStoreError as e:
            logger.exception(f"Database deletion failed for upload {upload_id}: {e}")
            raise RecordDeletionFailed(upload_id, str(e)) from e

        if count == 0:
            # Removed concurrently between the read and the delete
            raise NotFoundError("upload", upload_id)

        logger.info(f"Upload {upload_id} deleted")
        return DeletionResult(upload_id=upload_id, blob_path=path, storage_error=storage_error)

    def delete_uploads(self, upload_ids: Iterable[str], owner_id: str) -> BulkDeletionResult:
        """Delete several uploads one after another; one failure does not stop the rest."""
        result = BulkDeletionResult()
        for upload_id in dict.fromkeys(upload_ids):
            try:
                result.deleted.append(self.delete_upload(upload_id, owner_id))
            except (NotFoundError, RecordDeletionFailed) as e:
                result.failed[upload_id] = str(e)
        if result.failed:
            logger.warning(f"Bulk delete finished with {len(result.failed)} failure(s) for owner={owner_id}")
        return result
