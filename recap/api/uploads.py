"""
Upload API endpoints.

Read access to uploads with their transcription, document text, summary and
key points, the list of unorganized uploads, and deletion.  Every route is
scoped to the signed-in owner; another owner's upload is reported as not
found.
"""

import logging

from fastapi import APIRouter, HTTPException, status

from recap.api.common import Objects, Store, not_found
from recap.auth import OwnerId
from recap.config import settings
from recap.exceptions import NotFoundError, RecordDeletionFailed
from recap.schemas import UploadIds
from recap.services.aggregator import UploadAggregator
from recap.services.deletion import DeletionCoordinator
from recap.services.folders import FolderMembershipResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _require_delete_enabled() -> None:
    if not settings.allow_upload_delete:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Upload deletion is disabled in the configuration",
        )


@router.get("")
def list_uploads(owner_id: OwnerId, store: Store):
    """List the current user's uploads, newest first."""
    return [view.to_dict() for view in UploadAggregator(store).list_uploads(owner_id)]


@router.get("/unorganized")
def list_unorganized_uploads(owner_id: OwnerId, store: Store):
    """Uploads that are not in any folder."""
    uploads = FolderMembershipResolver(store).list_unorganized(owner_id)
    return {"count": len(uploads), "uploads": [view.to_dict() for view in uploads]}


@router.get("/{upload_id}")
def get_upload(upload_id: str, owner_id: OwnerId, store: Store):
    """One upload with its artifacts."""
    try:
        return UploadAggregator(store).aggregate(upload_id, owner_id).to_dict()
    except NotFoundError as e:
        raise not_found(e)


@router.get("/{upload_id}/key-points")
def get_key_points(upload_id: str, owner_id: OwnerId, store: Store):
    """Key points of an upload, most important first."""
    try:
        points = UploadAggregator(store).get_key_points(upload_id, owner_id)
    except NotFoundError as e:
        raise not_found(e)
    return [kp.model_dump() for kp in points]


@router.delete("/{upload_id}")
def delete_upload(upload_id: str, owner_id: OwnerId, store: Store, objects: Objects):
    """
    Delete an upload, its stored file and all derived records.

    A failure to remove the stored file is reported in the response but does
    not prevent the records from being deleted.
    """
    _require_delete_enabled()
    try:
        result = DeletionCoordinator(store, objects).delete_upload(upload_id, owner_id)
    except NotFoundError as e:
        raise not_found(e)
    except RecordDeletionFailed as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{e}. The upload was not deleted; please try again.",
        )
    return result.to_dict()


@router.post("/bulk-delete")
def bulk_delete_uploads(body: UploadIds, owner_id: OwnerId, store: Store, objects: Objects):
    """Delete several uploads; failures are listed per id."""
    _require_delete_enabled()
    result = DeletionCoordinator(store, objects).delete_uploads(body.upload_ids, owner_id)
    return {
        "status": "success" if result.ok else "partial",
        "deleted": [r.to_dict() for r in result.deleted],
        "failed": result.failed,
    }
