"""
Folder API endpoints.

CRUD for folders plus membership: listing a folder's uploads, the uploads
that can still be added to it, and adding or removing uploads.
"""

import logging

from fastapi import APIRouter, status

from recap.api.common import Store, not_found
from recap.auth import OwnerId
from recap.exceptions import NotFoundError
from recap.schemas import FolderCreate, FolderUpdate, FolderView, UploadIds
from recap.services.folders import AssignmentOutcome, FolderManager, FolderMembershipResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/folders", tags=["folders"])


def _serialize_folder(folder: FolderView) -> dict:
    return folder.model_dump(mode="json")


@router.get("")
def list_folders(owner_id: OwnerId, store: Store):
    """List folders, newest first, with their upload counts."""
    return [_serialize_folder(f) for f in FolderManager(store).list_folders(owner_id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_folder(body: FolderCreate, owner_id: OwnerId, store: Store):
    return _serialize_folder(FolderManager(store).create_folder(owner_id, body))


@router.put("/{folder_id}")
def update_folder(folder_id: str, body: FolderUpdate, owner_id: OwnerId, store: Store):
    try:
        return _serialize_folder(FolderManager(store).update_folder(folder_id, owner_id, body))
    except NotFoundError as e:
        raise not_found(e)


@router.delete("/{folder_id}")
def delete_folder(folder_id: str, owner_id: OwnerId, store: Store):
    """Delete a folder. Its uploads are kept."""
    try:
        FolderManager(store).delete_folder(folder_id, owner_id)
    except NotFoundError as e:
        raise not_found(e)
    return {"status": "success", "folder_id": folder_id}


@router.get("/{folder_id}/uploads")
def list_folder_uploads(folder_id: str, owner_id: OwnerId, store: Store):
    try:
        uploads = FolderMembershipResolver(store).list_folder_uploads(folder_id, owner_id)
    except NotFoundError as e:
        raise not_found(e)
    return [view.to_dict() for view in uploads]


@router.get("/{folder_id}/available")
def list_available_uploads(folder_id: str, owner_id: OwnerId, store: Store):
    """Uploads that are not yet in this folder."""
    try:
        uploads = FolderMembershipResolver(store).list_available_uploads(folder_id, owner_id)
    except NotFoundError as e:
        raise not_found(e)
    return [view.to_dict() for view in uploads]


@router.post("/{folder_id}/uploads")
def add_uploads_to_folder(folder_id: str, body: UploadIds, owner_id: OwnerId, store: Store):
    """
    Add uploads to a folder.

    Uploads that are already in the folder are reported as
    ``already_assigned`` rather than failing the request.
    """
    try:
        outcomes = FolderMembershipResolver(store).assign_many(body.upload_ids, folder_id, owner_id)
    except NotFoundError as e:
        raise not_found(e)
    return {
        "status": "success",
        "added": sum(1 for o in outcomes.values() if o == AssignmentOutcome.CREATED),
        "results": {upload_id: outcome.value for upload_id, outcome in outcomes.items()},
    }


@router.delete("/{folder_id}/uploads/{upload_id}")
def remove_upload_from_folder(folder_id: str, upload_id: str, owner_id: OwnerId, store: Store):
    try:
        removed = FolderMembershipResolver(store).unassign(upload_id, folder_id, owner_id)
    except NotFoundError as e:
        raise not_found(e)
    return {"status": "success", "removed": removed}
