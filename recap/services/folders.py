"""
Folder membership and folder management.

An upload is *unorganized* exactly when it has no row in ``upload_folders``.
Membership is computed as a set difference over two owner-scoped reads (all
uploads, then the associations of those uploads) and is re-derived from the
store on every call; no result is cached between calls.
"""

import enum
import logging
from typing import Iterable

from recap.config import settings
from recap.exceptions import NotFoundError, RecordConflictError
from recap.models import Folder
from recap.schemas import FolderCreate, FolderUpdate, FolderView, UploadView
from recap.services.aggregator import ARTIFACT_JOINS, build_upload_view
from recap.store.records import RecordStore

logger = logging.getLogger(__name__)


class AssignmentOutcome(str, enum.Enum):
    CREATED = "created"
    # The (upload, folder) pair already existed; the intent is satisfied
    ALREADY_ASSIGNED = "already_assigned"


class FolderMembershipResolver:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def _owned_uploads(self, owner_id: str, joins=ARTIFACT_JOINS) -> list:
        return self.store.select("uploads", {"user_id": owner_id}, order_by=["-created_at"], joins=joins)

    def _organized_ids(self, upload_ids: list[str]) -> set[str]:
        links = self.store.select("upload_folders", {"upload_id": upload_ids})
        # Any number of links (1 or many) counts as organized
        return {link.upload_id for link in links}

    def _require_upload(self, upload_id: str, owner_id: str) -> None:
        if not self.store.select("uploads", {"id": upload_id, "user_id": owner_id}):
            raise NotFoundError("upload", upload_id)

    def _require_folder(self, folder_id: str, owner_id: str) -> Folder:
        rows = self.store.select("folders", {"id": folder_id, "user_id": owner_id})
        if not rows:
            raise NotFoundError("folder", folder_id)
        return rows[0]

    def list_unorganized(self, owner_id: str) -> list[UploadView]:
        """Uploads with zero folder associations, newest first."""
        uploads = self._owned_uploads(owner_id)
        organized = self._organized_ids([u.id for u in uploads])
        return [build_upload_view(u) for u in uploads if u.id not in organized]

    def unorganized_count(self, owner_id: str) -> int:
        uploads = self._owned_uploads(owner_id, joins=())
        organized = self._organized_ids([u.id for u in uploads])
        return sum(1 for u in uploads if u.id not in organized)

    def assign(self, upload_id: str, folder_id: str, owner_id: str) -> AssignmentOutcome:
        """
        Put an upload into a folder.

        Both must belong to *owner_id*.  Assigning a pair that already exists
        is a successful no-op reported as ``ALREADY_ASSIGNED``.
        """
        self._require_upload(upload_id, owner_id)
        self._require_folder(folder_id, owner_id)
        try:
            self.store.insert("upload_folders", {"upload_id": upload_id, "folder_id": folder_id})
        except RecordConflictError:
            logger.info(f"Upload {upload_id} already in folder {folder_id}")
            return AssignmentOutcome.ALREADY_ASSIGNED
        logger.info(f"Assigned upload {upload_id} to folder {folder_id}")
        return AssignmentOutcome.CREATED

    def assign_many(
        self, upload_ids: Iterable[str], folder_id: str, owner_id: str
    ) -> dict[str, AssignmentOutcome]:
        """Assign several uploads; all of them must exist before any link is written."""
        self._require_folder(folder_id, owner_id)
        wanted = list(dict.fromkeys(upload_ids))
        owned = {u.id for u in self.store.select("uploads", {"id": wanted, "user_id": owner_id})}
        for upload_id in wanted:
            if upload_id not in owned:
                raise NotFoundError("upload", upload_id)
        return {upload_id: self.assign(upload_id, folder_id, owner_id) for upload_id in wanted}

    def unassign(self, upload_id: str, folder_id: str, owner_id: str) -> bool:
        """Take an upload out of a folder. Returns False if it was not in it."""
        self._require_upload(upload_id, owner_id)
        self._require_folder(folder_id, owner_id)
        count = self.store.delete("upload_folders", {"upload_id": upload_id, "folder_id": folder_id})
        logger.info(f"Removed upload {upload_id} from folder {folder_id} (rows={count})")
        return count > 0

    def unassign_many(self, upload_ids: Iterable[str], folder_id: str, owner_id: str) -> int:
        self._require_folder(folder_id, owner_id)
        wanted = list(dict.fromkeys(upload_ids))
        owned = [u.id for u in self.store.select("uploads", {"id": wanted, "user_id": owner_id})]
        if not owned:
            return 0
        return self.store.delete("upload_folders", {"upload_id": owned, "folder_id": folder_id})

    def list_folder_uploads(self, folder_id: str, owner_id: str) -> list[UploadView]:
        self._require_folder(folder_id, owner_id)
        links = self.store.select("upload_folders", {"folder_id": folder_id})
        uploads = self.store.select(
            "uploads",
            {"id": [link.upload_id for link in links], "user_id": owner_id},
            order_by=["-created_at"],
            joins=ARTIFACT_JOINS,
        )
        return [build_upload_view(u) for u in uploads]

    def list_available_uploads(self, folder_id: str, owner_id: str) -> list[UploadView]:
        """The owner's uploads that are not yet in *folder_id* (they may be in other folders)."""
        self._require_folder(folder_id, owner_id)
        in_folder = {link.upload_id for link in self.store.select("upload_folders", {"folder_id": folder_id})}
        return [build_upload_view(u) for u in self._owned_uploads(owner_id) if u.id not in in_folder]


class FolderManager:
    """Create, edit, list and delete folders."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    @staticmethod
    def _to_view(folder: Folder, upload_count: int = 0, latest_upload=None) -> FolderView:
        return FolderView(
            id=folder.id,
            user_id=folder.user_id,
            name=folder.name,
            description=folder.description,
            color=folder.color,
            created_at=folder.created_at,
            updated_at=folder.updated_at,
            upload_count=upload_count,
            latest_upload=latest_upload,
        )

    def list_folders(self, owner_id: str) -> list[FolderView]:
        """Folders newest first, each with its upload count and newest upload time."""
        folders = self.store.select("folders", {"user_id": owner_id}, order_by=["-created_at"])
        links = self.store.select(
            "upload_folders", {"folder_id": [f.id for f in folders]}, joins=("upload",)
        )
        stats: dict[str, list] = {}
        for link in links:
            stats.setdefault(link.folder_id, []).append(link.upload.created_at if link.upload else None)

        views = []
        for folder in folders:
            times = stats.get(folder.id, [])
            known = [t for t in times if t is not None]
            views.append(self._to_view(folder, len(times), max(known) if known else None))
        return views

    def get_folder(self, folder_id: str, owner_id: str) -> FolderView:
        rows = self.store.select("folders", {"id": folder_id, "user_id": owner_id})
        if not rows:
            raise NotFoundError("folder", folder_id)
        links = self.store.select("upload_folders", {"folder_id": folder_id}, joins=("upload",))
        known = [link.upload.created_at for link in links if link.upload and link.upload.created_at]
        return self._to_view(rows[0], len(links), max(known) if known else None)

    def create_folder(self, owner_id: str, data: FolderCreate) -> FolderView:
        folder = self.store.insert(
            "folders",
            {
                "user_id": owner_id,
                "name": data.name,
                "description": data.description,
                "color": data.color or settings.default_folder_color,
            },
        )
        logger.info(f"Folder created: owner={owner_id}, name={data.name!r}")
        return self._to_view(folder)

    def update_folder(self, folder_id: str, owner_id: str, data: FolderUpdate) -> FolderView:
        values = {}
        if data.name is not None:
            values["name"] = data.name
        if "description" in data.model_fields_set:
            values["description"] = data.description
        if data.color is not None:
            values["color"] = data.color

        if values:
            count = self.store.update("folders", {"id": folder_id, "user_id": owner_id}, values)
            if count == 0:
                raise NotFoundError("folder", folder_id)
        return self.get_folder(folder_id, owner_id)

    def delete_folder(self, folder_id: str, owner_id: str) -> None:
        """Delete a folder; its uploads survive and become unorganized if it was their only folder."""
        if self.delete_folders([folder_id], owner_id) == 0:
            raise NotFoundError("folder", folder_id)

    def delete_folders(self, folder_ids: Iterable[str], owner_id: str) -> int:
        ids = list(dict.fromkeys(folder_ids))
        if not ids:
            return 0
        if not self.store.supports_cascade:
            owned = [f.id for f in self.store.select("folders", {"id": ids, "user_id": owner_id})]
            if owned:
                self.store.delete("upload_folders", {"folder_id": owned}, commit=False)
        count = self.store.delete("folders", {"id": ids, "user_id": owner_id})
        logger.info(f"Deleted {count} folder(s) for owner={owner_id}")
        return count
