"""
Upload aggregation: one upload plus its derived artifacts as a single view.

Artifact selection follows the upload's kind: audio uploads read their
primary content from the first transcription, documents from the first
extracted text.  "First" means oldest by ``created_at``, then by insertion
``seq``, then id, which is how the relationships on
:class:`~recap.models.Upload` are ordered.
"""

import logging
from typing import Iterable, Optional

from recap.exceptions import NotFoundError
from recap.models import FileType, Upload
from recap.schemas import KeyPointView, TranscriptionView, UploadView
from recap.store.records import RecordStore

logger = logging.getLogger(__name__)

#: Relationships loaded alongside every upload
ARTIFACT_JOINS = ("transcriptions", "document_texts", "summaries", "key_points")


def rank_key_points(key_points: Iterable) -> tuple[KeyPointView, ...]:
    """
    Order key points by importance, most important first.

    ``sorted`` is stable, so points of equal importance keep the order they
    were given in.  Works on a copy; the input is never reordered.
    """
    views = [KeyPointView.model_validate(kp) for kp in key_points]
    return tuple(sorted(views, key=lambda kp: kp.importance_level, reverse=True))


def _primary_content(upload: Upload) -> Optional[str]:
    if upload.file_type == FileType.AUDIO.value:
        return upload.transcriptions[0].transcription_text if upload.transcriptions else None
    if upload.file_type == FileType.DOCUMENT.value:
        return upload.document_texts[0].extracted_text if upload.document_texts else None
    return None


def build_upload_view(upload: Upload) -> UploadView:
    """Assemble an :class:`UploadView` from an upload row with its artifacts loaded."""
    transcription = None
    if upload.file_type == FileType.AUDIO.value and upload.transcriptions:
        first = upload.transcriptions[0]
        transcription = TranscriptionView(
            text=first.transcription_text,
            timestamps=first.timestamps,
            diarization=first.diarization,
        )

    return UploadView(
        id=upload.id,
        user_id=upload.user_id,
        file_name=upload.file_name,
        file_type=upload.file_type,
        file_url=upload.file_url,
        file_size=upload.file_size or 0,
        status=upload.status,
        created_at=upload.created_at,
        updated_at=upload.updated_at,
        duration=upload.duration,
        generated_name=upload.generated_name,
        original_filename=upload.original_filename,
        error_message=upload.error_message,
        content=_primary_content(upload),
        summary=upload.summaries[0].summary_text if upload.summaries else None,
        key_points=rank_key_points(upload.key_points),
        transcription=transcription,
    )


class UploadAggregator:
    """Read side for uploads. Every query is scoped to the owner."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def _fetch_owned(self, upload_id: str, owner_id: str, joins=ARTIFACT_JOINS) -> Upload:
        rows = self.store.select("uploads", {"id": upload_id, "user_id": owner_id}, joins=joins)
        if not rows:
            # Same error whether the id is unknown or belongs to someone else
            raise NotFoundError("upload", upload_id)
        return rows[0]

    def aggregate(self, upload_id: str, owner_id: str) -> UploadView:
        """
        Fetch one upload with all of its artifacts.

        Raises:
            NotFoundError: if no upload with this id is owned by *owner_id*.
        """
        return build_upload_view(self._fetch_owned(upload_id, owner_id))

    def get_key_points(self, upload_id: str, owner_id: str) -> list[KeyPointView]:
        upload = self._fetch_owned(upload_id, owner_id, joins=("key_points",))
        return list(rank_key_points(upload.key_points))

    def list_uploads(self, owner_id: str) -> list[UploadView]:
        """All of the owner's uploads, newest first."""
        rows = self.store.select(
            "uploads",
            {"user_id": owner_id},
            order_by=["-created_at"],
            joins=ARTIFACT_JOINS,
        )
        logger.debug(f"Loaded {len(rows)} uploads for owner={owner_id}")
        return [build_upload_view(row) for row in rows]
