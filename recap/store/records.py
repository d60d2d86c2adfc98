"""
Record store client over the relational database.

Exposes select/insert/delete over *named collections* (table names) so the
services never build ad-hoc queries against models they do not own.  Owner
scoped collections refuse to run without a ``user_id`` filter: tenant
isolation is enforced here, at the single seam every read and write goes
through.

Filters are plain ``{column: value}`` mappings.  A list, tuple or set value
becomes a membership (``IN``) filter.  ``order_by`` takes column names, with
a leading ``-`` for descending order.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from recap.exceptions import RecordConflictError, RecordStoreError
from recap.models import DocumentText, Folder, KeyPoint, Summary, Transcription, Upload, UploadFolder

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "uploads": Upload,
    "transcriptions": Transcription,
    "document_texts": DocumentText,
    "summaries": Summary,
    "key_points": KeyPoint,
    "folders": Folder,
    "upload_folders": UploadFolder,
}

#: Collections whose rows carry a ``user_id`` and must always be filtered by it.
OWNER_SCOPED = frozenset({"uploads", "folders"})

#: Collections that reference ``uploads.id`` and are removed with their upload.
UPLOAD_DEPENDENTS = ("transcriptions", "document_texts", "summaries", "key_points", "upload_folders")


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # psycopg exposes SQLSTATE, sqlite only has the message
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    message = str(orig or exc).upper()
    return "UNIQUE" in message or "DUPLICATE KEY" in message


class RecordStore:
    """Thin, owner-aware gateway over a SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def _model(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    def _filtered(self, collection: str, filters: Optional[Mapping[str, Any]]):
        model = self._model(collection)
        filters = dict(filters or {})
        if collection in OWNER_SCOPED and not filters.get("user_id"):
            raise ValueError(f"Queries on '{collection}' must be filtered by user_id")

        query = self.db.query(model)
        for column_name, value in filters.items():
            column = getattr(model, column_name)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(column.in_(list(value)))
            else:
                query = query.filter(column == value)
        return model, query

    @property
    def supports_cascade(self) -> bool:
        """Whether deleting a parent row removes its dependents at the database level."""
        bind = self.db.get_bind()
        if bind.dialect.name != "sqlite":
            return True
        return bool(self.db.execute(text("PRAGMA foreign_keys")).scalar())

    def select(
        self,
        collection: str,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[Sequence[str]] = None,
        joins: Optional[Iterable[str]] = None,
    ) -> list:
        """Return rows of *collection* matching *filters*, eagerly loading *joins*."""
        model, query = self._filtered(collection, filters)

        # Membership filter on an empty set can never match
        if any(
            isinstance(v, (list, tuple, set, frozenset)) and not v for v in (filters or {}).values()
        ):
            return []

        for relation in joins or ():
            query = query.options(selectinload(getattr(model, relation)))

        for key in order_by or ():
            column = getattr(model, key.lstrip("-"))
            query = query.order_by(column.desc() if key.startswith("-") else column.asc())

        try:
            return query.all()
        except SQLAlchemyError as exc:
            logger.exception(f"Select on {collection} failed: {exc}")
            raise RecordStoreError(f"Select on {collection} failed: {exc}") from exc

    def insert(self, collection: str, row: Mapping[str, Any]):
        """Insert one row and return the persisted model instance."""
        model = self._model(collection)
        if collection in OWNER_SCOPED and not row.get("user_id"):
            raise ValueError(f"Rows in '{collection}' require a user_id")

        record = model(**row)
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except IntegrityError as exc:
            self.db.rollback()
            if _is_unique_violation(exc):
                raise RecordConflictError(f"Duplicate row in {collection}") from exc
            raise RecordStoreError(f"Insert into {collection} failed: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RecordStoreError(f"Insert into {collection} failed: {exc}") from exc
        return record

    def update(self, collection: str, filters: Mapping[str, Any], values: Mapping[str, Any]) -> int:
        """Update rows matching *filters*; returns the number of rows changed."""
        _, query = self._filtered(collection, filters)
        try:
            count = query.update(dict(values), synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RecordStoreError(f"Update on {collection} failed: {exc}") from exc
        return count

    def delete(self, collection: str, filters: Mapping[str, Any], commit: bool = True) -> int:
        """
        Delete rows matching *filters* and return how many were removed.

        With ``commit=False`` the delete joins the session's open transaction so
        several deletes can be committed (or rolled back) together.
        """
        if not filters:
            raise ValueError("Refusing to delete without filters")
        _, query = self._filtered(collection, filters)
        try:
            count = query.delete(synchronize_session=False)
            if commit:
                self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RecordStoreError(f"Delete on {collection} failed: {exc}") from exc
        # Bulk deletes bypass the identity map; drop stale instances
        self.db.expire_all()
        return count

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RecordStoreError(f"Commit failed: {exc}") from exc

    def rollback(self) -> None:
        self.db.rollback()
