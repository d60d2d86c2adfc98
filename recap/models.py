# recap/models.py
#!/usr/bin/env python3

import enum
import threading
import time
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from recap.database import Base


class FileType(str, enum.Enum):
    AUDIO = "audio"
    DOCUMENT = "document"


class UploadStatus(str, enum.Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_seq_lock = threading.Lock()
_last_seq = 0


def _next_seq() -> int:
    """Strictly increasing within the process, clock-seeded across processes."""
    global _last_seq
    with _seq_lock:
        _last_seq = max(time.time_ns(), _last_seq + 1)
        return _last_seq


class Upload(Base):
    __tablename__ = "uploads"
    __table_args__ = (
        CheckConstraint("file_type IN ('audio', 'document')", name="ck_uploads_file_type"),
        CheckConstraint(
            "status IN ('uploaded', 'processing', 'completed', 'error')", name="ck_uploads_status"
        ),
        CheckConstraint("file_size >= 0", name="ck_uploads_file_size"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)

    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)

    # Public locator; its last path segment is the blob name under <user_id>/ in the bucket
    file_url = Column(String, nullable=False)

    # Size of the file in bytes
    file_size = Column(Integer, nullable=False, default=0)

    status = Column(String, nullable=False, default=UploadStatus.UPLOADED.value)
    error_message = Column(Text)

    # Seconds, audio only
    duration = Column(Float)

    # Title produced by the enrichment pipeline
    generated_name = Column(String)
    original_filename = Column(String)

    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now()
    )

    # Artifact lists are ordered so that "first record" is deterministic
    transcriptions = relationship(
        "Transcription",
        order_by="[Transcription.created_at, Transcription.seq, Transcription.id]",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    document_texts = relationship(
        "DocumentText",
        order_by="[DocumentText.created_at, DocumentText.seq, DocumentText.id]",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    summaries = relationship(
        "Summary",
        order_by="[Summary.created_at, Summary.seq, Summary.id]",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    key_points = relationship(
        "KeyPoint",
        order_by="[KeyPoint.created_at, KeyPoint.seq, KeyPoint.id]",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    folder_links = relationship(
        "UploadFolder",
        back_populates="upload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Transcription(Base):
    __tablename__ = "transcriptions"

    id = Column(String(36), primary_key=True, default=_new_id)
    upload_id = Column(String(36), ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False, index=True)

    # Either plain text or the speech-to-text provider's JSON payload (words, speakers)
    transcription_text = Column(Text, nullable=False)
    timestamps = Column(JSON)
    diarization = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    # Insertion order; breaks ties between rows written in one transaction
    seq = Column(BigInteger, nullable=False, default=_next_seq, server_default="0")


class DocumentText(Base):
    __tablename__ = "document_texts"

    id = Column(String(36), primary_key=True, default=_new_id)
    upload_id = Column(String(36), ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False, index=True)
    extracted_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    seq = Column(BigInteger, nullable=False, default=_next_seq, server_default="0")


class Summary(Base):
    __tablename__ = "summaries"

    id = Column(String(36), primary_key=True, default=_new_id)
    upload_id = Column(String(36), ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False, index=True)
    summary_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    seq = Column(BigInteger, nullable=False, default=_next_seq, server_default="0")


class KeyPoint(Base):
    __tablename__ = "key_points"
    __table_args__ = (
        CheckConstraint("importance_level BETWEEN 1 AND 5", name="ck_key_points_importance"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    upload_id = Column(String(36), ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False, index=True)
    point_text = Column(Text, nullable=False)
    importance_level = Column(Integer, nullable=False, default=3)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    seq = Column(BigInteger, nullable=False, default=_next_seq, server_default="0")


class Folder(Base):
    __tablename__ = "folders"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    color = Column(String, nullable=False, default="#3B82F6")
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now(), index=True)
    updated_at = Column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now()
    )

    upload_links = relationship(
        "UploadFolder",
        back_populates="folder",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class UploadFolder(Base):
    """Many-to-many link; an upload may sit in several folders."""

    __tablename__ = "upload_folders"
    __table_args__ = (UniqueConstraint("upload_id", "folder_id", name="uq_upload_folders_upload_folder"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    upload_id = Column(String(36), ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False, index=True)
    folder_id = Column(String(36), ForeignKey("folders.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    upload = relationship("Upload", back_populates="folder_links")
    folder = relationship("Folder", back_populates="upload_links")
