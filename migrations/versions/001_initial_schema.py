"""Initial schema: uploads, derived artifacts, folders and folder membership

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
depends_on: Union[str, None] = None

ARTIFACT_TABLES = ("transcriptions", "document_texts", "summaries", "key_points")


def _upload_fk() -> sa.Column:
    return sa.Column(
        "upload_id",
        sa.String(36),
        sa.ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def _seq() -> sa.Column:
    return sa.Column("seq", sa.BigInteger(), nullable=False, server_default="0")


def upgrade() -> None:
    """Create all tables. Dependents of uploads and folders cascade on delete."""
    op.create_table(
        "uploads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False, index=True),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_type", sa.String(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="uploaded"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        sa.Column("generated_name", sa.String(), nullable=True),
        sa.Column("original_filename", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("file_type IN ('audio', 'document')", name="ck_uploads_file_type"),
        sa.CheckConstraint(
            "status IN ('uploaded', 'processing', 'completed', 'error')", name="ck_uploads_status"
        ),
        sa.CheckConstraint("file_size >= 0", name="ck_uploads_file_size"),
    )

    op.create_table(
        "transcriptions",
        sa.Column("id", sa.String(36), primary_key=True),
        _upload_fk(),
        sa.Column("transcription_text", sa.Text(), nullable=False),
        sa.Column("timestamps", sa.JSON(), nullable=True),
        sa.Column("diarization", sa.JSON(), nullable=True),
        _created_at(),
        _seq(),
    )
    op.create_table(
        "document_texts",
        sa.Column("id", sa.String(36), primary_key=True),
        _upload_fk(),
        sa.Column("extracted_text", sa.Text(), nullable=False),
        _created_at(),
        _seq(),
    )
    op.create_table(
        "summaries",
        sa.Column("id", sa.String(36), primary_key=True),
        _upload_fk(),
        sa.Column("summary_text", sa.Text(), nullable=False),
        _created_at(),
        _seq(),
    )
    op.create_table(
        "key_points",
        sa.Column("id", sa.String(36), primary_key=True),
        _upload_fk(),
        sa.Column("point_text", sa.Text(), nullable=False),
        sa.Column("importance_level", sa.Integer(), nullable=False, server_default="3"),
        _created_at(),
        _seq(),
        sa.CheckConstraint("importance_level BETWEEN 1 AND 5", name="ck_key_points_importance"),
    )

    op.create_table(
        "folders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False, index=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(), nullable=False, server_default="#3B82F6"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "upload_folders",
        sa.Column("id", sa.String(36), primary_key=True),
        _upload_fk(),
        sa.Column(
            "folder_id",
            sa.String(36),
            sa.ForeignKey("folders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _created_at(),
        sa.UniqueConstraint("upload_id", "folder_id", name="uq_upload_folders_upload_folder"),
    )


def downgrade() -> None:
    """Drop all tables, dependents first."""
    op.drop_table("upload_folders")
    op.drop_table("folders")
    for table in reversed(ARTIFACT_TABLES):
        op.drop_table(table)
    op.drop_table("uploads")
