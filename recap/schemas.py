"""
Presentation-ready views and input models.

Views are immutable snapshots assembled from store rows; nothing in this
module reads from or writes to storage.
"""

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recap.models import FileType, UploadStatus
from recap.utils.formatting import format_duration, format_file_size
from recap.utils.transcript import Paragraph, paragraphs_from_transcription, parse_transcription

# Display placeholders for the "no artifact" case; the view itself carries None
NO_CONTENT = "No content available"
NO_SUMMARY = "No summary available"

MAX_FOLDER_NAME_LENGTH = 100
_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class KeyPointView(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    point_text: str
    importance_level: int = Field(ge=1, le=5)


class TranscriptionView(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    timestamps: Any = None
    diarization: Any = None


class UploadView(BaseModel):
    """
    An upload joined with its derived artifacts.

    ``content`` and ``summary`` are ``None`` when the pipeline has not (yet)
    produced the artifact, which keeps "missing" distinct from "empty".
    ``key_points`` is already ranked by importance, most important first.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    file_name: str
    file_type: FileType
    file_url: str
    file_size: int = Field(ge=0)
    status: UploadStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    duration: Optional[float] = None
    generated_name: Optional[str] = None
    original_filename: Optional[str] = None
    error_message: Optional[str] = None

    content: Optional[str] = None
    summary: Optional[str] = None
    key_points: tuple[KeyPointView, ...] = ()
    transcription: Optional[TranscriptionView] = None

    @property
    def display_name(self) -> str:
        return self.generated_name or self.file_name

    @property
    def is_audio(self) -> bool:
        return self.file_type == FileType.AUDIO

    @property
    def content_text(self) -> str:
        return self.content if self.content is not None else NO_CONTENT

    @property
    def summary_text(self) -> str:
        return self.summary if self.summary is not None else NO_SUMMARY

    @property
    def file_size_label(self) -> str:
        return format_file_size(self.file_size)

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration)

    def transcript(self) -> Optional[dict[str, Any]]:
        """Structured transcription payload, or ``None`` for plain text / non-audio uploads."""
        if self.transcription is None:
            return None
        return parse_transcription(self.transcription.text)

    def paragraphs(self) -> list[Paragraph]:
        if self.transcription is None:
            return []
        return paragraphs_from_transcription(self.transcription.text)

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        data["display_name"] = self.display_name
        data["content_text"] = self.content_text
        data["summary_text"] = self.summary_text
        return data


class FolderView(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    color: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    upload_count: int = 0
    latest_upload: Optional[datetime] = None


def _clean_name(value: str) -> str:
    name = value.strip() if isinstance(value, str) else ""
    if not name or len(name) > MAX_FOLDER_NAME_LENGTH:
        raise ValueError(f"name is required and must be at most {MAX_FOLDER_NAME_LENGTH} characters")
    return name


def _clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _clean_color(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not _COLOR_PATTERN.match(value):
        raise ValueError("color must be a hex value like #3B82F6")
    return value.upper()


class FolderCreate(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _clean_name(value)

    @field_validator("description")
    @classmethod
    def _validate_description(cls, value: Optional[str]) -> Optional[str]:
        return _clean_description(value)

    @field_validator("color")
    @classmethod
    def _validate_color(cls, value: Optional[str]) -> Optional[str]:
        return _clean_color(value)


class FolderUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _clean_name(value)

    @field_validator("description")
    @classmethod
    def _validate_description(cls, value: Optional[str]) -> Optional[str]:
        return _clean_description(value)

    @field_validator("color")
    @classmethod
    def _validate_color(cls, value: Optional[str]) -> Optional[str]:
        return _clean_color(value)


class UploadIds(BaseModel):
    """Request body naming one or more uploads (folder assignment, bulk delete)."""

    upload_ids: list[str] = Field(min_length=1)
