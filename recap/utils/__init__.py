"""
Utility functions and helpers shared by the services and the API.
"""

from recap.utils.formatting import format_duration, format_file_size
from recap.utils.transcript import find_active_segment, paragraphs_from_transcription

__all__ = ["format_duration", "format_file_size", "find_active_segment", "paragraphs_from_transcription"]
