"""
Speaker paragraphs and playback segments from word-level transcriptions.

The enrichment pipeline stores the speech-to-text provider's JSON payload in
``transcriptions.transcription_text``.  When that payload carries a ``words``
list (``text``, ``start``, ``end``, ``type`` and optional ``speakerId``), the
words are grouped into one paragraph per uninterrupted speaker turn, and each
paragraph is cut into short segments suitable for highlighting during
playback.  Plain-text transcriptions simply yield no structure.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_SPEAKER = "speaker_0"

# A pause longer than this (seconds) ends the current segment
PAUSE_BREAK_SECONDS = 0.5
# Segments never span more than this many seconds
MAX_SEGMENT_SECONDS = 6
# Past this length, clause punctuation also ends a segment
SOFT_BREAK_CHARS = 100

_SENTENCE_END = re.compile(r"[.!?]$")
_CLAUSE_END = re.compile(r"[,;:]$")


@dataclass(frozen=True)
class Word:
    text: str
    start: float
    end: float
    type: str = "word"
    speaker_id: Optional[str] = None


@dataclass
class Segment:
    text: str
    start: float
    end: float
    words: list[Word] = field(default_factory=list)


@dataclass
class Paragraph:
    speaker: str
    text: str
    start: float
    end: float
    words: list[Word] = field(default_factory=list)
    segments: list[Segment] = field(default_factory=list)


def parse_transcription(raw: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Decode a structured transcription payload.

    Returns ``None`` for empty, plain-text or malformed payloads.
    """
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Transcription is not JSON, treating as plain text")
        return None
    return data if isinstance(data, dict) else None


def words_from_payload(payload: Optional[dict[str, Any]]) -> list[Word]:
    """Extract well-formed words from a decoded payload, skipping entries without timings."""
    if not payload:
        return []
    words = []
    for item in payload.get("words") or []:
        try:
            words.append(
                Word(
                    text=str(item.get("text", "")),
                    start=float(item["start"]),
                    end=float(item["end"]),
                    type=item.get("type", "word"),
                    speaker_id=item.get("speakerId") or item.get("speaker_id"),
                )
            )
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.debug(f"Skipping malformed transcription word: {item!r}")
    return words


def build_segments(words: list[Word]) -> list[Segment]:
    """Cut one paragraph's words into display segments."""
    segments: list[Segment] = []
    current: Optional[Segment] = None

    for index, word in enumerate(words):
        if current is None:
            current = Segment(text=word.text, start=word.start, end=word.end, words=[word])
        else:
            current.text += word.text
            current.end = word.end
            current.words.append(word)

        stripped = word.text.strip()
        should_end = word.type == "word" and bool(_SENTENCE_END.search(stripped))

        if index + 1 < len(words):
            following = words[index + 1]
            if following.type == "spacing" and (following.end - following.start) > PAUSE_BREAK_SECONDS:
                should_end = True

        if current.end - current.start > MAX_SEGMENT_SECONDS:
            should_end = True

        if len(current.text) > SOFT_BREAK_CHARS and word.type == "word" and _CLAUSE_END.search(stripped):
            should_end = True

        if index == len(words) - 1:
            should_end = True

        if should_end:
            clean = current.text.strip()
            if clean:
                segments.append(Segment(text=clean, start=current.start, end=current.end, words=current.words))
            current = None

    return segments


def build_paragraphs(words: list[Word]) -> list[Paragraph]:
    """Group consecutive words by speaker and segment each group."""
    paragraphs: list[Paragraph] = []
    current: Optional[Paragraph] = None

    for word in words:
        speaker = word.speaker_id or DEFAULT_SPEAKER
        if current is None or current.speaker != speaker:
            if current is not None:
                current.segments = build_segments(current.words)
                paragraphs.append(current)
            current = Paragraph(speaker=speaker, text=word.text, start=word.start, end=word.end, words=[word])
        else:
            current.text += word.text
            current.end = word.end
            current.words.append(word)

    if current is not None:
        current.segments = build_segments(current.words)
        paragraphs.append(current)

    return paragraphs


def paragraphs_from_transcription(raw: Optional[str]) -> list[Paragraph]:
    return build_paragraphs(words_from_payload(parse_transcription(raw)))


def find_active_segment(paragraphs: list[Paragraph], position: float) -> Optional[str]:
    """Return ``"<paragraph>-<segment>"`` for the first segment containing *position*."""
    for p_index, paragraph in enumerate(paragraphs):
        for s_index, segment in enumerate(paragraph.segments):
            if segment.start <= position <= segment.end:
                return f"{p_index}-{s_index}"
    return None
