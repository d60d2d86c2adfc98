"""
Process-wide playback coordinator.

A single :class:`PlaybackCoordinator` owns at most one live
:class:`~recap.playback.engine.AudioHandle`.  Every screen that shows or
controls playback holds a reference to the same instance (usually through
:func:`get_coordinator`) and observes it with :meth:`subscribe`, so there is
exactly one ``(active_upload_id, phase)`` pair in the process.

Phases::

    IDLE --play--> LOADING --ready--> PLAYING <--toggle--> PAUSED
                      |                  |                    |
                      +--failure--> IDLE <------stop----------+

Requests that acquire or release the engine handle are serialized by an
``asyncio.Lock``.  A ``play()`` for the upload that is already loading joins
the in-flight load instead of starting a second one.
"""

import asyncio
import enum
import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from recap.exceptions import PlaybackAcquisitionFailed
from recap.models import FileType
from recap.playback.engine import AudioEngine, AudioHandle, EngineStatus
from recap.utils.transcript import Paragraph, find_active_segment

logger = logging.getLogger(__name__)

# Duration reports closer than this to the known value are ignored
DURATION_EPSILON = 0.1


class PlaybackPhase(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class PlaybackSnapshot:
    active_upload_id: Optional[str]
    phase: PlaybackPhase
    position: float = 0.0
    duration: float = 0.0
    active_segment_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_playing(self) -> bool:
        return self.phase == PlaybackPhase.PLAYING

    @property
    def is_loading(self) -> bool:
        return self.phase == PlaybackPhase.LOADING


Subscriber = Callable[[PlaybackSnapshot], None]


def _valid_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class PlaybackCoordinator:
    def __init__(self, engine: AudioEngine) -> None:
        self._engine = engine
        self._lock = asyncio.Lock()
        self._handle: Optional[AudioHandle] = None
        # Bumped on every release so status events from old handles are dropped
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self._subscribers: list[Subscriber] = []

        self._upload = None
        self._active_upload_id: Optional[str] = None
        self._phase = PlaybackPhase.IDLE
        self._position = 0.0
        self._duration = 0.0
        self._segment_id: Optional[str] = None
        self._paragraphs: list[Paragraph] = []
        self._error: Optional[str] = None

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            active_upload_id=self._active_upload_id,
            phase=self._phase,
            position=self._position,
            duration=self._duration,
            active_segment_id=self._segment_id,
            error=self._error,
        )

    @property
    def has_live_handle(self) -> bool:
        return self._handle is not None

    @property
    def current_upload(self):
        return self._upload

    def transcript(self):
        """Structured transcription of the active upload, if it has one."""
        if self._upload is None or not hasattr(self._upload, "transcript"):
            return None
        return self._upload.transcript()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for every state change; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Playback subscriber raised; continuing with remaining subscribers")

    # ------------------------------------------------------------------
    # Internal transitions (callers hold the lock)
    # ------------------------------------------------------------------

    async def _release(self) -> None:
        handle, self._handle = self._handle, None
        self._generation += 1
        if handle is not None:
            try:
                await handle.unload()
            except Exception as e:
                logger.warning(f"Error unloading audio for upload {self._active_upload_id}: {e}")
        self._upload = None
        self._active_upload_id = None
        self._phase = PlaybackPhase.IDLE
        self._position = 0.0
        self._duration = 0.0
        self._segment_id = None
        self._paragraphs = []

    async def _acquire(self, upload) -> None:
        await self._release()

        generation = self._generation
        self._upload = upload
        self._active_upload_id = upload.id
        self._phase = PlaybackPhase.LOADING
        self._error = None
        self._duration = float(upload.duration) if _valid_number(getattr(upload, "duration", None)) else 0.0
        paragraphs = getattr(upload, "paragraphs", None)
        self._paragraphs = paragraphs() if callable(paragraphs) else []
        self._notify()

        logger.info(f"Loading audio for upload {upload.id} from {upload.file_url}")
        try:
            self._handle = await self._engine.load(
                upload.file_url, lambda status: self._on_engine_status(generation, status)
            )
            await self._handle.play()
        except asyncio.CancelledError:
            await self._release()
            self._notify()
            raise
        except Exception as e:
            logger.error(f"Error loading audio for upload {upload.id}: {e}")
            await self._release()
            self._error = str(e) or e.__class__.__name__
            self._notify()
            raise PlaybackAcquisitionFailed(upload.id, self._error) from e

        self._phase = PlaybackPhase.PLAYING
        self._notify()
        logger.info(f"Audio loaded and playing: upload {upload.id}")

    async def _set_playing(self, playing: bool) -> None:
        handle = self._handle
        if handle is None or self._phase not in (PlaybackPhase.PLAYING, PlaybackPhase.PAUSED):
            return
        if playing == (self._phase == PlaybackPhase.PLAYING):
            return
        upload_id = self._active_upload_id
        try:
            if playing:
                await handle.play()
            else:
                await handle.pause()
        except Exception as e:
            logger.error(f"Error toggling playback for upload {upload_id}: {e}")
            await self._release()
            self._error = str(e) or e.__class__.__name__
            self._notify()
            raise PlaybackAcquisitionFailed(upload_id, self._error) from e
        self._phase = PlaybackPhase.PLAYING if playing else PlaybackPhase.PAUSED
        self._notify()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def play(self, upload) -> PlaybackSnapshot:
        """
        Play *upload*, switching away from whatever is currently active.

        Resumes if *upload* is the paused active item; joins the in-flight
        load if it is already loading.

        Raises:
            PlaybackAcquisitionFailed: the upload is not audio (state is left
                untouched) or the engine could not load it (state is IDLE).
        """
        if getattr(upload, "file_type", None) != FileType.AUDIO:
            raise PlaybackAcquisitionFailed(getattr(upload, "id", None), "only audio uploads can be played")

        pending = self._pending
        if pending is not None and self._active_upload_id == upload.id:
            logger.debug(f"Joining in-flight load for upload {upload.id}")
            try:
                await asyncio.shield(pending)
            except asyncio.CancelledError:
                if pending.cancelled():
                    raise PlaybackAcquisitionFailed(upload.id, "load was cancelled") from None
                raise
            return self.snapshot

        async with self._lock:
            if self._active_upload_id == upload.id and self._handle is not None:
                await self._set_playing(True)
                return self.snapshot

            task = asyncio.ensure_future(self._acquire(upload))
            self._pending = task
            try:
                await task
            finally:
                if self._pending is task:
                    self._pending = None
        return self.snapshot

    async def toggle_playback(self) -> PlaybackSnapshot:
        """PLAYING <-> PAUSED for the active upload; a no-op when nothing is active or still loading."""
        if self._active_upload_id is None or self._phase not in (PlaybackPhase.PLAYING, PlaybackPhase.PAUSED):
            return self.snapshot
        async with self._lock:
            await self._set_playing(self._phase == PlaybackPhase.PAUSED)
        return self.snapshot

    async def pause(self) -> PlaybackSnapshot:
        async with self._lock:
            await self._set_playing(False)
        return self.snapshot

    async def stop(self) -> PlaybackSnapshot:
        """Release the engine handle and return to IDLE. Waits for an in-flight load to settle first."""
        async with self._lock:
            had_handle = self._handle is not None
            await self._release()
            self._error = None
            self._notify()
        if had_handle:
            logger.info("Playback stopped")
        return self.snapshot

    async def seek(self, seconds: float) -> PlaybackSnapshot:
        """Jump to *seconds*, clamped to ``[0, duration]``. No-op without a loaded handle."""
        if not _valid_number(seconds):
            return self.snapshot
        async with self._lock:
            handle = self._handle
            if handle is None or self._phase == PlaybackPhase.LOADING:
                return self.snapshot
            target = max(0.0, float(seconds))
            if self._duration > 0:
                target = min(target, self._duration)
            try:
                await handle.seek(target)
            except Exception as e:
                logger.error(f"Error seeking audio for upload {self._active_upload_id}: {e}")
                return self.snapshot
            self._position = target
            self._segment_id = find_active_segment(self._paragraphs, target)
            self._notify()
        return self.snapshot

    # ------------------------------------------------------------------
    # Engine feedback
    # ------------------------------------------------------------------

    def _on_engine_status(self, generation: int, status: EngineStatus) -> None:
        if generation != self._generation or self._handle is None:
            return  # stale event from a released handle

        if _valid_number(status.duration) and status.duration > 0:
            if self._duration == 0 or abs(status.duration - self._duration) > DURATION_EPSILON:
                self._duration = float(status.duration)

        if _valid_number(status.position) and status.position >= 0:
            self._position = float(status.position)
            self._segment_id = find_active_segment(self._paragraphs, self._position)

        if status.is_playing is not None and self._phase in (PlaybackPhase.PLAYING, PlaybackPhase.PAUSED):
            self._phase = PlaybackPhase.PLAYING if status.is_playing else PlaybackPhase.PAUSED

        if status.finished:
            self._phase = PlaybackPhase.PAUSED
            self._position = 0.0
            self._segment_id = None

        self._notify()


_coordinator: Optional[PlaybackCoordinator] = None


def get_coordinator(engine: Optional[AudioEngine] = None) -> PlaybackCoordinator:
    """
    Return the shared coordinator, creating it on first use.

    *engine* only matters for the first call; without one the mpv engine
    is used.
    """
    global _coordinator
    if _coordinator is None:
        if engine is None:
            from recap.playback.engine import MpvAudioEngine

            engine = MpvAudioEngine()
        _coordinator = PlaybackCoordinator(engine)
    return _coordinator


def reset_coordinator() -> None:
    """Forget the shared coordinator (does not release its handle; call ``stop()`` first)."""
    global _coordinator
    _coordinator = None
