"""
Audio engine abstraction used by the playback coordinator.

An :class:`AudioEngine` turns a URL into an :class:`AudioHandle`; decoding
and output are entirely the engine's business.  Engines report position,
duration and end-of-file through the ``on_status`` callback given to
:meth:`AudioEngine.load`; the callback must be invoked on the event loop
that called ``load``.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineStatus:
    position: Optional[float] = None
    duration: Optional[float] = None
    is_playing: Optional[bool] = None
    finished: bool = False


StatusCallback = Callable[[EngineStatus], None]


class AudioHandle(ABC):
    """One loaded media item. Must be unloaded exactly once."""

    @abstractmethod
    async def play(self) -> None: ...

    @abstractmethod
    async def pause(self) -> None: ...

    @abstractmethod
    async def seek(self, seconds: float) -> None: ...

    async def stop(self) -> None:
        """Pause and rewind without releasing the media."""
        await self.pause()
        await self.seek(0)

    @abstractmethod
    async def unload(self) -> None:
        """Stop output and release every resource held by the handle."""


class AudioEngine(ABC):
    @abstractmethod
    async def load(self, url: str, on_status: StatusCallback) -> AudioHandle:
        """
        Load *url* and return a paused, ready handle.

        Raises any exception when the media cannot be opened; the
        coordinator turns it into ``PlaybackAcquisitionFailed``.
        """


class MpvAudioHandle(AudioHandle):
    def __init__(self, player, on_status: StatusCallback, loop: asyncio.AbstractEventLoop) -> None:
        self.player = player
        self._on_status = on_status
        self._loop = loop
        self._finished = False
        # mpv fires observers on its own event thread
        self.player.observe_property("time-pos", self._handle_time)
        self.player.observe_property("duration", self._handle_duration)
        self.player.observe_property("eof-reached", self._handle_eof)

    def _emit(self, status: EngineStatus) -> None:
        self._loop.call_soon_threadsafe(self._on_status, status)

    def _handle_time(self, name, value):
        if value is not None:
            self._emit(EngineStatus(position=value))

    def _handle_duration(self, name, value):
        if value is not None:
            self._emit(EngineStatus(duration=value))

    def _handle_eof(self, name, value):
        if value:
            self._finished = True
            self._emit(EngineStatus(finished=True, is_playing=False))

    async def play(self) -> None:
        if self._finished:
            # keep-open leaves the player parked at the end of the file
            self._finished = False
            self.player.seek(0, reference="absolute")
        self.player.pause = False

    async def pause(self) -> None:
        self.player.pause = True

    async def seek(self, seconds: float) -> None:
        self._finished = False
        self.player.seek(seconds, reference="absolute")

    async def unload(self) -> None:
        self.player.stop()
        # terminate() joins the mpv event thread
        await asyncio.to_thread(self.player.terminate)


class MpvAudioEngine(AudioEngine):
    """Engine backed by libmpv (install the ``player`` extra)."""

    def __init__(self, load_timeout: float = 15.0, poll_interval: float = 0.1) -> None:
        try:
            import mpv
        except ImportError as exc:
            raise RuntimeError("The 'python-mpv' package is required for audio playback") from exc
        self._mpv = mpv
        self.load_timeout = load_timeout
        self.poll_interval = poll_interval

    async def load(self, url: str, on_status: StatusCallback) -> AudioHandle:
        # vo='null' because we are audio-only; keep_open so EOF pauses instead of unloading
        player = self._mpv.MPV(vo="null", ytdl=False, keep_open="yes")
        try:
            player.pause = True
            player.play(url)

            loop = asyncio.get_running_loop()
            waited = 0.0
            while player.duration is None:
                if waited >= self.load_timeout:
                    raise TimeoutError(f"Timed out loading {url}")
                await asyncio.sleep(self.poll_interval)
                waited += self.poll_interval
                if player.idle_active and waited > 1.0:
                    raise RuntimeError(f"mpv could not open {url}")
        except BaseException:
            # No handle exists yet, so the player is released here, cancellation included
            await asyncio.shield(asyncio.to_thread(player.terminate))
            raise

        logger.info(f"Loaded audio from {url} (duration={player.duration:.2f}s)")
        return MpvAudioHandle(player, on_status, loop)
