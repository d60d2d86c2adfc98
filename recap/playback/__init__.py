from recap.playback.coordinator import (
    PlaybackCoordinator,
    PlaybackPhase,
    PlaybackSnapshot,
    get_coordinator,
    reset_coordinator,
)
from recap.playback.engine import AudioEngine, AudioHandle, EngineStatus, MpvAudioEngine
