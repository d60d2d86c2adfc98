"""Upload lifecycle and playback coordination for Recap."""

__version__ = "0.1.0"
