"""Capture sources for moodmirror sessions."""

from moodmirror.sources.synthetic import ArraySource, SineSource, NoiseSource, SilenceSource
from moodmirror.sources.microphone import MicrophoneSource, CaptureUnavailableError

__all__ = [
    "ArraySource",
    "SineSource",
    "NoiseSource",
    "SilenceSource",
    "MicrophoneSource",
    "CaptureUnavailableError",
]
