"""
Real-time microphone capture.

Requires: pip install sounddevice
"""

from __future__ import annotations

import logging
from typing import Callable
import numpy as np

from moodmirror.core.stream import AudioConfig

logger = logging.getLogger(__name__)


class CaptureUnavailableError(RuntimeError):
    """No capture stream could be opened."""


class MicrophoneSource:
    """
    Callback-driven microphone input using sounddevice.

    Chunks are delivered from the audio driver's callback as
    (samples, channels) float32 arrays.

    Usage:
        mic = MicrophoneSource(channels=2)
        mic.start(session.feed_audio)
        ...
        mic.close()
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        blocksize: int = 4096,
        device: int | str | None = None,
    ) -> None:
        """
        Args:
            sample_rate: Capture rate; the emotion model expects 16 kHz
            channels: 1 (mono) or 2 (stereo, downmixed by the framer)
            blocksize: Samples per driver callback
            device: Audio device index or name (None = default)
        """
        if channels not in (1, 2):
            raise ValueError("channels must be 1 or 2")
        self._config = AudioConfig(sample_rate=sample_rate, channels=channels)
        self._blocksize = blocksize
        self._device = device
        self._stream = None
        self._callback: Callable[[np.ndarray], None] | None = None

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def active(self) -> bool:
        return self._stream is not None

    def _audio_callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning(f"Audio status: {status}")
        if self._callback is not None:
            self._callback(indata.copy())

    def start(self, callback: Callable[[np.ndarray], None]) -> None:
        """
        Open the input stream and begin delivering chunks.

        Raises CaptureUnavailableError if sounddevice is missing or no
        input device can be opened.
        """
        try:
            import sounddevice as sd
        except ImportError:
            raise CaptureUnavailableError(
                "sounddevice is required for microphone input.\n"
                "Install with: pip install sounddevice"
            )

        self._callback = callback
        try:
            self._stream = sd.InputStream(
                samplerate=self._config.sample_rate,
                blocksize=self._blocksize,
                channels=self._config.channels,
                dtype=np.float32,
                device=self._device,
                callback=self._audio_callback,
            )
            self._stream.start()
        except Exception as e:
            self._stream = None
            self._callback = None
            raise CaptureUnavailableError(f"No capture stream available: {e}") from e

    def close(self) -> None:
        """Stop recording and release the device."""
        self._callback = None
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
