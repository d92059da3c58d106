"""
Audio stream abstractions.

Window-based processing: the capture stream is cut into fixed,
non-overlapping 2 s frames for the speech emotion model.
No dependency on specific audio libraries.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Protocol, runtime_checkable
import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True, slots=True)
class AudioConfig:
    """Audio stream configuration."""
    sample_rate: int = 16000
    channels: int = 1
    window_samples: int = 32000
    dtype: str = "float32"

    @property
    def window_ms(self) -> int:
        """Window duration in milliseconds."""
        return int(self.window_samples * 1000 / self.sample_rate)


@dataclass(slots=True)
class AudioFrame:
    """
    One analysis window.

    Attributes:
        data: Mono float32 samples, read-only once sliced
        frame_id: Monotonically increasing frame identifier
        timestamp_ms: Start of the window, from stream start
        config: Audio configuration
    """
    data: NDArray[np.float32]
    frame_id: int
    timestamp_ms: int
    config: AudioConfig

    def __len__(self) -> int:
        return len(self.data)

    @property
    def duration_ms(self) -> int:
        return int(len(self.data) * 1000 / self.config.sample_rate)

    @property
    def rms(self) -> float:
        """Root mean square energy."""
        if len(self.data) == 0:
            return 0.0
        return float(np.sqrt(np.mean(self.data ** 2)))

    @property
    def peak(self) -> float:
        """Peak absolute amplitude."""
        if len(self.data) == 0:
            return 0.0
        return float(np.max(np.abs(self.data)))

    @classmethod
    def silence(cls, frame_id: int, timestamp_ms: int, config: AudioConfig) -> AudioFrame:
        """Create a silent frame."""
        data = np.zeros(config.window_samples, dtype=np.float32)
        data.flags.writeable = False
        return cls(data=data, frame_id=frame_id, timestamp_ms=timestamp_ms, config=config)


def to_mono(chunk: NDArray) -> NDArray[np.float32]:
    """
    Downmix a capture chunk to mono.

    1-D input is already mono. 2-D input is (samples, channels), the layout
    sounddevice delivers; channels are averaged per sample.
    """
    samples = np.asarray(chunk, dtype=np.float32)
    if samples.ndim == 1:
        return samples
    if samples.ndim == 2:
        if samples.shape[1] == 1:
            return samples[:, 0]
        return samples.mean(axis=1, dtype=np.float32)
    raise ValueError(f"Expected 1-D or 2-D audio chunk, got shape {samples.shape}")


@runtime_checkable
class AudioSource(Protocol):
    """Protocol for capture sources delivering raw sample chunks."""

    @property
    def config(self) -> AudioConfig:
        """Return audio configuration."""
        ...

    def chunks(self) -> Iterator[NDArray]:
        """Yield raw chunks, (samples,) or (samples, channels)."""
        ...

    def close(self) -> None:
        """Close the source."""
        ...


@runtime_checkable
class StreamingAudioSource(Protocol):
    """Protocol for callback-driven capture sources (e.g. a microphone)."""

    def start(self, callback: Callable[[NDArray], None]) -> None:
        """Begin delivering chunks to callback. May raise CaptureUnavailableError."""
        ...

    def close(self) -> None:
        ...


class Framer:
    """
    Fixed-window slicer for the capture stream.

    Buffers arbitrary-length chunks and cuts the first `window_samples`
    samples into an AudioFrame whenever enough are buffered. Windows do
    not overlap and the remainder is kept for the next window.

    Runs inside the capture callback: it only copies samples.

    Usage:
        framer = Framer()
        for frame in framer.push(chunk):
            scheduler.submit(frame)
    """

    def __init__(self, config: AudioConfig | None = None) -> None:
        self._config = config or AudioConfig()
        self._chunks: list[NDArray[np.float32]] = []
        self._buffered = 0
        self._frame_id = 0
        self._consumed = 0

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def buffered(self) -> int:
        """Samples waiting for the next window."""
        return self._buffered

    def push(self, chunk: NDArray) -> list[AudioFrame]:
        """Append a chunk and return every frame it completes, in order."""
        samples = to_mono(chunk)
        if len(samples) == 0:
            return []

        self._chunks.append(samples.copy())
        self._buffered += len(samples)

        window = self._config.window_samples
        if self._buffered < window:
            return []

        pending = np.concatenate(self._chunks)
        frames: list[AudioFrame] = []
        offset = 0
        while len(pending) - offset >= window:
            data = pending[offset:offset + window].copy()
            data.flags.writeable = False
            frames.append(AudioFrame(
                data=data,
                frame_id=self._frame_id,
                timestamp_ms=int(self._consumed * 1000 / self._config.sample_rate),
                config=self._config,
            ))
            self._frame_id += 1
            self._consumed += window
            offset += window

        remainder = pending[offset:]
        self._chunks = [remainder] if len(remainder) else []
        self._buffered = len(remainder)
        return frames

    def reset(self) -> None:
        """Drop buffered samples and restart frame numbering."""
        self._chunks.clear()
        self._buffered = 0
        self._frame_id = 0
        self._consumed = 0
