"""Synthetic capture sources for testing and demos."""

from __future__ import annotations

from typing import Iterator
import numpy as np

from moodmirror.core.stream import AudioConfig, AudioSource


class ArraySource(AudioSource):
    """
    Capture source replaying a numpy array in fixed-size chunks.

    Mono data is 1-D. With channels=2 the data is either given as
    (samples, 2) or duplicated into both channels.
    """

    def __init__(
        self,
        data: np.ndarray,
        sample_rate: int = 16000,
        chunk_size: int = 4096,
        channels: int = 1,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self._config = AudioConfig(sample_rate=sample_rate, channels=channels)

        samples = np.asarray(data, dtype=np.float32)
        if channels == 2 and samples.ndim == 1:
            samples = np.stack([samples, samples], axis=1)
        self._data = samples
        self._chunk_size = chunk_size
        self._position = 0
        self._closed = False

    @property
    def config(self) -> AudioConfig:
        return self._config

    @property
    def total_samples(self) -> int:
        return len(self._data)

    def chunks(self) -> Iterator[np.ndarray]:
        while self._position < len(self._data) and not self._closed:
            chunk = self._data[self._position:self._position + self._chunk_size]
            self._position += len(chunk)
            yield chunk

    def close(self) -> None:
        self._closed = True


class SilenceSource(ArraySource):
    """Digital silence."""

    def __init__(
        self,
        duration_ms: int = 2000,
        sample_rate: int = 16000,
        chunk_size: int = 4096,
        channels: int = 1,
    ) -> None:
        total = int(sample_rate * duration_ms / 1000)
        super().__init__(np.zeros(total, dtype=np.float32), sample_rate, chunk_size, channels)


class SineSource(ArraySource):
    """Pure tone."""

    def __init__(
        self,
        frequency_hz: float = 220.0,
        amplitude: float = 0.5,
        duration_ms: int = 2000,
        sample_rate: int = 16000,
        chunk_size: int = 4096,
        channels: int = 1,
    ) -> None:
        t = np.arange(int(sample_rate * duration_ms / 1000)) / sample_rate
        data = (amplitude * np.sin(2 * np.pi * frequency_hz * t)).astype(np.float32)
        super().__init__(data, sample_rate, chunk_size, channels)


class NoiseSource(ArraySource):
    """White noise."""

    def __init__(
        self,
        amplitude: float = 0.1,
        duration_ms: int = 2000,
        sample_rate: int = 16000,
        chunk_size: int = 4096,
        channels: int = 1,
        seed: int | None = None,
    ) -> None:
        rng = np.random.default_rng(seed)
        total = int(sample_rate * duration_ms / 1000)
        data = (amplitude * rng.standard_normal(total)).astype(np.float32)
        super().__init__(data, sample_rate, chunk_size, channels)
