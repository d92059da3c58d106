"""
Speech emotion classifier.

Classifies one 2 s window of 16 kHz mono audio into the seven
Emotion labels.
"""

from __future__ import annotations

from typing import Sequence
import numpy as np
from numpy.typing import NDArray

from moodmirror.benchmark.metrics import LatencyTracker
from moodmirror.classifiers.base import Classifier, EmotionModel
from moodmirror.core.console import ConsoleLog
from moodmirror.core.labels import Emotion
from moodmirror.core.stream import AudioFrame

EMOTION_LABELS: tuple[Emotion, ...] = tuple(Emotion)

NORMALIZE_EPSILON = 1e-5


def zscore(samples: NDArray) -> NDArray[np.float32]:
    """Zero-mean, unit-variance normalization; silent input maps to zeros."""
    x = np.asarray(samples, dtype=np.float32)
    mean = float(np.mean(x))
    std = float(np.std(x))
    return ((x - mean) / (std + NORMALIZE_EPSILON)).astype(np.float32)


class AudioEmotionClassifier(Classifier[AudioFrame]):
    """
    Adapter over an opaque speech emotion model.

    Frames that are not exactly `window_samples` long are rejected
    without invoking the model. The model receives a (1, N) batch of
    z-score normalized samples.
    """

    def __init__(
        self,
        model: EmotionModel,
        window_samples: int = 32000,
        console: ConsoleLog | None = None,
        latency: LatencyTracker | None = None,
        input_dtype: str = "float32",
    ) -> None:
        super().__init__(console=console, latency=latency)
        self._model = model
        self._window_samples = window_samples
        self._input_dtype = np.dtype(input_dtype)

    @property
    def name(self) -> str:
        return "emotion"

    @property
    def labels(self) -> Sequence[Emotion]:
        return EMOTION_LABELS

    def accepts(self, frame: AudioFrame) -> bool:
        return len(frame.data) == self._window_samples

    def _infer(self, frame: AudioFrame) -> NDArray:
        normalized = zscore(frame.data).astype(self._input_dtype)
        return np.asarray(self._model.run(normalized[np.newaxis, :]))
