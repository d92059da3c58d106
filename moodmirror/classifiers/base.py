"""
Base classifier protocol.

Classifiers are thin adapters over opaque models: normalize the input,
run the model, decode logits into a Prediction. They keep no state
between calls and never touch the fused state themselves.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, Protocol, Sequence, TypeVar, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from moodmirror.benchmark.metrics import LatencyTracker
from moodmirror.core.console import ConsoleLog, LogCategory
from moodmirror.core.labels import Label, Prediction

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class EmotionModel(Protocol):
    """Opaque speech emotion model: normalized samples (1, N) -> logits."""

    def run(self, input_values: NDArray[np.float32]) -> NDArray:
        ...


@runtime_checkable
class SentimentModel(Protocol):
    """Opaque sentiment model: token ids + mask -> logits."""

    def run(self, input_ids: NDArray, attention_mask: NDArray) -> NDArray:
        ...


@runtime_checkable
class Tokenizer(Protocol):
    """Text tokenizer with padding and truncation."""

    def __call__(self, text: str) -> Mapping[str, Any]:
        """Return a mapping with "input_ids" and "attention_mask"."""
        ...


def softmax(logits: NDArray) -> NDArray[np.float64]:
    """Numerically stable softmax (max subtraction)."""
    z = np.asarray(logits, dtype=np.float64).ravel()
    z = z - np.max(z)
    e = np.exp(z)
    return e / e.sum()


def decode_logits(logits: NDArray, labels: Sequence[Label]) -> Prediction:
    """Arg-max label and its softmax probability."""
    if not np.all(np.isfinite(logits)):
        raise ValueError("Model produced non-finite logits")
    probs = softmax(logits)
    if len(probs) != len(labels):
        raise ValueError(f"Model produced {len(probs)} logits for {len(labels)} labels")
    index = int(np.argmax(probs))
    return Prediction(label=labels[index], confidence=float(probs[index]))


class Classifier(ABC, Generic[T]):
    """
    Abstract base for classifier adapters.

    Subclasses implement `_infer`; `classify` wraps it with latency
    reporting. Model errors propagate to the caller, which owns the
    inference token and decides what to drop.
    """

    def __init__(
        self,
        console: ConsoleLog | None = None,
        latency: LatencyTracker | None = None,
    ) -> None:
        self._console = console
        self._latency = latency

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique classifier name, also the console category."""
        ...

    @property
    @abstractmethod
    def labels(self) -> Sequence[Label]:
        ...

    @abstractmethod
    def accepts(self, item: T) -> bool:
        """Whether the input satisfies the model contract."""
        ...

    @abstractmethod
    def _infer(self, item: T) -> NDArray:
        """Run the model and return raw logits."""
        ...

    def classify(self, item: T) -> Prediction | None:
        """
        Classify one input.

        Returns None for inputs that violate the contract (no model call).
        """
        if not self.accepts(item):
            return None

        start = time.perf_counter()
        logits = self._infer(item)
        elapsed_ms = (time.perf_counter() - start) * 1000

        if self._latency is not None:
            self._latency.record(self.name, elapsed_ms)
        self._report(f"Inference completed in {elapsed_ms:.2f} ms")

        prediction = decode_logits(logits, self.labels)
        self._report(prediction.describe())
        return prediction

    def _report(self, message: str) -> None:
        if self._console is not None:
            self._console.add(message, LogCategory(self.name))
        else:
            logger.debug(message)
