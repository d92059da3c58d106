"""
Directed sentiment classifier.

Classifies one transcript segment into Neutral / Positive / Negative.
"""

from __future__ import annotations

from typing import Sequence
import numpy as np
from numpy.typing import NDArray

from moodmirror.benchmark.metrics import LatencyTracker
from moodmirror.classifiers.base import Classifier, SentimentModel, Tokenizer
from moodmirror.core.console import ConsoleLog
from moodmirror.core.labels import Sentiment

SENTIMENT_LABELS: tuple[Sentiment, ...] = tuple(Sentiment)


class TextSentimentClassifier(Classifier[str]):
    """
    Adapter over an opaque tokenizer + sentiment model pair.

    Blank segments are rejected without invoking either.
    """

    def __init__(
        self,
        model: SentimentModel,
        tokenizer: Tokenizer,
        console: ConsoleLog | None = None,
        latency: LatencyTracker | None = None,
    ) -> None:
        super().__init__(console=console, latency=latency)
        self._model = model
        self._tokenizer = tokenizer

    @property
    def name(self) -> str:
        return "sentiment"

    @property
    def labels(self) -> Sequence[Sentiment]:
        return SENTIMENT_LABELS

    def accepts(self, text: str) -> bool:
        return bool(text and text.strip())

    def _infer(self, text: str) -> NDArray:
        tokens = self._tokenizer(text)
        logits = self._model.run(
            np.asarray(tokens["input_ids"]),
            np.asarray(tokens["attention_mask"]),
        )
        return np.asarray(logits)
