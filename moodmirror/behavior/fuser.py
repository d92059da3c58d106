"""
Confidence-gated state fusion.

Every inference emits a result, but the displayed state only moves on
confident evidence. Low-confidence verdicts are ignored outright rather
than averaged in.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from moodmirror.core.labels import Emotion, Prediction, Sentiment


@dataclass(frozen=True, slots=True)
class FusedState:
    """The persistent (emotion, sentiment) pair driving behavior."""
    emotion: Emotion = Emotion.NEUTRAL
    sentiment: Sentiment = Sentiment.NEUTRAL

    @property
    def key(self) -> tuple[Emotion, Sentiment]:
        return (self.emotion, self.sentiment)

    def __str__(self) -> str:
        return f"({self.emotion.value}, {self.sentiment.value})"


NEUTRAL_STATE = FusedState()


class StateFuser:
    """
    Merges predictions into a FusedState.

    The field is chosen by the label's type. A prediction replaces it
    only when confidence is strictly above the threshold.
    """

    def __init__(self, threshold: float = 0.60) -> None:
        if not (0.0 <= threshold <= 1.0):
            raise ValueError("threshold must be within [0, 1]")
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def accepts(self, prediction: Prediction) -> bool:
        return prediction.confidence > self._threshold

    def fuse(self, state: FusedState, prediction: Prediction) -> FusedState:
        """Return the state after applying prediction (state itself if rejected)."""
        if not self.accepts(prediction):
            return state

        if isinstance(prediction.label, Emotion):
            if prediction.label == state.emotion:
                return state
            return replace(state, emotion=prediction.label)

        if isinstance(prediction.label, Sentiment):
            if prediction.label == state.sentiment:
                return state
            return replace(state, sentiment=prediction.label)

        raise TypeError(f"Unknown label type: {type(prediction.label).__name__}")
