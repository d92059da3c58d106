"""
Label sets and predictions.

A Prediction is a single classifier verdict. It is not a state.
The reactive engine decides whether it is confident enough to matter.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Emotion(str, Enum):
    """Speech emotion labels, in the audio model's logit order."""
    HAPPY = "Happy"
    FEARFUL = "Fearful"
    SURPRISED = "Surprised"
    NEUTRAL = "Neutral"
    DISGUSTED = "Disgusted"
    SAD = "Sad"
    ANGRY = "Angry"


class Sentiment(str, Enum):
    """Directed sentiment labels, in the text model's logit order."""
    NEUTRAL = "Neutral"
    POSITIVE = "Positive"
    NEGATIVE = "Negative"


Label = Emotion | Sentiment


@dataclass(frozen=True, slots=True)
class Prediction:
    """
    One classifier output.

    - label: arg-max label from the model's label set
    - confidence: softmax probability of that label (0.0-1.0)
    """
    label: Label
    confidence: float

    def __post_init__(self) -> None:
        if not (0.0 <= self.confidence <= 1.0):
            object.__setattr__(self, 'confidence', max(0.0, min(1.0, self.confidence)))

    @property
    def is_emotion(self) -> bool:
        return isinstance(self.label, Emotion)

    @property
    def is_sentiment(self) -> bool:
        return isinstance(self.label, Sentiment)

    def describe(self) -> str:
        kind = "emotion" if self.is_emotion else "sentiment"
        return f"Predicted {kind}: {self.label.value} with {self.confidence * 100:.1f}% confidence"
