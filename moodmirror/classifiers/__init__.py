"""Classifier adapters over the opaque emotion and sentiment models."""

from moodmirror.classifiers.base import (
    Classifier,
    EmotionModel,
    SentimentModel,
    Tokenizer,
    softmax,
    decode_logits,
)
from moodmirror.classifiers.audio import AudioEmotionClassifier, EMOTION_LABELS, zscore
from moodmirror.classifiers.text import TextSentimentClassifier, SENTIMENT_LABELS

__all__ = [
    "Classifier",
    "EmotionModel",
    "SentimentModel",
    "Tokenizer",
    "softmax",
    "decode_logits",
    "AudioEmotionClassifier",
    "EMOTION_LABELS",
    "zscore",
    "TextSentimentClassifier",
    "SENTIMENT_LABELS",
]
