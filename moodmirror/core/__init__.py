"""Core data structures, framing and the inference gate."""

from moodmirror.core.labels import Emotion, Sentiment, Prediction
from moodmirror.core.stream import AudioFrame, AudioConfig, Framer
from moodmirror.core.console import ConsoleLog, LogCategory, LogEntry
from moodmirror.core.gate import InferenceGate, AudioInferenceScheduler, TextInferenceQueue

__all__ = [
    "Emotion",
    "Sentiment",
    "Prediction",
    "AudioFrame",
    "AudioConfig",
    "Framer",
    "ConsoleLog",
    "LogCategory",
    "LogEntry",
    "InferenceGate",
    "AudioInferenceScheduler",
    "TextInferenceQueue",
]
