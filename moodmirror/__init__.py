"""
moodmirror - Real-time emotion mirroring for an embodied character.

moodmirror listens to what a user says and how they say it, and keeps a
character's face and gestures in step with their mood. It does not
talk back. It only reacts.
"""

from moodmirror.core.labels import Emotion, Sentiment, Prediction
from moodmirror.core.stream import AudioFrame, AudioConfig, Framer
from moodmirror.core.console import ConsoleLog, LogCategory
from moodmirror.core.gate import InferenceGate
from moodmirror.behavior.fuser import FusedState, StateFuser
from moodmirror.behavior.reactions import Reaction, ReactionTable, CharacterProfile, JIM, LOUISA
from moodmirror.behavior.engine import ReactiveEngine
from moodmirror.classifiers.base import Classifier
from moodmirror.adapters.base import Adapter, RenderTarget
from moodmirror.session import Session, SessionConfig

__version__ = "0.1.0"
__all__ = [
    # Labels and frames
    "Emotion",
    "Sentiment",
    "Prediction",
    "AudioFrame",
    "AudioConfig",
    "Framer",
    # Observability
    "ConsoleLog",
    "LogCategory",
    # Inference and state
    "InferenceGate",
    "FusedState",
    "StateFuser",
    # Behavior
    "Reaction",
    "ReactionTable",
    "CharacterProfile",
    "JIM",
    "LOUISA",
    "ReactiveEngine",
    # Session
    "Session",
    "SessionConfig",
    # Extension protocols
    "Classifier",
    "Adapter",
    "RenderTarget",
]
