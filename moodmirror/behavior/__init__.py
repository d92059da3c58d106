"""Behavior layer - fused state to expression and gesture."""

from moodmirror.behavior.fuser import FusedState, StateFuser, NEUTRAL_STATE
from moodmirror.behavior.reactions import (
    CharacterProfile,
    ClipPart,
    Gesture,
    Reaction,
    ReactionTable,
    JIM,
    LOUISA,
    WAVE_GREETING,
    get_profile,
)
from moodmirror.behavior.animation import GestureAnimator, GestureState
from moodmirror.behavior.engine import ReactiveEngine, EngineSnapshot

__all__ = [
    "FusedState",
    "StateFuser",
    "NEUTRAL_STATE",
    "CharacterProfile",
    "ClipPart",
    "Gesture",
    "Reaction",
    "ReactionTable",
    "JIM",
    "LOUISA",
    "WAVE_GREETING",
    "get_profile",
    "GestureAnimator",
    "GestureState",
    "ReactiveEngine",
    "EngineSnapshot",
]
