"""
Gesture state machine.

The rig plays clips; this module only decides when a one-shot starts
and when the character is back to Idle.

    IDLE --play(gesture)--> PLAYING_GESTURE --final clip finished--> IDLE
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, TYPE_CHECKING

from moodmirror.behavior.reactions import Gesture

if TYPE_CHECKING:
    from moodmirror.adapters.base import RenderTarget

logger = logging.getLogger(__name__)


class GestureState(str, Enum):
    IDLE = "idle"
    PLAYING_GESTURE = "playing_gesture"


class GestureAnimator:
    """
    Idle / PlayingGesture FSM over a render target.

    Every clip of a gesture is started at once with its own time scale.
    Completions are tracked per clip, and only the gesture's final clip
    returns the FSM to Idle. That transition emits exactly one completion
    event per gesture. A gesture started while another plays pre-empts it.

    The rig reports completions by calling `clip_finished(clip_name)`.
    """

    def __init__(
        self,
        target: RenderTarget,
        on_complete: Callable[[Gesture], None] | None = None,
    ) -> None:
        self._target = target
        self._on_complete = on_complete
        self._state = GestureState.IDLE
        self._gesture: Gesture | None = None
        self._pending: set[str] = set()
        self._played = 0

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def current(self) -> Gesture | None:
        return self._gesture

    @property
    def pending_clips(self) -> set[str]:
        return set(self._pending)

    @property
    def played(self) -> int:
        """Number of gestures started."""
        return self._played

    def play(self, gesture: Gesture) -> None:
        if self._gesture is not None:
            logger.debug(f"Gesture {gesture.name} pre-empts {self._gesture.name}")

        self._gesture = gesture
        self._pending = {part.clip for part in gesture.clips}
        self._state = GestureState.PLAYING_GESTURE
        self._played += 1

        for part in gesture.clips:
            self._target.play_once(part.clip, part.time_scale)

    def clip_finished(self, clip: str) -> bool:
        """
        Completion callback from the rig.

        Returns True if this completion ended the gesture.
        Completions for clips that are not pending are ignored.
        """
        if self._gesture is None or clip not in self._pending:
            return False

        self._pending.discard(clip)
        if clip != self._gesture.final_clip:
            return False

        finished = self._gesture
        self._gesture = None
        self._pending.clear()
        self._state = GestureState.IDLE
        self._target.play_idle()

        if self._on_complete is not None:
            self._on_complete(finished)
        return True

    def reset(self) -> None:
        self._gesture = None
        self._pending.clear()
        self._state = GestureState.IDLE
