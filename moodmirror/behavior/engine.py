"""
Reactive engine.

Owns the fused (emotion, sentiment) state and turns it into motion:
- a decay timer relaxes the character back to neutral
- every render tick eases each facial channel toward its target
- an emotion change fires the reaction's gesture, once
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Protocol, TYPE_CHECKING

from moodmirror.behavior.animation import GestureAnimator, GestureState
from moodmirror.behavior.fuser import FusedState, NEUTRAL_STATE, StateFuser
from moodmirror.behavior.reactions import Gesture, Reaction, ReactionTable, WAVE_GREETING
from moodmirror.core.labels import Emotion, Prediction

if TYPE_CHECKING:
    from moodmirror.adapters.base import RenderTarget

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Anything with asyncio's call_later signature."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


@dataclass(frozen=True, slots=True)
class EngineSnapshot:
    """What the engine rendered on one tick."""
    state: FusedState
    expression: Mapping[str, float]
    gesture_state: GestureState
    gesture: str | None
    speaking: bool
    tick: int


class ReactiveEngine:
    """
    Timed-decay reactive state machine.

    State changes arrive as predictions through `apply()`. Rendering is
    pulled by the host calling `tick()` once per displayed frame (or by
    running `animate()`).

    Usage:
        engine = ReactiveEngine(JIM.reactions, rig)
        engine.start()
        engine.apply(Prediction(Emotion.HAPPY, 0.92))
        engine.tick()
    """

    def __init__(
        self,
        reactions: ReactionTable,
        target: RenderTarget,
        fuser: StateFuser | None = None,
        scheduler: Scheduler | None = None,
        smoothing: float = 0.1,
        speaking_channel: str = "Surprised",
        speaking_floor: float = 0.15,
        channels: Iterable[str] | None = None,
        greeting: Gesture | None = WAVE_GREETING,
    ) -> None:
        if not (0.0 < smoothing <= 1.0):
            raise ValueError("smoothing must be within (0, 1]")

        self._reactions = reactions
        self._target = target
        self._fuser = fuser or StateFuser()
        self._scheduler = scheduler
        self._smoothing = smoothing
        self._speaking_channel = speaking_channel
        self._speaking_floor = speaking_floor
        self._greeting = greeting

        self._state = NEUTRAL_STATE
        self._speaking = False
        self._decay_handle: TimerHandle | None = None
        self._last_emotion: Emotion = self._state.emotion
        self._gestures_fired = 0
        self._tick = 0
        self._running = False

        names = list(channels) if channels is not None else reactions.channels
        if speaking_channel not in names:
            names.append(speaking_channel)
        self._expression: dict[str, float] = {name: 0.0 for name in names}

        self._animator = GestureAnimator(target)
        self._state_listeners: list[Callable[[FusedState, FusedState], None]] = []
        self._snapshot_listeners: list[Callable[[EngineSnapshot], None]] = []

    @property
    def state(self) -> FusedState:
        return self._state

    @property
    def reaction(self) -> Reaction:
        return self._reactions.lookup(self._state.emotion, self._state.sentiment)

    @property
    def expression(self) -> dict[str, float]:
        return dict(self._expression)

    @property
    def animator(self) -> GestureAnimator:
        return self._animator

    @property
    def speaking(self) -> bool:
        return self._speaking

    @property
    def gestures_fired(self) -> int:
        return self._gestures_fired

    @property
    def decay_pending(self) -> bool:
        return self._decay_handle is not None

    def on_state_change(self, listener: Callable[[FusedState, FusedState], None]) -> ReactiveEngine:
        """Register listener(old, new). Returns self for chaining."""
        self._state_listeners.append(listener)
        return self

    def on_snapshot(self, listener: Callable[[EngineSnapshot], None]) -> ReactiveEngine:
        """Register a listener for every rendered tick. Returns self for chaining."""
        self._snapshot_listeners.append(listener)
        return self

    def start(self) -> None:
        """Play the greeting and arm the decay for the initial reaction."""
        self._running = True
        if self._greeting is not None:
            self._animator.play(self._greeting)
        self._arm_decay(self.reaction)

    def stop(self) -> None:
        """Cancel the pending decay. Expression values are kept."""
        self._running = False
        self._cancel_decay()
        self._animator.reset()

    def apply(self, prediction: Prediction) -> bool:
        """Fuse a prediction. Returns True if the state changed."""
        updated = self._fuser.fuse(self._state, prediction)
        if updated == self._state:
            return False
        self._set_state(updated)
        return True

    def set_speaking(self, speaking: bool) -> None:
        self._speaking = speaking

    def reset(self) -> None:
        """Return to (Neutral, Neutral) now."""
        if self._state != NEUTRAL_STATE:
            self._set_state(NEUTRAL_STATE)

    def _set_state(self, state: FusedState) -> None:
        old = self._state
        self._state = state
        logger.debug(f"Fused state {old} -> {state}")
        self._arm_decay(self.reaction)
        for listener in self._state_listeners:
            listener(old, state)

    def _arm_decay(self, reaction: Reaction) -> None:
        self._cancel_decay()
        if reaction.decay_ms is None:
            return
        scheduler = self._scheduler or asyncio.get_running_loop()
        self._decay_handle = scheduler.call_later(reaction.decay_ms / 1000, self._decay)

    def _cancel_decay(self) -> None:
        if self._decay_handle is not None:
            self._decay_handle.cancel()
            self._decay_handle = None

    def _decay(self) -> None:
        self._decay_handle = None
        if self._state != NEUTRAL_STATE:
            self._set_state(NEUTRAL_STATE)

    def tick(self) -> EngineSnapshot:
        """Advance one render frame."""
        reaction = self.reaction

        for channel in reaction.expression:
            self._expression.setdefault(channel, 0.0)

        for channel, value in self._expression.items():
            target = reaction.target(channel)
            if self._speaking and channel == self._speaking_channel:
                target = max(target, self._speaking_floor)
            self._expression[channel] = value + (target - value) * self._smoothing

        emotion = self._state.emotion
        if emotion != self._last_emotion:
            if reaction.gesture is not None:
                self._animator.play(reaction.gesture)
                self._gestures_fired += 1
            self._last_emotion = emotion

        self._target.apply_expression(dict(self._expression))
        self._tick += 1

        current = self._animator.current
        snapshot = EngineSnapshot(
            state=self._state,
            expression=dict(self._expression),
            gesture_state=self._animator.state,
            gesture=current.name if current is not None else None,
            speaking=self._speaking,
            tick=self._tick,
        )
        for listener in self._snapshot_listeners:
            listener(snapshot)
        return snapshot

    async def animate(self, fps: float = 60.0) -> None:
        """Tick at `fps` until stop() is called."""
        interval = 1.0 / fps
        self._running = True
        while self._running:
            self.tick()
            await asyncio.sleep(interval)
