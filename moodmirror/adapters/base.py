"""
Output adapters.

The character rig is an external collaborator. It receives an
expression vector every tick and one-shot clip triggers, and reports
clip completions back. moodmirror provides the protocol plus a few
plain implementations; engine-specific rigs live with the consumer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Mapping, Protocol, TypeVar, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from moodmirror.behavior.engine import EngineSnapshot


T = TypeVar("T")


@runtime_checkable
class RenderTarget(Protocol):
    """What the reactive engine drives."""

    def apply_expression(self, expression: Mapping[str, float]) -> None:
        """Set every expression channel for this frame."""
        ...

    def play_once(self, clip: str, time_scale: float) -> None:
        """Play a clip once at the given rate."""
        ...

    def play_idle(self) -> None:
        """Resume the looping idle clip."""
        ...


@dataclass
class RecordingTarget:
    """
    Render target that records what it was asked to do.

    Useful headless: tests, logging, or forwarding frames elsewhere.
    """
    expression: dict[str, float] = field(default_factory=dict)
    frames: int = 0
    played: list[tuple[str, float]] = field(default_factory=list)
    idle_resumed: int = 0

    def apply_expression(self, expression: Mapping[str, float]) -> None:
        self.expression = dict(expression)
        self.frames += 1

    def play_once(self, clip: str, time_scale: float) -> None:
        self.played.append((clip, time_scale))

    def play_idle(self) -> None:
        self.idle_resumed += 1

    @property
    def clips(self) -> list[str]:
        return [clip for clip, _ in self.played]


class Adapter(ABC, Generic[T]):
    """
    Abstract base for snapshot adapters.

    Adapters turn an EngineSnapshot into whatever a downstream system
    consumes (JSON for a web UI, OSC for a puppet, etc.).

    Usage:
        class MyAdapter(Adapter[MyOutputType]):
            def transform(self, snapshot: EngineSnapshot) -> MyOutputType:
                return MyOutputType(...)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def transform(self, snapshot: EngineSnapshot) -> T:
        ...


class DictAdapter(Adapter[dict[str, Any]]):
    """Snapshot to a JSON-ready dictionary."""

    @property
    def name(self) -> str:
        return "dict"

    def transform(self, snapshot: EngineSnapshot) -> dict[str, Any]:
        return {
            "emotion": snapshot.state.emotion.value,
            "sentiment": snapshot.state.sentiment.value,
            "expression": dict(snapshot.expression),
            "gesture_state": snapshot.gesture_state.value,
            "gesture": snapshot.gesture,
            "speaking": snapshot.speaking,
            "tick": snapshot.tick,
        }


class CallbackAdapter(Adapter[None]):
    """Invokes a callback for each snapshot."""

    def __init__(self, callback: Callable[[EngineSnapshot], None]) -> None:
        self._callback = callback

    @property
    def name(self) -> str:
        return "callback"

    def transform(self, snapshot: EngineSnapshot) -> None:
        self._callback(snapshot)
