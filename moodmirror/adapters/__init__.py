"""Output adapters for the character rig and downstream systems."""

from moodmirror.adapters.base import (
    Adapter,
    RenderTarget,
    RecordingTarget,
    DictAdapter,
    CallbackAdapter,
)

__all__ = [
    "Adapter",
    "RenderTarget",
    "RecordingTarget",
    "DictAdapter",
    "CallbackAdapter",
]
