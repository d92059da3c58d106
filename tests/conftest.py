"""Shared fakes for the opaque collaborators."""

from __future__ import annotations

import threading
import time

import numpy as np
import pytest


def logits_for(index: int, confidence: float, size: int) -> np.ndarray:
    """Logits whose softmax puts `confidence` on `index`, the rest spread evenly."""
    rest = (1.0 - confidence) / (size - 1)
    probs = np.full(size, rest)
    probs[index] = confidence
    return np.log(probs)


class FakeHandle:
    def __init__(self, scheduler: FakeScheduler, when: float, callback, args) -> None:
        self._scheduler = scheduler
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock with asyncio's call_later signature."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback, *args) -> FakeHandle:
        handle = FakeHandle(self, self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (h for h in self.handles if not h.cancelled and h.when <= target and not h.fired),
                key=lambda h: h.when,
            )
            if not due:
                break
            handle = due[0]
            self.now = handle.when
            handle.fired = True
            handle.callback(*handle.args)
        self.now = target


class ConstantEmotionModel:
    """Returns the same logits for every window."""

    def __init__(self, logits: np.ndarray | None = None) -> None:
        self.logits = np.zeros(7) if logits is None else np.asarray(logits)
        self.calls: list[np.ndarray] = []

    def run(self, input_values):
        self.calls.append(np.array(input_values))
        return self.logits[np.newaxis, :]


class ScriptedSentimentModel:
    """Looks up logits by the text the tokenizer encoded."""

    def __init__(self, script: dict[str, np.ndarray], default: np.ndarray | None = None) -> None:
        self.script = script
        self.default = np.zeros(3) if default is None else default
        self.seen: list[str] = []

    def run(self, input_ids, attention_mask):
        text = FakeTokenizer.decode(input_ids)
        self.seen.append(text)
        return self.script.get(text, self.default)[np.newaxis, :]


class FakeTokenizer:
    """Encodes characters as ids so the model can recover the text."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, text: str):
        self.calls.append(text)
        ids = np.array([[ord(c) for c in text]], dtype=np.int64)
        return {"input_ids": ids, "attention_mask": np.ones_like(ids)}

    @staticmethod
    def decode(input_ids) -> str:
        return "".join(chr(int(i)) for i in np.asarray(input_ids).ravel())


class ConcurrencyProbe:
    """Tracks how many model calls overlap."""

    def __init__(self, delay_s: float = 0.005) -> None:
        self._lock = threading.Lock()
        self._delay_s = delay_s
        self.current = 0
        self.max_seen = 0
        self.calls = 0

    def __enter__(self):
        with self._lock:
            self.current += 1
            self.calls += 1
            self.max_seen = max(self.max_seen, self.current)
        time.sleep(self._delay_s)
        return self

    def __exit__(self, *args):
        with self._lock:
            self.current -= 1


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
