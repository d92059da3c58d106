"""
Inference gate.

One exclusive-use token shared by the audio and text paths: at most one
classifier invocation is in flight at any instant. The token is not a
fair queue. Sustained audio retries can starve the text queue and vice
versa; whoever re-reads the token first after a release wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from concurrent.futures import Executor
from typing import Any, Callable, Generic, TypeVar, TYPE_CHECKING

from moodmirror.core.console import ConsoleLog, LogCategory
from moodmirror.core.labels import Prediction

if TYPE_CHECKING:
    from moodmirror.classifiers.base import Classifier
    from moodmirror.core.stream import AudioFrame

logger = logging.getLogger(__name__)

T = TypeVar("T")

PredictionCallback = Callable[[Prediction], None]


class InferenceGate:
    """
    Exclusive-use token.

    Acquisition is a synchronous check-and-set, which is atomic on a
    single-threaded event loop. Release listeners run synchronously
    inside `release()`.
    """

    def __init__(self) -> None:
        self._holder: str | None = None
        self._listeners: list[Callable[[], None]] = []
        self._acquisitions = 0

    @property
    def busy(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> str | None:
        return self._holder

    @property
    def acquisitions(self) -> int:
        return self._acquisitions

    def try_acquire(self, holder: str) -> bool:
        """Take the token if it is free. Never waits."""
        if self._holder is not None:
            return False
        self._holder = holder
        self._acquisitions += 1
        return True

    def release(self) -> None:
        if self._holder is None:
            logger.warning("Inference gate released while not held")
            return
        self._holder = None
        for listener in list(self._listeners):
            listener()

    def on_release(self, listener: Callable[[], None]) -> InferenceGate:
        """Register a listener called after every release. Returns self for chaining."""
        self._listeners.append(listener)
        return self

    def remove_listener(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


class _GatedRunner(Generic[T]):
    """Shared plumbing: run a classifier off-loop while holding the token."""

    def __init__(
        self,
        gate: InferenceGate,
        classifier: Classifier[T],
        on_prediction: PredictionCallback,
        console: ConsoleLog | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._gate = gate
        self._classifier = classifier
        self._on_prediction = on_prediction
        self._console = console
        self._executor = executor
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def name(self) -> str:
        return self._classifier.name

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def _start(self, item: T, describe: str) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(item, describe))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, item: T, describe: str) -> None:
        prediction: Prediction | None = None
        try:
            loop = asyncio.get_running_loop()
            prediction = await loop.run_in_executor(self._executor, self._classifier.classify, item)
        except Exception as e:
            logger.warning(f"{self.name.capitalize()} inference failed on {describe}: {e}")
            if self._console is not None:
                self._console.add(f"{self.name.capitalize()} inference failed: {e}", LogCategory.ERROR)
        finally:
            self._gate.release()

        if prediction is not None and not self._closed:
            self._on_prediction(prediction)


class AudioInferenceScheduler(_GatedRunner["AudioFrame"]):
    """
    Audio path: at most one in flight, retry-on-busy.

    A frame arriving while the token is held is not queued. The same
    delivery is re-attempted after `retry_delay_s`, again and again,
    until the token is free. Each attempt re-reads the token.

    Usage:
        scheduler = AudioInferenceScheduler(gate, classifier, engine.apply)
        for frame in framer.push(chunk):
            scheduler.submit(frame)
    """

    def __init__(
        self,
        gate: InferenceGate,
        classifier: Classifier[AudioFrame],
        on_prediction: PredictionCallback,
        retry_delay_s: float = 0.1,
        max_retries: int | None = None,
        console: ConsoleLog | None = None,
        executor: Executor | None = None,
    ) -> None:
        super().__init__(gate, classifier, on_prediction, console=console, executor=executor)
        self._retry_delay_s = retry_delay_s
        self._max_retries = max_retries
        self._pending: set[asyncio.TimerHandle] = set()

    @property
    def pending_retries(self) -> int:
        return len(self._pending)

    def submit(self, frame: AudioFrame, attempt: int = 0) -> bool:
        """
        Deliver a frame. Returns True if inference started now.

        Must be called from the event loop thread.
        """
        if self._closed:
            return False

        if self._gate.try_acquire(self.name):
            self._start(frame, f"frame {frame.frame_id}")
            return True

        if self._max_retries is not None and attempt >= self._max_retries:
            logger.warning(f"Dropping frame {frame.frame_id} after {attempt} busy retries")
            return False

        self._schedule_retry(frame, attempt + 1)
        return False

    def _schedule_retry(self, frame: AudioFrame, attempt: int) -> None:
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle | None = None

        def fire() -> None:
            self._pending.discard(handle)
            self.submit(frame, attempt)

        handle = loop.call_later(self._retry_delay_s, fire)
        self._pending.add(handle)

    def close(self) -> None:
        """Cancel every pending retry. In-flight inference is not awaited."""
        self._closed = True
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()


class TextInferenceQueue(_GatedRunner[str]):
    """
    Text path: unbounded FIFO drained to empty.

    A drain step takes the token and the oldest segment if both are
    available, and is a no-op otherwise. The queue drains again every
    time the token is released and every time a segment is pushed.
    """

    def __init__(
        self,
        gate: InferenceGate,
        classifier: Classifier[str],
        on_prediction: PredictionCallback,
        console: ConsoleLog | None = None,
        executor: Executor | None = None,
    ) -> None:
        super().__init__(gate, classifier, on_prediction, console=console, executor=executor)
        self._queue: deque[str] = deque()
        gate.on_release(self.drain)

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> list[str]:
        return list(self._queue)

    def push(self, segment: str) -> None:
        if self._closed:
            return
        self._queue.append(segment)
        self.drain()

    def drain(self) -> bool:
        """Start classifying the oldest segment if possible. Returns True if one started."""
        if self._closed or not self._queue:
            return False
        if not self._gate.try_acquire(self.name):
            return False

        segment = self._queue.popleft()
        self._start(segment, repr(segment))
        return True

    def close(self) -> None:
        """Clear the queue and stop draining. In-flight inference is not awaited."""
        self._closed = True
        self._queue.clear()
        self._gate.remove_listener(self.drain)
