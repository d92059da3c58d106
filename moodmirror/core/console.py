"""
Bounded console log.

The user-facing event feed: classifier verdicts, transcriptions,
lifecycle notes and errors. Only the most recent entries are kept.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class LogCategory(str, Enum):
    EMOTION = "emotion"
    SENTIMENT = "sentiment"
    TRANSCRIPTION = "transcription"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class LogEntry:
    message: str
    category: LogCategory = LogCategory.INFO


class ConsoleLog:
    """
    Append-only ring buffer of LogEntry.

    One instance is shared by reference between the components of a
    session. Every entry is mirrored to the standard logging module.

    Usage:
        console = ConsoleLog(capacity=50)
        console.add("Starting session...")
        console.add("Inference completed in 12.3 ms", LogCategory.EMOTION)
    """

    def __init__(self, capacity: int = 50) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._listeners: list[Callable[[LogEntry], None]] = []

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, message: str, category: LogCategory | str = LogCategory.INFO) -> LogEntry:
        entry = LogEntry(message=message, category=LogCategory(category))
        self._entries.append(entry)

        if entry.category == LogCategory.ERROR:
            logger.error(message)
        else:
            logger.info(f"[{entry.category.value}] {message}")

        for listener in self._listeners:
            listener(entry)
        return entry

    def subscribe(self, listener: Callable[[LogEntry], None]) -> ConsoleLog:
        """Register a listener for new entries. Returns self for chaining."""
        self._listeners.append(listener)
        return self

    def by_category(self, category: LogCategory | str) -> list[LogEntry]:
        wanted = LogCategory(category)
        return [e for e in self._entries if e.category == wanted]

    def clear(self) -> None:
        self._entries.clear()
