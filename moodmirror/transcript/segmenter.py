"""
Transcript segmenter.

Accumulates streamed transcript fragments into the utterance currently
being spoken. A segment never spans a silence gap: the buffer is
cleared on every rising edge of the speaking flag.
"""

from __future__ import annotations

import logging
from typing import Callable

from moodmirror.core.console import ConsoleLog, LogCategory

logger = logging.getLogger(__name__)


class Segmenter:
    """
    Speaking-bounded fragment accumulator.

    Every time the in-progress buffer changes and is non-blank, a trimmed
    copy is handed to `sink` (normally TextInferenceQueue.push). The
    segment grows as fragments arrive, so one utterance may be classified
    several times with progressively more text.

    Usage:
        segmenter = Segmenter(queue.push)
        segmenter.speech_started()
        segmenter.add_fragment("great")
        segmenter.add_fragment("job")     # sink receives "great", then "great job"
    """

    def __init__(
        self,
        sink: Callable[[str], None],
        console: ConsoleLog | None = None,
    ) -> None:
        self._sink = sink
        self._console = console
        self._speaking = False
        self._buffer = ""

    @property
    def speaking(self) -> bool:
        return self._speaking

    @property
    def buffer(self) -> str:
        return self._buffer

    def set_speaking(self, speaking: bool) -> None:
        if speaking and not self._speaking:
            self._buffer = ""
        self._speaking = speaking

    def speech_started(self) -> None:
        self.set_speaking(True)

    def speech_stopped(self) -> None:
        self.set_speaking(False)

    def add_fragment(self, fragment: str) -> str | None:
        """
        Append a fragment if the user is speaking.

        Returns the segment handed to the sink, or None.
        """
        if not fragment or not self._speaking:
            return None

        self._buffer = self._buffer + fragment + " "
        segment = self._buffer.strip()
        if not segment:
            return None

        if self._console is not None:
            self._console.add(segment, LogCategory.TRANSCRIPTION)
        self._sink(segment)
        return segment

    def reset(self) -> None:
        self._buffer = ""
        self._speaking = False
