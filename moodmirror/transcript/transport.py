"""
Transport glue.

Two external services feed the text path:
- the realtime voice-chat transport, whose events mark when the user
  starts and stops speaking
- the streaming transcription service, which returns text fragments

Both are consumed through small protocols. Credential issuance and the
sockets themselves live outside this package.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from moodmirror.core.console import ConsoleLog, LogCategory

logger = logging.getLogger(__name__)


# Realtime transport event types
SPEECH_STARTED_EVENT = "input_audio_buffer.speech_started"
# The transport's own speech_stopped fires on mid-utterance pauses; the
# first content part of the reply marks the real end of the user's turn.
SPEECH_STOPPED_EVENT = "response.content_part.added"


def _decode(message: str | bytes | Mapping[str, Any]) -> Mapping[str, Any] | None:
    if isinstance(message, Mapping):
        return message
    try:
        decoded = json.loads(message)
    except (TypeError, ValueError) as e:
        logger.warning(f"Ignoring undecodable transport message: {e}")
        return None
    return decoded if isinstance(decoded, Mapping) else None


class RealtimeEventRouter:
    """
    Maps realtime voice-chat events onto speaking edges.

    Usage:
        router = RealtimeEventRouter(session.speech_started, session.speech_stopped)
        data_channel.on_message(router.handle)
    """

    def __init__(
        self,
        on_speech_started: Callable[[], None],
        on_speech_stopped: Callable[[], None],
    ) -> None:
        self._on_speech_started = on_speech_started
        self._on_speech_stopped = on_speech_stopped

    def handle(self, message: str | bytes | Mapping[str, Any]) -> str | None:
        """Dispatch one event. Returns the event type if it was acted on."""
        event = _decode(message)
        if event is None:
            return None

        event_type = event.get("type")
        if event_type == SPEECH_STARTED_EVENT:
            self._on_speech_started()
            return event_type
        if event_type == SPEECH_STOPPED_EVENT:
            self._on_speech_stopped()
            return event_type
        return None


@runtime_checkable
class TranscriptionConnection(Protocol):
    """Live transcription socket."""

    @property
    def is_open(self) -> bool:
        ...

    def send(self, payload: bytes) -> None:
        ...

    def keep_alive(self) -> None:
        ...

    def close(self) -> None:
        ...


def extract_transcript(message: Mapping[str, Any]) -> str:
    """Top alternative of a live transcription result, or ''."""
    try:
        transcript = message["channel"]["alternatives"][0]["transcript"]
    except (KeyError, IndexError, TypeError):
        return ""
    return transcript if isinstance(transcript, str) else ""


class TranscriptionLink:
    """
    Bridges capture audio and transcript results to a transcription socket.

    Audio is forwarded only while the socket is open; otherwise the chunk
    is dropped with a warning and never retried. While open, a keep-alive
    is sent every `keepalive_interval_s`.
    """

    def __init__(
        self,
        connection: TranscriptionConnection,
        on_fragment: Callable[[str], Any],
        keepalive_interval_s: float = 10.0,
        console: ConsoleLog | None = None,
    ) -> None:
        self._connection = connection
        self._on_fragment = on_fragment
        self._keepalive_interval_s = keepalive_interval_s
        self._console = console
        self._keepalive_task: asyncio.Task | None = None
        self._dropped = 0

    @property
    def is_open(self) -> bool:
        return self._connection.is_open

    @property
    def dropped_chunks(self) -> int:
        return self._dropped

    def forward_audio(self, payload: bytes) -> bool:
        """Send an encoded audio chunk. Returns False if it was dropped."""
        if not self._connection.is_open:
            self._dropped += 1
            logger.warning("Transcription socket not open, dropping audio chunk")
            return False
        try:
            self._connection.send(payload)
        except Exception as e:
            self._dropped += 1
            logger.warning(f"Transcription send failed, dropping audio chunk: {e}")
            return False
        return True

    def handle_message(self, message: str | bytes | Mapping[str, Any]) -> str | None:
        """Route one transcription result. Returns the fragment if any."""
        result = _decode(message)
        if result is None:
            return None
        if result.get("type") not in (None, "Results"):
            return None

        transcript = extract_transcript(result)
        if not transcript:
            return None
        self._on_fragment(transcript)
        return transcript

    def handle_error(self, error: Any) -> None:
        logger.error(f"Transcription error: {error}")
        if self._console is not None:
            self._console.add(f"Transcription error: {error}", LogCategory.ERROR)

    def opened(self) -> None:
        """Call once the socket reports open. Starts the keep-alive loop."""
        if self._keepalive_task is None or self._keepalive_task.done():
            self._keepalive_task = asyncio.get_running_loop().create_task(self._keepalive())

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self._keepalive_interval_s)
            if not self._connection.is_open:
                return
            try:
                self._connection.keep_alive()
            except Exception as e:
                logger.warning(f"Transcription keep-alive failed: {e}")

    def close(self) -> None:
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
            self._keepalive_task = None
        try:
            self._connection.close()
        except Exception as e:
            logger.warning(f"Error closing transcription socket: {e}")
