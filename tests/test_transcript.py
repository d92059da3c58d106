"""Tests for transcript segmentation and transport glue."""

import asyncio
import json

from moodmirror.core.console import ConsoleLog, LogCategory
from moodmirror.transcript import (
    RealtimeEventRouter,
    Segmenter,
    TranscriptionLink,
    extract_transcript,
)
from moodmirror.transcript.transport import SPEECH_STARTED_EVENT, SPEECH_STOPPED_EVENT


def result(transcript):
    return {"type": "Results", "channel": {"alternatives": [{"transcript": transcript}]}}


class FakeConnection:
    def __init__(self, is_open=True):
        self.is_open = is_open
        self.sent = []
        self.keepalives = 0
        self.closed = False

    def send(self, payload):
        self.sent.append(payload)

    def keep_alive(self):
        self.keepalives += 1

    def close(self):
        self.closed = True
        self.is_open = False


class TestSegmenter:
    def test_accumulates_while_speaking(self):
        segments = []
        segmenter = Segmenter(segments.append)
        segmenter.speech_started()
        segmenter.add_fragment("great")
        segmenter.add_fragment("job")
        assert segments == ["great", "great job"]

    def test_ignores_fragments_while_silent(self):
        segments = []
        segmenter = Segmenter(segments.append)
        assert segmenter.add_fragment("hello") is None
        assert segments == []

    def test_rising_edge_clears_buffer(self):
        segments = []
        segmenter = Segmenter(segments.append)
        segmenter.speech_started()
        segmenter.add_fragment("first")
        segmenter.speech_stopped()
        segmenter.speech_started()
        segmenter.add_fragment("second")
        assert segments == ["first", "second"]

    def test_repeated_start_keeps_buffer(self):
        segments = []
        segmenter = Segmenter(segments.append)
        segmenter.speech_started()
        segmenter.add_fragment("still")
        segmenter.speech_started()
        segmenter.add_fragment("going")
        assert segments[-1] == "still going"

    def test_blank_fragment_not_sent(self):
        segments = []
        segmenter = Segmenter(segments.append)
        segmenter.speech_started()
        assert segmenter.add_fragment("   ") is None
        assert segmenter.add_fragment("") is None
        assert segments == []

    def test_logs_transcription(self):
        console = ConsoleLog()
        segmenter = Segmenter(lambda s: None, console=console)
        segmenter.speech_started()
        segmenter.add_fragment("hi there")
        assert [e.message for e in console.by_category(LogCategory.TRANSCRIPTION)] == ["hi there"]


class TestRealtimeEventRouter:
    def test_routes_speaking_edges(self):
        edges = []
        router = RealtimeEventRouter(lambda: edges.append("start"), lambda: edges.append("stop"))

        assert router.handle(json.dumps({"type": SPEECH_STARTED_EVENT})) == SPEECH_STARTED_EVENT
        assert router.handle({"type": SPEECH_STOPPED_EVENT}) == SPEECH_STOPPED_EVENT
        assert edges == ["start", "stop"]

    def test_ignores_other_events(self):
        edges = []
        router = RealtimeEventRouter(lambda: edges.append("start"), lambda: edges.append("stop"))
        assert router.handle({"type": "input_audio_buffer.speech_stopped"}) is None
        assert router.handle("not json") is None
        assert router.handle("[1, 2]") is None
        assert edges == []


class TestExtractTranscript:
    def test_top_alternative(self):
        assert extract_transcript(result("hello")) == "hello"

    def test_malformed(self):
        assert extract_transcript({}) == ""
        assert extract_transcript({"channel": {"alternatives": []}}) == ""
        assert extract_transcript({"channel": {"alternatives": [{"transcript": None}]}}) == ""


class TestTranscriptionLink:
    def test_forwards_while_open(self):
        connection = FakeConnection()
        link = TranscriptionLink(connection, lambda t: None)
        assert link.forward_audio(b"\x00\x01")
        assert connection.sent == [b"\x00\x01"]

    def test_drops_when_closed(self, caplog):
        connection = FakeConnection(is_open=False)
        link = TranscriptionLink(connection, lambda t: None)
        assert not link.forward_audio(b"\x00")
        assert not link.forward_audio(b"\x00")
        assert connection.sent == []
        assert link.dropped_chunks == 2
        assert "dropping audio chunk" in caplog.text

    def test_results_reach_fragment_callback(self):
        fragments = []
        link = TranscriptionLink(FakeConnection(), fragments.append)
        assert link.handle_message(json.dumps(result("nice"))) == "nice"
        assert link.handle_message(result("")) is None
        assert link.handle_message({"type": "Metadata"}) is None
        assert fragments == ["nice"]

    def test_error_goes_to_console(self):
        console = ConsoleLog()
        link = TranscriptionLink(FakeConnection(), lambda t: None, console=console)
        link.handle_error("socket reset")
        assert console.by_category(LogCategory.ERROR)[0].message == "Transcription error: socket reset"

    def test_keepalive_while_open(self):
        connection = FakeConnection()

        async def scenario():
            link = TranscriptionLink(connection, lambda t: None, keepalive_interval_s=0.01)
            link.opened()
            await asyncio.sleep(0.055)
            link.close()

        asyncio.run(scenario())
        assert connection.keepalives >= 2
        assert connection.closed
