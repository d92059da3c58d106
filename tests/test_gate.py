"""Tests for the inference gate and both scheduling paths."""

import asyncio
import logging

import numpy as np
import pytest

from moodmirror.classifiers import AudioEmotionClassifier, TextSentimentClassifier
from moodmirror.core.console import ConsoleLog, LogCategory
from moodmirror.core.gate import AudioInferenceScheduler, InferenceGate, TextInferenceQueue
from moodmirror.core.labels import Emotion, Sentiment
from moodmirror.core.stream import AudioConfig, AudioFrame

from conftest import ConcurrencyProbe, FakeTokenizer, ScriptedSentimentModel, logits_for


def make_frame(frame_id=0):
    return AudioFrame(np.zeros(32000, dtype=np.float32), frame_id, frame_id * 2000, AudioConfig())


class ProbedEmotionModel:
    def __init__(self, probe):
        self.probe = probe
        self.calls = 0

    def run(self, input_values):
        with self.probe:
            self.calls += 1
            return logits_for(0, 0.9, 7)[np.newaxis, :]


class ProbedSentimentModel(ScriptedSentimentModel):
    def __init__(self, probe, fail_on=()):
        super().__init__({})
        self.probe = probe
        self.fail_on = set(fail_on)

    def run(self, input_ids, attention_mask):
        with self.probe:
            result = super().run(input_ids, attention_mask)
            if self.seen[-1] in self.fail_on:
                raise RuntimeError(f"cannot classify {self.seen[-1]!r}")
            return result


async def settle(gate, *runners, timeout=5.0):
    async with asyncio.timeout(timeout):
        while True:
            await asyncio.sleep(0.005)
            if gate.busy:
                continue
            if any(r.in_flight for r in runners):
                continue
            if any(getattr(r, "pending_retries", 0) for r in runners):
                continue
            if any(len(r) for r in runners if isinstance(r, TextInferenceQueue)):
                continue
            return


class TestInferenceGate:
    def test_exclusive(self):
        gate = InferenceGate()
        assert gate.try_acquire("emotion")
        assert not gate.try_acquire("sentiment")
        assert gate.holder == "emotion"
        gate.release()
        assert not gate.busy
        assert gate.try_acquire("sentiment")
        assert gate.acquisitions == 2

    def test_release_notifies_listeners(self):
        gate = InferenceGate()
        calls = []
        gate.on_release(lambda: calls.append(gate.busy))
        gate.try_acquire("emotion")
        gate.release()
        assert calls == [False]

    def test_release_while_free_warns(self, caplog):
        gate = InferenceGate()
        calls = []
        gate.on_release(lambda: calls.append(1))
        with caplog.at_level(logging.WARNING):
            gate.release()
        assert "not held" in caplog.text
        assert calls == []

    def test_remove_listener(self):
        gate = InferenceGate()
        calls = []
        listener = lambda: calls.append(1)
        gate.on_release(listener).remove_listener(listener)
        gate.try_acquire("x")
        gate.release()
        assert calls == []


class TestAtMostOneInFlight:
    def test_audio_and_text_never_overlap(self):
        probe = ConcurrencyProbe(delay_s=0.005)
        emotion_model = ProbedEmotionModel(probe)
        sentiment_model = ProbedSentimentModel(probe)

        async def scenario():
            gate = InferenceGate()
            results = []
            audio = AudioInferenceScheduler(
                gate, AudioEmotionClassifier(emotion_model), results.append, retry_delay_s=0.002,
            )
            text = TextInferenceQueue(
                gate, TextSentimentClassifier(sentiment_model, FakeTokenizer()), results.append,
            )
            for i in range(6):
                audio.submit(make_frame(i))
                text.push(f"segment {i}")
                await asyncio.sleep(0.001)
            await settle(gate, audio, text)
            return results

        results = asyncio.run(scenario())

        assert probe.max_seen == 1
        assert emotion_model.calls == 6
        assert len(sentiment_model.seen) == 6
        assert len(results) == 12


class TestTextInferenceQueue:
    def test_fifo_drain_after_release(self):
        model = ScriptedSentimentModel({})

        async def scenario():
            gate = InferenceGate()
            text = TextInferenceQueue(gate, TextSentimentClassifier(model, FakeTokenizer()), lambda p: None)
            gate.try_acquire("emotion")
            for segment in ("one", "one two", "one two three"):
                text.push(segment)
            queued = len(text)
            assert model.seen == []
            gate.release()
            await settle(gate, text)
            return queued

        assert asyncio.run(scenario()) == 3
        assert model.seen == ["one", "one two", "one two three"]

    def test_failure_releases_token_and_drops_segment(self):
        probe = ConcurrencyProbe(delay_s=0)
        model = ProbedSentimentModel(probe, fail_on={"bad"})
        console = ConsoleLog()
        delivered = []

        async def scenario():
            gate = InferenceGate()
            text = TextInferenceQueue(
                gate, TextSentimentClassifier(model, FakeTokenizer()), delivered.append, console=console,
            )
            text.push("bad")
            text.push("good")
            await settle(gate, text)
            return gate.busy

        assert asyncio.run(scenario()) is False
        assert model.seen == ["bad", "good"]
        assert len(delivered) == 1
        (error,) = console.by_category(LogCategory.ERROR)
        assert "cannot classify" in error.message

    def test_close_clears_queue(self):
        model = ScriptedSentimentModel({})

        async def scenario():
            gate = InferenceGate()
            text = TextInferenceQueue(gate, TextSentimentClassifier(model, FakeTokenizer()), lambda p: None)
            gate.try_acquire("emotion")
            text.push("never")
            text.close()
            gate.release()
            text.push("also never")
            await asyncio.sleep(0.02)
            return len(text), gate.busy

        assert asyncio.run(scenario()) == (0, False)
        assert model.seen == []


class TestAudioInferenceScheduler:
    def test_starts_immediately_when_free(self):
        probe = ConcurrencyProbe(delay_s=0)
        model = ProbedEmotionModel(probe)
        delivered = []

        async def scenario():
            gate = InferenceGate()
            audio = AudioInferenceScheduler(gate, AudioEmotionClassifier(model), delivered.append)
            started = audio.submit(make_frame())
            await settle(gate, audio)
            return started

        assert asyncio.run(scenario()) is True
        assert [p.label for p in delivered] == [Emotion.HAPPY]

    def test_busy_frame_is_retried_until_free(self):
        probe = ConcurrencyProbe(delay_s=0)
        model = ProbedEmotionModel(probe)

        async def scenario():
            gate = InferenceGate()
            audio = AudioInferenceScheduler(gate, AudioEmotionClassifier(model), lambda p: None, retry_delay_s=0.01)
            gate.try_acquire("sentiment")
            assert audio.submit(make_frame()) is False
            assert audio.pending_retries == 1
            await asyncio.sleep(0.05)
            still_waiting = audio.pending_retries == 1 and model.calls == 0
            gate.release()
            await settle(gate, audio)
            return still_waiting

        assert asyncio.run(scenario()) is True
        assert model.calls == 1

    def test_max_retries_drops_frame(self):
        probe = ConcurrencyProbe(delay_s=0)
        model = ProbedEmotionModel(probe)

        async def scenario():
            gate = InferenceGate()
            audio = AudioInferenceScheduler(
                gate, AudioEmotionClassifier(model), lambda p: None, retry_delay_s=0.005, max_retries=2,
            )
            gate.try_acquire("sentiment")
            audio.submit(make_frame())
            await asyncio.sleep(0.1)
            pending = audio.pending_retries
            gate.release()
            await asyncio.sleep(0.02)
            return pending

        assert asyncio.run(scenario()) == 0
        assert model.calls == 0

    def test_close_cancels_retries(self):
        probe = ConcurrencyProbe(delay_s=0)
        model = ProbedEmotionModel(probe)

        async def scenario():
            gate = InferenceGate()
            audio = AudioInferenceScheduler(gate, AudioEmotionClassifier(model), lambda p: None, retry_delay_s=0.005)
            gate.try_acquire("sentiment")
            audio.submit(make_frame())
            audio.close()
            gate.release()
            await asyncio.sleep(0.05)
            return audio.pending_retries, audio.submit(make_frame(1))

        assert asyncio.run(scenario()) == (0, False)
        assert model.calls == 0

    def test_result_after_close_is_discarded(self):
        probe = ConcurrencyProbe(delay_s=0.02)
        model = ProbedEmotionModel(probe)
        delivered = []

        async def scenario():
            gate = InferenceGate()
            audio = AudioInferenceScheduler(gate, AudioEmotionClassifier(model), delivered.append)
            audio.submit(make_frame())
            audio.close()
            await settle(gate, audio)

        asyncio.run(scenario())
        assert model.calls == 1
        assert delivered == []

    def test_failure_releases_token(self):
        class Broken:
            def run(self, input_values):
                raise RuntimeError("model crashed")

        console = ConsoleLog()

        async def scenario():
            gate = InferenceGate()
            audio = AudioInferenceScheduler(gate, AudioEmotionClassifier(Broken()), lambda p: None, console=console)
            audio.submit(make_frame())
            await settle(gate, audio)
            return gate.busy, gate.acquisitions

        assert asyncio.run(scenario()) == (False, 1)
        assert console.by_category(LogCategory.ERROR)[0].message == "Emotion inference failed: model crashed"
