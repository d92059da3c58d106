"""
Capture session.

Wires both inference paths to one reactive engine:

    capture -> Framer -> gate -> audio classifier -> fuser -> engine
    transcript -> Segmenter -> gate queue -> text classifier -> fuser -> engine

Everything runs on one asyncio event loop. Only the model calls leave
it, one at a time, through the inference gate.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from moodmirror.adapters.base import RenderTarget
from moodmirror.behavior.engine import EngineSnapshot, ReactiveEngine, Scheduler
from moodmirror.behavior.fuser import FusedState, StateFuser
from moodmirror.behavior.reactions import CharacterProfile, JIM, WAVE_GREETING
from moodmirror.benchmark.metrics import LatencyTracker
from moodmirror.classifiers.audio import AudioEmotionClassifier
from moodmirror.classifiers.base import Classifier, EmotionModel, SentimentModel, Tokenizer
from moodmirror.classifiers.text import TextSentimentClassifier
from moodmirror.core.console import ConsoleLog, LogCategory
from moodmirror.core.gate import AudioInferenceScheduler, InferenceGate, TextInferenceQueue
from moodmirror.core.labels import Prediction
from moodmirror.core.stream import AudioConfig, AudioFrame, AudioSource, Framer, StreamingAudioSource
from moodmirror.sources.microphone import CaptureUnavailableError
from moodmirror.transcript.segmenter import Segmenter
from moodmirror.transcript.transport import (
    RealtimeEventRouter,
    TranscriptionConnection,
    TranscriptionLink,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    """Session configuration."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    confidence_threshold: float = 0.60
    retry_delay_ms: int = 100
    max_audio_retries: int | None = None
    audio_only_while_speaking: bool = False
    smoothing: float = 0.1
    speaking_channel: str = "Surprised"
    speaking_floor: float = 0.15
    console_capacity: int = 50
    keepalive_interval_s: float = 10.0
    greeting: bool = True


class Session:
    """
    One capture stream driving one reactive character.

    Usage:
        session = Session.from_models(emotion_model, sentiment_model, tokenizer, rig)

        async def main():
            session.start(MicrophoneSource())
            await session.engine.animate(fps=60)
    """

    def __init__(
        self,
        emotion_classifier: Classifier[AudioFrame],
        sentiment_classifier: Classifier[str],
        target: RenderTarget,
        profile: CharacterProfile = JIM,
        config: SessionConfig | None = None,
        console: ConsoleLog | None = None,
        scheduler: Scheduler | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._config = config or SessionConfig()
        self._console = console if console is not None else ConsoleLog(self._config.console_capacity)
        self._emotion_classifier = emotion_classifier
        self._sentiment_classifier = sentiment_classifier
        self._profile = profile
        self._executor = executor

        self._gate = InferenceGate()
        self._engine = ReactiveEngine(
            profile.reactions,
            target,
            fuser=StateFuser(self._config.confidence_threshold),
            scheduler=scheduler,
            smoothing=self._config.smoothing,
            speaking_channel=self._config.speaking_channel,
            speaking_floor=self._config.speaking_floor,
            greeting=WAVE_GREETING if self._config.greeting else None,
        )

        self._framer = Framer(self._config.audio)
        self._audio: AudioInferenceScheduler | None = None
        self._text: TextInferenceQueue | None = None
        self._segmenter: Segmenter | None = None
        self._source: StreamingAudioSource | None = None
        self._transcription: TranscriptionLink | None = None

        self._generation = 0
        self._active = False
        self._speaking = False
        self._frames_emitted = 0
        self._predictions: list[Prediction] = []

    @classmethod
    def from_models(
        cls,
        emotion_model: EmotionModel,
        sentiment_model: SentimentModel,
        tokenizer: Tokenizer,
        target: RenderTarget,
        profile: CharacterProfile = JIM,
        config: SessionConfig | None = None,
        latency: LatencyTracker | None = None,
        **kwargs,
    ) -> Session:
        """Build both classifiers around raw models, sharing one console."""
        config = config or SessionConfig()
        console = kwargs.pop("console", None)
        if console is None:
            console = ConsoleLog(config.console_capacity)
        emotion = AudioEmotionClassifier(
            emotion_model,
            window_samples=config.audio.window_samples,
            console=console,
            latency=latency,
        )
        sentiment = TextSentimentClassifier(sentiment_model, tokenizer, console=console, latency=latency)
        return cls(emotion, sentiment, target, profile=profile, config=config, console=console, **kwargs)

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def profile(self) -> CharacterProfile:
        return self._profile

    @property
    def console(self) -> ConsoleLog:
        return self._console

    @property
    def gate(self) -> InferenceGate:
        return self._gate

    @property
    def engine(self) -> ReactiveEngine:
        return self._engine

    @property
    def framer(self) -> Framer:
        return self._framer

    @property
    def audio_scheduler(self) -> AudioInferenceScheduler | None:
        return self._audio

    @property
    def text_queue(self) -> TextInferenceQueue | None:
        return self._text

    @property
    def transcription(self) -> TranscriptionLink | None:
        return self._transcription

    @property
    def state(self) -> FusedState:
        return self._engine.state

    @property
    def active(self) -> bool:
        return self._active

    @property
    def speaking(self) -> bool:
        return self._speaking

    @property
    def frames_emitted(self) -> int:
        return self._frames_emitted

    @property
    def predictions(self) -> list[Prediction]:
        """Every prediction applied this session, in completion order."""
        return list(self._predictions)

    def start(self, source: StreamingAudioSource | None = None) -> bool:
        """
        Start the session; must run on the event loop.

        Returns False if the capture source could not be opened. The
        audio path is then disabled but the text path still runs.
        """
        if self._active:
            return True

        self._generation += 1
        self._active = True
        self._frames_emitted = 0
        self._predictions.clear()
        self._console.add("Starting session...")

        deliver = self._make_delivery(self._generation)
        self._framer.reset()
        self._audio = AudioInferenceScheduler(
            self._gate,
            self._emotion_classifier,
            deliver,
            retry_delay_s=self._config.retry_delay_ms / 1000,
            max_retries=self._config.max_audio_retries,
            console=self._console,
            executor=self._executor,
        )
        self._text = TextInferenceQueue(
            self._gate,
            self._sentiment_classifier,
            deliver,
            console=self._console,
            executor=self._executor,
        )
        self._segmenter = Segmenter(self._text.push, console=self._console)
        self._engine.start()

        if source is None:
            return True

        loop = asyncio.get_running_loop()
        try:
            source.start(lambda chunk: loop.call_soon_threadsafe(self.feed_audio, chunk))
        except CaptureUnavailableError as e:
            logger.error(f"Audio path disabled: {e}")
            self._console.add(f"Failed to start microphone: {e}", LogCategory.ERROR)
            return False

        self._source = source
        return True

    def _make_delivery(self, generation: int) -> Callable[[Prediction], None]:
        def deliver(prediction: Prediction) -> None:
            if generation != self._generation or not self._active:
                logger.debug(f"Discarding late {prediction.label.value} from a stopped session")
                return
            self._predictions.append(prediction)
            self._engine.apply(prediction)

        return deliver

    def feed_audio(self, chunk: np.ndarray) -> int:
        """Capture callback. Returns the number of frames emitted."""
        if not self._active or self._audio is None:
            return 0

        frames = self._framer.push(chunk)
        self._frames_emitted += len(frames)
        for frame in frames:
            if self._config.audio_only_while_speaking and not self._speaking:
                continue
            self._audio.submit(frame)
        return len(frames)

    def speech_started(self) -> None:
        self._set_speaking(True)

    def speech_stopped(self) -> None:
        self._set_speaking(False)

    def _set_speaking(self, speaking: bool) -> None:
        self._speaking = speaking
        self._engine.set_speaking(speaking)
        if self._segmenter is not None:
            self._segmenter.set_speaking(speaking)

    def transcript_fragment(self, text: str) -> str | None:
        """Transcription callback. Returns the segment queued, if any."""
        if not self._active or self._segmenter is None:
            return None
        return self._segmenter.add_fragment(text)

    def realtime_router(self) -> RealtimeEventRouter:
        """Router for realtime voice-chat events onto this session's speaking flag."""
        return RealtimeEventRouter(self.speech_started, self.speech_stopped)

    def attach_transcription(self, connection: TranscriptionConnection) -> TranscriptionLink:
        """Bind a transcription socket; its results feed the segmenter."""
        if self._transcription is not None:
            self._transcription.close()
        self._transcription = TranscriptionLink(
            connection,
            self.transcript_fragment,
            keepalive_interval_s=self._config.keepalive_interval_s,
            console=self._console,
        )
        return self._transcription

    def tick(self) -> EngineSnapshot:
        """Render tick."""
        return self._engine.tick()

    def clip_finished(self, clip: str) -> bool:
        """Rig completion callback."""
        return self._engine.animator.clip_finished(clip)

    def stop(self) -> None:
        """
        Tear down synchronously.

        Stops framing, cancels retries, clears the text queue and the
        decay timer. In-flight inferences finish on their own and their
        results are discarded.
        """
        if not self._active:
            return

        self._active = False
        self._generation += 1
        self._console.add("Stopping session...")

        if self._source is not None:
            self._source.close()
            self._source = None
        if self._transcription is not None:
            self._transcription.close()
            self._transcription = None

        self._set_speaking(False)
        self._framer.reset()
        if self._audio is not None:
            self._audio.close()
        if self._text is not None:
            self._text.close()
        if self._segmenter is not None:
            self._segmenter.reset()
        self._engine.stop()

    @property
    def idle(self) -> bool:
        """No inference running, retrying or queued."""
        if self._gate.busy:
            return False
        if self._audio is not None and (self._audio.pending_retries or self._audio.in_flight):
            return False
        if self._text is not None and (len(self._text) or self._text.in_flight):
            return False
        return True

    async def wait_idle(self, timeout: float = 5.0, poll_interval: float = 0.01) -> None:
        """Wait until every submitted frame and segment has been classified."""
        async with asyncio.timeout(timeout):
            while not self.idle:
                await asyncio.sleep(poll_interval)

    async def run(self, source: AudioSource, realtime: bool = False) -> int:
        """
        Feed a chunk source through the audio path.

        With realtime=True chunks are paced at their capture duration.
        Returns the number of frames emitted.
        """
        emitted = 0
        sample_rate = source.config.sample_rate
        try:
            for chunk in source.chunks():
                if not self._active:
                    break
                emitted += self.feed_audio(chunk)
                delay = len(chunk) / sample_rate if realtime else 0
                await asyncio.sleep(delay)
        finally:
            source.close()
        return emitted
