"""
moodmirror Basic Usage Example

Runs a session headless with stand-in models so the whole loop can be
watched without a microphone or model files.
"""

import asyncio
import logging

import numpy as np

from moodmirror import Session, SessionConfig, JIM
from moodmirror.adapters import DictAdapter, RecordingTarget
from moodmirror.sources import NoiseSource


class StandInEmotionModel:
    """Confident 'Angry' for loud windows, flat logits otherwise."""

    def run(self, input_values):
        logits = np.zeros(7, dtype=np.float32)
        if float(np.abs(input_values).max()) > 3.0:
            logits[6] = 4.0
        return logits[np.newaxis, :]


class StandInTokenizer:
    def __call__(self, text):
        ids = np.array([[len(text), text.count("!")]], dtype=np.int64)
        return {"input_ids": ids, "attention_mask": np.ones_like(ids)}


class StandInSentimentModel:
    """Exclamation marks read as negative."""

    def run(self, input_ids, attention_mask):
        exclamations = int(input_ids[0, 1])
        logits = np.array([1.0, 0.0, 3.0 if exclamations else 0.0])
        return logits[np.newaxis, :]


async def main():
    target = RecordingTarget()
    session = Session.from_models(
        StandInEmotionModel(),
        StandInSentimentModel(),
        StandInTokenizer(),
        target,
        profile=JIM,
        config=SessionConfig(),
    )
    adapter = DictAdapter()

    session.start()
    session.clip_finished("Wave_Body")

    print("=" * 60)
    print("Audio path")
    print("=" * 60)
    emitted = await session.run(NoiseSource(amplitude=0.3, duration_ms=4000, seed=7))
    await session.wait_idle()
    print(f"Frames classified: {emitted}")
    print(f"State: {session.state}")

    print("=" * 60)
    print("Text path")
    print("=" * 60)
    session.speech_started()
    for fragment in ("stop", "talking", "over", "me!"):
        session.transcript_fragment(fragment)
    await session.wait_idle()
    session.speech_stopped()
    print(f"State: {session.state}")

    for _ in range(30):
        snapshot = session.tick()
    print(adapter.transform(snapshot))
    print(f"Clips played: {target.clips}")

    session.stop()

    print("=" * 60)
    print("Console")
    print("=" * 60)
    for entry in session.console.entries:
        print(f"[{entry.category.value:>13}] {entry.message}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    asyncio.run(main())
