#!/usr/bin/env python3
"""
moodmirror Microphone Demo

Live emotion mirroring from the default microphone with exported ONNX
models. The character is printed to the terminal instead of rendered.

Usage:
    python examples/microphone_demo.py EMOTION.onnx SENTIMENT.onnx TOKENIZER_DIR

Requires:
    pip install moodmirror[mic,models]

Stop with Ctrl+C.
"""

import argparse
import asyncio
import logging

from moodmirror import Session, SessionConfig
from moodmirror.adapters import RecordingTarget
from moodmirror.behavior import get_profile
from moodmirror.benchmark import LatencyTracker
from moodmirror.classifiers.backends import HuggingFaceTokenizer, OnnxEmotionModel, OnnxSentimentModel
from moodmirror.sources import MicrophoneSource


def color(text: str, code: int) -> str:
    return f"\033[{code}m{text}\033[0m"


def render(session: Session, target: RecordingTarget) -> None:
    bars = "  ".join(
        f"{channel}={'#' * int(weight * 10):<10}"
        for channel, weight in sorted(target.expression.items())
    )
    mood = color(str(session.state), 36)
    print(f"\r{mood}  {bars}", end="", flush=True)


async def main(args: argparse.Namespace) -> None:
    target = RecordingTarget()
    latency = LatencyTracker(budget_ms=500.0)
    session = Session.from_models(
        OnnxEmotionModel(args.emotion_model),
        OnnxSentimentModel(args.sentiment_model),
        HuggingFaceTokenizer(args.tokenizer),
        target,
        profile=get_profile(args.character),
        config=SessionConfig(),
        latency=latency,
    )

    if not session.start(MicrophoneSource(channels=args.channels, device=args.device)):
        print(color("Microphone unavailable, see console log", 31))
        return

    # Treat the whole run as one utterance so speaking animation is visible.
    session.speech_started()
    try:
        while True:
            session.tick()
            render(session, target)
            await asyncio.sleep(1 / 30)
    finally:
        session.stop()
        print()
        for name, stats in latency.get_all_stats().items():
            print(f"{name}: mean {stats['mean_ms']:.1f} ms, p95 {stats['p95_ms']:.1f} ms")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("emotion_model")
    parser.add_argument("sentiment_model")
    parser.add_argument("tokenizer")
    parser.add_argument("--character", default="jim")
    parser.add_argument("--channels", type=int, default=1)
    parser.add_argument("--device", default=None)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")
    try:
        asyncio.run(main(parser.parse_args()))
    except KeyboardInterrupt:
        pass
