"""Text path: transcript segmentation and transport glue."""

from moodmirror.transcript.segmenter import Segmenter
from moodmirror.transcript.transport import (
    RealtimeEventRouter,
    TranscriptionConnection,
    TranscriptionLink,
    extract_transcript,
)

__all__ = [
    "Segmenter",
    "RealtimeEventRouter",
    "TranscriptionConnection",
    "TranscriptionLink",
    "extract_transcript",
]
