"""Tests for fixed-window framing."""

import numpy as np
import pytest

from moodmirror.core.stream import AudioConfig, AudioFrame, Framer, to_mono

WINDOW = 32000


def push_all(framer, chunks):
    frames = []
    for chunk in chunks:
        frames.extend(framer.push(chunk))
    return frames


class TestFramer:
    @pytest.mark.parametrize("sizes", [
        [32000],
        [10000, 10000, 10000, 2000],
        [50000, 30000, 100],
        [1] * 5 + [96000],
        [31999, 1, 31999],
    ])
    def test_emits_whole_windows_and_keeps_remainder(self, sizes):
        framer = Framer()
        total = sum(sizes)
        ramp = np.arange(total, dtype=np.float32)
        chunks, offset = [], 0
        for size in sizes:
            chunks.append(ramp[offset:offset + size])
            offset += size

        frames = push_all(framer, chunks)

        k, r = divmod(total, WINDOW)
        assert len(frames) == k
        assert framer.buffered == r
        for i, frame in enumerate(frames):
            assert len(frame.data) == WINDOW
            assert frame.frame_id == i
            np.testing.assert_array_equal(frame.data, ramp[i * WINDOW:(i + 1) * WINDOW])

    def test_single_chunk_can_complete_several_frames(self):
        framer = Framer()
        frames = framer.push(np.zeros(3 * WINDOW + 5, dtype=np.float32))
        assert len(frames) == 3
        assert framer.buffered == 5

    def test_timestamps_follow_consumed_samples(self):
        framer = Framer()
        frames = framer.push(np.zeros(2 * WINDOW, dtype=np.float32))
        assert [f.timestamp_ms for f in frames] == [0, 2000]
        assert frames[0].duration_ms == 2000

    def test_stereo_is_downmixed_by_channel_mean(self):
        framer = Framer()
        left = np.full(WINDOW, 0.2, dtype=np.float32)
        right = np.full(WINDOW, 0.6, dtype=np.float32)
        (frame,) = framer.push(np.stack([left, right], axis=1))
        np.testing.assert_allclose(frame.data, 0.4, rtol=1e-6)

    def test_frames_are_read_only(self):
        (frame,) = Framer().push(np.zeros(WINDOW, dtype=np.float32))
        with pytest.raises(ValueError):
            frame.data[0] = 1.0

    def test_frame_does_not_alias_caller_buffer(self):
        chunk = np.zeros(WINDOW, dtype=np.float32)
        (frame,) = Framer().push(chunk)
        chunk[:] = 1.0
        assert frame.peak == 0.0

    def test_empty_chunk(self):
        framer = Framer()
        assert framer.push(np.array([], dtype=np.float32)) == []
        assert framer.buffered == 0

    def test_reset(self):
        framer = Framer()
        framer.push(np.zeros(WINDOW + 10, dtype=np.float32))
        framer.reset()
        assert framer.buffered == 0
        (frame,) = framer.push(np.zeros(WINDOW, dtype=np.float32))
        assert frame.frame_id == 0

    def test_custom_window(self):
        framer = Framer(AudioConfig(window_samples=100))
        assert len(framer.push(np.zeros(250, dtype=np.float32))) == 2
        assert framer.buffered == 50


class TestToMono:
    def test_mono_passthrough(self):
        data = np.array([0.1, 0.2], dtype=np.float32)
        np.testing.assert_array_equal(to_mono(data), data)

    def test_single_column(self):
        data = np.array([[0.1], [0.2]], dtype=np.float32)
        np.testing.assert_allclose(to_mono(data), [0.1, 0.2])

    def test_rejects_3d(self):
        with pytest.raises(ValueError):
            to_mono(np.zeros((2, 2, 2)))


class TestAudioFrame:
    def test_silence(self):
        frame = AudioFrame.silence(0, 0, AudioConfig())
        assert len(frame) == WINDOW
        assert frame.rms == 0.0
        assert frame.peak == 0.0
