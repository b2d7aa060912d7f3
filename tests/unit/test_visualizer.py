"""Unit tests for VisualizationSampler."""

import asyncio
import time

import numpy as np
import pytest
from pubsub import pub

from meetscribe.audio.visualizer import LEVEL_TOPIC, VisualizationSampler
from meetscribe.models.events import AudioEvent


def frame(samples: np.ndarray) -> AudioEvent:
    return AudioEvent(chunk_id="buffer_1", audio_data=samples.astype(np.int16).tobytes(),
                      timestamp=time.time(), sequence_number=1)


@pytest.mark.unit
class TestSampling:
    """Amplitude sampling and scaling."""

    def test_no_audio_yields_silence(self):
        sampler = VisualizationSampler(points=64)

        samples = sampler.sample()

        assert samples.shape == (64,)
        assert not samples.any()

    def test_gain_applied_and_clipped(self):
        sampler = VisualizationSampler(points=4, gain=8.0)
        sampler.feed(frame(np.array([1000, -1000, 16384, -32768])))

        samples = sampler.sample()

        assert samples[0] == pytest.approx(1000 / 32768 * 8)
        assert samples[1] == pytest.approx(-1000 / 32768 * 8)
        assert samples[2] == 1.0
        assert samples[3] == -1.0

    def test_fixed_size_output(self, sample_pcm):
        sampler = VisualizationSampler()
        sampler.feed(AudioEvent(chunk_id="b", audio_data=sample_pcm, timestamp=0.0, sequence_number=1))

        samples = sampler.sample()

        assert samples.shape == (256,)
        assert np.all(np.abs(samples) <= 1.0)


@pytest.mark.unit
class TestFrameLoop:
    """Animation frame scheduling."""

    async def test_publishes_frames_until_suspended(self):
        received = []

        def on_level(samples):
            received.append(samples)

        pub.subscribe(on_level, LEVEL_TOPIC)
        sampler = VisualizationSampler(points=8, frame_interval=0.01)

        sampler.start()
        await asyncio.sleep(0.05)
        sampler.suspend()
        count_at_suspend = len(received)
        await asyncio.sleep(0.05)

        assert count_at_suspend > 0
        assert len(received) == count_at_suspend
        assert sampler.is_suspended is True
        assert sampler.is_running is False

    async def test_resume_restarts_immediately(self):
        sampler = VisualizationSampler(frame_interval=0.01)
        sampler.start()
        sampler.suspend()
        frames = sampler.frames_drawn

        sampler.resume()
        await asyncio.sleep(0)

        assert sampler.is_running is True
        assert sampler.frames_drawn > frames
        sampler.cancel()

    async def test_cancel_ends_loop(self):
        sampler = VisualizationSampler(frame_interval=0.01)
        sampler.start()

        sampler.cancel()
        await asyncio.sleep(0.02)

        assert sampler.is_running is False
        assert sampler.is_suspended is False
