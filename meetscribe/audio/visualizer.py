"""Amplitude sampler feeding the live level/waveform display."""

import asyncio
import logging
from typing import Optional

import numpy as np
from pubsub import pub

from ..models.events import AudioEvent

logger = logging.getLogger(__name__)

LEVEL_TOPIC = "audio.level"


class VisualizationSampler:
    """Derives a small, redraw-ready amplitude array from the live stream.

    Reads the same stream the encoder consumes; it never owns the device.
    """

    def __init__(self, points: int = 256, gain: float = 8.0,
                 frame_interval: float = 1 / 30, topic: str = LEVEL_TOPIC):
        self.points = points
        self.gain = gain
        self.frame_interval = frame_interval
        self.topic = topic

        self._latest: Optional[np.ndarray] = None
        self._task: Optional[asyncio.Task] = None
        self._suspended = False
        self.frames_drawn = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    def feed(self, event: AudioEvent) -> None:
        """Keep the most recent buffer (normalized to [-1, 1])."""
        if not event.audio_data:
            return
        usable = len(event.audio_data) - (len(event.audio_data) % 2)
        samples = np.frombuffer(event.audio_data[:usable], dtype=np.int16)
        if event.channels > 1:
            samples = samples[::event.channels]
        self._latest = samples.astype(np.float32) / 32768.0

    def sample(self) -> np.ndarray:
        """Return ``points`` amplitudes, amplified by ``gain`` and clipped to [-1, 1]."""
        if self._latest is None or self._latest.size == 0:
            return np.zeros(self.points, dtype=np.float32)
        indices = np.linspace(0, self._latest.size - 1, self.points).astype(int)
        return np.clip(self._latest[indices] * self.gain, -1.0, 1.0)

    def start(self) -> None:
        self._suspended = False
        self._latest = None
        self._schedule()

    def suspend(self) -> None:
        """Stop requesting frames (session paused)."""
        self._suspended = True
        self._cancel_task()

    def resume(self) -> None:
        self._suspended = False
        self._schedule()

    def cancel(self) -> None:
        """Stop for good (teardown)."""
        self._suspended = False
        self._cancel_task()
        self._latest = None

    def _schedule(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._frame_loop())

    def _cancel_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _frame_loop(self) -> None:
        while not self._suspended:
            pub.sendMessage(self.topic, samples=self.sample())
            self.frames_drawn += 1
            await asyncio.sleep(self.frame_interval)
