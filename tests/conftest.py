"""Pytest configuration and fixtures for MeetScribe tests."""

import asyncio
import time
import logging
from typing import Callable, Dict, List, Optional

import numpy as np
import pytest
from pubsub import pub

from meetscribe.config import MeetScribeConfig
from meetscribe.errors import AuthenticationRequired, DeviceUnavailable
from meetscribe.models.audio import AudioChunk
from meetscribe.models.events import AudioEvent
from meetscribe.models.transcription import TranscriptSegment
from meetscribe.storage.document_store import FileDocumentStore


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class FakeCapture:
    """Stands in for AudioCapture: same surface, frames pushed by the test."""

    def __init__(self, callback: Callable[[AudioEvent], None], fail_on_start: bool = False):
        self.callback = callback
        self.fail_on_start = fail_on_start
        self.is_recording = False
        self.device_error: Optional[str] = None
        self.total_buffers = 0
        self._paused = False

    @property
    def is_paused(self) -> bool:
        return self._paused

    def is_healthy(self) -> bool:
        return self.is_recording and self.device_error is None

    def start_recording(self) -> None:
        if self.fail_on_start:
            raise DeviceUnavailable("Permission denied by the user")
        self.is_recording = True

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        if self.device_error:
            raise DeviceUnavailable(self.device_error)
        self._paused = False

    def stop_recording(self) -> None:
        self.is_recording = False

    def emit(self, audio_data: bytes) -> None:
        """Deliver one buffer the way the capture thread would (dropped while paused)."""
        if not self.is_recording or self._paused:
            return
        self.total_buffers += 1
        self.callback(AudioEvent(
            chunk_id=f"buffer_{self.total_buffers}",
            audio_data=audio_data,
            timestamp=time.time(),
            sequence_number=self.total_buffers,
        ))


class FakeUploader:
    """Records uploads; each chunk index can fail or wait on a gate."""

    def __init__(self):
        self.uploaded: List[AudioChunk] = []
        self.failures: Dict[int, Exception] = {}
        self.gates: Dict[int, asyncio.Event] = {}

    async def upload(self, chunk: AudioChunk, auth_token: Optional[str]) -> TranscriptSegment:
        if not auth_token:
            raise AuthenticationRequired("Authentication required")
        self.uploaded.append(chunk)
        gate = self.gates.get(chunk.sequence_index)
        if gate is not None:
            await gate.wait()
        if chunk.sequence_index in self.failures:
            raise self.failures[chunk.sequence_index]
        return TranscriptSegment(
            id=f"seg-{chunk.sequence_index}",
            text=f"segment {chunk.sequence_index}",
            is_final=chunk.is_final,
            confidence=0.9,
            recording_time=chunk.recording_time,
            sequence_index=chunk.sequence_index,
            session_id=chunk.session_id,
        )


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop listeners registered during a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir(tmp_path):
    """Temporary directory for test data."""
    return str(tmp_path / "data")


@pytest.fixture
def document_store(temp_data_dir):
    return FileDocumentStore(temp_data_dir)


@pytest.fixture
def client_config(temp_data_dir):
    """Client configuration: WAV chunks, boundaries driven by the test."""
    return MeetScribeConfig.from_dict({
        "audio": {
            "chunk_duration_seconds": 3600,
            "codec_preferences": ["audio/wav"],
        },
        "visualization": {"frame_interval_seconds": 0.01},
        "client": {
            "auth_token": "test-token",
            "drain_timeout_seconds": 2.0,
            "autosave_interval_seconds": 3600,
        },
        "storage": {"data_directory": temp_data_dir},
        "logging": {"console_output": False},
    })


@pytest.fixture
def server_config(temp_data_dir):
    """Development server configuration with instant simulated transcription."""
    return MeetScribeConfig.from_dict({
        "server": {"environment": "development"},
        "transcription": {"simulation_delay_seconds": 0},
        "storage": {"data_directory": temp_data_dir},
    })


@pytest.fixture
def capture_factory():
    """Factory handing FakeCapture instances to the controller; keeps them in ``.created``."""
    created: List[FakeCapture] = []

    def factory(callback):
        capture = FakeCapture(callback)
        created.append(capture)
        return capture

    factory.created = created
    return factory


@pytest.fixture
def fake_uploader():
    return FakeUploader()


@pytest.fixture
def audio_test_data():
    """Generate 16-bit PCM test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=0.1, sample_rate=16000):
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = np.sin(2 * np.pi * 440 * t) * 0.5
        elif pattern == "noise":
            wave_data = np.random.uniform(-1, 1, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        return (wave_data * 32767).astype(np.int16).tobytes()

    return generate_audio


@pytest.fixture
def sample_pcm(audio_test_data):
    """One 1024-frame buffer of a 440 Hz tone."""
    return audio_test_data("sine", duration_seconds=1024 / 16000)


@pytest.fixture
def fake_capture():
    """A started FakeCapture whose frames go nowhere."""
    capture = FakeCapture(lambda event: None)
    capture.start_recording()
    return capture
