"""Microphone capture on a background thread, with pause/resume support."""

import pyaudio
import time
import logging
from threading import Thread, Event
from typing import Optional, Callable
from datetime import datetime

from ..errors import DeviceUnavailable
from ..models.audio import AudioStats
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous PCM capture that hands each buffer to a callback.

    The callback runs on the capture thread; consumers living on an event loop
    must hop threads themselves.
    """

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        sample_rate: int = 16000,
        frames_per_buffer: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        input_device_index: Optional[int] = None,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            callback: Receives every captured buffer as an AudioEvent
            sample_rate: Audio sample rate
            frames_per_buffer: Number of frames read per buffer
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
            input_device_index: PyAudio device index, None for the default input
        """
        self.audio_event_callback = callback
        self.sample_rate = sample_rate
        self.frames_per_buffer = frames_per_buffer
        self.channels = channels
        self.format = format
        self.input_device_index = input_device_index

        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.pause_event = Event()
        self.is_recording = False
        self.device_error: Optional[str] = None

        self.start_time: Optional[datetime] = None
        self.total_buffers = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream: Optional[pyaudio.Stream] = None

    @property
    def is_paused(self) -> bool:
        return self.pause_event.is_set()

    def is_healthy(self) -> bool:
        """True while the device is open and the reader thread has not failed."""
        return self.is_recording and self.device_error is None and (
            self.recording_thread is not None and self.recording_thread.is_alive()
        )

    def start_recording(self) -> None:
        """Open the device and start reading in a background thread.

        Raises:
            DeviceUnavailable: if the input device cannot be opened
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info("Starting audio recording")
        self.stop_event.clear()
        self.pause_event.clear()
        self.device_error = None
        self.stream = self.__open_audio_stream()
        self.start_time = datetime.now()
        self.total_buffers = 0

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_recording = True

    def pause(self) -> None:
        """Suspend the device stream; buffers stop flowing until resume()."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return
        self.pause_event.set()
        logger.info("Audio capture paused")

    def resume(self) -> None:
        """Reactivate a paused stream.

        Raises:
            DeviceUnavailable: if the device failed while paused
        """
        if not self.is_recording:
            logger.warning("No recording in progress")
            return
        if self.device_error:
            raise DeviceUnavailable(self.device_error)
        self.pause_event.clear()
        logger.info("Audio capture resumed")

    def stop_recording(self) -> None:
        """Stop recording and release the device."""
        if not self.is_recording:
            logger.warning("No recording in progress")
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()
        self.pause_event.clear()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Recording stopped. Total buffers: {self.total_buffers}")

    def __open_audio_stream(self) -> pyaudio.Stream:
        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=None
            )
        except (OSError, ValueError) as e:
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None
            raise DeviceUnavailable(f"Cannot open input device: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.frames_per_buffer} frames/buffer")
        return stream

    def __read_audio_buffer(self, stream: pyaudio.Stream) -> bytes:
        audio_buffer = stream.read(
            self.frames_per_buffer,
            exception_on_overflow=False
        )
        self.total_buffers += 1
        return audio_buffer

    def __publish_audio_event(self, audio_buffer: bytes) -> None:
        audio_event = AudioEvent(
            chunk_id=f"buffer_{self.total_buffers}",
            audio_data=audio_buffer,
            timestamp=time.time(),
            sequence_number=self.total_buffers,
            sample_rate=self.sample_rate,
            channels=self.channels,
        )
        self.audio_event_callback(audio_event)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        stream = self.stream
        try:
            while not self.stop_event.is_set():
                if self.pause_event.is_set():
                    if stream.is_active():
                        stream.stop_stream()
                    self.stop_event.wait(0.05)
                    continue
                if stream.is_stopped():
                    # Some host APIs leave the stream dormant after a stop
                    stream.start_stream()
                audio_buffer = self.__read_audio_buffer(stream)
                self.__publish_audio_event(audio_buffer)
        except OSError as e:
            self.device_error = f"Audio device error: {e}"
            logger.error(self.device_error)
        finally:
            try:
                if stream.is_active():
                    stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
            self.stream = None
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            is_paused=self.is_paused,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            frames_per_buffer=self.frames_per_buffer,
            total_buffers=self.total_buffers,
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if self.is_recording:
            self.stop_recording()
