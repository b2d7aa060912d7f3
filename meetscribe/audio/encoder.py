"""Chunk encoder: cuts continuous PCM into bounded, encoded audio chunks."""

import io
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import numpy as np
import soundfile as sf

from ..errors import ChunkEncodingFailed, DeviceUnavailable, EncodingRestartFailed
from ..models.audio import AudioChunk
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)

OPUS_SAMPLE_RATES = (8000, 12000, 16000, 24000, 48000)


@dataclass(frozen=True)
class Codec:
    """A container/codec pair the encoder can produce."""
    mime_type: str
    format: str
    subtype: str

    def is_supported(self, sample_rate: int) -> bool:
        """Ask libsndfile whether this pair can be written at ``sample_rate``."""
        if self.subtype == "OPUS" and sample_rate not in OPUS_SAMPLE_RATES:
            return False
        if self.format not in sf.available_formats():
            return False
        if self.subtype not in sf.available_subtypes(self.format):
            return False
        return sf.check_format(self.format, self.subtype)


KNOWN_CODECS = {
    "audio/ogg;codecs=opus": Codec("audio/ogg;codecs=opus", "OGG", "OPUS"),
    "audio/flac": Codec("audio/flac", "FLAC", "PCM_16"),
    "audio/wav": Codec("audio/wav", "WAV", "PCM_16"),
}

DEFAULT_CODEC_PREFERENCES = ("audio/ogg;codecs=opus", "audio/flac", "audio/wav")


def select_codec(preferences: Sequence[str], sample_rate: int) -> Codec:
    """Return the first supported codec from a preference-ordered list.

    Raises:
        ValueError: if none of the preferred codecs can be written
    """
    for mime_type in preferences:
        codec = KNOWN_CODECS.get(mime_type)
        if codec is None:
            logger.warning(f"Unknown codec in preferences: {mime_type}")
            continue
        if codec.is_supported(sample_rate):
            return codec
        logger.info(f"Codec {mime_type} not supported at {sample_rate}Hz, trying next")
    raise ValueError(f"No supported codec among: {', '.join(preferences)}")


class ChunkEncoder:
    """Accumulates PCM buffers and emits an encoded AudioChunk at each boundary.

    The boundary timer lives in the session controller; the encoder only
    knows how to close the current window (``flush``) and open the next one
    (``restart``).
    """

    def __init__(self,
                 on_chunk: Callable[[AudioChunk], None],
                 sample_rate: int = 16000,
                 channels: int = 1,
                 codec_preferences: Sequence[str] = DEFAULT_CODEC_PREFERENCES):
        self.on_chunk = on_chunk
        self.sample_rate = sample_rate
        self.channels = channels
        self.codec_preferences = tuple(codec_preferences)

        self.codec: Optional[Codec] = None
        self.session_id = ""
        self._capture = None
        self._window: List[bytes] = []
        self._next_index = 0
        self._suspended = False
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    @property
    def buffered_pcm(self) -> bytes:
        """Raw PCM held for the current window."""
        return b"".join(self._window)

    @property
    def next_sequence_index(self) -> int:
        return self._next_index

    def start(self, capture, session_id: str = "") -> None:
        """Begin encoding audio delivered from ``capture``.

        Args:
            capture: The live capture device (read-only use: health checks)
            session_id: Stamped onto every emitted chunk

        Raises:
            DeviceUnavailable: if the capture device is not delivering audio
        """
        if not capture.is_healthy():
            raise DeviceUnavailable("Capture device is not recording")
        self.codec = select_codec(self.codec_preferences, self.sample_rate)
        self._capture = capture
        self.session_id = session_id
        self._window = []
        self._next_index = 0
        self._suspended = False
        self._running = True
        logger.info(f"ChunkEncoder started: codec={self.codec.mime_type}, "
                    f"{self.sample_rate}Hz, {self.channels} channel(s)")

    def add_frame(self, event: AudioEvent, late: bool = False) -> None:
        """Append one captured buffer to the current window.

        ``late`` frames were captured before a pause or stop but delivered
        after it; they still belong to the open window.
        """
        if not self._running or not event.audio_data:
            return
        if self._suspended and not late:
            return
        self._window.append(event.audio_data)

    def pause(self) -> None:
        """Stop accepting audio, holding the partial window as-is."""
        self._suspended = True

    def resume(self) -> None:
        self._suspended = False

    def flush(self, is_final: bool = False, recording_time: int = 0) -> Optional[AudioChunk]:
        """Close the current window into a chunk and hand it to ``on_chunk``.

        Returns:
            The emitted chunk, or None when the window held no audio

        Raises:
            ChunkEncodingFailed: if the codec library rejects the window
        """
        if not self._running:
            return None

        pcm = self.buffered_pcm
        self._window = []
        if not pcm:
            logger.debug(f"Boundary with empty window (final={is_final}), nothing emitted")
            return None

        blob = self._encode(pcm)
        if not blob:
            logger.warning("Encoder produced an empty blob, chunk discarded")
            return None

        chunk = AudioChunk(
            blob=blob,
            mime_type=self.codec.mime_type,
            sequence_index=self._next_index,
            is_final=is_final,
            session_id=self.session_id,
            recording_time=recording_time,
        )
        self._next_index += 1
        logger.debug(f"Chunk {chunk.sequence_index} ready: {chunk.size} bytes "
                     f"({len(pcm)} PCM bytes), final={is_final}")
        self.on_chunk(chunk)
        return chunk

    def restart(self) -> None:
        """Open the next window right after a boundary.

        Raises:
            EncodingRestartFailed: if the device stopped delivering audio
        """
        if not self._running:
            raise EncodingRestartFailed("Encoder is not running")
        if self._capture is None or not self._capture.is_healthy():
            error = getattr(self._capture, "device_error", None) or "capture device is gone"
            raise EncodingRestartFailed(f"Cannot restart encoding: {error}")
        self._window = []

    def stop(self, recording_time: int = 0) -> Optional[AudioChunk]:
        """Flush the last window as the final chunk and release the encoder."""
        if not self._running:
            return None
        self._suspended = False
        try:
            return self.flush(is_final=True, recording_time=recording_time)
        finally:
            self.release()

    def release(self) -> None:
        self._running = False
        self._capture = None
        self._window = []

    def _encode(self, pcm: bytes) -> bytes:
        # Trailing odd byte cannot form a 16-bit sample
        usable = len(pcm) - (len(pcm) % (2 * self.channels))
        samples = np.frombuffer(pcm[:usable], dtype=np.int16)
        if self.channels > 1:
            samples = samples.reshape(-1, self.channels)
        buffer = io.BytesIO()
        try:
            sf.write(buffer, samples, self.sample_rate,
                     format=self.codec.format, subtype=self.codec.subtype)
        except (RuntimeError, OSError, ValueError) as e:
            logger.error(f"Encoding {len(pcm)} PCM bytes as {self.codec.mime_type} failed: {e}")
            raise ChunkEncodingFailed(f"Could not encode chunk as {self.codec.mime_type}: {e}") from e
        return buffer.getvalue()
