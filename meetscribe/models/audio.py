"""Audio-related data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    is_paused: bool
    duration_seconds: float
    sample_rate: int
    frames_per_buffer: int
    total_buffers: int


@dataclass
class AudioChunk:
    """A bounded slice of encoded audio, ready for upload."""
    blob: bytes
    mime_type: str
    sequence_index: int
    is_final: bool = False
    session_id: str = ""
    recording_time: int = 0  # Elapsed session seconds at emission
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def size(self) -> int:
        return len(self.blob)

    @property
    def file_extension(self) -> str:
        subtype = self.mime_type.split(';')[0].split('/')[-1]
        return subtype or "bin"
