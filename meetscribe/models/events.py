"""Event models for pub/sub audio processing."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Any, Dict


@dataclass
class AudioEvent:
    """One buffer of raw PCM read from the capture device."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when the buffer was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None
    final: bool = False  # True for the last buffer before the device closes

    def __post_init__(self):
        """Calculate buffer duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass
class SessionEvent:
    """Session lifecycle notification published on the session topics."""
    session_id: Optional[str]
    event_type: str  # "state", "error"
    state: Optional[str] = None
    error: Optional[str] = None
    retryable: bool = False
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
