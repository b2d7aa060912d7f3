"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class TranscriptSegment:
    """The transcription of one audio chunk. Never mutated after creation."""
    id: str
    text: str
    timestamp: str = field(default_factory=utc_now_iso)
    is_final: bool = False
    confidence: float = 0.0
    is_error_fallback: bool = False
    recording_time: int = 0
    sequence_index: Optional[int] = None
    error_detail: Optional[str] = None
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys of the session document."""
        data = {
            "id": self.id,
            "text": self.text,
            "timestamp": self.timestamp,
            "isFinal": self.is_final,
            "confidence": self.confidence,
            "isErrorFallback": self.is_error_fallback,
            "recordingTime": self.recording_time,
        }
        if self.sequence_index is not None:
            data["sequenceIndex"] = self.sequence_index
        if self.error_detail:
            data["errorDetail"] = self.error_detail
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptSegment":
        return cls(
            id=str(data["id"]),
            text=data.get("text", ""),
            timestamp=data.get("timestamp") or utc_now_iso(),
            is_final=bool(data.get("isFinal", False)),
            confidence=float(data.get("confidence", 0.0)),
            is_error_fallback=bool(data.get("isErrorFallback", data.get("error", False))),
            recording_time=int(data.get("recordingTime", 0)),
            sequence_index=data.get("sequenceIndex"),
            error_detail=data.get("errorDetail"),
        )


@dataclass(frozen=True)
class TranscriptSnapshot:
    """Read-only view of the transcript handed to UI and persistence."""
    full_text: str
    segments: Tuple[TranscriptSegment, ...]

    def segment_dicts(self) -> List[Dict[str, Any]]:
        return [segment.to_dict() for segment in self.segments]


@dataclass
class TranscriptionRequest:
    """Input to a speech-to-text capability."""
    audio: bytes
    mime_type: str
    instruction: str
    is_final: bool = False
    chunk_id: Optional[str] = None


@dataclass
class TranscriptionResult:
    """Output of a speech-to-text capability."""
    text: str
    confidence: Optional[float]
    processing_time: float
    service: str
    language: str = "en-US"
    alternatives: Optional[list] = None
