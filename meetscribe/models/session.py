"""Session-related data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SessionState(Enum):
    """Recording session states."""
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPING = "stopping"

    @property
    def in_progress(self) -> bool:
        return self in (SessionState.ACTIVE, SessionState.PAUSED)


@dataclass
class RecordingSession:
    """One continuous recording attempt."""
    session_id: str
    title: str
    state: SessionState = SessionState.IDLE
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    elapsed_seconds: int = 0
    chunks_emitted: int = 0
    uploads_failed: int = 0
    final_chunk_failed: bool = False


@dataclass
class SessionResult:
    """Outcome of stopping a session, reported back to the caller."""
    session_id: str
    transcript: str
    segment_count: int
    elapsed_seconds: int
    persisted: bool
    complete: bool
    summary: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class SessionDocument:
    """Persisted meeting document (core-relevant fields only)."""
    id: str
    title: str
    transcript: str = ""
    segments: List[Dict[str, Any]] = field(default_factory=list)
    updated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    summary: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "transcript": self.transcript,
            "segments": list(self.segments),
            "updatedAt": self.updated_at,
        }
        if self.summary is not None:
            data["summary"] = self.summary
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionDocument":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            transcript=data.get("transcript", ""),
            segments=list(data.get("segments", [])),
            updated_at=data.get("updatedAt") or datetime.now(timezone.utc).isoformat(),
            summary=data.get("summary"),
        )
