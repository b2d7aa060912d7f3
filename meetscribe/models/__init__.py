"""Data models for the MeetScribe application."""

from .audio import AudioStats, AudioChunk
from .events import AudioEvent, SessionEvent
from .session import SessionState, RecordingSession, SessionResult, SessionDocument
from .transcription import (
    TranscriptSegment,
    TranscriptSnapshot,
    TranscriptionRequest,
    TranscriptionResult,
)

__all__ = [
    "AudioStats",
    "AudioChunk",
    "AudioEvent",
    "SessionEvent",
    "SessionState",
    "RecordingSession",
    "SessionResult",
    "SessionDocument",
    "TranscriptSegment",
    "TranscriptSnapshot",
    "TranscriptionRequest",
    "TranscriptionResult",
]
