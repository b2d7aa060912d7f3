"""HTTP payload models shared by the uploader and the ingestion routes."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .transcription import TranscriptSegment


class SegmentPayload(BaseModel):
    """Segment as it travels over the wire (camelCase keys)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    timestamp: str
    text: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_final: bool = False
    recording_time: int = 0
    error: Optional[bool] = None
    is_error_fallback: Optional[bool] = None
    error_detail: Optional[str] = None

    @classmethod
    def from_segment(cls, segment: TranscriptSegment) -> "SegmentPayload":
        return cls(
            id=segment.id,
            timestamp=segment.timestamp,
            text=segment.text,
            confidence=segment.confidence,
            is_final=segment.is_final,
            recording_time=segment.recording_time,
            error=True if segment.is_error_fallback else None,
            is_error_fallback=True if segment.is_error_fallback else None,
            error_detail=segment.error_detail,
        )

    def to_segment(self, sequence_index: Optional[int] = None,
                   session_id: Optional[str] = None) -> TranscriptSegment:
        return TranscriptSegment(
            id=self.id,
            text=self.text,
            timestamp=self.timestamp,
            is_final=self.is_final,
            confidence=self.confidence,
            is_error_fallback=bool(self.is_error_fallback or self.error),
            recording_time=self.recording_time,
            sequence_index=sequence_index,
            error_detail=self.error_detail,
            session_id=session_id,
        )


class ChunkUploadResponse(BaseModel):
    """Body of a 200 answer from ``POST /api/transcription/process``."""
    success: bool = True
    segment: SegmentPayload

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class MeetingDocumentPayload(BaseModel):
    """Body accepted by ``POST /api/transcription/meeting``."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    title: str = Field(min_length=1)
    transcript: str = Field(min_length=1, validation_alias=AliasChoices("transcript", "transcription"))
    segments: list = Field(default_factory=list)
    summary: Optional[dict] = None
