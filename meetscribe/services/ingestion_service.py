"""Server-side chunk ingestion: one uploaded chunk in, exactly one segment out."""

import time
import uuid
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import MeetScribeConfig
from ..errors import TranscriptionCapabilityFailed
from ..models.transcription import TranscriptionRequest, utc_now_iso
from ..models.wire import ChunkUploadResponse, SegmentPayload
from ..storage.document_store import FileDocumentStore
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.mime import build_instruction, normalize_mime_type
from ..transcription.simulated import SimulatedTranscriber

logger = logging.getLogger(__name__)

NO_SPEECH_TEXT = "(no speech detected)"
FALLBACK_TEXT = "[Transcription unavailable for this segment]"


@dataclass
class ChunkMetadata:
    """Form fields that travel alongside the audio part."""
    is_final: bool = False
    timestamp: Optional[str] = None
    recording_time: int = 0

    @classmethod
    def from_form(cls, fields: Dict[str, Any]) -> "ChunkMetadata":
        is_final = str(fields.get("is_final", "false")).strip().lower() == "true"
        try:
            recording_time = int(float(fields.get("recording_time") or 0))
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed recording_time: {fields.get('recording_time')!r}")
            recording_time = 0
        return cls(is_final=is_final, timestamp=fields.get("timestamp") or None,
                   recording_time=recording_time)


def create_transcriber(config: MeetScribeConfig) -> AbstractTranscriptionBackend:
    """Pick the transcription capability once, from configuration.

    The real capability is used only when credentials are configured and the
    server runs in production (or development explicitly opts in).
    """
    delay = float(config.get('transcription.simulation_delay_seconds', 0.5))
    credentials_path = config.get_google_credentials_path()
    use_real = config.is_production or config.get('transcription.use_real_in_development', False)

    if config.get('transcription.backend', 'google') == 'simulation':
        logger.info("Simulated transcription selected in configuration")
        return SimulatedTranscriber(delay_seconds=delay)
    if not credentials_path:
        logger.info("No speech credentials configured, using simulated transcription")
        return SimulatedTranscriber(delay_seconds=delay)
    if not use_real:
        logger.info("Development environment, using simulated transcription")
        return SimulatedTranscriber(delay_seconds=delay)

    from ..transcription.google_backend import GoogleSpeechBackend

    backend = GoogleSpeechBackend(
        credentials_path=credentials_path,
        sample_rate=config.get('audio.sample_rate', 16000),
        language=config.get('google_cloud.language', 'en-US'),
        use_enhanced=config.get('google_cloud.use_enhanced_model', True),
        enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
        timeout_seconds=config.get('google_cloud.timeout_seconds', 10.0),
    )
    try:
        backend.initialize()
    except (OSError, ValueError) as e:
        logger.error(f"Google Speech backend failed to initialize, falling back to simulation: {e}")
        return SimulatedTranscriber(delay_seconds=delay)
    logger.info("✅ Google Speech backend initialized successfully")
    return backend


class ChunkIngestionService:
    """Turns one uploaded chunk into one segment.

    Capability errors never escape ``ingest``: they become a fallback segment
    with placeholder text so the caller can still answer 200.
    """

    def __init__(self,
                 transcriber: AbstractTranscriptionBackend,
                 min_audio_bytes: int = 100,
                 default_confidence: float = 0.9,
                 debug_store: Optional[FileDocumentStore] = None):
        """Initialize the ingestion service.

        Args:
            transcriber: Capability chosen by ``create_transcriber``
            min_audio_bytes: Inputs smaller than this skip the capability
            default_confidence: Used when the capability reports none
            debug_store: When set, raw bytes of failed chunks are kept
        """
        self.transcriber = transcriber
        self.min_audio_bytes = min_audio_bytes
        self.default_confidence = default_confidence
        self.debug_store = debug_store

        self.chunks_processed = 0
        self.fallbacks_returned = 0
        logger.info(f"ChunkIngestionService using {transcriber.service_name} "
                    f"(simulated={transcriber.is_simulated})")

    @classmethod
    def from_config(cls, config: MeetScribeConfig,
                    store: Optional[FileDocumentStore] = None) -> "ChunkIngestionService":
        debug_store = store if config.get('server.debug_store.enabled', False) else None
        return cls(
            transcriber=create_transcriber(config),
            min_audio_bytes=config.get('transcription.min_audio_bytes', 100),
            default_confidence=config.get('transcription.default_confidence', 0.9),
            debug_store=debug_store,
        )

    async def ingest(self,
                     chunk_bytes: bytes,
                     mime_type: Optional[str],
                     metadata: ChunkMetadata,
                     auth_context: Optional[Dict[str, Any]] = None) -> ChunkUploadResponse:
        """Transcribe one chunk and wrap the result as a segment.

        Args:
            chunk_bytes: Encoded audio exactly as uploaded
            mime_type: Content type of the audio part (may be generic or missing)
            metadata: is_final / timestamp / recording_time form fields
            auth_context: Identity established by the auth middleware

        Returns:
            ChunkUploadResponse carrying exactly one segment with non-empty text
        """
        self.chunks_processed += 1
        chunk_id = f"chunk_{self.chunks_processed}"
        user = (auth_context or {}).get("user", "anonymous")
        logger.info(f"Ingesting {chunk_id} for {user}: {len(chunk_bytes)} bytes, "
                    f"type={mime_type!r}, final={metadata.is_final}")

        start_time = time.time()
        confidence = self.default_confidence
        if len(chunk_bytes) < self.min_audio_bytes:
            logger.debug(f"{chunk_id} below {self.min_audio_bytes} bytes, skipping transcription")
            text = NO_SPEECH_TEXT
        else:
            normalized = normalize_mime_type(mime_type, chunk_bytes)
            request = TranscriptionRequest(
                audio=chunk_bytes,
                mime_type=normalized,
                instruction=build_instruction(metadata.is_final),
                is_final=metadata.is_final,
                chunk_id=chunk_id,
            )
            try:
                result = await asyncio.to_thread(self.transcriber.transcribe_chunk, request)
            except TranscriptionCapabilityFailed as e:
                return self._fallback(chunk_id, chunk_bytes, normalized, metadata, str(e))
            except Exception as e:
                logger.exception(f"Unexpected transcription error for {chunk_id}: {e}")
                return self._fallback(chunk_id, chunk_bytes, normalized, metadata,
                                      f"{type(e).__name__}: {e}")

            text = result.text.strip() or NO_SPEECH_TEXT
            if result.confidence is not None:
                confidence = result.confidence

        segment = SegmentPayload(
            id=uuid.uuid4().hex,
            timestamp=metadata.timestamp or utc_now_iso(),
            text=text,
            confidence=confidence,
            is_final=metadata.is_final,
            recording_time=metadata.recording_time,
        )
        logger.info(f"{chunk_id} transcribed in {time.time() - start_time:.2f}s: '{text[:60]}'")
        return ChunkUploadResponse(segment=segment)

    def _fallback(self, chunk_id: str, chunk_bytes: bytes, mime_type: str,
                  metadata: ChunkMetadata, detail: str) -> ChunkUploadResponse:
        self.fallbacks_returned += 1
        logger.error(f"Transcription failed for {chunk_id} ({mime_type}): {detail}")
        if self.debug_store is not None:
            extension = mime_type.split(";")[0].split("/")[-1] or "bin"
            self.debug_store.save_debug_chunk(chunk_bytes, chunk_id, extension)

        segment = SegmentPayload(
            id=uuid.uuid4().hex,
            timestamp=metadata.timestamp or utc_now_iso(),
            text=FALLBACK_TEXT,
            confidence=0.0,
            is_final=metadata.is_final,
            recording_time=metadata.recording_time,
            error=True,
            is_error_fallback=True,
            error_detail=detail,
        )
        return ChunkUploadResponse(segment=segment)
