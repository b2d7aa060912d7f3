"""Google Speech-to-Text transcription backend."""

import time
import logging
from typing import Optional

from .base import AbstractTranscriptionBackend
from ..errors import TranscriptionCapabilityFailed
from ..models.transcription import TranscriptionRequest, TranscriptionResult

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

Encoding = speech.RecognitionConfig.AudioEncoding

# MIME type -> (encoding, sample rate to declare; None lets the header decide)
_ENCODINGS = {
    "audio/wav": (Encoding.LINEAR16, None),
    "audio/flac": (Encoding.FLAC, None),
    "audio/ogg;codecs=opus": (Encoding.OGG_OPUS, "opus"),
    "audio/webm;codecs=opus": (Encoding.WEBM_OPUS, 48000),
}


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Google Speech-to-Text API backend for chunk transcription."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: str,
                 sample_rate: int = 16000,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 timeout_seconds: float = 10.0):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            sample_rate: Sample rate declared for Opus payloads
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            timeout_seconds: Per-request deadline
        """
        super().__init__(language)
        if not credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.credentials_path = credentials_path
        self.sample_rate = sample_rate
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.timeout_seconds = timeout_seconds
        self.client: Optional[speech.SpeechClient] = None
        self.project_id = None

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")
        return True

    def _recognition_config(self, mime_type: str) -> speech.RecognitionConfig:
        if mime_type not in _ENCODINGS:
            raise TranscriptionCapabilityFailed(f"Unsupported audio type for Google Speech: {mime_type}")
        encoding, rate = _ENCODINGS[mime_type]
        if rate == "opus":
            rate = self.sample_rate
        config = speech.RecognitionConfig(
            encoding=encoding,
            language_code=self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            model="latest_short",
        )
        if rate:
            config.sample_rate_hertz = rate
        return config

    def transcribe_chunk(self, request: TranscriptionRequest) -> TranscriptionResult:
        """Transcribe one chunk with synchronous recognition."""
        if self.client is None:
            raise TranscriptionCapabilityFailed("Google Speech client is not initialized")

        start_time = time.time()
        chunk_id = request.chunk_id
        config = self._recognition_config(request.mime_type)
        # Synchronous recognition takes no free-form prompt; the instruction is
        # kept for the log trail only.
        logger.debug(f"Chunk {chunk_id}: {len(request.audio)} bytes, {request.mime_type}, "
                     f"final={request.is_final}, instruction='{request.instruction[:40]}...'")

        audio = speech.RecognitionAudio(content=request.audio)
        try:
            response = self.client.recognize(config=config, audio=audio, timeout=self.timeout_seconds)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded for chunk %s", chunk_id)
            raise TranscriptionCapabilityFailed(f"Google Speech recognize timeout (chunk={chunk_id}): {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable for chunk %s", chunk_id)
            raise TranscriptionCapabilityFailed(f"Google Speech service unavailable (chunk={chunk_id}): {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error("Google STT API call error for chunk %s: %s", chunk_id, e)
            raise TranscriptionCapabilityFailed(f"Google Speech API error (chunk={chunk_id}): {e}") from e
        except gax_exceptions.RetryError as e:
            logger.error("Google STT retries exhausted for chunk %s: %s", chunk_id, e)
            raise TranscriptionCapabilityFailed(f"Google Speech retries exhausted (chunk={chunk_id}): {e}") from e
        except auth_exceptions.GoogleAuthError as e:
            logger.error("Google STT credentials rejected for chunk %s: %s", chunk_id, e)
            raise TranscriptionCapabilityFailed(f"Google credentials error (chunk={chunk_id}): {e}") from e
        processing_time = time.time() - start_time

        pieces = []
        confidences = []
        alternatives = []
        for recognition_result in response.results:
            if not recognition_result.alternatives:
                continue
            best = recognition_result.alternatives[0]
            pieces.append(best.transcript.strip())
            if best.confidence:
                confidences.append(best.confidence)
            for alt in recognition_result.alternatives[1:5]:
                alternatives.append({"text": alt.transcript, "confidence": alt.confidence})

        text = " ".join(piece for piece in pieces if piece)
        if not text:
            logger.debug("--- NO SPEECH DETECTED ---")
        else:
            logger.debug(f"TRANSCRIPTION SUCCESS: '{text}' (processing_time: {processing_time:.3f}s)")

        return TranscriptionResult(
            text=text,
            confidence=sum(confidences) / len(confidences) if confidences else None,
            processing_time=processing_time,
            service=self.service_name,
            language=self.language,
            alternatives=alternatives or None,
        )

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        self.client = None
