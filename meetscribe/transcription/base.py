"""Abstract base class for speech-to-text capabilities."""

from abc import ABC, abstractmethod
import logging

from ..models.transcription import TranscriptionRequest, TranscriptionResult

logger = logging.getLogger(__name__)


class AbstractTranscriptionBackend(ABC):
    """A speech-to-text capability: audio + MIME hint in, text out (or raise)."""

    service_name = "abstract"

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    def transcribe_chunk(self, request: TranscriptionRequest) -> TranscriptionResult:
        """Transcribe one audio chunk.

        Args:
            request: Audio bytes, normalized MIME type and task instruction

        Returns:
            TranscriptionResult with the recognized text

        Raises:
            TranscriptionCapabilityFailed: if the capability errors out
        """

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """

    def cleanup(self) -> None:
        """Clean up backend resources."""

    @property
    def is_simulated(self) -> bool:
        return False
