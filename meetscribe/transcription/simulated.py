"""Deterministic stand-in for the speech capability (no credentials needed)."""

import time
import zlib
import logging

from .base import AbstractTranscriptionBackend
from ..models.transcription import TranscriptionRequest, TranscriptionResult

logger = logging.getLogger(__name__)

SIMULATED_PHRASES = (
    "I think we should prioritize the user experience.",
    "Let's schedule a follow-up meeting next week.",
    "The analytics data shows significant improvement in user retention.",
    "We need to address the bug in the authentication flow.",
    "I agree with that approach, it aligns with our goals.",
    "What's the timeline for launching these new features?",
    "Could you share the documentation with the team?",
    "The client feedback has been mostly positive.",
    "We should integrate the new API by the end of the sprint.",
    "Let's make sure we're addressing all the accessibility concerns.",
)


class SimulatedTranscriber(AbstractTranscriptionBackend):
    """Returns a placeholder phrase chosen from the audio bytes after a short delay."""

    service_name = "simulation"

    def __init__(self, delay_seconds: float = 0.5, language: str = "en-US"):
        super().__init__(language)
        self.delay_seconds = delay_seconds

    def initialize(self) -> bool:
        logger.info(f"Simulated transcription enabled (delay={self.delay_seconds}s)")
        return True

    @property
    def is_simulated(self) -> bool:
        return True

    def transcribe_chunk(self, request: TranscriptionRequest) -> TranscriptionResult:
        start_time = time.time()
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)
        phrase = SIMULATED_PHRASES[zlib.crc32(request.audio) % len(SIMULATED_PHRASES)]
        logger.debug(f"Simulated transcription for {request.chunk_id}: '{phrase}'")
        return TranscriptionResult(
            text=phrase,
            confidence=None,
            processing_time=time.time() - start_time,
            service=self.service_name,
            language=self.language,
        )
