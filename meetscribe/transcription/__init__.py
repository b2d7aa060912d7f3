"""Transcription capabilities, transcript accumulation and chunk upload."""

from .base import AbstractTranscriptionBackend
from .simulated import SimulatedTranscriber
from .google_backend import GoogleSpeechBackend
from .accumulator import TranscriptAccumulator, SegmentReorderBuffer, join_text
from .mime import normalize_mime_type, build_instruction
from .uploader import TranscriptChunkUploader

__all__ = [
    "AbstractTranscriptionBackend",
    "SimulatedTranscriber",
    "GoogleSpeechBackend",
    "TranscriptAccumulator",
    "SegmentReorderBuffer",
    "join_text",
    "normalize_mime_type",
    "build_instruction",
    "TranscriptChunkUploader",
]
