"""Error types raised across the recording and ingestion pipeline."""

from typing import Optional


class MeetScribeError(Exception):
    """Base class for all MeetScribe errors."""


class DeviceUnavailable(MeetScribeError):
    """Microphone permission denied or the capture device failed."""


class EncodingRestartFailed(MeetScribeError):
    """The encoder could not begin the next chunk window after a boundary."""


class ChunkEncodingFailed(MeetScribeError):
    """The codec library could not encode a closed chunk window."""


class UploadFailed(MeetScribeError):
    """A chunk could not be delivered to the ingestion endpoint.

    Covers network errors, timeouts, non-2xx responses and unreadable bodies.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AuthenticationRequired(UploadFailed):
    """No bearer token was available for the upload."""


class TranscriptionCapabilityFailed(MeetScribeError):
    """The speech-to-text capability returned an error or unusable output."""


class PersistenceFailed(MeetScribeError):
    """Saving a session document failed."""


class SummaryFailed(MeetScribeError):
    """The summary service could not produce a meeting summary."""
