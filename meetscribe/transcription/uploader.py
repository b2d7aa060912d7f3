"""Uploader that delivers one encoded chunk to the ingestion endpoint."""

import asyncio
import logging
from typing import Optional

import aiohttp
from pydantic import ValidationError

from ..errors import AuthenticationRequired, UploadFailed
from ..models.audio import AudioChunk
from ..models.transcription import TranscriptSegment
from ..models.wire import ChunkUploadResponse

logger = logging.getLogger(__name__)

PROCESS_PATH = "/api/transcription/process"


class TranscriptChunkUploader:
    """Posts chunks as multipart form data and parses the returned segment.

    Never retries; every failure surfaces as ``UploadFailed``.
    """

    def __init__(self, server_url: str, timeout_seconds: float = 30.0):
        """Initialize the uploader.

        Args:
            server_url: Base URL of the ingestion server (e.g. http://localhost:3000)
            timeout_seconds: Total timeout for one upload
        """
        self.url = server_url.rstrip("/") + PROCESS_PATH
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        logger.info(f"TranscriptChunkUploader targeting {self.url}")

    def _build_form(self, chunk: AudioChunk) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field(
            "audio_data",
            chunk.blob,
            filename=f"rec-{chunk.session_id or 'session'}-{chunk.sequence_index}.{chunk.file_extension}",
            content_type=chunk.mime_type,
        )
        form.add_field("is_final", "true" if chunk.is_final else "false")
        form.add_field("timestamp", chunk.captured_at.isoformat())
        form.add_field("recording_time", str(int(chunk.recording_time)))
        return form

    async def upload(self, chunk: AudioChunk, auth_token: Optional[str]) -> TranscriptSegment:
        """Send one chunk and return its segment.

        Args:
            chunk: The encoded chunk
            auth_token: Bearer credential from the credential provider

        Returns:
            TranscriptSegment parsed from the server answer

        Raises:
            AuthenticationRequired: if no token is available
            UploadFailed: on network errors, timeouts, non-2xx or bad bodies
        """
        if not auth_token:
            raise AuthenticationRequired("Authentication required")

        headers = {"Authorization": f"Bearer {auth_token}"}
        logger.debug(f"Uploading chunk {chunk.sequence_index} ({chunk.size} bytes, "
                     f"{chunk.mime_type}, final={chunk.is_final})")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, data=self._build_form(chunk), headers=headers) as response:
                    if response.status // 100 != 2:
                        error_text = await response.text()
                        raise UploadFailed(
                            f"Server error: {response.status} - {error_text[:200]}",
                            status=response.status,
                        )
                    body = await response.json()
        except UploadFailed:
            raise
        except asyncio.TimeoutError as e:
            raise UploadFailed(f"Upload timed out after {self.timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise UploadFailed(f"Network error: {e}") from e
        except ValueError as e:
            # Body was not JSON
            raise UploadFailed(f"Unreadable response: {e}") from e

        try:
            parsed = ChunkUploadResponse.model_validate(body)
        except ValidationError as e:
            raise UploadFailed(f"Malformed segment response: {e}") from e

        segment = parsed.segment.to_segment(sequence_index=chunk.sequence_index,
                                            session_id=chunk.session_id)
        logger.debug(f"Chunk {chunk.sequence_index} -> segment {segment.id} "
                     f"(error_fallback={segment.is_error_fallback})")
        return segment
