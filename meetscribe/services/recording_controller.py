"""Recording session controller: owns one session from start to persisted document."""

import time
import uuid
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from pubsub import pub

from ..audio.encoder import ChunkEncoder
from ..audio.visualizer import VisualizationSampler
from ..config import MeetScribeConfig
from ..errors import (
    AuthenticationRequired,
    ChunkEncodingFailed,
    DeviceUnavailable,
    EncodingRestartFailed,
    MeetScribeError,
    PersistenceFailed,
    UploadFailed,
)
from ..models.audio import AudioChunk
from ..models.events import AudioEvent, SessionEvent
from ..models.session import RecordingSession, SessionDocument, SessionResult, SessionState
from ..models.transcription import TranscriptSegment
from ..storage.document_store import FileDocumentStore, generate_session_id
from ..transcription.accumulator import SegmentReorderBuffer, TranscriptAccumulator
from ..transcription.uploader import TranscriptChunkUploader
from .auth import AUTH_EXPIRED_TOPIC, CredentialProvider
from .autosave import AutoSavePolicy

logger = logging.getLogger(__name__)

STATE_TOPIC = "session.state"
ERROR_TOPIC = "session.error"
SEGMENT_TOPIC = "transcript.segment"

ORDERING_SEQUENCE = "sequence"
ORDERING_ARRIVAL = "arrival"

Summarizer = Callable[[str], Awaitable[Dict[str, Any]]]


class RecordingSessionController:
    """Drives capture, chunking, upload and transcript folding for one session at a time.

    States: IDLE -> ACTIVE -> (PAUSED <-> ACTIVE) -> STOPPING -> IDLE.
    Everything except the capture thread runs on the event loop that called
    ``start``; captured buffers hop onto it with ``call_soon_threadsafe``.
    """

    def __init__(self,
                 config: MeetScribeConfig,
                 uploader: Optional[TranscriptChunkUploader] = None,
                 credentials: Optional[CredentialProvider] = None,
                 store: Optional[FileDocumentStore] = None,
                 capture_factory: Optional[Callable[[Callable[[AudioEvent], None]], Any]] = None,
                 summarizer: Optional[Summarizer] = None):
        """Initialize the controller.

        Args:
            config: Application configuration (audio and client sections)
            uploader: Chunk uploader; built from ``client.server_url`` when omitted
            credentials: Bearer token source; seeded from ``client.auth_token`` when omitted
            store: Session document store; the data directory store when omitted
            capture_factory: Builds a capture device from a frame callback
            summarizer: Optional coroutine producing a summary from the transcript
        """
        self.config = config
        self.sample_rate = config.get('audio.sample_rate', 16000)
        self.channels = config.get('audio.channels', 1)
        self.frames_per_buffer = config.get('audio.frames_per_buffer', 1024)
        self.chunk_duration = float(config.get('audio.chunk_duration_seconds', 5.0))
        self.drain_timeout = float(config.get('client.drain_timeout_seconds', 30.0))
        self.summary_min_characters = config.get('client.summary_min_characters', 30)
        self.ordering = config.get('client.ordering', ORDERING_SEQUENCE)
        if self.ordering not in (ORDERING_SEQUENCE, ORDERING_ARRIVAL):
            logger.warning(f"Unknown ordering '{self.ordering}', using '{ORDERING_SEQUENCE}'")
            self.ordering = ORDERING_SEQUENCE

        self.uploader = uploader or TranscriptChunkUploader(
            config.get('client.server_url', 'http://localhost:3000'),
            timeout_seconds=config.get('client.upload_timeout_seconds', 30.0),
        )
        self.credentials = credentials or CredentialProvider(config.get('client.auth_token'))
        self.store = store or FileDocumentStore(config.get_data_directory())
        self.capture_factory = capture_factory or self._default_capture_factory
        self.summarizer = summarizer

        self.encoder = ChunkEncoder(
            on_chunk=self._on_chunk,
            sample_rate=self.sample_rate,
            channels=self.channels,
            codec_preferences=config.get('audio.codec_preferences', ["audio/ogg;codecs=opus",
                                                                     "audio/flac", "audio/wav"]),
        )
        self.sampler = VisualizationSampler(
            points=config.get('visualization.points', 256),
            gain=config.get('visualization.gain', 8.0),
            frame_interval=config.get('visualization.frame_interval_seconds', 1 / 30),
        )
        self.accumulator = TranscriptAccumulator()
        self.autosave = AutoSavePolicy(config.get('client.autosave_interval_seconds', 30.0))

        self.session: Optional[RecordingSession] = None
        self.capture = None
        self.stop_task: Optional[asyncio.Task] = None
        self.last_result: Optional[SessionResult] = None

        self._state = SessionState.IDLE
        self._session_id: Optional[str] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reorder = SegmentReorderBuffer()
        self._pending_uploads: Set[asyncio.Task] = set()
        self._boundary_task: Optional[asyncio.Task] = None
        self._ticker_task: Optional[asyncio.Task] = None
        self._window_armed_at = 0.0
        self._window_remaining = self.chunk_duration
        self._elapsed_base = 0.0
        self._active_since: Optional[float] = None
        # Wall-clock instant capture was paused or stopped; earlier frames still count
        self._frames_closed_at: Optional[float] = None

        pub.subscribe(self._on_auth_expired, AUTH_EXPIRED_TOPIC)
        logger.info(f"RecordingSessionController ready: {self.chunk_duration}s chunks, "
                    f"ordering={self.ordering}")

    def _default_capture_factory(self, callback: Callable[[AudioEvent], None]):
        from ..audio.capture import AudioCapture

        return AudioCapture(
            callback,
            sample_rate=self.sample_rate,
            frames_per_buffer=self.frames_per_buffer,
            channels=self.channels,
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def elapsed_time(self) -> float:
        """Seconds spent ACTIVE; frozen while paused."""
        elapsed = self._elapsed_base
        if self._active_since is not None and self._loop is not None:
            elapsed += self._loop.time() - self._active_since
        return elapsed

    @property
    def elapsed_seconds(self) -> int:
        return int(self.elapsed_time)

    @property
    def pending_upload_count(self) -> int:
        return len(self._pending_uploads)

    async def start(self, session_id: Optional[str] = None, title: Optional[str] = None) -> bool:
        """Acquire the microphone and begin a new session.

        Args:
            session_id: Reuse an existing meeting id; generated when omitted
            title: Meeting title stored with the document

        Returns:
            True if recording started, False otherwise (error published)
        """
        if self._state is not SessionState.IDLE:
            logger.warning(f"Cannot start: session is {self._state.value}")
            return False

        self._loop = asyncio.get_running_loop()
        session_id = session_id or generate_session_id()
        capture = None
        try:
            capture = self.capture_factory(self._on_audio_event)
            capture.start_recording()
            self.encoder.start(capture, session_id)
        except (DeviceUnavailable, ValueError) as e:
            logger.error(f"Could not start recording: {e}")
            if capture is not None and capture.is_recording:
                await asyncio.to_thread(capture.stop_recording)
            self._publish_error(session_id, str(e), retryable=True)
            return False

        self.capture = capture
        self._session_id = session_id
        self.session = RecordingSession(
            session_id=session_id,
            title=title or f"Meeting {session_id}",
            state=SessionState.ACTIVE,
        )
        self.accumulator.reset()
        self._reorder.reset()
        self.autosave.reset()
        self.stop_task = None
        self.last_result = None
        self._elapsed_base = 0.0
        self._active_since = self._loop.time()
        self._frames_closed_at = None

        self.sampler.start()
        self._arm_boundary(self.chunk_duration)
        self._ticker_task = self._loop.create_task(self._tick_elapsed())
        self._set_state(SessionState.ACTIVE)
        logger.info(f"Recording session started: {session_id}")
        return True

    async def pause(self) -> bool:
        """Suspend capture and encoding without emitting a chunk."""
        if self._state is not SessionState.ACTIVE:
            logger.warning(f"Cannot pause: session is {self._state.value}")
            return False

        self._frames_closed_at = time.time()
        self.capture.pause()
        self.encoder.pause()
        elapsed_in_window = self._loop.time() - self._window_armed_at
        self._window_remaining = max(0.0, self._window_remaining - elapsed_in_window)
        self._cancel_timers()
        self._freeze_elapsed()
        self.sampler.suspend()
        self._set_state(SessionState.PAUSED)
        logger.info(f"Session paused ({self._window_remaining:.2f}s left in window)")
        return True

    async def resume(self) -> bool:
        """Reactivate capture and pick the partial window up where it stopped."""
        if self._state is not SessionState.PAUSED:
            logger.warning(f"Cannot resume: session is {self._state.value}")
            return False

        try:
            self.capture.resume()
        except DeviceUnavailable as e:
            logger.error(f"Device failed while paused: {e}")
            self._request_forced_stop(str(e), retryable=True)
            return False

        self.encoder.resume()
        self._frames_closed_at = None
        self._active_since = self._loop.time()
        self._arm_boundary(self._window_remaining)
        self._ticker_task = self._loop.create_task(self._tick_elapsed())
        self.sampler.resume()
        self._set_state(SessionState.ACTIVE)
        logger.info("Session resumed")
        return True

    def chunk_boundary(self) -> Optional[AudioChunk]:
        """Close the current window, start its upload and open the next one."""
        if self._state is not SessionState.ACTIVE:
            logger.debug(f"Boundary ignored in state {self._state.value}")
            return None

        try:
            chunk = self.encoder.flush(is_final=False, recording_time=self.elapsed_seconds)
        except ChunkEncodingFailed as e:
            logger.error(f"Chunk boundary failed: {e}")
            self._request_forced_stop(str(e), retryable=True)
            return None
        try:
            self.encoder.restart()
        except EncodingRestartFailed as e:
            logger.error(f"Encoder restart failed: {e}")
            self._request_forced_stop(str(e), retryable=True)
        return chunk

    async def stop(self) -> Optional[SessionResult]:
        """Finish the session: final chunk, drain uploads, summarize, persist.

        Returns:
            SessionResult, or None if no session was in progress
        """
        if not self._state.in_progress:
            logger.warning(f"Cannot stop: session is {self._state.value}")
            return None

        session = self.session
        errors: List[str] = []
        if self._state is SessionState.ACTIVE:
            self._frames_closed_at = time.time()
        self._freeze_elapsed()
        self._cancel_timers()
        self._set_state(SessionState.STOPPING)
        session.elapsed_seconds = self.elapsed_seconds

        # Frames already handed to the loop land in the final window
        await asyncio.sleep(0)
        encoded = await self._release_resources(errors)

        drained = await self._drain_uploads()
        if not drained:
            errors.append(f"Uploads still in flight after {self.drain_timeout}s")
        if self.ordering == ORDERING_SEQUENCE:
            for segment in self._reorder.drain():
                self._fold(segment)
        if session.final_chunk_failed:
            errors.append("Final chunk could not be transcribed")

        snapshot = self.accumulator.snapshot()
        summary = await self._request_summary(snapshot.full_text, errors)

        document = SessionDocument(
            id=session.session_id,
            title=session.title,
            transcript=snapshot.full_text,
            segments=snapshot.segment_dicts(),
            summary=summary,
        )
        persisted = self._persist(document, errors)

        result = SessionResult(
            session_id=session.session_id,
            transcript=snapshot.full_text,
            segment_count=len(snapshot.segments),
            elapsed_seconds=session.elapsed_seconds,
            persisted=persisted,
            complete=encoded and drained and persisted and not session.final_chunk_failed,
            summary=summary,
            errors=errors,
        )
        self.last_result = result
        self._set_state(SessionState.IDLE)
        logger.info(f"Session {session.session_id} stopped: {result.segment_count} segments, "
                    f"{result.elapsed_seconds}s, complete={result.complete}")
        return result

    def save_now(self) -> bool:
        """Manual save of the in-progress transcript; holds auto-save off for one interval."""
        if self.session is None:
            logger.warning("Nothing to save: no session")
            return False
        saved = self._save_snapshot()
        if saved:
            self.autosave.suppress_for(self.autosave.min_interval)
        return saved

    def _on_audio_event(self, event: AudioEvent) -> None:
        """Capture-thread callback: hop onto the event loop."""
        try:
            self._loop.call_soon_threadsafe(self._deliver_frame, event)
        except RuntimeError:
            logger.debug("Event loop closed, dropping captured buffer")

    def _deliver_frame(self, event: AudioEvent) -> None:
        if self._state is SessionState.ACTIVE:
            self.encoder.add_frame(event)
            self.sampler.feed(event)
        elif self._frames_closed_at is not None and event.timestamp <= self._frames_closed_at:
            self.encoder.add_frame(event, late=True)

    def _on_chunk(self, chunk: AudioChunk) -> None:
        if self.session is not None:
            self.session.chunks_emitted += 1
        task = self._loop.create_task(self._upload_and_fold(chunk))
        self._pending_uploads.add(task)
        task.add_done_callback(self._on_upload_done)

    def _on_upload_done(self, task: asyncio.Task) -> None:
        self._pending_uploads.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Upload task crashed: {task.exception()!r}")

    async def _upload_and_fold(self, chunk: AudioChunk) -> TranscriptSegment:
        try:
            segment = await self.uploader.upload(chunk, self.credentials.current_token())
        except AuthenticationRequired as e:
            logger.error(f"Upload of chunk {chunk.sequence_index} needs authentication: {e}")
            segment = self._error_segment(chunk, str(e))
            self._record_upload_failure(chunk)
            self._request_forced_stop(str(e), retryable=False)
        except UploadFailed as e:
            logger.error(f"Upload of chunk {chunk.sequence_index} failed: {e}")
            segment = self._error_segment(chunk, str(e))
            self._record_upload_failure(chunk)
        self._deliver_segment(chunk.sequence_index, segment)
        return segment

    def _error_segment(self, chunk: AudioChunk, message: str) -> TranscriptSegment:
        return TranscriptSegment(
            id=f"error-{uuid.uuid4().hex}",
            text=f"[Error: {message[:50]}]",
            is_final=chunk.is_final,
            confidence=0.0,
            is_error_fallback=True,
            recording_time=chunk.recording_time,
            sequence_index=chunk.sequence_index,
            error_detail=message,
            session_id=chunk.session_id,
        )

    def _record_upload_failure(self, chunk: AudioChunk) -> None:
        if self.session is None or chunk.session_id != self._session_id:
            return
        self.session.uploads_failed += 1
        if chunk.is_final:
            self.session.final_chunk_failed = True

    def _deliver_segment(self, index: int, segment: TranscriptSegment) -> None:
        if segment.session_id != self._session_id:
            logger.info(f"Ignoring segment from session {segment.session_id}")
            return
        if self.ordering == ORDERING_SEQUENCE:
            released = self._reorder.push(index, segment)
        else:
            released = [segment]
        for ready in released:
            self._fold(ready)

    def _fold(self, segment: TranscriptSegment) -> None:
        full_text = self.accumulator.append(segment)
        pub.sendMessage(SEGMENT_TOPIC, segment=segment, full_text=full_text)
        # Segments landing after stop began only update the transcript
        if self._state.in_progress and self.autosave.should_save():
            self._save_snapshot()

    def _save_snapshot(self) -> bool:
        snapshot = self.accumulator.snapshot()
        document = SessionDocument(
            id=self.session.session_id,
            title=self.session.title,
            transcript=snapshot.full_text,
            segments=snapshot.segment_dicts(),
        )
        try:
            self.store.put(document)
        except PersistenceFailed as e:
            logger.error(f"Auto-save failed: {e}")
            self._publish_error(self.session.session_id, str(e), retryable=True)
            return False
        self.autosave.mark_saved()
        return True

    def _persist(self, document: SessionDocument, errors: List[str]) -> bool:
        try:
            self.store.put(document)
        except PersistenceFailed as e:
            logger.error(f"Could not persist session {document.id}: {e}")
            errors.append(str(e))
            self._publish_error(document.id, str(e), retryable=True)
            return False
        return True

    async def _request_summary(self, transcript: str, errors: List[str]) -> Optional[Dict[str, Any]]:
        if self.summarizer is None:
            return None
        if len(transcript.strip()) < self.summary_min_characters:
            logger.info("Transcript too short for a summary")
            return None
        try:
            return await self.summarizer(transcript)
        except MeetScribeError as e:
            logger.error(f"Summary generation failed: {e}")
            errors.append(f"Summary failed: {e}")
            return None

    async def _drain_uploads(self) -> bool:
        pending = set(self._pending_uploads)
        if not pending:
            return True
        logger.info(f"Waiting for {len(pending)} upload(s) to finish")
        _, still_running = await asyncio.wait(pending, timeout=self.drain_timeout)
        if still_running:
            logger.warning(f"{len(still_running)} upload(s) still running after {self.drain_timeout}s")
            return False
        return True

    def _arm_boundary(self, delay: float) -> None:
        self._window_armed_at = self._loop.time()
        self._window_remaining = delay
        self._boundary_task = self._loop.create_task(self._boundary_loop(delay))

    async def _boundary_loop(self, first_delay: float) -> None:
        delay = first_delay
        while self._state is SessionState.ACTIVE:
            self._window_armed_at = self._loop.time()
            self._window_remaining = delay
            await asyncio.sleep(delay)
            self.chunk_boundary()
            delay = self.chunk_duration

    async def _tick_elapsed(self) -> None:
        while self._state is SessionState.ACTIVE:
            await asyncio.sleep(1.0)
            if self.session is not None:
                self.session.elapsed_seconds = self.elapsed_seconds

    def _freeze_elapsed(self) -> None:
        if self._active_since is not None:
            self._elapsed_base += self._loop.time() - self._active_since
            self._active_since = None
        if self.session is not None:
            self.session.elapsed_seconds = self.elapsed_seconds

    def _cancel_timers(self) -> None:
        current = asyncio.current_task()
        for task in (self._boundary_task, self._ticker_task):
            if task is not None and task is not current:
                task.cancel()
        self._boundary_task = None
        self._ticker_task = None

    async def _release_resources(self, errors: List[str]) -> bool:
        """Stop encoder (emitting the final chunk), close the device, cancel visualization.

        Returns:
            False if the final chunk could not be encoded (recorded in ``errors``)
        """
        encoded = True
        try:
            self.encoder.stop(recording_time=self.elapsed_seconds)
        except ChunkEncodingFailed as e:
            logger.error(f"Final chunk lost: {e}")
            errors.append(f"Final chunk could not be encoded: {e}")
            self._publish_error(self._session_id, str(e), retryable=True)
            encoded = False

        capture, self.capture = self.capture, None
        if capture is not None and capture.is_recording:
            # Joining the reader thread can take seconds
            await asyncio.to_thread(capture.stop_recording)
        self.sampler.cancel()
        return encoded

    def _request_forced_stop(self, reason: str, retryable: bool) -> None:
        self._publish_error(self._session_id, reason, retryable=retryable)
        if not self._state.in_progress or self.stop_task is not None:
            return
        logger.warning(f"Forcing stop: {reason}")
        self.stop_task = self._loop.create_task(self.stop())

    def _on_auth_expired(self, reason: str) -> None:
        if self._loop is None or not self._state.in_progress:
            return
        self._loop.call_soon_threadsafe(self._request_forced_stop, reason, False)

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        if self.session is not None:
            self.session.state = state
        pub.sendMessage(STATE_TOPIC, event=SessionEvent(
            session_id=self._session_id,
            event_type="state",
            state=state.value,
            metadata={"elapsed_seconds": self.elapsed_seconds},
        ))

    def _publish_error(self, session_id: Optional[str], message: str, retryable: bool) -> None:
        pub.sendMessage(ERROR_TOPIC, event=SessionEvent(
            session_id=session_id,
            event_type="error",
            error=message,
            retryable=retryable,
        ))
