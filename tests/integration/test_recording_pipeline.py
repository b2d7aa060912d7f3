"""End-to-end: controller -> real uploader -> ingestion server -> saved document."""

import asyncio

import pytest

from meetscribe.models.session import SessionState
from meetscribe.server import create_app
from meetscribe.services.recording_controller import RecordingSessionController
from meetscribe.transcription.simulated import SIMULATED_PHRASES
from meetscribe.transcription.uploader import TranscriptChunkUploader


@pytest.fixture
async def server_url(aiohttp_server, server_config):
    server = await aiohttp_server(create_app(server_config))
    return str(server.make_url("/"))


@pytest.fixture
def pipeline(client_config, document_store, capture_factory, server_url):
    def build():
        uploader = TranscriptChunkUploader(server_url, timeout_seconds=5.0)
        return RecordingSessionController(client_config, uploader=uploader,
                                          store=document_store, capture_factory=capture_factory)
    return build


@pytest.mark.integration
class TestRecordingPipeline:

    async def test_two_chunks_become_one_transcript(self, pipeline, capture_factory,
                                                    document_store, audio_test_data):
        controller = pipeline()
        await controller.start(session_id="meeting-e2e", title="Pipeline check")
        capture = capture_factory.created[0]

        capture.emit(audio_test_data("sine", duration_seconds=0.25))
        await asyncio.sleep(0)
        controller.chunk_boundary()
        capture.emit(audio_test_data("noise", duration_seconds=0.25))
        await asyncio.sleep(0)

        result = await controller.stop()

        assert result.complete is True
        assert result.segment_count == 2
        segments = controller.accumulator.segments
        assert [s.sequence_index for s in segments] == [0, 1]
        assert all(s.text in SIMULATED_PHRASES for s in segments)
        assert segments[1].is_final is True
        assert result.transcript == f"{segments[0].text} {segments[1].text}"

        stored = document_store.get("meeting-e2e")
        assert stored.transcript == result.transcript
        assert len(stored.segments) == 2
        assert controller.state is SessionState.IDLE

    async def test_rejected_token_yields_error_segment(self, aiohttp_server, server_config,
                                                       client_config, document_store,
                                                       capture_factory, audio_test_data):
        server_config.set('server.auth.tokens', ["someone-else"])
        server = await aiohttp_server(create_app(server_config))
        uploader = TranscriptChunkUploader(str(server.make_url("/")))
        controller = RecordingSessionController(client_config, uploader=uploader,
                                                store=document_store, capture_factory=capture_factory)
        await controller.start()
        capture_factory.created[0].emit(audio_test_data("sine", duration_seconds=0.25))
        await asyncio.sleep(0)

        result = await controller.stop()

        assert result.complete is False
        assert result.transcript.startswith("[Error: Server error: 401")
        assert controller.accumulator.segments[0].is_error_fallback is True
