"""Integration tests for the ingestion server routes (aiohttp test client)."""

import io

import aiohttp
import numpy as np
import pytest
import soundfile as sf

from meetscribe.errors import TranscriptionCapabilityFailed
from meetscribe.models.transcription import TranscriptionRequest, TranscriptionResult
from meetscribe.server import create_app
from meetscribe.services.ingestion_service import (
    FALLBACK_TEXT,
    NO_SPEECH_TEXT,
    ChunkIngestionService,
)
from meetscribe.transcription.base import AbstractTranscriptionBackend
from meetscribe.transcription.simulated import SIMULATED_PHRASES

AUTH = {"Authorization": "Bearer dev-token"}


class BrokenBackend(AbstractTranscriptionBackend):
    """Capability that always fails."""

    service_name = "broken"

    def initialize(self) -> bool:
        return True

    def transcribe_chunk(self, request: TranscriptionRequest) -> TranscriptionResult:
        raise TranscriptionCapabilityFailed("Recognizer returned status 503")


@pytest.fixture
def wav_chunk(audio_test_data):
    samples = np.frombuffer(audio_test_data("sine", duration_seconds=0.25), dtype=np.int16)
    buffer = io.BytesIO()
    sf.write(buffer, samples, 16000, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def chunk_form(audio: bytes, is_final: bool = False, recording_time: int = 5,
               content_type: str = "audio/wav") -> aiohttp.FormData:
    form = aiohttp.FormData()
    form.add_field("audio_data", audio, filename="rec-0.wav", content_type=content_type)
    form.add_field("is_final", "true" if is_final else "false")
    form.add_field("timestamp", "2026-10-18T10:00:00+00:00")
    form.add_field("recording_time", str(recording_time))
    return form


@pytest.fixture
async def client(aiohttp_client, server_config):
    return await aiohttp_client(create_app(server_config))


@pytest.mark.integration
class TestHealth:

    async def test_health_reports_simulation(self, client):
        response = await client.get("/api/health")

        assert response.status == 200
        body = await response.json()
        assert body["status"] == "ok"
        assert body["simulated"] is True
        assert body["transcription"] == "simulation"

    async def test_health_needs_no_token(self, client):
        response = await client.get("/api/health")
        assert response.status == 200


@pytest.mark.integration
class TestProcessChunk:
    """POST /api/transcription/process"""

    async def test_missing_token_rejected(self, client, wav_chunk):
        response = await client.post("/api/transcription/process", data=chunk_form(wav_chunk))

        assert response.status == 401
        body = await response.json()
        assert body["success"] is False
        assert body["message"] == "No authentication token provided"

    async def test_simulated_round_trip(self, client, wav_chunk):
        response = await client.post("/api/transcription/process",
                                     data=chunk_form(wav_chunk, is_final=True, recording_time=12),
                                     headers=AUTH)

        assert response.status == 200
        body = await response.json()
        segment = body["segment"]
        assert body["success"] is True
        assert segment["text"] in SIMULATED_PHRASES
        assert segment["isFinal"] is True
        assert segment["recordingTime"] == 12
        assert segment["timestamp"] == "2026-10-18T10:00:00+00:00"
        assert segment["confidence"] == pytest.approx(0.9)
        assert "isErrorFallback" not in segment

    async def test_generic_content_type_accepted(self, client, wav_chunk):
        response = await client.post("/api/transcription/process",
                                     data=chunk_form(wav_chunk, content_type="application/octet-stream"),
                                     headers=AUTH)

        assert response.status == 200
        assert (await response.json())["segment"]["text"] in SIMULATED_PHRASES

    async def test_missing_audio_part(self, client):
        form = aiohttp.FormData()
        form.add_field("is_final", "false")

        response = await client.post("/api/transcription/process", data=form, headers=AUTH)

        assert response.status == 400
        assert (await response.json())["message"] == "No audio data provided"

    async def test_tiny_audio_is_no_speech(self, client):
        response = await client.post("/api/transcription/process",
                                     data=chunk_form(b"\x00" * 40), headers=AUTH)

        assert response.status == 200
        assert (await response.json())["segment"]["text"] == NO_SPEECH_TEXT

    async def test_capability_failure_returns_fallback(self, aiohttp_client, server_config,
                                                       document_store, wav_chunk):
        ingestion = ChunkIngestionService(BrokenBackend(), debug_store=document_store)
        client = await aiohttp_client(create_app(server_config, ingestion=ingestion,
                                                 store=document_store))

        response = await client.post("/api/transcription/process",
                                     data=chunk_form(wav_chunk), headers=AUTH)

        assert response.status == 200
        segment = (await response.json())["segment"]
        assert segment["text"] == FALLBACK_TEXT
        assert segment["error"] is True
        assert segment["isErrorFallback"] is True
        assert segment["confidence"] == 0.0
        assert "503" in segment["errorDetail"]
        assert len(list(document_store.debug_dir.glob("*_chunk_1.wav"))) == 1

    async def test_configured_tokens(self, aiohttp_client, server_config, wav_chunk):
        server_config.set('server.auth.tokens', ["team-token"])
        client = await aiohttp_client(create_app(server_config))

        rejected = await client.post("/api/transcription/process",
                                     data=chunk_form(wav_chunk), headers=AUTH)
        accepted = await client.post("/api/transcription/process", data=chunk_form(wav_chunk),
                                     headers={"Authorization": "Bearer team-token"})

        assert rejected.status == 401
        assert (await rejected.json())["message"] == "Invalid authentication token"
        assert accepted.status == 200

    async def test_production_without_tokens_rejects(self, aiohttp_client, server_config, wav_chunk):
        server_config.set('server.environment', 'production')
        client = await aiohttp_client(create_app(server_config))

        response = await client.post("/api/transcription/process",
                                     data=chunk_form(wav_chunk), headers=AUTH)

        assert response.status == 401


@pytest.mark.integration
class TestMeetingDocuments:
    """POST and GET /api/transcription/meeting"""

    async def test_save_and_fetch(self, client):
        response = await client.post("/api/transcription/meeting", headers=AUTH, json={
            "id": "meeting-42",
            "title": "Retro",
            "transcript": "We shipped it.",
            "segments": [{"id": "seg-0", "text": "We shipped it."}],
        })

        assert response.status == 201
        body = await response.json()
        assert body == {"success": True, "meetingId": "meeting-42",
                        "message": "Meeting saved successfully"}

        fetched = await client.get("/api/transcription/meeting/meeting-42", headers=AUTH)
        assert fetched.status == 200
        meeting = (await fetched.json())["meeting"]
        assert meeting["title"] == "Retro"
        assert meeting["transcript"] == "We shipped it."
        assert meeting["segments"][0]["id"] == "seg-0"

    async def test_generated_id_and_transcription_alias(self, client):
        response = await client.post("/api/transcription/meeting", headers=AUTH, json={
            "title": "Standup",
            "transcription": "Nothing blocking.",
        })

        assert response.status == 201
        meeting_id = (await response.json())["meetingId"]
        assert meeting_id.startswith("meeting-")

        fetched = await client.get(f"/api/transcription/meeting/{meeting_id}", headers=AUTH)
        assert (await fetched.json())["meeting"]["transcript"] == "Nothing blocking."

    @pytest.mark.parametrize("body", [
        {"title": "No transcript"},
        {"transcript": "No title"},
        {"title": "", "transcript": "Empty title"},
    ])
    async def test_missing_fields(self, client, body):
        response = await client.post("/api/transcription/meeting", headers=AUTH, json=body)

        assert response.status == 400
        assert (await response.json())["message"] == "Meeting title and transcript are required"

    async def test_invalid_json(self, client):
        response = await client.post("/api/transcription/meeting", data=b"{not json",
                                     headers={**AUTH, "Content-Type": "application/json"})
        assert response.status == 400

    async def test_unknown_meeting(self, client):
        response = await client.get("/api/transcription/meeting/meeting-404", headers=AUTH)

        assert response.status == 404
        assert (await response.json())["success"] is False

    async def test_invalid_meeting_id(self, client):
        response = await client.get("/api/transcription/meeting/.hidden", headers=AUTH)
        assert response.status == 400
