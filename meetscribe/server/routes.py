"""HTTP routes: health, chunk processing and meeting documents."""

import json
import logging
from datetime import datetime, timezone

from aiohttp import web
from pydantic import ValidationError

from ..errors import PersistenceFailed
from ..models.session import SessionDocument
from ..models.wire import MeetingDocumentPayload
from ..services.ingestion_service import ChunkMetadata
from .keys import INGESTION_KEY, STORE_KEY
from .middleware import error_response

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()


@routes.get("/api/health")
async def health(request: web.Request) -> web.Response:
    ingestion = request.app[INGESTION_KEY]
    return web.json_response({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "transcription": ingestion.transcriber.service_name,
        "simulated": ingestion.transcriber.is_simulated,
    })


@routes.post("/api/transcription/process")
async def process_chunk(request: web.Request) -> web.Response:
    """Transcribe one multipart chunk (``audio_data`` plus metadata fields)."""
    form = await request.post()
    audio_part = form.get("audio_data")
    if audio_part is None or not hasattr(audio_part, "file"):
        return error_response(400, "Bad Request", "No audio data provided")

    chunk_bytes = audio_part.file.read()
    if not chunk_bytes:
        return error_response(400, "Bad Request", "Audio data is empty")

    metadata = ChunkMetadata.from_form(form)
    response = await request.app[INGESTION_KEY].ingest(
        chunk_bytes,
        audio_part.content_type,
        metadata,
        auth_context=request.get("auth_context"),
    )
    return web.json_response(response.to_wire())


@routes.get("/api/transcription/meeting/{meeting_id}")
async def get_meeting(request: web.Request) -> web.Response:
    meeting_id = request.match_info["meeting_id"]
    try:
        document = request.app[STORE_KEY].get(meeting_id)
    except ValueError:
        return error_response(400, "Bad Request", "Invalid meeting ID")
    if document is None:
        return error_response(404, "Not Found", f"Meeting {meeting_id} not found")
    return web.json_response({"success": True, "meeting": document.to_dict()})


@routes.post("/api/transcription/meeting")
async def save_meeting(request: web.Request) -> web.Response:
    """Store a whole meeting document; title and transcript are required."""
    try:
        body = await request.json()
        payload = MeetingDocumentPayload.model_validate(body)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.info(f"Rejected meeting document: {e}")
        return error_response(400, "Bad Request", "Meeting title and transcript are required")

    meeting_id = payload.id or f"meeting-{int(datetime.now().timestamp() * 1000)}"
    document = SessionDocument(
        id=meeting_id,
        title=payload.title,
        transcript=payload.transcript,
        segments=list(payload.segments),
        summary=payload.summary,
    )
    try:
        request.app[STORE_KEY].put(document)
    except PersistenceFailed as e:
        return error_response(500, "Server Error", str(e))

    return web.json_response(
        {"success": True, "meetingId": meeting_id, "message": "Meeting saved successfully"},
        status=201,
    )
