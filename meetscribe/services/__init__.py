"""Services for MeetScribe: session control, ingestion, credentials and auto-save."""

from .auth import CredentialProvider
from .autosave import AutoSavePolicy
from .ingestion_service import ChunkIngestionService, ChunkMetadata, create_transcriber
from .recording_controller import RecordingSessionController
from .summary_client import SummaryClient

__all__ = [
    'CredentialProvider',
    'AutoSavePolicy',
    'ChunkIngestionService',
    'ChunkMetadata',
    'create_transcriber',
    'RecordingSessionController',
    'SummaryClient',
]
