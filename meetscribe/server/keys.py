"""Typed application keys shared by the server modules."""

from typing import FrozenSet

from aiohttp import web

from ..config import MeetScribeConfig
from ..services.ingestion_service import ChunkIngestionService
from ..storage.document_store import FileDocumentStore

CONFIG_KEY = web.AppKey("config", MeetScribeConfig)
INGESTION_KEY = web.AppKey("ingestion", ChunkIngestionService)
STORE_KEY = web.AppKey("store", FileDocumentStore)
AUTH_TOKENS_KEY = web.AppKey("auth_tokens", FrozenSet[str])
