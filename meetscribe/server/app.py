"""aiohttp application factory for the ingestion server."""

import logging
from typing import Optional

from aiohttp import web

from ..config import MeetScribeConfig
from ..services.ingestion_service import ChunkIngestionService
from ..storage.document_store import FileDocumentStore
from .keys import AUTH_TOKENS_KEY, CONFIG_KEY, INGESTION_KEY, STORE_KEY
from .middleware import auth_middleware, error_middleware
from .routes import routes

logger = logging.getLogger(__name__)


def create_app(config: MeetScribeConfig,
               ingestion: Optional[ChunkIngestionService] = None,
               store: Optional[FileDocumentStore] = None) -> web.Application:
    """Build the web application.

    Args:
        config: Application configuration (server, transcription, storage)
        ingestion: Pre-built ingestion service; built from config when omitted
        store: Document store; the data directory store when omitted
    """
    store = store or FileDocumentStore(config.get_data_directory())
    ingestion = ingestion or ChunkIngestionService.from_config(config, store)

    app = web.Application(
        middlewares=[error_middleware, auth_middleware],
        client_max_size=config.get('server.max_upload_bytes', 25 * 1024 * 1024),
    )
    app[CONFIG_KEY] = config
    app[STORE_KEY] = store
    app[INGESTION_KEY] = ingestion
    app[AUTH_TOKENS_KEY] = frozenset(config.get('server.auth.tokens', []))
    app.add_routes(routes)
    app.on_cleanup.append(_cleanup)

    logger.info(f"Server app created ({config.get('server.environment')} environment, "
                f"{len(app[AUTH_TOKENS_KEY])} configured token(s))")
    return app


async def _cleanup(app: web.Application) -> None:
    app[INGESTION_KEY].transcriber.cleanup()


def run_server(config: MeetScribeConfig) -> None:
    """Serve until interrupted."""
    host = config.get('server.host', '0.0.0.0')
    port = config.get('server.port', 3000)
    logger.info(f"Starting ingestion server on {host}:{port}")
    web.run_app(create_app(config), host=host, port=port, print=None)
