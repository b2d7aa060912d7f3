"""JSON document store for meeting sessions and debug audio."""

import os
import json
import logging
import random
import string
import threading
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..errors import PersistenceFailed
from ..models.session import SessionDocument
from ..transcription.accumulator import join_text

logger = logging.getLogger(__name__)


def generate_session_id() -> str:
    """Timestamp-based session ID with a random suffix (YYYYMMDD_HHMMSS_xxxx)."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
    return f"{timestamp}_{random_suffix}"


class FileDocumentStore:
    """Stores one JSON document per meeting under ``<data_dir>/meetings``.

    Offers the whole-document ``get``/``put`` and ``append_segment`` the
    recording pipeline needs, plus a debug drop for raw chunks.
    """

    def __init__(self, data_dir: str = "./data"):
        """Initialize the store with a data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.meetings_dir = self.data_dir / "meetings"
        self.debug_dir = self.data_dir / "debug_chunks"
        self._lock = threading.Lock()

        self._ensure_directories()
        logger.info(f"FileDocumentStore initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        for directory in [self.data_dir, self.meetings_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def _document_path(self, document_id: str) -> Path:
        safe_id = "".join(c for c in document_id if c.isalnum() or c in "-_.")
        if not safe_id or safe_id.startswith("."):
            raise ValueError(f"Invalid document id: {document_id!r}")
        return self.meetings_dir / f"{safe_id}.json"

    def _write_json(self, path: Path, payload: Dict[str, Any]) -> None:
        encoded = json.dumps(payload, ensure_ascii=False, indent=2)
        temp_path = path.with_suffix(".tmp")
        temp_path.write_text(encoded, encoding="utf-8")
        os.replace(temp_path, path)

    def get(self, document_id: str) -> Optional[SessionDocument]:
        """Load a document, or None if it does not exist."""
        path = self._document_path(document_id)
        if not path.exists():
            logger.debug(f"Document not found: {path}")
            return None
        with self._lock:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        return SessionDocument.from_dict(data)

    def put(self, document: SessionDocument) -> str:
        """Write the whole document, replacing any previous version.

        Raises:
            PersistenceFailed: if the document cannot be written
        """
        document.updated_at = datetime.now(timezone.utc).isoformat()
        try:
            path = self._document_path(document.id)
            with self._lock:
                self._write_json(path, document.to_dict())
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error saving document {document.id}: {e}")
            raise PersistenceFailed(f"Could not save meeting {document.id}: {e}") from e

        logger.info(f"Document saved: {path} ({len(document.segments)} segments)")
        return str(path)

    def append_segment(self, document_id: str, segment: Dict[str, Any], title: str = "") -> SessionDocument:
        """Append one segment (and its text) to a stored document, creating it if needed.

        Raises:
            PersistenceFailed: if the document cannot be written
        """
        document = self.get(document_id) or SessionDocument(id=document_id, title=title or document_id)
        document.segments.append(segment)
        document.transcript = join_text(document.transcript, segment.get("text", ""))
        self.put(document)
        return document

    def list_documents(self) -> List[str]:
        """List stored document IDs, sorted."""
        return sorted(path.stem for path in self.meetings_dir.glob("*.json"))

    def save_debug_chunk(self, audio: bytes, label: str, extension: str = "bin") -> Optional[str]:
        """Keep a raw chunk for offline investigation. Best effort: never raises."""
        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            path = self.debug_dir / f"{timestamp}_{label}.{extension}"
            path.write_bytes(audio)
        except OSError as e:
            logger.warning(f"Could not write debug chunk: {e}")
            return None
        logger.info(f"Debug chunk saved: {path} ({len(audio)} bytes)")
        return str(path)
