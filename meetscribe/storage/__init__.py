"""Persistence for meeting documents."""

from .document_store import FileDocumentStore, generate_session_id

__all__ = ['FileDocumentStore', 'generate_session_id']
