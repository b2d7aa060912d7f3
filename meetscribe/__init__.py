"""MeetScribe - chunked meeting transcription client and ingestion server."""

__version__ = "0.1.0"
