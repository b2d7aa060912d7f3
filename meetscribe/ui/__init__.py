"""Terminal user interface for recording sessions."""
