"""Bearer credential provider for chunk uploads."""

import logging
from typing import Optional

from pubsub import pub

logger = logging.getLogger(__name__)

AUTH_EXPIRED_TOPIC = "auth.expired"


class CredentialProvider:
    """Holds the current bearer token and announces when it stops being valid.

    Issuing and refreshing tokens happens elsewhere; this only answers "what
    is the current token" and publishes ``auth.expired``.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token or None

    def current_token(self) -> Optional[str]:
        return self._token

    def update(self, token: Optional[str]) -> None:
        self._token = token or None
        logger.info("Credential updated" if self._token else "Credential cleared")

    def expire(self, reason: str = "Session expired") -> None:
        """Drop the token and notify subscribers (the recording controller stops)."""
        self._token = None
        logger.warning(f"Credential expired: {reason}")
        pub.sendMessage(AUTH_EXPIRED_TOPIC, reason=reason)
