"""Client for the meeting summary endpoint."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..errors import SummaryFailed

logger = logging.getLogger(__name__)

SUMMARY_PATH = "/api/summary/generate"


class SummaryClient:
    """Requests a summary for a finished transcript.

    Prompting and parsing happen on the server; this only posts the
    transcript and returns the summary object it gets back.
    """

    def __init__(self, server_url: str, auth_token: Optional[str] = None, timeout_seconds: float = 60.0):
        """Initialize the summary client.

        Args:
            server_url: Base URL of the server hosting the summary endpoint
            auth_token: Bearer token sent with the request
            timeout_seconds: Total timeout for one request
        """
        self.url = server_url.rstrip("/") + SUMMARY_PATH
        self.auth_token = auth_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        logger.info(f"SummaryClient targeting {self.url}")

    async def generate(self, transcript: str) -> Dict[str, Any]:
        """Send the transcript and return the summary.

        Raises:
            SummaryFailed: If the request fails or the answer has no summary
        """
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        data = {"transcript": transcript}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, headers=headers, json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise SummaryFailed(f"Summary API error: {response.status} - {error_text[:200]}")
                    result = await response.json()
        except asyncio.TimeoutError as e:
            raise SummaryFailed(f"Summary request timed out after {self.timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise SummaryFailed(f"Summary request failed: {e}") from e
        except ValueError as e:
            raise SummaryFailed(f"Unreadable summary response: {e}") from e

        summary = result.get("summary") if isinstance(result, dict) else None
        if not isinstance(summary, dict):
            raise SummaryFailed("Summary response did not contain a summary object")
        logger.info(f"Summary received ({len(summary)} fields)")
        return summary
