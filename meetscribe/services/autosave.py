"""Auto-save throttling for in-progress sessions."""

import time
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class AutoSavePolicy:
    """Decides when a recording session may save itself.

    Saves are spaced at least ``min_interval`` seconds apart, and a manual
    save can hold auto-saves off for a while with ``suppress_for``.
    """

    def __init__(self, min_interval: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval
        self._clock = clock
        self._last_saved: Optional[float] = None
        self._suppressed_until: Optional[float] = None

    def should_save(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        if self._suppressed_until is not None and now < self._suppressed_until:
            return False
        if self._last_saved is not None and now - self._last_saved < self.min_interval:
            return False
        return True

    def mark_saved(self, now: Optional[float] = None) -> None:
        self._last_saved = self._clock() if now is None else now

    def suppress_for(self, seconds: float, now: Optional[float] = None) -> None:
        """Block auto-saves for ``seconds`` (e.g. right after a manual save)."""
        now = self._clock() if now is None else now
        self._suppressed_until = now + seconds
        logger.debug(f"Auto-save suppressed for {seconds}s")

    def reset(self) -> None:
        self._last_saved = None
        self._suppressed_until = None
