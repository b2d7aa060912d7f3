"""Transcript accumulation: folds segments into one growing text."""

import logging
from typing import Dict, List, Tuple

from ..models.transcription import TranscriptSegment, TranscriptSnapshot

logger = logging.getLogger(__name__)


def join_text(current: str, addition: str) -> str:
    """Join two pieces of transcript with exactly one space at the seam."""
    left = current.rstrip()
    right = addition.strip()
    if not right:
        return current
    if not left:
        return right
    return f"{left} {right}"


class TranscriptAccumulator:
    """Append-only transcript: ``full_text`` plus the segments in append order.

    ``append`` is not idempotent; callers append each segment exactly once.
    """

    def __init__(self):
        self._full_text = ""
        self._segments: List[TranscriptSegment] = []

    @property
    def full_text(self) -> str:
        return self._full_text

    @property
    def segments(self) -> Tuple[TranscriptSegment, ...]:
        return tuple(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def append(self, segment: TranscriptSegment) -> str:
        """Fold one segment in; returns the new full text."""
        self._segments.append(segment)
        self._full_text = join_text(self._full_text, segment.text)
        return self._full_text

    def reset(self) -> None:
        self._full_text = ""
        self._segments = []

    def snapshot(self) -> TranscriptSnapshot:
        return TranscriptSnapshot(full_text=self._full_text, segments=tuple(self._segments))


class SegmentReorderBuffer:
    """Releases segments in ``sequence_index`` order, holding early arrivals.

    Uploads complete in any order; without this the transcript would follow
    network timing instead of the audio.
    """

    def __init__(self, first_index: int = 0):
        self._next_index = first_index
        self._pending: Dict[int, TranscriptSegment] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def next_index(self) -> int:
        return self._next_index

    def push(self, index: int, segment: TranscriptSegment) -> List[TranscriptSegment]:
        """Add one arrival and return every segment now releasable, in order."""
        if index < self._next_index or index in self._pending:
            logger.warning(f"Segment for index {index} arrived twice or too late, releasing as-is")
            return [segment]
        self._pending[index] = segment
        released = []
        while self._next_index in self._pending:
            released.append(self._pending.pop(self._next_index))
            self._next_index += 1
        if self._pending:
            logger.debug(f"Holding {len(self._pending)} segment(s) until index {self._next_index} arrives")
        return released

    def drain(self) -> List[TranscriptSegment]:
        """Release everything still held, in index order (used at stop)."""
        released = [self._pending[index] for index in sorted(self._pending)]
        if released:
            self._next_index = max(self._pending) + 1
        self._pending.clear()
        return released

    def reset(self, first_index: int = 0) -> None:
        self._next_index = first_index
        self._pending.clear()
