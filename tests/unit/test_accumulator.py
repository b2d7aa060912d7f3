"""Unit tests for transcript accumulation and segment reordering."""

import pytest

from meetscribe.models.transcription import TranscriptSegment
from meetscribe.transcription.accumulator import (
    SegmentReorderBuffer,
    TranscriptAccumulator,
    join_text,
)


def make_segment(index: int, text: str = None) -> TranscriptSegment:
    return TranscriptSegment(id=f"seg-{index}", text=text if text is not None else f"part {index}",
                             sequence_index=index)


@pytest.mark.unit
class TestJoinText:
    """Whitespace handling at the seam between two pieces of transcript."""

    def test_single_space_between_pieces(self):
        assert join_text("Hello ", "  world") == "Hello world"

    def test_empty_current(self):
        assert join_text("", "  first words ") == "first words"

    def test_blank_addition_keeps_current(self):
        assert join_text("Hello", "   ") == "Hello"

    def test_no_space_added_inside_pieces(self):
        assert join_text("a  b", "c  d") == "a  b c  d"


@pytest.mark.unit
class TestTranscriptAccumulator:
    """Test cases for TranscriptAccumulator."""

    def test_append_folds_text_and_keeps_order(self):
        """Full text is the normalized join of every appended segment."""
        accumulator = TranscriptAccumulator()

        accumulator.append(make_segment(0, "Hello "))
        result = accumulator.append(make_segment(1, " world"))

        assert result == "Hello world"
        assert accumulator.full_text == "Hello world"
        assert [s.id for s in accumulator.segments] == ["seg-0", "seg-1"]
        assert len(accumulator) == 2

    def test_append_only_prefix_property(self):
        """Each new full text starts with the previous one (modulo trailing space)."""
        accumulator = TranscriptAccumulator()
        previous = ""
        for index, text in enumerate(["one ", "two", "  three  ", "", "four"]):
            current = accumulator.append(make_segment(index, text))
            assert current.startswith(previous.rstrip())
            assert len(accumulator) == index + 1
            previous = current

        assert accumulator.full_text == "one two three four"

    def test_append_is_not_idempotent(self):
        accumulator = TranscriptAccumulator()
        segment = make_segment(0, "again")

        accumulator.append(segment)
        accumulator.append(segment)

        assert accumulator.full_text == "again again"
        assert len(accumulator) == 2

    def test_reset_clears_everything(self):
        accumulator = TranscriptAccumulator()
        accumulator.append(make_segment(0))

        accumulator.reset()

        assert accumulator.full_text == ""
        assert accumulator.segments == ()

    def test_snapshot_is_detached(self):
        """Later appends do not change an earlier snapshot."""
        accumulator = TranscriptAccumulator()
        accumulator.append(make_segment(0, "first"))
        snapshot = accumulator.snapshot()

        accumulator.append(make_segment(1, "second"))

        assert snapshot.full_text == "first"
        assert len(snapshot.segments) == 1
        assert snapshot.segment_dicts()[0]["id"] == "seg-0"


@pytest.mark.unit
class TestSegmentReorderBuffer:
    """Test cases for SegmentReorderBuffer."""

    def test_in_order_arrivals_release_immediately(self):
        buffer = SegmentReorderBuffer()

        assert [s.id for s in buffer.push(0, make_segment(0))] == ["seg-0"]
        assert [s.id for s in buffer.push(1, make_segment(1))] == ["seg-1"]
        assert buffer.pending_count == 0

    def test_early_arrival_is_held_until_gap_fills(self):
        buffer = SegmentReorderBuffer()

        assert buffer.push(2, make_segment(2)) == []
        assert buffer.push(1, make_segment(1)) == []
        released = buffer.push(0, make_segment(0))

        assert [s.sequence_index for s in released] == [0, 1, 2]
        assert buffer.next_index == 3

    def test_drain_releases_held_segments_in_order(self):
        buffer = SegmentReorderBuffer()
        buffer.push(3, make_segment(3))
        buffer.push(1, make_segment(1))

        drained = buffer.drain()

        assert [s.sequence_index for s in drained] == [1, 3]
        assert buffer.pending_count == 0
        assert buffer.next_index == 4

    def test_late_arrival_released_as_is(self):
        buffer = SegmentReorderBuffer()
        buffer.push(0, make_segment(0))

        released = buffer.push(0, make_segment(0, "duplicate"))

        assert [s.text for s in released] == ["duplicate"]

    def test_reset(self):
        buffer = SegmentReorderBuffer()
        buffer.push(5, make_segment(5))

        buffer.reset()

        assert buffer.pending_count == 0
        assert buffer.next_index == 0
