"""Unit tests for MIME normalization and task instructions."""

import pytest

from meetscribe.transcription.mime import (
    FINAL_INSTRUCTION,
    INTERIM_INSTRUCTION,
    build_instruction,
    normalize_mime_type,
    sniff_mime_type,
)


@pytest.mark.unit
class TestNormalizeMimeType:
    """Explicit codec hints for ambiguous container types."""

    @pytest.mark.parametrize("raw, expected", [
        ("audio/webm", "audio/webm;codecs=opus"),
        ("video/webm", "audio/webm;codecs=opus"),
        ("audio/ogg", "audio/ogg;codecs=opus"),
        ("audio/x-wav", "audio/wav"),
        ("audio/wave", "audio/wav"),
        ("audio/flac", "audio/flac"),
        ("audio/ogg; codecs=opus", "audio/ogg;codecs=opus"),
        ("video/webm;codecs=opus", "audio/webm;codecs=opus"),
        ("AUDIO/WEBM", "audio/webm;codecs=opus"),
    ])
    def test_known_types(self, raw, expected):
        assert normalize_mime_type(raw) == expected

    def test_octet_stream_is_sniffed(self):
        wav_header = b"RIFF\x24\x00\x00\x00WAVEfmt "
        assert normalize_mime_type("application/octet-stream", wav_header) == "audio/wav"

    def test_missing_type_is_sniffed(self):
        assert normalize_mime_type(None, b"OggS\x00\x02") == "audio/ogg;codecs=opus"

    def test_unrecognized_bytes_stay_generic(self):
        assert normalize_mime_type("", b"\x00\x01\x02\x03") == "application/octet-stream"


@pytest.mark.unit
class TestSniffing:

    def test_magic_bytes(self):
        assert sniff_mime_type(b"fLaC\x00\x00") == "audio/flac"
        assert sniff_mime_type(b"\x1a\x45\xdf\xa3rest") == "audio/webm;codecs=opus"
        assert sniff_mime_type(b"") is None


@pytest.mark.unit
def test_instruction_depends_on_finality():
    assert build_instruction(False) == INTERIM_INSTRUCTION
    assert build_instruction(True) == FINAL_INSTRUCTION
    assert INTERIM_INSTRUCTION != FINAL_INSTRUCTION
