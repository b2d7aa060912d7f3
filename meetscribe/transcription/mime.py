"""MIME type normalization and task instructions for chunk transcription."""

from typing import Optional

GENERIC_OCTET_STREAM = "application/octet-stream"

# Generic container types browsers and recorders send without a codec hint
_CODEC_HINTS = {
    "audio/webm": "audio/webm;codecs=opus",
    "video/webm": "audio/webm;codecs=opus",
    "audio/ogg": "audio/ogg;codecs=opus",
    "application/ogg": "audio/ogg;codecs=opus",
    "audio/opus": "audio/ogg;codecs=opus",
    "audio/x-wav": "audio/wav",
    "audio/wave": "audio/wav",
    "audio/vnd.wave": "audio/wav",
    "audio/x-flac": "audio/flac",
}

INTERIM_INSTRUCTION = (
    "Transcribe this audio segment from an ongoing meeting verbatim. "
    "It may start or end mid-sentence; do not add or complete words."
)
FINAL_INSTRUCTION = (
    "Transcribe this final audio segment of a meeting verbatim. "
    "It is the end of the recording; do not add or complete words."
)


def sniff_mime_type(audio: bytes) -> Optional[str]:
    """Guess the container from magic bytes."""
    if audio[:4] == b"RIFF" and audio[8:12] == b"WAVE":
        return "audio/wav"
    if audio[:4] == b"OggS":
        return "audio/ogg;codecs=opus"
    if audio[:4] == b"fLaC":
        return "audio/flac"
    if audio[:4] == b"\x1a\x45\xdf\xa3":
        return "audio/webm;codecs=opus"
    return None


def normalize_mime_type(mime_type: Optional[str], audio: bytes = b"") -> str:
    """Return an explicit ``type;codecs=...`` form the capability can act on.

    Ambiguous generic containers gain a codec hint; unknown or missing types
    are sniffed from the payload.
    """
    raw = (mime_type or "").strip().lower().replace(" ", "")
    base = raw.split(";")[0]

    if not base or base == GENERIC_OCTET_STREAM:
        return sniff_mime_type(audio) or GENERIC_OCTET_STREAM
    if ";codecs=" in raw:
        if base in ("video/webm",):
            return "audio/webm" + raw[len(base):]
        return raw
    return _CODEC_HINTS.get(base, base)


def build_instruction(is_final: bool) -> str:
    """Task framing sent with each chunk: interim vs final segment."""
    return FINAL_INSTRUCTION if is_final else INTERIM_INSTRUCTION
