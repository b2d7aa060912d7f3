"""Unit tests for GoogleSpeechBackend with a mocked Speech client."""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import speech

from meetscribe.errors import TranscriptionCapabilityFailed
from meetscribe.models.transcription import TranscriptionRequest
from meetscribe.transcription.google_backend import GoogleSpeechBackend


def recognition(*alternatives):
    return SimpleNamespace(alternatives=[SimpleNamespace(transcript=t, confidence=c) for t, c in alternatives])


@pytest.fixture
def backend():
    backend = GoogleSpeechBackend(credentials_path="/tmp/creds.json", sample_rate=16000)
    backend.client = Mock()
    return backend


def request(mime_type="audio/wav", is_final=False):
    return TranscriptionRequest(audio=b"\x00" * 400, mime_type=mime_type,
                                instruction="Transcribe", is_final=is_final, chunk_id="chunk_1")


@pytest.mark.unit
class TestGoogleSpeechBackend:
    """Test cases for the Google Speech backend."""

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            GoogleSpeechBackend(credentials_path="")

    def test_joins_results_and_averages_confidence(self, backend):
        backend.client.recognize.return_value = SimpleNamespace(results=[
            recognition(("Hello there", 0.8), ("Hello their", 0.4)),
            recognition(("general Kenobi", 0.6)),
        ])

        result = backend.transcribe_chunk(request())

        assert result.text == "Hello there general Kenobi"
        assert result.confidence == pytest.approx(0.7)
        assert result.alternatives == [{"text": "Hello their", "confidence": 0.4}]

    def test_no_results_is_empty_text(self, backend):
        backend.client.recognize.return_value = SimpleNamespace(results=[])

        result = backend.transcribe_chunk(request())

        assert result.text == ""
        assert result.confidence is None

    @pytest.mark.parametrize("mime_type, encoding, rate", [
        ("audio/wav", speech.RecognitionConfig.AudioEncoding.LINEAR16, 0),
        ("audio/flac", speech.RecognitionConfig.AudioEncoding.FLAC, 0),
        ("audio/ogg;codecs=opus", speech.RecognitionConfig.AudioEncoding.OGG_OPUS, 16000),
        ("audio/webm;codecs=opus", speech.RecognitionConfig.AudioEncoding.WEBM_OPUS, 48000),
    ])
    def test_recognition_config_per_type(self, backend, mime_type, encoding, rate):
        backend.client.recognize.return_value = SimpleNamespace(results=[])

        backend.transcribe_chunk(request(mime_type))

        config = backend.client.recognize.call_args.kwargs["config"]
        assert config.encoding == encoding
        assert config.sample_rate_hertz == rate
        assert config.language_code == "en-US"

    def test_unsupported_type_fails(self, backend):
        with pytest.raises(TranscriptionCapabilityFailed, match="Unsupported"):
            backend.transcribe_chunk(request("application/octet-stream"))

    @pytest.mark.parametrize("error", [
        gax_exceptions.DeadlineExceeded("slow"),
        gax_exceptions.ServiceUnavailable("down"),
        gax_exceptions.InvalidArgument("bad audio"),
        gax_exceptions.RetryError("retries exhausted", cause=None),
        auth_exceptions.RefreshError("token expired"),
    ])
    def test_api_errors_become_capability_failures(self, backend, error):
        backend.client.recognize.side_effect = error

        with pytest.raises(TranscriptionCapabilityFailed):
            backend.transcribe_chunk(request())

    def test_uninitialized_client_fails(self):
        backend = GoogleSpeechBackend(credentials_path="/tmp/creds.json")
        with pytest.raises(TranscriptionCapabilityFailed):
            backend.transcribe_chunk(request())
