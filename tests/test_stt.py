from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.cloud import speech

from mock_interview.errors import TranscriptionError
from mock_interview.infrastructure.audio.speech import GoogleSpeechTranscriber, encoding_for_mime_type

Encoding = speech.RecognitionConfig.AudioEncoding


@pytest.mark.parametrize("mime_type,encoding", [
    ("audio/wav", Encoding.LINEAR16),
    ("audio/webm;codecs=opus", Encoding.WEBM_OPUS),
    ("audio/ogg; codecs=opus", Encoding.OGG_OPUS),
    ("AUDIO/FLAC", Encoding.FLAC),
])
def test_mime_type_mapping(mime_type, encoding):
    assert encoding_for_mime_type(mime_type) == encoding


@pytest.mark.parametrize("mime_type", ["audio/mpeg", "", "video/mp4"])
def test_unsupported_mime_type(mime_type):
    with pytest.raises(TranscriptionError):
        encoding_for_mime_type(mime_type)


def result(text):
    return SimpleNamespace(alternatives=[SimpleNamespace(transcript=text)])


def test_transcribe_joins_results():
    client = MagicMock()
    client.recognize.return_value = SimpleNamespace(results=[result("I worked"), result("on payments.")])
    transcriber = GoogleSpeechTranscriber("en-US", client=client)

    assert transcriber.transcribe(b"\x00" * 400, "audio/webm") == "I worked on payments."
    config = client.recognize.call_args.kwargs["config"]
    assert config.sample_rate_hertz == 48000
    assert config.language_code == "en-US"


def test_transcribe_wraps_api_errors():
    client = MagicMock()
    client.recognize.side_effect = RuntimeError("deadline exceeded")

    with pytest.raises(TranscriptionError):
        GoogleSpeechTranscriber(client=client).transcribe(b"\x00" * 400, "audio/wav")
