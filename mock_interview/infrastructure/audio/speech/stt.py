"""
Speech-to-text functionality using Google Cloud Speech.
"""
import logging

from google.cloud import speech

from ....config import LANGUAGE_CODE
from ....errors import TranscriptionError

logger = logging.getLogger("speech_stt")

_ENCODINGS = {
    "audio/wav": speech.RecognitionConfig.AudioEncoding.LINEAR16,
    "audio/x-wav": speech.RecognitionConfig.AudioEncoding.LINEAR16,
    "audio/l16": speech.RecognitionConfig.AudioEncoding.LINEAR16,
    "audio/webm": speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
    "audio/ogg": speech.RecognitionConfig.AudioEncoding.OGG_OPUS,
    "audio/flac": speech.RecognitionConfig.AudioEncoding.FLAC,
}

# Opus streams are always decoded at 48 kHz; WAV and FLAC carry their rate in the header
_OPUS_SAMPLE_RATE = 48000


def encoding_for_mime_type(mime_type: str):
    """
    Map a MIME type (parameters such as ``;codecs=opus`` ignored) to a
    Google Speech encoding.

    Raises:
        TranscriptionError: If the format is not supported
    """
    base = (mime_type or "").split(";", 1)[0].strip().lower()
    try:
        return _ENCODINGS[base]
    except KeyError:
        raise TranscriptionError(f"Unsupported audio format: {mime_type!r}")


class GoogleSpeechTranscriber:
    """Transcribes single audio segments with Google Cloud Speech recognize()."""

    def __init__(self, language: str = LANGUAGE_CODE, client=None, phrase_hints=()):
        self.language = language
        self.phrase_hints = list(phrase_hints)
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = speech.SpeechClient()
        return self._client

    def transcribe(self, data: bytes, mime_type: str) -> str:
        """
        Transcribe one audio segment.
        Returns transcribed text or empty string if no speech detected.

        Raises:
            TranscriptionError: On unsupported formats or any API failure
        """
        encoding = encoding_for_mime_type(mime_type)
        config_args = dict(
            encoding=encoding,
            language_code=self.language,
            enable_automatic_punctuation=True,
        )
        if encoding in (speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
                        speech.RecognitionConfig.AudioEncoding.OGG_OPUS):
            config_args["sample_rate_hertz"] = _OPUS_SAMPLE_RATE
        if self.phrase_hints:
            config_args["speech_contexts"] = [speech.SpeechContext(phrases=self.phrase_hints)]

        config = speech.RecognitionConfig(**config_args)
        audio = speech.RecognitionAudio(content=data)

        try:
            resp = self.client.recognize(config=config, audio=audio)
        except Exception as e:
            raise TranscriptionError(f"Speech recognition failed: {e}") from e

        texts = [r.alternatives[0].transcript for r in resp.results if r.alternatives]
        return " ".join(texts).strip()
