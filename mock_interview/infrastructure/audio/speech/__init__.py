"""Speech-to-text transcription and chunk submission."""

from .stt import GoogleSpeechTranscriber, encoding_for_mime_type
from .submitter import ChunkedTranscriptionSubmitter

__all__ = ["GoogleSpeechTranscriber", "encoding_for_mime_type", "ChunkedTranscriptionSubmitter"]
