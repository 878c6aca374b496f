"""
Audio capture and speech services for mock interviews.

This module contains all audio-related functionality organized into clear submodules:
- hardware: PyAudio microphone driver
- processing: Signal processing, voice activity detection and the capture session
- speech: Speech-to-text and chunked transcription
"""

# Convenient imports from submodules
from .processing import AudioCaptureSession, CaptureConstraints, CaptureDevice, VoiceActivityDetector
from .speech import GoogleSpeechTranscriber, ChunkedTranscriptionSubmitter

__all__ = [
    "AudioCaptureSession",
    "CaptureConstraints",
    "CaptureDevice",
    "VoiceActivityDetector",
    "GoogleSpeechTranscriber",
    "ChunkedTranscriptionSubmitter",
]
