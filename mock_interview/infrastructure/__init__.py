"""Infrastructure components for the mock interview system.

This module contains low-level technical components that provide
foundational capabilities for the interview system.
"""

# Audio infrastructure
from .audio import (
    AudioCaptureSession, CaptureConstraints, CaptureDevice, VoiceActivityDetector,
    GoogleSpeechTranscriber, ChunkedTranscriptionSubmitter
)

# Recording data
from .data import AudioChunk, TranscriptSegment, TranscriptAccumulator

# LLM infrastructure
from .llm import VertexRestClient

__all__ = [
    # Audio capture
    "AudioCaptureSession", "CaptureConstraints", "CaptureDevice", "VoiceActivityDetector",

    # Speech services
    "GoogleSpeechTranscriber", "ChunkedTranscriptionSubmitter",

    # Recording data
    "AudioChunk", "TranscriptSegment", "TranscriptAccumulator",

    # LLM client
    "VertexRestClient"
]
