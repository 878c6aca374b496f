"""Audio processing, voice activity detection, and capture modules."""

from .processing import (
    stereo_to_mono,
    remove_dc,
    resample,
    normalize_audio,
    to_float_samples,
    to_pcm16,
    encode_wav,
)
from .vad import SignalLevel, VoiceActivityDetector, compute_rms
from .capture import (
    AudioCaptureSession,
    CaptureConstraints,
    CaptureDevice,
    CaptureState,
)

__all__ = [
    "AudioCaptureSession",
    "CaptureConstraints",
    "CaptureDevice",
    "CaptureState",
    "SignalLevel",
    "VoiceActivityDetector",
    "compute_rms",
    "stereo_to_mono",
    "remove_dc",
    "resample",
    "normalize_audio",
    "to_float_samples",
    "to_pcm16",
    "encode_wav",
]
