"""
Energy-based Voice Activity Detection.
"""
from dataclasses import dataclass

import numpy as np

from ....config import VAD_SILENCE_THRESHOLD
from .processing import to_float_samples


@dataclass(frozen=True)
class SignalLevel:
    """Short-term energy of one analysis buffer."""
    rms: float


def compute_rms(buffer) -> float:
    """Root-mean-square of a time-domain buffer; 0.0 for an empty buffer."""
    samples = to_float_samples(buffer)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))


class VoiceActivityDetector:
    """Classifies audio buffers as speech or silence against a fixed RMS threshold."""

    def __init__(self, threshold: float = VAD_SILENCE_THRESHOLD):
        self.threshold = threshold

    def sample(self, buffer) -> SignalLevel:
        return SignalLevel(rms=compute_rms(buffer))

    def is_silence(self, level: SignalLevel) -> bool:
        return level.rms < self.threshold
