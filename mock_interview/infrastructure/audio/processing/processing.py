"""
Basic audio processing functions including format conversions and normalization.
"""
import io
import wave
from math import gcd

import numpy as np
from scipy.signal import resample_poly

from ....config import TARGET_RMS


def stereo_to_mono(x: np.ndarray) -> np.ndarray:
    """Convert stereo audio to mono by averaging channels."""
    return np.mean(x, axis=1)


def remove_dc(x: np.ndarray) -> np.ndarray:
    """Remove DC offset from audio signal."""
    if x.size == 0:
        return x
    return x - np.mean(x)


def resample(mono: np.ndarray, sr_from: int, sr_to: int) -> np.ndarray:
    """Resample mono audio between arbitrary integer rates."""
    if sr_from == sr_to or mono.size == 0:
        return mono.astype(np.float32)
    g = gcd(sr_from, sr_to)
    return resample_poly(mono, up=sr_to // g, down=sr_from // g).astype(np.float32)


def normalize_audio(audio: np.ndarray, target_rms: float = TARGET_RMS) -> np.ndarray:
    """Normalize audio to target RMS level."""
    if audio.size == 0:
        return audio
    rms = float(np.sqrt(np.mean(audio**2)) + 1e-9)
    gain = min(20.0, target_rms / rms)
    return audio * gain


def to_float_samples(buffer) -> np.ndarray:
    """
    Convert a time-domain buffer to float32 samples in [-1, 1].

    Unsigned 8-bit buffers are centred on 128 (browser analyser taps),
    16/32-bit integer buffers are scaled by their full range, float
    buffers pass through.
    """
    x = np.asarray(buffer)
    if x.dtype == np.uint8:
        return (x.astype(np.float32) - 128.0) / 128.0
    if x.dtype == np.int16:
        return x.astype(np.float32) / 32768.0
    if x.dtype == np.int32:
        return x.astype(np.float32) / 2147483648.0
    return x.astype(np.float32)


def to_pcm16(audio: np.ndarray) -> np.ndarray:
    """Convert float samples in [-1, 1] to PCM16."""
    return np.clip(audio * 32767, -32768, 32767).astype(np.int16)


def encode_wav(pcm16: np.ndarray, sr: int, channels: int = 1) -> bytes:
    """Encode PCM16 audio data as an in-memory WAV file."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sr)
        wf.writeframes(pcm16.tobytes())
    return buf.getvalue()
