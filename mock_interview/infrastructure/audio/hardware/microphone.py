"""
PyAudio microphone implementing the CaptureDevice interface.
"""
import logging
import threading
from collections import deque
from math import ceil
from typing import Optional

import numpy as np

from ....config import (
    CHANNELS, SAMPLE_RATE_CAPTURE, SAMPLE_RATE_TARGET, FRAME_MS,
    TARGET_RMS, VAD_WINDOW_SECONDS
)
from ....errors import DeviceError
from ....utils import with_suppressed_audio_warnings
from ..processing.capture import CaptureConstraints, CaptureDevice
from ..processing.processing import (
    stereo_to_mono, remove_dc, resample, normalize_audio, to_pcm16, encode_wav
)

logger = logging.getLogger("microphone")


@with_suppressed_audio_warnings
def find_input_device(pa, preferred_names=()) -> Optional[int]:
    """
    Pick an input device index: first device whose name contains one of
    ``preferred_names``, otherwise PortAudio's default input device.
    """
    for i in range(pa.get_device_count()):
        try:
            info = pa.get_device_info_by_index(i)
        except Exception:
            continue
        max_input_channels = info.get('maxInputChannels', 0)
        device_name = str(info.get('name', '')).lower()
        if max_input_channels and any(name.lower() in device_name for name in preferred_names):
            logger.info(f"Found preferred input device at index {i}: {info['name']}")
            return i
    try:
        return int(pa.get_default_input_device_info()['index'])
    except (IOError, OSError):
        return None


class PyAudioMicrophone(CaptureDevice):
    """Captures PCM16 audio through PyAudio and emits 16 kHz mono WAV chunks."""

    mime_type = "audio/wav"

    def __init__(self,
                 input_device: Optional[int] = None,
                 num_channels: int = CHANNELS,
                 sr_capture: int = SAMPLE_RATE_CAPTURE,
                 sr_target: int = SAMPLE_RATE_TARGET,
                 frame_ms: int = FRAME_MS,
                 target_rms: float = TARGET_RMS,
                 vad_window_seconds: float = VAD_WINDOW_SECONDS,
                 preferred_names=()):
        self.input_device = input_device
        self.num_channels = num_channels
        self.sr_capture = sr_capture
        self.sr_target = sr_target
        self.frame_size = int(sr_capture * frame_ms / 1000)
        self.target_rms = target_rms
        self.preferred_names = tuple(preferred_names)
        self.constraints = CaptureConstraints()

        window_frames = max(1, ceil(vad_window_seconds * sr_capture / self.frame_size))
        self._recent = deque(maxlen=window_frames)
        self._pending = []
        self._lock = threading.Lock()
        self._pyaudio = None
        self._pa = None
        self._stream = None

    @with_suppressed_audio_warnings
    def acquire(self, constraints: CaptureConstraints) -> None:
        self.constraints = constraints
        try:
            import pyaudio
        except ImportError as e:
            raise DeviceError("pyaudio is not installed; install the 'audio' extra") from e

        self._pyaudio = pyaudio
        try:
            self._pa = pyaudio.PyAudio()
            if self.input_device is None:
                self.input_device = find_input_device(self._pa, self.preferred_names)
            logger.info(f"Opening microphone: device={self.input_device} "
                        f"channels={self.num_channels} rate={self.sr_capture} frame={self.frame_size}")
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=self.num_channels,
                rate=self.sr_capture,
                input=True,
                input_device_index=self.input_device,
                frames_per_buffer=self.frame_size,
                stream_callback=self._on_audio,
            )
            self._stream.start_stream()
        except Exception as e:
            self.release()
            raise DeviceError(f"Failed to open microphone: {e}") from e

        if constraints.echo_cancellation:
            logger.debug("Echo cancellation requested; not available through PortAudio")

    def _on_audio(self, in_data, frame_count, time_info, status):
        samples = np.frombuffer(in_data, dtype=np.int16).astype(np.float32) / 32768.0
        if self.num_channels > 1:
            samples = stereo_to_mono(samples.reshape(-1, self.num_channels))
        with self._lock:
            self._pending.append(samples)
            self._recent.append(samples)
        return (None, self._pyaudio.paContinue)

    def sample_level(self) -> np.ndarray:
        with self._lock:
            if not self._recent:
                return np.zeros(0, dtype=np.float32)
            return np.concatenate(list(self._recent))

    def read_chunk(self) -> bytes:
        with self._lock:
            if not self._pending:
                return b""
            mono = np.concatenate(self._pending)
            self._pending = []

        if self.constraints.noise_suppression:
            mono = remove_dc(mono)
        y = resample(mono, self.sr_capture, self.sr_target)
        if self.constraints.auto_gain_control:
            y = normalize_audio(y, self.target_rms)
        return encode_wav(to_pcm16(y), self.sr_target, channels=1)

    def stop_stream(self) -> None:
        if self._stream is not None and self._stream.is_active():
            self._stream.stop_stream()

    def release(self) -> None:
        stream, pa = self._stream, self._pa
        self._stream = None
        self._pa = None
        try:
            if stream is not None:
                stream.close()
        finally:
            if pa is not None:
                pa.terminate()
        with self._lock:
            self._recent.clear()
            self._pending = []
