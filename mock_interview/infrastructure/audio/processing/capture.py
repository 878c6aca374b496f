"""
Audio capture session with Voice Activity Detection and chunked transcription.
"""
import time
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from ....config import CHUNK_INTERVAL_SECONDS, VAD_SILENCE_DURATION, VAD_POLL_INTERVAL
from ....errors import DeviceError
from ....utils import now_ms
from ...data.recordings import AudioChunk
from .vad import VoiceActivityDetector

logger = logging.getLogger("audio_capture")


class CaptureState(str, Enum):
    """Lifecycle states of one recording."""
    IDLE = "idle"
    ACQUIRING = "acquiring"
    RECORDING = "recording"
    STOPPING = "stopping"


@dataclass(frozen=True)
class CaptureConstraints:
    """Requested processing on the capture stream, applied when the device supports it."""
    echo_cancellation: bool = True
    noise_suppression: bool = True
    auto_gain_control: bool = True


class CaptureDevice(ABC):
    """Capability interface over a microphone (or a fake feeding synthetic audio)."""

    mime_type: str = "audio/wav"

    @abstractmethod
    def acquire(self, constraints: CaptureConstraints) -> None:
        """Open the device and start capturing. Raises DeviceError on failure."""

    @abstractmethod
    def release(self) -> None:
        """Release every device resource. Must be safe to call more than once."""

    @abstractmethod
    def sample_level(self) -> np.ndarray:
        """Most recent time-domain samples for level analysis."""

    @abstractmethod
    def read_chunk(self) -> bytes:
        """Drain and encode audio buffered since the previous call."""

    def stop_stream(self) -> None:
        """Stop capturing new audio while keeping the buffered audio readable."""


class AudioCaptureSession:
    """
    Drives one recording at a time: ``IDLE -> ACQUIRING -> RECORDING -> STOPPING -> IDLE``.

    While recording, every tick emits a chunk once the chunk interval has
    elapsed and polls the voice activity detector. Continuous silence for
    ``silence_duration`` seconds stops the recording on its own.
    """

    def __init__(self,
                 device: CaptureDevice,
                 submitter,
                 detector: Optional[VoiceActivityDetector] = None,
                 chunk_interval: float = CHUNK_INTERVAL_SECONDS,
                 silence_duration: float = VAD_SILENCE_DURATION,
                 poll_interval: float = VAD_POLL_INTERVAL,
                 constraints: Optional[CaptureConstraints] = None,
                 clock: Callable[[], float] = time.monotonic,
                 event_bus=None,
                 session_id: str = "recording"):
        self.device = device
        self.submitter = submitter
        self.detector = detector or VoiceActivityDetector()
        self.chunk_interval = chunk_interval
        self.silence_duration = silence_duration
        self.poll_interval = poll_interval
        self.constraints = constraints or CaptureConstraints()
        self.clock = clock
        self.event_bus = event_bus
        self.session_id = session_id

        self.state = CaptureState.IDLE
        self.last_result = ""
        self.auto_stop_count = 0

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._sequence = 0
        self._last_emit: Optional[float] = None
        self._silence_started: Optional[float] = None

    @property
    def is_recording(self) -> bool:
        return self.state == CaptureState.RECORDING

    @property
    def transcript(self) -> str:
        return self.submitter.accumulator.merged_text

    def start(self, background: bool = True) -> bool:
        """
        Acquire the device and begin recording.

        Args:
            background: Run the polling loop on a daemon thread. With False
                the caller drives the session through ``tick()``.

        Returns:
            True if recording started, False if a recording was already active

        Raises:
            DeviceError: If the capture device could not be acquired
        """
        with self._lock:
            if self.state != CaptureState.IDLE:
                logger.warning(f"start() ignored, session is {self.state.value}")
                return False
            self.state = CaptureState.ACQUIRING

        try:
            self.device.acquire(self.constraints)
        except Exception as e:
            self._release_device()
            with self._lock:
                self.state = CaptureState.IDLE
            logger.error(f"Failed to acquire capture device: {e}")
            self._emit_error(e)
            if isinstance(e, DeviceError):
                raise
            raise DeviceError(f"Capture device unavailable: {e}") from e

        with self._lock:
            if self.state != CaptureState.ACQUIRING:
                # stop() ran while the device was opening
                self._release_device()
                return False
            self.submitter.accumulator.reset()
            self._sequence = 0
            self._last_emit = self.clock()
            self._silence_started = None
            self._stop_event.clear()
            self.state = CaptureState.RECORDING

        logger.info("Recording started")
        self._emit_recording_started()

        if background:
            self._thread = threading.Thread(target=self._run, name="audio-capture", daemon=True)
            self._thread.start()
        return True

    def _run(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            if not self.tick():
                break

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Run one polling iteration.

        Returns:
            True while the session is still recording
        """
        auto_stop = False
        with self._lock:
            if self.state != CaptureState.RECORDING:
                return False
            now = self.clock() if now is None else now
            try:
                if now - self._last_emit >= self.chunk_interval:
                    self._emit_chunk()
                    self._last_emit = now

                level = self.detector.sample(self.device.sample_level())
            except Exception as e:
                logger.error(f"Capture failed while recording: {e}")
                self._emit_error(e)
                failed = True
            else:
                failed = False
                if self.detector.is_silence(level):
                    if self._silence_started is None:
                        self._silence_started = now
                        logger.debug(f"Silence started (level: {level.rms:.4f})")
                    elif now - self._silence_started >= self.silence_duration:
                        auto_stop = True
                else:
                    self._silence_started = None

        if failed:
            self.stop()
            return False
        if auto_stop:
            logger.info(f"Silence for {self.silence_duration:.1f}s, stopping recording")
            self.auto_stop_count += 1
            self._emit_silence_auto_stop()
            self.stop()
            return False
        return True

    def stop(self, wait_seconds: float = 0.0) -> str:
        """
        Stop recording, flush the remaining audio, and release the device.

        Calling stop() when no recording is active is a no-op that returns
        the previous result.

        Args:
            wait_seconds: How long to wait for in-flight transcriptions before
                returning. Results arriving later are still merged.

        Returns:
            Transcript text received so far for this recording
        """
        with self._lock:
            if self.state in (CaptureState.IDLE, CaptureState.STOPPING):
                return self.last_result
            previous = self.state
            self.state = CaptureState.STOPPING

        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

        try:
            if previous == CaptureState.RECORDING:
                try:
                    self.device.stop_stream()
                    self._emit_chunk()
                except Exception as e:
                    logger.error(f"Failed to flush final chunk: {e}")
                    self._emit_error(e)
        finally:
            self._release_device()
            with self._lock:
                self._thread = None
                self._silence_started = None
                self.state = CaptureState.IDLE

        if wait_seconds > 0:
            self.submitter.wait(wait_seconds)

        result = self.submitter.accumulator.merged_text
        self.last_result = result
        logger.info(f"Recording stopped after {self._sequence} chunk(s)")
        self._emit_recording_stopped(result)
        return result

    def _emit_chunk(self) -> None:
        data = self.device.read_chunk()
        if not data:
            return
        chunk = AudioChunk(
            data=data,
            mime_type=self.device.mime_type,
            captured_at_ms=now_ms(),
            sequence=self._sequence,
        )
        self._sequence += 1
        logger.debug(f"Emitting chunk {chunk.sequence} ({chunk.size} bytes)")
        self.submitter.submit(chunk)

    def _release_device(self) -> None:
        try:
            self.device.release()
        except Exception as e:
            logger.error(f"Failed to release capture device: {e}")

    # Event helpers. Imported lazily, the interview package depends on this one.

    def _emit(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event)

    def _emit_recording_started(self) -> None:
        if self.event_bus is None:
            return
        from ....interview.events import RecordingStartedEvent
        self._emit(RecordingStartedEvent(self.session_id, time.time()))

    def _emit_recording_stopped(self, transcript: str) -> None:
        if self.event_bus is None:
            return
        from ....interview.events import RecordingStoppedEvent
        self._emit(RecordingStoppedEvent(self.session_id, time.time(), self._sequence, transcript))

    def _emit_silence_auto_stop(self) -> None:
        if self.event_bus is None:
            return
        from ....interview.events import SilenceAutoStopEvent
        self._emit(SilenceAutoStopEvent(self.session_id, time.time(), self.silence_duration))

    def _emit_error(self, error: Exception) -> None:
        if self.event_bus is None:
            return
        from ....interview.events import ErrorOccurredEvent
        self._emit(ErrorOccurredEvent(
            self.session_id, time.time(), type(error).__name__, str(error), "audio_capture"
        ))
