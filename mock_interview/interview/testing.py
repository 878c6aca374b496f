"""
Testing infrastructure with mock services for the interview system.
"""
import threading
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import numpy as np

from ..errors import DeviceError
from ..infrastructure.audio.processing import CaptureConstraints, CaptureDevice
from ..infrastructure.llm import extract_json_object
from .models import Difficulty, InterviewFlow, InterviewFlowSection

ScriptedReply = Union[str, Exception]


class ManualClock:
    """Clock that only moves when told to. Use ``sleep`` as a drop-in for time.sleep."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now

    def sleep(self, seconds: float) -> None:
        self.advance(seconds)


class FakeCaptureDevice(CaptureDevice):
    """
    Capture device fed by a synthetic level trace.

    Each ``sample_level()`` call returns a constant buffer whose RMS is the
    next value of ``levels``; once the trace runs out the last value repeats.
    ``fail_on_sample`` and ``fail_on_read`` make the device break mid-recording.
    """

    mime_type = "audio/wav"

    def __init__(self,
                 levels: Sequence[float] = (0.5,),
                 chunk_bytes: int = 1024,
                 fail_on_acquire: bool = False,
                 fail_on_sample: bool = False,
                 fail_on_read: bool = False,
                 window: int = 256):
        self.levels = list(levels) or [0.0]
        self.chunk_bytes = chunk_bytes
        self.fail_on_acquire = fail_on_acquire
        self.fail_on_sample = fail_on_sample
        self.fail_on_read = fail_on_read
        self.window = window

        self.acquired = False
        self.acquire_count = 0
        self.release_count = 0
        self.stop_count = 0
        self.chunks_read = 0
        self.constraints: Optional[CaptureConstraints] = None
        self._position = 0

    def acquire(self, constraints: CaptureConstraints) -> None:
        self.acquire_count += 1
        self.constraints = constraints
        if self.fail_on_acquire:
            raise DeviceError("Permission denied")
        self.acquired = True

    def release(self) -> None:
        self.release_count += 1
        self.acquired = False

    def stop_stream(self) -> None:
        self.stop_count += 1

    def sample_level(self) -> np.ndarray:
        if self.fail_on_sample:
            raise DeviceError("Input stream overflowed")
        level = self.levels[min(self._position, len(self.levels) - 1)]
        self._position += 1
        return np.full(self.window, level, dtype=np.float32)

    def read_chunk(self) -> bytes:
        self.chunks_read += 1
        if self.fail_on_read:
            raise DeviceError("Device disconnected")
        return b"\x01" * self.chunk_bytes


class MockTranscriber:
    """Transcriber returning scripted text (or raising scripted errors) in call order."""

    def __init__(self, responses: Optional[Sequence[ScriptedReply]] = None, default: str = ""):
        self.responses = list(responses or [])
        self.default = default
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def transcribe(self, data: bytes, mime_type: str) -> str:
        with self._lock:
            self.calls.append({"size": len(data), "mime_type": mime_type})
            reply = self.responses.pop(0) if self.responses else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply


class MockLLMClient:
    """Mock LLM client for testing."""

    def __init__(self,
                 mock_responses: Optional[Sequence[ScriptedReply]] = None,
                 stream_responses: Optional[Sequence[ScriptedReply]] = None):
        self.mock_responses = list(mock_responses or [])
        self.stream_responses = list(stream_responses or [])
        self.request_history: List[Dict[str, Any]] = []

    def generate_content(self, prompt: str, temperature: float = 0.0, **kwargs) -> str:
        """Return the next scripted response, or an empty string once they run out."""
        self.request_history.append({
            "prompt": prompt,
            "temperature": temperature,
            "kwargs": kwargs
        })
        reply = self.mock_responses.pop(0) if self.mock_responses else ""
        if isinstance(reply, Exception):
            raise reply
        return reply

    def generate_json(self, prompt: str, temperature: float = 0.0, **kwargs) -> Dict[str, Any]:
        return extract_json_object(self.generate_content(prompt, temperature, **kwargs))

    def stream_chat(self, system_prompt: str, history, temperature: float = 0.7, **kwargs) -> Iterator[str]:
        """Yield the next scripted reply word by word."""
        self.request_history.append({
            "system_prompt": system_prompt,
            "history": list(history),
            "temperature": temperature,
        })
        reply = self.stream_responses.pop(0) if self.stream_responses else ""
        if isinstance(reply, Exception):
            raise reply
        words = reply.split(" ")
        for i, word in enumerate(words):
            yield word if i == len(words) - 1 else word + " "


def create_test_flow(section_count: int = 3) -> InterviewFlow:
    """Flow of ``section_count`` ten-minute sections."""
    sections = tuple(
        InterviewFlowSection(
            id=f"section-{i}",
            title=f"Section {i}",
            description=f"Test section {i}",
            order=i,
            estimated_duration_minutes=10,
            focus_areas=(f"area-{i}",),
        )
        for i in range(1, section_count + 1)
    )
    return InterviewFlow(
        sections=sections,
        total_duration_minutes=10 * section_count,
        difficulty=Difficulty.MID,
        focus="mixed",
    )


def create_mock_interview_setup(section_count: int = 3) -> Dict[str, Any]:
    """Create a complete mock interview setup for testing."""
    return {
        "flow": create_test_flow(section_count),
        "llm_client": MockLLMClient(),
        "transcriber": MockTranscriber(default="hello"),
        "device": FakeCaptureDevice(),
        "clock": ManualClock(),
    }
