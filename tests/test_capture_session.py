import threading

import pytest

from mock_interview.errors import DeviceError
from mock_interview.infrastructure.audio.processing import (
    AudioCaptureSession, CaptureConstraints, CaptureState
)
from mock_interview.infrastructure.audio.speech import ChunkedTranscriptionSubmitter
from mock_interview.interview.events import EventType
from mock_interview.interview.testing import FakeCaptureDevice, MockTranscriber


@pytest.fixture
def submitter(transcriber):
    submitter = ChunkedTranscriptionSubmitter(transcriber)
    yield submitter
    submitter.shutdown()


def make_session(device, submitter, clock, **kwargs):
    return AudioCaptureSession(device, submitter, clock=clock, **kwargs)


def test_start_acquires_with_processing_constraints(device, submitter, clock):
    session = make_session(device, submitter, clock)

    assert session.start(background=False)

    assert session.state == CaptureState.RECORDING
    assert device.acquired
    assert device.constraints == CaptureConstraints(True, True, True)
    session.stop()


def test_start_while_recording_is_ignored(device, submitter, clock):
    session = make_session(device, submitter, clock)
    session.start(background=False)

    assert not session.start(background=False)
    assert device.acquire_count == 1
    session.stop()


def test_acquire_failure_releases_and_raises(submitter, clock, events):
    bus, seen = events
    device = FakeCaptureDevice(fail_on_acquire=True)
    session = make_session(device, submitter, clock, event_bus=bus)

    with pytest.raises(DeviceError):
        session.start(background=False)

    assert session.state == CaptureState.IDLE
    assert device.release_count == 1
    assert [e.event_type for e in seen] == [EventType.ERROR_OCCURRED]


def test_chunks_follow_the_chunk_interval(device, submitter, clock):
    session = make_session(device, submitter, clock, chunk_interval=3.0)
    session.start(background=False)
    start = clock()

    session.tick(start + 1.0)
    assert device.chunks_read == 0
    session.tick(start + 3.0)
    assert device.chunks_read == 1
    session.tick(start + 5.0)
    assert device.chunks_read == 1
    session.tick(start + 6.0)
    assert device.chunks_read == 2
    session.stop()


def test_continuous_silence_auto_stops_exactly_once(submitter, clock, events):
    bus, seen = events
    device = FakeCaptureDevice(levels=[0.0])
    session = make_session(device, submitter, clock, silence_duration=5.0, event_bus=bus)
    session.start(background=False)
    start = clock()

    assert session.tick(start)
    assert session.tick(start + 4.95)
    assert not session.tick(start + 5.0)

    assert session.state == CaptureState.IDLE
    assert session.auto_stop_count == 1
    assert device.release_count == 1

    assert not session.tick(start + 10.0)
    assert session.auto_stop_count == 1
    assert [e.event_type for e in seen].count(EventType.SILENCE_AUTO_STOP) == 1


def test_speech_resets_the_silence_timer(submitter, clock):
    device = FakeCaptureDevice(levels=[0.0, 0.0, 0.5, 0.0, 0.0, 0.0])
    session = make_session(device, submitter, clock, silence_duration=5.0)
    session.start(background=False)
    start = clock()

    assert session.tick(start)
    assert session.tick(start + 3.0)
    assert session.tick(start + 4.0)      # speech
    assert session.tick(start + 8.0)      # silence starts again
    assert session.tick(start + 12.0)
    assert not session.tick(start + 13.0)
    assert session.auto_stop_count == 1


def test_stop_flushes_final_chunk_and_returns_transcript(device, submitter, clock):
    session = make_session(device, submitter, clock)
    session.start(background=False)

    result = session.stop(wait_seconds=5.0)

    assert result == "hello"
    assert device.stop_count == 1
    assert device.chunks_read == 1
    assert device.release_count == 1


def test_stop_is_idempotent(device, submitter, clock):
    session = make_session(device, submitter, clock)
    session.start(background=False)
    first = session.stop(wait_seconds=5.0)

    assert session.stop() == first
    assert session.stop() == first
    assert device.release_count == 1


def test_stop_without_recording_returns_empty(device, submitter, clock):
    session = make_session(device, submitter, clock)
    assert session.stop() == ""
    assert device.release_count == 0


def test_new_recording_resets_transcript(device, submitter, clock):
    session = make_session(device, submitter, clock)
    session.start(background=False)
    session.stop(wait_seconds=5.0)

    session.start(background=False)
    assert session.transcript == ""
    session.stop(wait_seconds=5.0)


def test_small_chunks_never_reach_the_transcriber(clock):
    device = FakeCaptureDevice(chunk_bytes=150)
    transcriber = MockTranscriber(default="never")
    submitter = ChunkedTranscriptionSubmitter(transcriber)
    session = make_session(device, submitter, clock)
    session.start(background=False)

    assert session.stop(wait_seconds=1.0) == ""
    assert transcriber.calls == []
    assert submitter.dropped_count == 1
    submitter.shutdown()


def test_background_polling_stops_on_silence(submitter):
    device = FakeCaptureDevice(levels=[0.0])
    session = AudioCaptureSession(device, submitter, silence_duration=0.2, poll_interval=0.01)
    session.start()
    thread = session._thread

    thread.join(timeout=5.0)

    assert session.state == CaptureState.IDLE
    assert session.auto_stop_count == 1
    assert device.release_count == 1


def test_recording_events(device, submitter, clock, events):
    bus, seen = events
    session = make_session(device, submitter, clock, event_bus=bus)
    session.start(background=False)
    session.stop(wait_seconds=5.0)

    types = [e.event_type for e in seen]
    assert types[0] == EventType.RECORDING_STARTED
    assert types[-1] == EventType.RECORDING_STOPPED
    assert seen[-1].data["chunk_count"] == 1


def test_sample_failure_stops_and_releases(submitter, clock, events):
    bus, seen = events
    device = FakeCaptureDevice(fail_on_sample=True)
    session = make_session(device, submitter, clock, event_bus=bus)
    session.start(background=False)

    assert not session.tick()

    assert session.state == CaptureState.IDLE
    assert device.release_count == 1
    assert EventType.ERROR_OCCURRED in [e.event_type for e in seen]
    assert seen[-1].event_type == EventType.RECORDING_STOPPED


def test_flush_failure_still_releases(device, submitter, clock, events):
    bus, seen = events
    session = make_session(device, submitter, clock, event_bus=bus)
    session.start(background=False)
    device.fail_on_read = True

    assert session.stop(wait_seconds=1.0) == ""

    assert session.state == CaptureState.IDLE
    assert device.release_count == 1
    errors = [e for e in seen if e.event_type == EventType.ERROR_OCCURRED]
    assert len(errors) == 1
    assert errors[0].data["component"] == "audio_capture"


class GatedTranscriber:
    """Holds the first chunk until ``gate`` is set."""

    def __init__(self):
        self.gate = threading.Event()
        self.entered = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def transcribe(self, data, mime_type):
        with self._lock:
            self.calls += 1
            first = self.calls == 1
        if first:
            self.entered.set()
            self.gate.wait(5.0)
            return "from recording one"
        return "recording two"


def test_late_result_does_not_leak_into_next_recording(device, clock):
    transcriber = GatedTranscriber()
    submitter = ChunkedTranscriptionSubmitter(transcriber)
    session = make_session(device, submitter, clock)

    session.start(background=False)
    assert session.stop() == ""
    assert transcriber.entered.wait(5.0)

    session.start(background=False)
    transcriber.gate.set()
    result = session.stop(wait_seconds=5.0)

    assert result == "recording two"
    assert "from recording one" not in session.transcript
    submitter.shutdown()
