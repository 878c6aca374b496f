import pytest

from mock_interview.config import Config
from mock_interview.errors import DeviceError, GenerationError, StateError
from mock_interview.interview.services import InterviewTurnService, VoiceAnswerService
from mock_interview.interview.testing import FakeCaptureDevice, MockLLMClient, MockTranscriber

WELCOME = "Welcome! To start, tell me about your current role."
TRANSITION = "Thanks, that is helpful. Are you ready to continue to the next section?"


@pytest.fixture
def service(clock):
    llm = MockLLMClient(stream_responses=[WELCOME, TRANSITION])
    return InterviewTurnService(llm, clock=clock)


@pytest.fixture
def snapshot(service, flow):
    return service.begin(flow, "Backend Engineer", "technical", cv_text="Python, Go, Postgres")


def test_first_turn_streams_welcome(service, snapshot):
    deltas = []

    result = service.run_turn(snapshot, on_delta=deltas.append)

    assert result.reply == WELCOME
    assert "".join(deltas) == WELCOME
    assert not result.outcome.advanced
    assert result.snapshot["responses"][0]["question"] == WELCOME
    request = service.llm_client.request_history[0]
    assert "beginning of the interview" in request["system_prompt"]
    assert "Python, Go, Postgres" in request["system_prompt"]


def test_transition_reply_advances_after_stream_completes(service, snapshot):
    first = service.run_turn(snapshot)
    answered = service.record_answer(first.snapshot, "I lead the payments platform team.")

    result = service.run_turn(answered)

    assert result.outcome.advanced
    assert result.snapshot["currentSectionIndex"] == 1
    history = service.llm_client.request_history[1]["history"]
    assert [m["role"] for m in history] == ["assistant", "user"]
    assert "Continue the conversation" in service.llm_client.request_history[1]["system_prompt"]


def test_stream_failure_raises_and_leaves_state_alone(clock, flow, events):
    bus, seen = events
    service = InterviewTurnService(MockLLMClient(stream_responses=[RuntimeError("503")]),
                                   event_bus=bus, clock=clock)
    snapshot = service.begin(flow, "Backend Engineer", "technical")

    with pytest.raises(GenerationError):
        service.run_turn(snapshot)

    assert service.load(snapshot).state.responses == []
    assert seen[-1].data["component"] == "turn_service"


def test_empty_reply_changes_nothing(clock, snapshot):
    service = InterviewTurnService(MockLLMClient(stream_responses=[""]), clock=clock)

    result = service.run_turn(snapshot)

    assert result.reply == ""
    assert result.snapshot["responses"] == []


def test_bad_snapshot_raises_state_error(service):
    with pytest.raises(StateError):
        service.run_turn("{truncated")


def test_elapsed_time_updates_each_turn(service, snapshot, clock):
    clock.advance(120)
    result = service.run_turn(snapshot)
    assert result.snapshot["elapsedSeconds"] == 120


def test_voice_answer_stops_on_silence(clock):
    device = FakeCaptureDevice(levels=[0.5] * 40 + [0.0])
    transcriber = MockTranscriber(default="hello")
    voice = VoiceAnswerService(device, transcriber, clock=clock, sleep=clock.sleep)

    transcript = voice.record_answer(max_seconds=60)

    assert transcript.startswith("hello")
    assert voice.session.auto_stop_count == 1
    assert device.release_count == 1
    voice.close()


def test_voice_answer_stops_at_time_limit(clock):
    device = FakeCaptureDevice(levels=[0.5])
    voice = VoiceAnswerService(device, MockTranscriber(default="talking"), clock=clock, sleep=clock.sleep)

    transcript = voice.record_answer(max_seconds=2.0)

    assert transcript == "talking"
    assert voice.session.auto_stop_count == 0
    assert device.release_count == 1
    voice.close()


def test_voice_answer_uses_config(clock):
    config = Config(google_cloud_project="demo", silence_duration=1.0, chunk_interval_seconds=10.0)
    device = FakeCaptureDevice(levels=[0.0])
    voice = VoiceAnswerService(device, MockTranscriber(default="ok"), config, clock=clock, sleep=clock.sleep)

    voice.record_answer()

    assert voice.session.silence_duration == 1.0
    assert voice.session.auto_stop_count == 1
    assert clock() - 1000.0 < 2.0
    voice.close()


def test_voice_answer_device_failure():
    voice = VoiceAnswerService(FakeCaptureDevice(fail_on_acquire=True), MockTranscriber())
    with pytest.raises(DeviceError):
        voice.record_answer(max_seconds=1.0)
    voice.close()
