import pytest

from mock_interview.interview.controller import InterviewSessionController
from mock_interview.interview.events import InterviewEventBus
from mock_interview.interview.testing import (
    FakeCaptureDevice, ManualClock, MockLLMClient, MockTranscriber, create_test_flow
)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def flow():
    return create_test_flow(3)


@pytest.fixture
def events():
    """Event bus plus the list of every event it emitted."""
    bus = InterviewEventBus()
    seen = []
    bus.subscribe_all(seen.append)
    return bus, seen


@pytest.fixture
def controller(flow, clock):
    return InterviewSessionController.begin(
        flow, "Backend Engineer", "technical", clock=clock, auto_trigger_enabled=True
    )


@pytest.fixture
def device():
    return FakeCaptureDevice()


@pytest.fixture
def transcriber():
    return MockTranscriber(default="hello")


@pytest.fixture
def llm():
    return MockLLMClient()
