import json

import pytest

from mock_interview.errors import StateError
from mock_interview.interview.controller import InterviewSessionController
from mock_interview.interview.events import EventType
from mock_interview.interview.models import InterviewFlow, InterviewStatus, SessionState
from mock_interview.interview.testing import create_test_flow

TRANSITION = "Thanks for sharing. Are you ready to continue to the next section?"
END = "Thank you for your time, this concludes our interview."
PLAIN = "Can you tell me about a project you are proud of?"


def test_new_session_starts_on_first_section(controller):
    assert controller.section_index == 0
    assert controller.current_section().id == "section-1"
    assert controller.next_section().id == "section-2"
    assert controller.status == InterviewStatus.NOT_STARTED
    assert not controller.is_complete()


def test_plain_message_changes_nothing_but_bookkeeping(controller):
    outcome = controller.process_assistant_message(PLAIN)

    assert not outcome.advanced and not outcome.completed
    assert controller.section_index == 0
    assert controller.state.section_message_count == 1
    assert controller.status == InterviewStatus.IN_PROGRESS
    assert controller.state.responses[0].question == PLAIN


def test_transition_cue_advances_one_section(controller):
    outcome = controller.process_assistant_message(TRANSITION)

    assert outcome.transition_detected and outcome.advanced
    assert controller.section_index == 1
    assert controller.state.last_advanced_section_index == 0
    assert controller.state.section_message_count == 0


def test_transition_on_final_section_is_capped(controller):
    controller.process_assistant_message(TRANSITION)
    controller.process_assistant_message("Let's move on to the next section.")
    assert controller.section_index == 2

    outcome = controller.process_assistant_message("Moving on to the next part now.")

    assert outcome.transition_detected
    assert not outcome.advanced
    assert controller.section_index == 2
    assert not controller.is_complete()


def test_end_cue_before_final_section_is_ignored(controller):
    outcome = controller.process_assistant_message(END)

    assert outcome.end_detected and not outcome.completed
    assert controller.section_index == 0
    assert not controller.is_complete()


def test_end_cue_on_final_section_completes(controller, events):
    bus, seen = events
    controller.event_bus = bus
    controller.process_assistant_message(TRANSITION)
    controller.process_assistant_message(TRANSITION)

    outcome = controller.process_assistant_message(END)

    assert outcome.completed
    assert controller.is_complete()
    assert controller.status == InterviewStatus.COMPLETED
    assert [e.event_type for e in seen] == [
        EventType.SECTION_ADVANCED, EventType.SECTION_ADVANCED, EventType.INTERVIEW_COMPLETED
    ]


def test_both_cues_end_wins_on_final_section(controller):
    controller.advance_section()
    controller.advance_section()

    outcome = controller.process_assistant_message(
        "Let's move on to the next section. Thank you for your time."
    )

    assert outcome.completed
    assert controller.is_complete()


def test_both_cues_transition_wins_elsewhere(controller):
    outcome = controller.process_assistant_message(
        "Let's move on to the next section. Thank you for your time."
    )

    assert outcome.advanced and not outcome.completed
    assert controller.section_index == 1


def test_messages_after_completion_are_ignored(controller):
    controller.mark_finished()
    outcome = controller.process_assistant_message(TRANSITION)

    assert outcome.completed
    assert controller.section_index == 0
    assert controller.state.responses == []


@pytest.mark.parametrize("section_count", [0, 1])
def test_single_or_empty_flow(section_count, clock):
    flow = create_test_flow(section_count) if section_count else InterviewFlow()
    controller = InterviewSessionController.begin(flow, "Analyst", "behavioral", clock=clock)

    assert controller.section_count == 1
    assert not controller.process_assistant_message(TRANSITION).advanced
    assert controller.section_index == 0
    assert controller.process_assistant_message(END).completed


def test_safety_net_forces_advance(controller):
    for i in range(5):
        assert not controller.process_assistant_message(f"Question number {i}?").advanced

    outcome = controller.process_assistant_message("Question number 5?")

    assert outcome.advanced and outcome.forced_advance
    assert controller.section_index == 1


def test_safety_net_can_be_disabled(flow, clock):
    controller = InterviewSessionController.begin(
        flow, "Analyst", "technical", clock=clock, max_questions_per_section=None
    )
    for i in range(10):
        controller.process_assistant_message(f"Question number {i}?")
    assert controller.section_index == 0


def test_should_auto_advance_gate(controller):
    assert controller.should_auto_advance(3, True)
    assert not controller.should_auto_advance(2, True)
    assert not controller.should_auto_advance(3, False)

    controller.state.auto_trigger_enabled = False
    assert not controller.should_auto_advance(5, True)


def test_auto_advance_once_per_section(controller):
    controller.advance_section()
    controller.advance_section()
    assert controller.should_auto_advance(3, True)

    assert not controller.apply_auto_advance(3, True)
    assert controller.state.last_advanced_section_index == 2
    assert not controller.should_auto_advance(3, True)


def test_elapsed_time_and_remaining(controller, clock):
    clock.advance(90)
    controller.update_elapsed_time()

    assert controller.state.elapsed_seconds == 90
    assert controller.elapsed_minutes == 1.5
    assert controller.total_time_remaining() == 23.5
    assert controller.section_time_remaining() == 8.5
    assert not controller.is_time_exhausted()


def test_progress_percentage(controller):
    assert controller.progress_percentage() == pytest.approx(100 / 3)
    controller.advance_section()
    controller.advance_section()
    assert controller.progress_percentage() == 100.0


def test_record_response_deduplicates_and_fills_answers(controller):
    controller.record_response("What is your background?", "")
    controller.record_response("What is your background?", "")
    controller.record_response("What is your background?", "Ten years of Python")
    controller.record_response("What is your background?", "Ten years of Python")

    assert len(controller.state.responses) == 1
    assert controller.state.responses[0].answer == "Ten years of Python"


def test_record_answer_targets_latest_open_question(controller):
    controller.process_assistant_message(PLAIN)
    assert controller.record_answer("The billing rewrite.")
    assert not controller.record_answer("Nothing left to answer")
    assert not controller.record_answer("   ")

    messages = controller.to_messages()
    assert [m["role"] for m in messages] == ["assistant", "user"]
    assert messages[1]["content"] == "The billing rewrite."


def test_snapshot_round_trip_is_byte_identical(controller, clock):
    controller.process_assistant_message(PLAIN)
    controller.record_answer("I built a payments service.")
    controller.process_assistant_message(TRANSITION)
    clock.advance(42.5)
    controller.update_elapsed_time()

    data = controller.dumps()
    restored = InterviewSessionController.loads(data, clock=clock)

    assert restored.dumps() == data
    assert restored.section_index == 1
    assert restored.state.last_advanced_section_index == 0


def test_snapshot_round_trip_with_integer_timings(flow, clock):
    state = SessionState(flow, "Backend Engineer", "technical", started_at=0, elapsed_seconds=0)
    data = InterviewSessionController(state, clock=clock).dumps()

    restored = InterviewSessionController.loads(data, clock=clock)

    assert restored.dumps() == data
    assert '"elapsedSeconds":0.0' in data
    assert '"startedAt":0.0' in data


def test_snapshot_is_versioned_camel_case(controller):
    snapshot = controller.to_snapshot()
    assert snapshot["version"] == 1
    assert "currentSectionIndex" in snapshot
    assert "lastAdvancedSectionIndex" in snapshot


@pytest.mark.parametrize("index,expected", [(7, 2), (-3, 0), ("two", 0), (2.0, 2), (9.0, 2), (1.5, 0)])
def test_out_of_range_index_is_clamped(controller, index, expected):
    snapshot = controller.to_snapshot()
    snapshot["currentSectionIndex"] = index

    restored = InterviewSessionController.from_snapshot(snapshot)

    assert restored.section_index == expected


@pytest.mark.parametrize("data", ["{not json", "[1, 2]", json.dumps("text"), 42])
def test_undecodable_snapshot_raises_state_error(data):
    with pytest.raises(StateError):
        InterviewSessionController.from_snapshot(data)


def test_snapshot_without_flow_is_single_section(controller):
    snapshot = controller.to_snapshot()
    del snapshot["flow"]

    restored = InterviewSessionController.from_snapshot(snapshot)

    assert restored.section_count == 1
    assert restored.current_section() is None


def test_to_record_status(controller):
    assert controller.to_record()["status"] == "pending"
    controller.process_assistant_message(PLAIN)
    assert controller.to_record()["status"] == "in_progress"
    controller.mark_finished()

    record = controller.to_record()
    assert record["status"] == "completed"
    assert record["currentSectionIndex"] == 0
    assert record["transcript"][0]["question"] == PLAIN


def test_contexts_describe_current_position(controller):
    assert "Current Section: Section 1" in controller.section_context()
    assert "Total Progress: 1/3 sections" in controller.interview_context()
