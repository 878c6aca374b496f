"""
Interview session state machine.

The controller is rebuilt from a snapshot on every request, updated with
the newest finalized turn, and serialized back for the caller to store.
There is one writer per interview; concurrent writes are last-write-wins.
"""
import json
import time
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..config import (
    AUTO_ADVANCE_MIN_MESSAGES, MAX_INTERVIEW_MINUTES, MAX_QUESTIONS_PER_SECTION
)
from ..errors import StateError
from ..utils import clamp, format_duration, progress_percentage
from .events import InterviewCompletedEvent, SectionAdvancedEvent
from .models import (
    InterviewFlow, InterviewFlowSection, InterviewResponse, InterviewStatus,
    MessageOutcome, SessionState
)
from .patterns import classify_message

logger = logging.getLogger("session_controller")

SNAPSHOT_VERSION = 1
DEFAULT_SECTION_ID = "default"


class InterviewSessionController:
    """
    Tracks section progression, elapsed time and completion for one interview.

    An empty flow behaves as a single implicit section: the index stays at 0
    and the first end cue completes the interview.
    """

    def __init__(self,
                 state: SessionState,
                 clock: Callable[[], float] = time.time,
                 event_bus=None,
                 session_id: str = "interview",
                 max_questions_per_section: Optional[int] = MAX_QUESTIONS_PER_SECTION,
                 max_interview_minutes: float = MAX_INTERVIEW_MINUTES):
        self.state = state
        self.clock = clock
        self.event_bus = event_bus
        self.session_id = session_id
        self.max_questions_per_section = max_questions_per_section
        self.max_interview_minutes = max_interview_minutes
        self._clamp_index()

    @classmethod
    def begin(cls,
              flow: InterviewFlow,
              position: str,
              interview_type: str,
              cv_text: Optional[str] = None,
              job_description: Optional[str] = None,
              auto_trigger_enabled: bool = False,
              clock: Callable[[], float] = time.time,
              **kwargs) -> "InterviewSessionController":
        """Create a controller for a new interview starting now."""
        state = SessionState(
            flow=flow,
            position=position,
            interview_type=interview_type,
            started_at=clock(),
            cv_text=cv_text,
            job_description=job_description,
            auto_trigger_enabled=auto_trigger_enabled,
        )
        return cls(state, clock=clock, **kwargs)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    @property
    def sections(self):
        return self.state.flow.sections

    @property
    def section_count(self) -> int:
        """Number of sections, counting an empty flow as one implicit section."""
        return max(1, len(self.sections))

    @property
    def section_index(self) -> int:
        return self.state.current_section_index

    @property
    def on_final_section(self) -> bool:
        return self.section_index >= self.section_count - 1

    def current_section(self) -> Optional[InterviewFlowSection]:
        idx = self.section_index
        if 0 <= idx < len(self.sections):
            return self.sections[idx]
        return None

    def next_section(self) -> Optional[InterviewFlowSection]:
        idx = self.section_index + 1
        if idx < len(self.sections):
            return self.sections[idx]
        return None

    def _current_section_id(self) -> str:
        section = self.current_section()
        return section.id if section else DEFAULT_SECTION_ID

    def _clamp_index(self) -> None:
        idx = self.state.current_section_index
        upper = self.section_count - 1
        if isinstance(idx, float) and idx.is_integer():
            idx = int(idx)
            self.state.current_section_index = idx
        if not isinstance(idx, int) or isinstance(idx, bool):
            logger.warning(f"Section index {idx!r} is not an integer, resetting to 0")
            self.state.current_section_index = 0
        elif idx < 0 or idx > upper:
            clamped = clamp(idx, 0, upper)
            logger.warning(f"Section index {idx} outside [0, {upper}], clamping to {clamped}")
            self.state.current_section_index = clamped

    # ------------------------------------------------------------------
    # Status and timing
    # ------------------------------------------------------------------

    @property
    def status(self) -> InterviewStatus:
        if self.is_complete():
            return InterviewStatus.COMPLETED
        if self.state.last_assistant_message is None and not self.state.responses:
            return InterviewStatus.NOT_STARTED
        return InterviewStatus.IN_PROGRESS

    def update_elapsed_time(self) -> float:
        """Recompute elapsed seconds since the interview started."""
        self.state.elapsed_seconds = max(0.0, self.clock() - self.state.started_at)
        return self.state.elapsed_seconds

    @property
    def elapsed_minutes(self) -> float:
        return self.state.elapsed_seconds / 60.0

    def is_complete(self) -> bool:
        """
        True once marked finished, or when the final section is active and
        the latest assistant message carried an end cue.
        """
        if self.state.finished:
            return True
        return self.on_final_section and self.state.completion_detected

    def is_time_exhausted(self) -> bool:
        return self.elapsed_minutes >= self.max_interview_minutes

    def total_time_remaining(self) -> float:
        """Minutes left before the overall interview time cap."""
        return max(0.0, self.max_interview_minutes - self.elapsed_minutes)

    def _section_started_at(self) -> float:
        section_id = self._current_section_id()
        for response in self.state.responses:
            if response.section_id == section_id:
                return response.timestamp
        return self.state.started_at

    def section_time_remaining(self) -> float:
        """Minutes left in the current section's estimate."""
        section = self.current_section()
        if section is None:
            return 0.0
        section_elapsed = max(0.0, self.clock() - self._section_started_at()) / 60.0
        return max(0.0, section.estimated_duration_minutes - section_elapsed)

    def progress_percentage(self) -> float:
        return progress_percentage(self.section_index, len(self.sections))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def should_auto_advance(self, message_count: int, has_user_responded: bool) -> bool:
        """
        Gate for advancing without an explicit cue.

        Needs auto-trigger on, no earlier auto-advance out of this section,
        a full round-trip in the section (at least 3 messages) and a real
        reply from the candidate.
        """
        return (
            self.state.auto_trigger_enabled
            and not self.state.finished
            and self.state.last_advanced_section_index != self.section_index
            and message_count >= AUTO_ADVANCE_MIN_MESSAGES
            and has_user_responded
        )

    def apply_auto_advance(self, message_count: int, has_user_responded: bool) -> bool:
        """Advance if ``should_auto_advance`` allows it. Returns True if the section changed."""
        if not self.should_auto_advance(message_count, has_user_responded):
            return False
        return self.advance_section()

    def advance_section(self, forced: bool = False) -> bool:
        """
        Move to the next section, capped at the last one.

        Returns:
            True if the section index changed
        """
        from_index = self.section_index
        self.state.last_advanced_section_index = from_index
        if self.on_final_section:
            logger.info(f"Already on final section {from_index}, not advancing")
            return False

        self.state.current_section_index = from_index + 1
        self.state.section_message_count = 0
        self.state.completion_detected = False
        section = self.current_section()
        logger.info(f"Advanced section {from_index} -> {self.section_index}"
                    f" ({section.title if section else 'default'}){' [forced]' if forced else ''}")
        if self.event_bus is not None:
            self.event_bus.emit(SectionAdvancedEvent(
                self.session_id, time.time(), from_index, self.section_index,
                section.id if section else None, forced
            ))
        return True

    def mark_finished(self) -> None:
        if self.state.finished:
            return
        self.state.finished = True
        self.update_elapsed_time()
        logger.info(f"Interview finished on section {self.section_index}")
        if self.event_bus is not None:
            self.event_bus.emit(InterviewCompletedEvent(
                self.session_id, time.time(), self.section_index,
                len(self.state.responses), self.state.elapsed_seconds
            ))

    def process_assistant_message(self, text: str) -> MessageOutcome:
        """
        Apply one finalized interviewer message.

        A transition cue advances the section (capped at the last one); an
        end cue on the final section completes the interview. When both cues
        match, the end cue wins on the final section and the transition wins
        elsewhere. Without any cue, a section that has run to
        ``max_questions_per_section`` interviewer messages is advanced anyway.
        """
        if self.state.finished:
            logger.debug("Interview already finished, ignoring assistant message")
            return MessageOutcome(completed=True, section_index=self.section_index)

        match = classify_message(text)
        self.state.last_assistant_message = text
        self.state.completion_detected = match.end
        self.state.section_message_count += 1
        self.record_response(text, "")

        outcome = MessageOutcome(
            transition_detected=match.transition,
            end_detected=match.end,
            section_index=self.section_index,
        )

        if match.end and self.on_final_section:
            self.mark_finished()
            return replace(outcome, completed=True)

        if match.transition:
            advanced = self.advance_section()
            return replace(outcome, advanced=advanced, section_index=self.section_index)

        if match.end:
            logger.info(f"End cue on section {self.section_index} of {self.section_count}, ignored")
            return outcome

        limit = self.max_questions_per_section
        if limit and self.state.section_message_count >= limit and not self.on_final_section:
            logger.warning(f"No transition cue after {limit} interviewer messages, advancing")
            advanced = self.advance_section(forced=True)
            return replace(outcome, advanced=advanced, forced_advance=advanced,
                           section_index=self.section_index)

        return outcome

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def record_response(self, question: str, answer: str) -> None:
        """
        Store a question/answer pair for the current section.

        Exact duplicates are ignored; an answer for a question that is still
        unanswered fills that entry in.
        """
        q = (question or "").strip()
        a = (answer or "").strip()
        responses = self.state.responses

        if any(r.question == q and r.answer == a for r in responses):
            return

        if a:
            for r in responses:
                if r.question == q and r.answer == "":
                    r.answer = a
                    r.timestamp = self.clock()
                    return

        responses.append(InterviewResponse(
            question=q, answer=a, timestamp=self.clock(), section_id=self._current_section_id()
        ))

    def record_answer(self, answer: str) -> bool:
        """
        Attach a candidate answer to the most recent unanswered question.

        Returns:
            False if there was nothing to answer or the answer was empty
        """
        a = (answer or "").strip()
        if not a:
            return False
        for r in reversed(self.state.responses):
            if r.answer == "":
                r.answer = a
                r.timestamp = self.clock()
                return True
        return False

    def section_responses(self) -> List[InterviewResponse]:
        section_id = self._current_section_id()
        return [r for r in self.state.responses if r.section_id == section_id]

    def to_messages(self) -> List[Dict[str, Any]]:
        """Rebuild the chat history from the recorded responses."""
        messages = []
        for r in self.state.responses:
            messages.append({"role": "assistant", "content": r.question,
                             "sectionId": r.section_id, "timestamp": r.timestamp})
            if r.answer:
                messages.append({"role": "user", "content": r.answer,
                                 "sectionId": r.section_id, "timestamp": r.timestamp})
        return messages

    # ------------------------------------------------------------------
    # Context for prompts
    # ------------------------------------------------------------------

    def section_context(self) -> str:
        section = self.current_section()
        if section is None:
            return ""
        responses = self.section_responses()
        pairs = "\n\n".join(f"Q: {r.question}\nA: {r.answer}" for r in responses)
        return "\n".join([
            f"Current Section: {section.title}",
            f"Focus Areas: {', '.join(section.focus_areas)}",
            f"Section Progress: {len(responses)} responses",
            f"Estimated Duration: {section.estimated_duration_minutes} minutes",
            f"Section Responses: {pairs}",
        ])

    def interview_context(self) -> str:
        s = self.state
        return "\n".join([
            f"Position: {s.position}",
            f"Interview Type: {s.interview_type}",
            f"Total Progress: {self.section_index + 1}/{self.section_count} sections",
            f"Elapsed Time: {format_duration(self.elapsed_minutes)}",
            f"Total Responses: {len(s.responses)}",
            f"CV Available: {'Yes' if s.cv_text else 'No'}",
            f"Job Description Available: {'Yes' if s.job_description else 'No'}",
        ])

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        s = self.state
        return {
            "version": SNAPSHOT_VERSION,
            "flow": s.flow.to_dict(),
            "position": s.position,
            "interviewType": s.interview_type,
            "cvText": s.cv_text,
            "jobDescription": s.job_description,
            "currentSectionIndex": s.current_section_index,
            "elapsedSeconds": float(s.elapsed_seconds),
            "startedAt": float(s.started_at),
            "lastAdvancedSectionIndex": s.last_advanced_section_index,
            "finished": s.finished,
            "completionDetected": s.completion_detected,
            "autoTriggerEnabled": s.auto_trigger_enabled,
            "responses": [r.to_dict() for r in s.responses],
            "lastAssistantMessage": s.last_assistant_message,
            "sectionMessageCount": s.section_message_count,
        }

    def dumps(self) -> str:
        """Serialize to canonical JSON (sorted keys, compact separators)."""
        return json.dumps(self.to_snapshot(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_snapshot(cls, data: Union[str, bytes, Mapping[str, Any]], **kwargs) -> "InterviewSessionController":
        """
        Rehydrate a controller from ``to_snapshot()``/``dumps()`` output.

        Out-of-range section indexes are clamped. A missing flow becomes an
        empty (single-section) flow.

        Raises:
            StateError: If the data is not a decodable snapshot object
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise StateError(f"Snapshot is not valid JSON: {e}") from e
        if not isinstance(data, Mapping):
            raise StateError(f"Snapshot must be an object, got {type(data).__name__}")

        try:
            flow = InterviewFlow.from_dict(data["flow"]) if data.get("flow") else InterviewFlow()
            responses = [InterviewResponse.from_dict(r) for r in data.get("responses") or []]
            started_at = float(data.get("startedAt") or 0.0)
            elapsed = max(0.0, float(data.get("elapsedSeconds") or 0.0))
        except (KeyError, TypeError, ValueError) as e:
            raise StateError(f"Malformed snapshot: {e}") from e

        if not data.get("flow"):
            logger.warning("Snapshot has no flow, continuing as a single-section interview")

        last_advanced = data.get("lastAdvancedSectionIndex")
        state = SessionState(
            flow=flow,
            position=str(data.get("position", "")),
            interview_type=str(data.get("interviewType", "")),
            started_at=started_at,
            cv_text=data.get("cvText"),
            job_description=data.get("jobDescription"),
            current_section_index=data.get("currentSectionIndex", 0),
            elapsed_seconds=elapsed,
            last_advanced_section_index=last_advanced if isinstance(last_advanced, int) else None,
            finished=bool(data.get("finished", False)),
            completion_detected=bool(data.get("completionDetected", False)),
            auto_trigger_enabled=bool(data.get("autoTriggerEnabled", False)),
            responses=responses,
            last_assistant_message=data.get("lastAssistantMessage"),
            section_message_count=int(data.get("sectionMessageCount", 0) or 0),
        )
        return cls(state, **kwargs)

    loads = from_snapshot

    def to_record(self) -> Dict[str, Any]:
        """Fields for the persisted interview record."""
        status = {
            InterviewStatus.NOT_STARTED: "pending",
            InterviewStatus.IN_PROGRESS: "in_progress",
            InterviewStatus.COMPLETED: "completed",
        }[self.status]
        return {
            "flow": self.state.flow.to_dict(),
            "currentSectionIndex": self.section_index,
            "transcript": [r.to_dict() for r in self.state.responses],
            "status": status,
        }
