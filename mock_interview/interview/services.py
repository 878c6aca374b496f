"""
Service classes for the interview system.
"""
import time
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..config import (
    CHAT_TEMPERATURE, MAX_ANSWER_SECONDS, MAX_INTERVIEW_MINUTES, MAX_QUESTIONS_PER_SECTION, Config
)
from ..errors import GenerationError
from ..infrastructure.audio.processing import AudioCaptureSession, VoiceActivityDetector
from ..infrastructure.audio.speech import ChunkedTranscriptionSubmitter
from .controller import InterviewSessionController
from .events import ErrorOccurredEvent
from .models import InterviewFlow, MessageOutcome
from .patterns import is_substantive_reply
from .prompts import InterviewPrompts

logger = logging.getLogger("services")

# Seconds to wait for in-flight chunks once an answer recording has stopped
TRANSCRIPTION_GRACE_SECONDS = 10.0

Snapshot = Union[str, bytes, Mapping[str, Any]]


@dataclass
class TurnResult:
    """One interviewer reply and the session state after it."""
    reply: str
    outcome: MessageOutcome
    snapshot: Dict[str, Any]


class InterviewTurnService:
    """
    Produces interviewer turns for stateless requests.

    Every call rebuilds the controller from the caller's snapshot and hands
    back the updated snapshot for the caller to store.
    """

    def __init__(self,
                 llm_client,
                 event_bus=None,
                 clock: Callable[[], float] = time.time,
                 max_questions_per_section: Optional[int] = MAX_QUESTIONS_PER_SECTION,
                 max_interview_minutes: float = MAX_INTERVIEW_MINUTES,
                 temperature: float = CHAT_TEMPERATURE):
        self.llm_client = llm_client
        self.event_bus = event_bus
        self.clock = clock
        self.max_questions_per_section = max_questions_per_section
        self.max_interview_minutes = max_interview_minutes
        self.temperature = temperature

    def _controller_kwargs(self, session_id: str) -> Dict[str, Any]:
        return {
            "clock": self.clock,
            "event_bus": self.event_bus,
            "session_id": session_id,
            "max_questions_per_section": self.max_questions_per_section,
            "max_interview_minutes": self.max_interview_minutes,
        }

    def begin(self,
              flow: InterviewFlow,
              position: str,
              interview_type: str,
              cv_text: Optional[str] = None,
              job_description: Optional[str] = None,
              auto_trigger_enabled: bool = False,
              session_id: str = "interview") -> Dict[str, Any]:
        """Snapshot of a fresh interview over ``flow``."""
        controller = InterviewSessionController.begin(
            flow, position, interview_type,
            cv_text=cv_text,
            job_description=job_description,
            auto_trigger_enabled=auto_trigger_enabled,
            **self._controller_kwargs(session_id),
        )
        return controller.to_snapshot()

    def load(self, snapshot: Snapshot, session_id: str = "interview") -> InterviewSessionController:
        """Rehydrate a controller. Raises StateError for undecodable snapshots."""
        return InterviewSessionController.from_snapshot(snapshot, **self._controller_kwargs(session_id))

    def build_system_prompt(self,
                            controller: InterviewSessionController,
                            history: Sequence[Dict[str, Any]]) -> str:
        """Interviewer instructions for the controller's current position."""
        section = controller.current_section()
        section_messages = [m for m in history if m.get("sectionId") in (None, getattr(section, "id", None))]
        last_user = next((m.get("content", "") for m in reversed(history) if m.get("role") == "user"), "")

        return InterviewPrompts.interviewer_system_prompt(
            position=controller.state.position,
            interview_context=controller.interview_context(),
            section_context=controller.section_context(),
            focus_areas=list(section.focus_areas) if section else [],
            is_first_message=not any(m.get("role") == "assistant" for m in history),
            is_complete=controller.is_complete(),
            should_wrap_section=controller.should_auto_advance(
                len(section_messages), is_substantive_reply(last_user)
            ),
            is_final_section=controller.on_final_section,
            cv_text=controller.state.cv_text,
            job_description=controller.state.job_description,
        )

    def run_turn(self,
                 snapshot: Snapshot,
                 history: Optional[Sequence[Dict[str, Any]]] = None,
                 on_delta: Optional[Callable[[str], None]] = None,
                 session_id: str = "interview") -> TurnResult:
        """
        Stream the next interviewer message and apply it to the session.

        Only the complete reply is classified; partial deltas are forwarded to
        ``on_delta`` and never change session state.

        Args:
            snapshot: Session snapshot from ``begin()`` or a previous turn
            history: Chat messages (``role``/``content``); rebuilt from the
                recorded responses when omitted
            on_delta: Called with each streamed text fragment

        Raises:
            StateError: If the snapshot cannot be decoded
            GenerationError: If the reply could not be streamed
        """
        controller = self.load(snapshot, session_id)
        controller.update_elapsed_time()
        messages = list(history) if history is not None else controller.to_messages()
        system_prompt = self.build_system_prompt(controller, messages)

        parts: List[str] = []
        try:
            for delta in self.llm_client.stream_chat(system_prompt, messages, temperature=self.temperature):
                parts.append(delta)
                if on_delta is not None:
                    on_delta(delta)
        except Exception as e:
            logger.error(f"Interviewer reply failed after {len(parts)} fragment(s): {e}")
            if self.event_bus is not None:
                self.event_bus.emit(ErrorOccurredEvent(
                    session_id, time.time(), type(e).__name__, str(e), "turn_service"
                ))
            raise GenerationError(f"Interviewer reply failed: {e}") from e

        reply = "".join(parts).strip()
        if reply:
            outcome = controller.process_assistant_message(reply)
        else:
            logger.warning("Interviewer returned an empty reply")
            outcome = MessageOutcome(completed=controller.is_complete(), section_index=controller.section_index)

        return TurnResult(reply=reply, outcome=outcome, snapshot=controller.to_snapshot())

    def record_answer(self, snapshot: Snapshot, answer: str, session_id: str = "interview") -> Dict[str, Any]:
        """Attach the candidate's answer to the latest open question and return the new snapshot."""
        controller = self.load(snapshot, session_id)
        if not controller.record_answer(answer):
            logger.debug("No open question for answer, nothing recorded")
        return controller.to_snapshot()


class VoiceAnswerService:
    """Records one spoken answer and returns its transcript."""

    def __init__(self,
                 device,
                 transcriber,
                 config: Optional[Config] = None,
                 event_bus=None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep,
                 session_id: str = "recording"):
        self.config = config
        self.clock = clock
        self.sleep = sleep

        settings: Dict[str, Any] = {}
        submitter_settings: Dict[str, Any] = {}
        detector = VoiceActivityDetector()
        if config is not None:
            settings = {
                "chunk_interval": config.chunk_interval_seconds,
                "silence_duration": config.silence_duration,
                "poll_interval": config.poll_interval,
            }
            submitter_settings = {
                "min_chunk_bytes": config.min_chunk_bytes,
                "max_in_flight": config.max_in_flight_chunks,
            }
            detector = VoiceActivityDetector(config.silence_threshold)

        self.submitter = ChunkedTranscriptionSubmitter(
            transcriber, event_bus=event_bus, session_id=session_id, **submitter_settings
        )
        self.session = AudioCaptureSession(
            device, self.submitter,
            detector=detector,
            clock=clock,
            event_bus=event_bus,
            session_id=session_id,
            **settings,
        )

    def record_answer(self, max_seconds: Optional[float] = None,
                      grace_seconds: float = TRANSCRIPTION_GRACE_SECONDS) -> str:
        """
        Record until silence stops the session or ``max_seconds`` pass.

        Raises:
            DeviceError: If the microphone could not be acquired
        """
        if max_seconds is None:
            max_seconds = self.config.max_answer_seconds if self.config else MAX_ANSWER_SECONDS

        if not self.session.start(background=False):
            logger.warning("A recording is already active")
            return self.session.transcript

        started = self.clock()
        try:
            while self.session.tick():
                if self.clock() - started >= max_seconds:
                    logger.info(f"Answer reached {max_seconds:.0f}s limit, stopping")
                    break
                self.sleep(self.session.poll_interval)
        finally:
            self.session.stop()

        if not self.submitter.wait(grace_seconds):
            logger.warning(f"{self.submitter.in_flight} chunk(s) still transcribing after {grace_seconds:.0f}s")
        transcript = self.session.transcript
        logger.info(f"Answer transcript: {transcript or '(empty)'}")
        return transcript

    def close(self) -> None:
        self.session.stop()
        self.submitter.shutdown()
