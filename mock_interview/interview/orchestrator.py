"""
Interview orchestrator wiring the services together from a Config.
"""
import time
import logging
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .analysis import InterviewAnalyzer
from .events import InterviewEventBus, EventLogger, InterviewMetrics, ErrorOccurredEvent
from .flow import FlowGenerator
from .models import AnalysisReport, InterviewFlow
from .services import InterviewTurnService, Snapshot, TurnResult, VoiceAnswerService
from ..config import Config, DEFAULT_DIFFICULTY
from ..infrastructure.audio.speech import GoogleSpeechTranscriber
from ..infrastructure.llm import VertexRestClient
from ..utils import setup_logging

logger = logging.getLogger("orchestrator")


class InterviewOrchestrator:
    """
    Mock interview facade.

    Plans the flow, produces interviewer turns, records spoken answers and
    analyses the result. Session state lives in snapshots owned by the
    caller, so one orchestrator can serve many interviews.
    """

    def __init__(self,
                 config: Config,
                 llm_client=None,
                 transcriber=None,
                 clock: Callable[[], float] = time.time,
                 configure_logging: bool = True):
        self.config = config

        # Setup logging
        if configure_logging:
            setup_logging(config.log_file, config.log_level)

        # Initialize event system
        self.event_bus = InterviewEventBus()
        self.event_logger = EventLogger()
        self.metrics = InterviewMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        if llm_client is None:
            if not config.google_cloud_project:
                raise ValueError("google_cloud_project is required for LLM functionality")
            llm_client = VertexRestClient(
                project=config.google_cloud_project,
                location=config.vertex_location,
                model=config.model_name,
                credentials_json=config.google_application_credentials,
            )
        self.llm_client = llm_client
        self._transcriber = transcriber

        self.flow_generator = FlowGenerator(self.llm_client, self.event_bus)
        self.turn_service = InterviewTurnService(
            self.llm_client,
            event_bus=self.event_bus,
            clock=clock,
            max_questions_per_section=config.max_questions_per_section,
            max_interview_minutes=config.max_interview_minutes,
        )
        self.analyzer = InterviewAnalyzer(self.llm_client)

    @property
    def transcriber(self):
        if self._transcriber is None:
            self._transcriber = GoogleSpeechTranscriber(self.config.language_code)
        return self._transcriber

    def plan_interview(self,
                       position: str,
                       interview_type: str,
                       job_description: Optional[str] = None,
                       cv_text: Optional[str] = None,
                       difficulty: str = DEFAULT_DIFFICULTY,
                       session_id: str = "interview") -> Tuple[InterviewFlow, Dict[str, Any]]:
        """
        Generate a flow and open a session over it.

        Returns:
            The flow and the initial session snapshot
        """
        flow = self.flow_generator.generate(
            position, interview_type, job_description, cv_text, difficulty, conversation_id=session_id
        )
        snapshot = self.turn_service.begin(
            flow, position, interview_type,
            cv_text=cv_text,
            job_description=job_description,
            auto_trigger_enabled=self.config.auto_trigger_enabled,
            session_id=session_id,
        )
        logger.info(f"Interview planned for {position}: {len(flow)} section(s)")
        return flow, snapshot

    def next_turn(self,
                  snapshot: Snapshot,
                  history: Optional[Sequence[Dict[str, Any]]] = None,
                  on_delta: Optional[Callable[[str], None]] = None,
                  session_id: str = "interview") -> TurnResult:
        return self.turn_service.run_turn(snapshot, history, on_delta, session_id)

    def record_answer(self, snapshot: Snapshot, answer: str, session_id: str = "interview") -> Dict[str, Any]:
        return self.turn_service.record_answer(snapshot, answer, session_id)

    def create_voice_service(self, device=None, session_id: str = "recording") -> VoiceAnswerService:
        """
        Voice answer recorder on ``device``, or on the default microphone.

        The microphone backend (pyaudio) is only imported when no device is given.
        """
        if device is None:
            from ..infrastructure.audio.hardware import PyAudioMicrophone
            device = PyAudioMicrophone()
        return VoiceAnswerService(
            device, self.transcriber, self.config,
            event_bus=self.event_bus, session_id=session_id,
        )

    def analyze(self, snapshot: Snapshot, session_id: str = "interview") -> AnalysisReport:
        controller = self.turn_service.load(snapshot, session_id)
        try:
            return self.analyzer.analyze(controller)
        except Exception as e:
            self.event_bus.emit(ErrorOccurredEvent(
                session_id, time.time(), type(e).__name__, str(e), "orchestrator"
            ))
            logger.error("Analysis failed with error: %s", e)
            raise

    def analyze_sections(self, snapshot: Snapshot, session_id: str = "interview") -> Dict[str, AnalysisReport]:
        controller = self.turn_service.load(snapshot, session_id)
        return self.analyzer.analyze_sections(controller)

    def to_record(self, snapshot: Snapshot, session_id: str = "interview") -> Dict[str, Any]:
        """Interview record fields for the persistence layer."""
        return self.turn_service.load(snapshot, session_id).to_record()

    def get_metrics(self) -> Dict[str, int]:
        """Get current session metrics."""
        return self.metrics.get_metrics()

    def reset_metrics(self):
        """Reset session metrics."""
        self.metrics.reset()
