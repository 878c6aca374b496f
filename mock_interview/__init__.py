"""
mock_interview: AI mock interviews with planned sections and spoken answers.

Plans an interview as a flow of sections, conducts it turn by turn with an
LLM interviewer, records and transcribes spoken answers, and produces a
post-interview assessment.
"""

__version__ = "1.0.0"

# Main entry points
from .config import Config, get_config
from .errors import InterviewError, DeviceError, TranscriptionError, GenerationError, StateError
from .interview.orchestrator import InterviewOrchestrator
from .interview.controller import InterviewSessionController
from .interview.models import InterviewFlow, InterviewFlowSection

__all__ = [
    "Config", "get_config",
    "InterviewError", "DeviceError", "TranscriptionError", "GenerationError", "StateError",
    "InterviewOrchestrator", "InterviewSessionController",
    "InterviewFlow", "InterviewFlowSection",
]
