"""Interview system components.

This module contains the business logic for conducting mock interviews:
flow planning, the section state machine, interviewer turns, voice answers
and analysis.
"""

# Core orchestrator class
from .orchestrator import InterviewOrchestrator

# Data models
from .models import (
    Difficulty, InterviewStatus, InterviewFlowSection, InterviewFlow,
    InterviewResponse, SessionState, MessageOutcome, AnalysisReport
)

# Session state machine and phrase detection
from .controller import InterviewSessionController
from .patterns import (
    TRANSITION_REGEX, END_REGEX, classify_message, detect_transition,
    detect_end, is_substantive_reply
)

# Structured schemas
from .schemas import FlowPayload, AnalysisPayload, parse_flow_response, parse_analysis_response

# Service classes
from .flow import FlowGenerator, generate_flow, fallback_flow
from .analysis import InterviewAnalyzer, fallback_report
from .services import InterviewTurnService, TurnResult, VoiceAnswerService

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent, FlowGeneratedEvent, SectionAdvancedEvent,
    InterviewCompletedEvent, RecordingStartedEvent, RecordingStoppedEvent,
    SilenceAutoStopEvent, ChunkTranscribedEvent, ErrorOccurredEvent
)

__all__ = [
    # Orchestrator
    "InterviewOrchestrator",

    # Data models
    "Difficulty", "InterviewStatus", "InterviewFlowSection", "InterviewFlow",
    "InterviewResponse", "SessionState", "MessageOutcome", "AnalysisReport",

    # State machine
    "InterviewSessionController",
    "TRANSITION_REGEX", "END_REGEX", "classify_message", "detect_transition",
    "detect_end", "is_substantive_reply",

    # Schemas
    "FlowPayload", "AnalysisPayload", "parse_flow_response", "parse_analysis_response",

    # Services
    "FlowGenerator", "generate_flow", "fallback_flow",
    "InterviewAnalyzer", "fallback_report",
    "InterviewTurnService", "TurnResult", "VoiceAnswerService",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent", "FlowGeneratedEvent", "SectionAdvancedEvent",
    "InterviewCompletedEvent", "RecordingStartedEvent", "RecordingStoppedEvent",
    "SilenceAutoStopEvent", "ChunkTranscribedEvent", "ErrorOccurredEvent",
]
