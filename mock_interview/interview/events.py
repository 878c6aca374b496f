"""
Event-driven notifications for the interview system.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    FLOW_GENERATED = "flow_generated"
    SECTION_ADVANCED = "section_advanced"
    INTERVIEW_COMPLETED = "interview_completed"
    RECORDING_STARTED = "recording_started"
    RECORDING_STOPPED = "recording_stopped"
    SILENCE_AUTO_STOP = "silence_auto_stop"
    CHUNK_TRANSCRIBED = "chunk_transcribed"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    conversation_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class FlowGeneratedEvent(InterviewEvent):
    """Event fired when a flow is ready, generated or fallback."""
    def __init__(self, conversation_id: str, timestamp: float, section_count: int,
                 total_duration_minutes: float, used_fallback: bool):
        super().__init__(
            event_type=EventType.FLOW_GENERATED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "section_count": section_count,
                "total_duration_minutes": total_duration_minutes,
                "used_fallback": used_fallback
            }
        )


@dataclass
class SectionAdvancedEvent(InterviewEvent):
    """Event fired when the interview moves to another section."""
    def __init__(self, conversation_id: str, timestamp: float, from_index: int,
                 to_index: int, section_id: Optional[str], forced: bool = False):
        super().__init__(
            event_type=EventType.SECTION_ADVANCED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "from_index": from_index,
                "to_index": to_index,
                "section_id": section_id,
                "forced": forced
            }
        )


@dataclass
class InterviewCompletedEvent(InterviewEvent):
    """Event fired when the interview reaches its end."""
    def __init__(self, conversation_id: str, timestamp: float, section_index: int,
                 response_count: int, elapsed_seconds: float):
        super().__init__(
            event_type=EventType.INTERVIEW_COMPLETED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "section_index": section_index,
                "response_count": response_count,
                "elapsed_seconds": elapsed_seconds
            }
        )


@dataclass
class RecordingStartedEvent(InterviewEvent):
    """Event fired when audio capture begins."""
    def __init__(self, conversation_id: str, timestamp: float):
        super().__init__(
            event_type=EventType.RECORDING_STARTED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={}
        )


@dataclass
class RecordingStoppedEvent(InterviewEvent):
    """Event fired when audio capture returns to idle."""
    def __init__(self, conversation_id: str, timestamp: float, chunk_count: int, transcript: str):
        super().__init__(
            event_type=EventType.RECORDING_STOPPED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "chunk_count": chunk_count,
                "transcript": transcript
            }
        )


@dataclass
class SilenceAutoStopEvent(InterviewEvent):
    """Event fired when continuous silence ends a recording."""
    def __init__(self, conversation_id: str, timestamp: float, silence_seconds: float):
        super().__init__(
            event_type=EventType.SILENCE_AUTO_STOP,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={"silence_seconds": silence_seconds}
        )


@dataclass
class ChunkTranscribedEvent(InterviewEvent):
    """Event fired when a chunk returns text."""
    def __init__(self, conversation_id: str, timestamp: float, sequence: int, text: str):
        super().__init__(
            event_type=EventType.CHUNK_TRANSCRIBED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "sequence": sequence,
                "text": text
            }
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error occurs."""
    def __init__(self, conversation_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            conversation_id=conversation_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from specific event type."""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        A failing handler is logged and never interrupts the emitter.
        """
        logger.debug(f"Emitting event: {event.event_type} for conversation {event.conversation_id}")

        for handler in list(self._handlers.get(event.event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in list(self._global_handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: InterviewEvent) -> None:
        """Log event details."""
        self.logger.log(self.log_level,
                        f"Event: {event.event_type.value} | Conversation: {event.conversation_id} | Data: {event.data}")


class InterviewMetrics:
    """Collects counters from interview events."""

    _COUNTERS = {
        EventType.FLOW_GENERATED: "flows_generated",
        EventType.SECTION_ADVANCED: "sections_advanced",
        EventType.INTERVIEW_COMPLETED: "interviews_completed",
        EventType.RECORDING_STARTED: "recordings_started",
        EventType.SILENCE_AUTO_STOP: "silence_auto_stops",
        EventType.CHUNK_TRANSCRIBED: "chunks_transcribed",
        EventType.ERROR_OCCURRED: "errors_occurred",
    }

    def __init__(self):
        self.fallback_flows = 0
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        name = self._COUNTERS.get(event.event_type)
        if name is not None:
            self._counts[name] += 1
        if event.event_type == EventType.FLOW_GENERATED and event.data.get("used_fallback"):
            self.fallback_flows += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        metrics = dict(self._counts)
        metrics["fallback_flows"] = self.fallback_flows
        return metrics

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self._counts = {name: 0 for name in self._COUNTERS.values()}
        self.fallback_flows = 0
