"""
Data models for the interview system.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, List, Any, Tuple


class Difficulty(str, Enum):
    """Seniority level an interview flow targets."""
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"


class InterviewStatus(str, Enum):
    """Controller lifecycle."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class InterviewFlowSection:
    """One planned phase of an interview."""
    id: str
    title: str
    description: str
    order: int
    estimated_duration_minutes: float
    focus_areas: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "order": self.order,
            "estimatedDurationMinutes": self.estimated_duration_minutes,
            "focusAreas": list(self.focus_areas),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterviewFlowSection":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            order=int(data.get("order", 1)),
            estimated_duration_minutes=data.get("estimatedDurationMinutes", 0),
            focus_areas=tuple(data.get("focusAreas", ())),
        )


@dataclass(frozen=True)
class InterviewFlow:
    """Ordered plan of sections for one interview."""
    sections: Tuple[InterviewFlowSection, ...] = ()
    total_duration_minutes: float = 0
    difficulty: Difficulty = Difficulty.MID
    focus: str = "mixed"

    def __len__(self) -> int:
        return len(self.sections)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sections": [s.to_dict() for s in self.sections],
            "totalDurationMinutes": self.total_duration_minutes,
            "difficulty": self.difficulty.value,
            "focus": self.focus,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterviewFlow":
        return cls(
            sections=tuple(InterviewFlowSection.from_dict(s) for s in data.get("sections") or ()),
            total_duration_minutes=data.get("totalDurationMinutes", 0),
            difficulty=Difficulty(data.get("difficulty", Difficulty.MID.value)),
            focus=str(data.get("focus", "mixed")),
        )


@dataclass
class InterviewResponse:
    """An interviewer question and the candidate's answer (empty until given)."""
    question: str
    answer: str
    timestamp: float
    section_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "answer": self.answer,
            "timestamp": self.timestamp,
            "sectionId": self.section_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterviewResponse":
        return cls(
            question=str(data.get("question", "")),
            answer=str(data.get("answer", "")),
            timestamp=data.get("timestamp", 0),
            section_id=str(data.get("sectionId", "")),
        )


@dataclass
class SessionState:
    """Full state of one interview, carried between stateless requests."""
    flow: InterviewFlow
    position: str
    interview_type: str
    started_at: float
    cv_text: Optional[str] = None
    job_description: Optional[str] = None
    current_section_index: int = 0
    elapsed_seconds: float = 0.0
    last_advanced_section_index: Optional[int] = None
    finished: bool = False
    completion_detected: bool = False
    auto_trigger_enabled: bool = False
    responses: List[InterviewResponse] = field(default_factory=list)
    last_assistant_message: Optional[str] = None
    section_message_count: int = 0


@dataclass(frozen=True)
class MessageOutcome:
    """What one finalized assistant message did to the session."""
    transition_detected: bool = False
    end_detected: bool = False
    advanced: bool = False
    completed: bool = False
    forced_advance: bool = False
    section_index: int = 0


@dataclass
class AnalysisReport:
    """Post-interview (or per-section) assessment."""
    overall_score: float
    strengths: List[str] = field(default_factory=list)
    improvement_areas: List[str] = field(default_factory=list)
    recommendation: str = "MAYBE"
    summary: str = ""
    key_insights: List[str] = field(default_factory=list)
    section_title: Optional[str] = None
    is_fallback: bool = False
