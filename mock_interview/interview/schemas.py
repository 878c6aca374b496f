"""
Validation schemas for structured LLM output.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..infrastructure.llm import extract_json_object
from .models import AnalysisReport, Difficulty, InterviewFlow, InterviewFlowSection

# Difficulty words the prompt uses, mapped onto flow seniority
DIFFICULTY_ALIASES = {
    "easy": Difficulty.ENTRY,
    "entry": Difficulty.ENTRY,
    "junior": Difficulty.ENTRY,
    "medium": Difficulty.MID,
    "mid": Difficulty.MID,
    "intermediate": Difficulty.MID,
    "hard": Difficulty.SENIOR,
    "senior": Difficulty.SENIOR,
    "advanced": Difficulty.SENIOR,
}


def normalize_difficulty(value: Optional[str], default: Difficulty = Difficulty.MID) -> Difficulty:
    if value is None:
        return default
    return DIFFICULTY_ALIASES.get(str(value).strip().lower(), default)


class SectionPayload(BaseModel):
    """One section as returned by the flow generator."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    order: Optional[int] = Field(default=None, ge=1)
    estimated_duration: float = Field(alias="estimatedDuration", gt=0)
    focus_areas: List[str] = Field(default_factory=list, alias="focusAreas")

    @field_validator("id", "title", mode="before")
    @classmethod
    def _coerce_str(cls, v: Any) -> Any:
        return str(v).strip() if v is not None else v


class FlowPayload(BaseModel):
    """Top-level flow object as returned by the flow generator."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sections: List[SectionPayload] = Field(min_length=1)
    total_duration: Optional[float] = Field(default=None, alias="totalDuration", gt=0)
    difficulty: Optional[str] = None
    focus: str = "mixed"

    @model_validator(mode="after")
    def _unique_ids(self) -> "FlowPayload":
        ids = [s.id for s in self.sections]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Section ids are not unique: {ids}")
        return self

    def to_flow(self, requested_difficulty: Optional[str] = None) -> InterviewFlow:
        ordered = sorted(
            enumerate(self.sections),
            key=lambda item: (item[1].order if item[1].order is not None else item[0] + 1, item[0]),
        )
        sections = tuple(
            InterviewFlowSection(
                id=s.id,
                title=s.title,
                description=s.description,
                order=position,
                estimated_duration_minutes=s.estimated_duration,
                focus_areas=tuple(s.focus_areas),
            )
            for position, (_, s) in enumerate(ordered, start=1)
        )
        total = self.total_duration or sum(s.estimated_duration_minutes for s in sections)
        default = normalize_difficulty(requested_difficulty)
        return InterviewFlow(
            sections=sections,
            total_duration_minutes=total,
            difficulty=normalize_difficulty(self.difficulty, default),
            focus=self.focus or "mixed",
        )


class AnalysisPayload(BaseModel):
    """Analysis report as returned by the LLM."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    overall_score: float = Field(alias="overallScore", ge=1, le=10)
    strengths: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list, alias="improvementAreas")
    recommendation: str = "MAYBE"
    summary: str = ""
    key_insights: List[str] = Field(default_factory=list, alias="keyInsights")

    @field_validator("recommendation", mode="before")
    @classmethod
    def _normalize_recommendation(cls, v: Any) -> str:
        value = str(v or "MAYBE").strip().upper().replace(" ", "_").replace("-", "_")
        if value not in ("HIRE", "MAYBE", "NO_HIRE"):
            raise ValueError(f"Unknown recommendation {v!r}")
        return value

    def to_report(self, section_title: Optional[str] = None) -> AnalysisReport:
        return AnalysisReport(
            overall_score=self.overall_score,
            strengths=list(self.strengths),
            improvement_areas=list(self.improvement_areas),
            recommendation=self.recommendation,
            summary=self.summary,
            key_insights=list(self.key_insights),
            section_title=section_title,
        )


def parse_flow_response(raw: Any, requested_difficulty: Optional[str] = None) -> InterviewFlow:
    """
    Parse LLM flow output (text or already-decoded dict) into an InterviewFlow.

    Raises:
        ValueError: If the output is not a valid flow
    """
    data: Dict[str, Any] = raw if isinstance(raw, dict) else extract_json_object(raw)
    try:
        payload = FlowPayload.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid flow structure: {e}") from e
    return payload.to_flow(requested_difficulty)


def parse_analysis_response(raw: Any, section_title: Optional[str] = None) -> AnalysisReport:
    """
    Parse LLM analysis output into an AnalysisReport.

    Raises:
        ValueError: If the output is not a valid report
    """
    data: Dict[str, Any] = raw if isinstance(raw, dict) else extract_json_object(raw)
    try:
        payload = AnalysisPayload.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid analysis structure: {e}") from e
    return payload.to_report(section_title)
