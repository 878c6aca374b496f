"""
Post-interview and per-section assessment.
"""
import logging
from typing import Any, Dict, Optional

from ..utils import format_duration
from .models import AnalysisReport, InterviewFlowSection
from .prompts import InterviewPrompts
from .schemas import parse_analysis_response

logger = logging.getLogger("interview_analysis")

FALLBACK_SUMMARY = "Analysis could not be generated for this interview. Please review the transcript directly."


def fallback_report(section_title: Optional[str] = None) -> AnalysisReport:
    """Neutral report used when the model is unavailable or returns junk."""
    return AnalysisReport(
        overall_score=5,
        strengths=[],
        improvement_areas=[],
        recommendation="MAYBE",
        summary=FALLBACK_SUMMARY,
        key_insights=[],
        section_title=section_title,
        is_fallback=True,
    )


class InterviewAnalyzer:
    """Asks the LLM to assess a finished interview, or one of its sections."""

    def __init__(self, llm_client, temperature: float = 0.0):
        self.llm_client = llm_client
        self.temperature = temperature

    def analyze(self, controller, section: Optional[InterviewFlowSection] = None) -> AnalysisReport:
        """
        Assess the interview held by ``controller``.

        Args:
            controller: InterviewSessionController with the recorded exchanges
            section: Restrict the assessment to this section's exchanges

        Returns:
            The model's report, or a neutral fallback report on failure
        """
        state = controller.state
        messages = controller.to_messages()
        section_info: Optional[Dict[str, Any]] = None
        if section is not None:
            messages = [m for m in messages if m.get("sectionId") == section.id]
            section_info = {
                "title": section.title,
                "focusAreas": list(section.focus_areas),
                "description": section.description,
            }

        prompt = InterviewPrompts.analysis(
            position=state.position,
            interview_type=state.interview_type,
            transcript=messages,
            duration=format_duration(controller.elapsed_minutes),
            section=section_info,
        )
        title = section.title if section else None

        try:
            raw = self.llm_client.generate_json(prompt, temperature=self.temperature)
            report = parse_analysis_response(raw, section_title=title)
        except Exception as e:
            logger.error("Interview analysis failed%s: %s", f" for section {title}" if title else "", e)
            return fallback_report(title)

        logger.info(f"Analysis complete: score {report.overall_score}, {report.recommendation}")
        return report

    def analyze_sections(self, controller) -> Dict[str, AnalysisReport]:
        """Per-section reports keyed by section id, skipping sections with no exchanges."""
        reports = {}
        recorded = {r.section_id for r in controller.state.responses}
        for section in controller.sections:
            if section.id in recorded:
                reports[section.id] = self.analyze(controller, section)
        return reports
