"""
Interview flow generation with a fixed fallback plan.
"""
import time
import logging
from typing import Optional

from ..config import DEFAULT_DIFFICULTY, FLOW_TEMPERATURE
from ..errors import GenerationError
from .events import FlowGeneratedEvent
from .models import Difficulty, InterviewFlow, InterviewFlowSection
from .prompts import InterviewPrompts
from .schemas import parse_flow_response

logger = logging.getLogger("flow_generator")


def fallback_flow() -> InterviewFlow:
    """Generic five-section, 60 minute plan used when generation fails."""
    sections = (
        InterviewFlowSection(
            id="introduction",
            title="Introduction & Background",
            description="Getting to know the candidate and their background",
            order=1,
            estimated_duration_minutes=5,
            focus_areas=("communication", "background"),
        ),
        InterviewFlowSection(
            id="experience",
            title="Experience & Skills",
            description="Deep dive into relevant experience and technical skills",
            order=2,
            estimated_duration_minutes=15,
            focus_areas=("experience", "skills"),
        ),
        InterviewFlowSection(
            id="problem-solving",
            title="Problem Solving",
            description="Assessing problem-solving approach and critical thinking",
            order=3,
            estimated_duration_minutes=15,
            focus_areas=("problem-solving", "critical-thinking"),
        ),
        InterviewFlowSection(
            id="behavioral",
            title="Behavioral Questions",
            description="Understanding work style, collaboration, and past experiences",
            order=4,
            estimated_duration_minutes=15,
            focus_areas=("behavioral", "collaboration"),
        ),
        InterviewFlowSection(
            id="closing",
            title="Closing & Questions",
            description="Candidate questions and final thoughts",
            order=5,
            estimated_duration_minutes=10,
            focus_areas=("questions", "closing"),
        ),
    )
    return InterviewFlow(
        sections=sections,
        total_duration_minutes=60,
        difficulty=Difficulty.MID,
        focus="mixed",
    )


class FlowGenerator:
    """Plans an interview flow with the LLM, falling back to the generic plan."""

    def __init__(self, llm_client, event_bus=None, temperature: float = FLOW_TEMPERATURE):
        self.llm_client = llm_client
        self.event_bus = event_bus
        self.temperature = temperature

    def request_flow(self,
                     position: str,
                     interview_type: str,
                     job_description: Optional[str] = None,
                     cv_text: Optional[str] = None,
                     difficulty: str = DEFAULT_DIFFICULTY) -> InterviewFlow:
        """
        Ask the LLM for a flow.

        Raises:
            GenerationError: If the model is unavailable or returns a malformed flow
        """
        prompt = InterviewPrompts.flow_generation(
            position, interview_type, difficulty, job_description, cv_text
        )
        try:
            raw = self.llm_client.generate_content(
                prompt, temperature=self.temperature, system_prompt=InterviewPrompts.FLOW_SYSTEM
            )
        except Exception as e:
            raise GenerationError(f"Flow generation request failed: {e}") from e

        if not raw or not raw.strip():
            raise GenerationError("No response from flow generator")

        try:
            return parse_flow_response(raw, requested_difficulty=difficulty)
        except ValueError as e:
            raise GenerationError(str(e)) from e

    def generate(self,
                 position: str,
                 interview_type: str,
                 job_description: Optional[str] = None,
                 cv_text: Optional[str] = None,
                 difficulty: str = DEFAULT_DIFFICULTY,
                 conversation_id: str = "interview") -> InterviewFlow:
        """Generate a flow, substituting the fallback plan on any generation failure."""
        used_fallback = False
        try:
            flow = self.request_flow(position, interview_type, job_description, cv_text, difficulty)
            logger.info(f"Generated {len(flow)}-section flow for {position} ({flow.total_duration_minutes} min)")
        except GenerationError as e:
            logger.error("Interview flow generation failed for %s: %s", position, e)
            flow = fallback_flow()
            used_fallback = True

        if self.event_bus is not None:
            self.event_bus.emit(FlowGeneratedEvent(
                conversation_id, time.time(), len(flow), flow.total_duration_minutes, used_fallback
            ))
        return flow


def generate_flow(llm_client,
                  position: str,
                  interview_type: str,
                  job_description: Optional[str] = None,
                  cv_text: Optional[str] = None,
                  difficulty: str = DEFAULT_DIFFICULTY) -> InterviewFlow:
    """Convenience wrapper around FlowGenerator.generate()."""
    return FlowGenerator(llm_client).generate(position, interview_type, job_description, cv_text, difficulty)
