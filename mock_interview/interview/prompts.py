"""
Interview prompt templates and generation.

This module contains all the prompt templates used throughout the interview system,
keeping them separate from the business logic for easier maintenance and editing.
"""

from typing import Any, Dict, List, Optional

from ..config import CONTEXT_EXCERPT_CHARS

TRANSITION_SENTENCE = "Are you ready to continue to the next section?"


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    FLOW_SYSTEM = (
        "You are an expert interview designer who always returns structured JSON. "
        "No explanations. No markdown. JSON only."
    )

    @staticmethod
    def flow_generation(
        position: str,
        interview_type: str,
        difficulty: str,
        job_description: Optional[str] = None,
        cv_text: Optional[str] = None,
    ) -> str:
        """Prompt for planning a personalized interview flow."""
        resume_summary = PromptFormatter.excerpt(cv_text) if cv_text else "No resume provided"
        return f"""
You are an expert interview designer. Create a personalized interview flow for a {interview_type} interview for a {position} role.

Context:
- Resume Summary: {resume_summary}
- Job Description: {PromptFormatter.excerpt(job_description) or 'No job description provided'}
- Difficulty Level: {difficulty}

Generate a structured interview flow with 5-7 sections. Each section should:
1. Have a clear, professional title
2. Include a 1-2 sentence description
3. Be relevant to the role
4. Flow logically
5. Match the difficulty level ({difficulty})
6. Include: {{ id, title, description, order, estimatedDuration (in minutes), focusAreas }}

Difficulty Guidelines:
- Easy: Basic questions, fundamental concepts, entry-level expectations
- Medium: Standard questions, practical scenarios, mid-level expectations
- Hard: Advanced questions, complex scenarios, senior-level expectations

Return a single JSON object with this exact format:
{{
  "sections": [
    {{
      "id": "unique-id",
      "title": "Section Title",
      "description": "What this section covers",
      "order": 1,
      "estimatedDuration": 10,
      "focusAreas": ["area1", "area2"]
    }}
  ],
  "totalDuration": 60,
  "difficulty": "{difficulty}",
  "focus": "technical|behavioral|mixed"
}}
        """.strip()

    @staticmethod
    def interviewer_system_prompt(
        position: str,
        interview_context: str,
        section_context: str,
        focus_areas: List[str],
        is_first_message: bool,
        is_complete: bool,
        should_wrap_section: bool,
        is_final_section: bool,
        cv_text: Optional[str] = None,
        job_description: Optional[str] = None,
    ) -> str:
        """System prompt for the streaming interviewer."""
        opening = (
            "This is the beginning of the interview. Start with a welcoming introduction and your first question."
            if is_first_message
            else "Continue the conversation based on the candidate's response."
        )
        parts = [f"""
You are an expert interviewer conducting a professional interview for a {position} position.

{interview_context}

{section_context}

Guidelines:
- Ask thoughtful, relevant questions based on the candidate's previous responses
- Build upon their answers to dive deeper into their experience
- Maintain a professional yet conversational tone
- Ask one focused question at a time
- Reference their previous answers when relevant to show you're listening
- Stay within the focus areas of the current section: {', '.join(focus_areas) or 'general'}

{opening}

Section Transitions:
When the current section is complete, end your response with this exact sentence:
"{TRANSITION_SENTENCE}"
Aim for 2-3 meaningful exchanges per section. If answers are brief or unclear, ask a follow-up before transitioning.
        """.strip()]

        if is_final_section:
            parts.append(
                "This is the final section. When it is complete, close the interview by saying "
                "\"Thank you for your time, this concludes our interview.\""
            )
        if should_wrap_section:
            parts.append("The current section appears complete. Use the transition sentence above now.")
        if is_complete:
            parts.append("The interview is complete. Thank the candidate and briefly summarise what was covered.")
        if cv_text:
            parts.append(f"Candidate CV Context:\n{PromptFormatter.excerpt(cv_text)}")
        if job_description:
            parts.append(f"Job Description Context:\n{PromptFormatter.excerpt(job_description)}")
        return "\n\n".join(parts)

    @staticmethod
    def analysis(
        position: str,
        interview_type: str,
        transcript: List[Dict[str, Any]],
        duration: str,
        section: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Prompt for a per-section or full-interview assessment."""
        lines = "\n\n".join(
            f"{'INTERVIEWER' if m['role'] == 'assistant' else 'CANDIDATE'}: {m['content']}"
            for m in transcript
        )
        if section:
            header = (
                "Analyze this specific interview section and provide a focused assessment:\n\n"
                f"Section: {section['title']}\n"
                f"Section Focus Areas: {', '.join(section.get('focusAreas', []))}\n"
            )
            if section.get("description"):
                header += f"Section Description: {section['description']}\n"
        else:
            header = "Analyze this complete interview and provide a comprehensive assessment:\n\n"

        return f"""
{header}Position: {position}
Interview Type: {interview_type}
Duration: {duration}

Transcript:
{lines or '(no exchanges recorded)'}

Return ONLY this JSON format (no additional text):
{{
  "overallScore": <number 1-10>,
  "strengths": ["strength1", "strength2", "strength3"],
  "improvementAreas": ["area1", "area2", "area3"],
  "recommendation": "HIRE" | "MAYBE" | "NO_HIRE",
  "summary": "<2-3 paragraph summary of the candidate's performance>",
  "keyInsights": ["insight1", "insight2", "insight3"]
}}
        """.strip()


class PromptFormatter:
    """Helper class for formatting prompt fragments."""

    @staticmethod
    def excerpt(text: Optional[str], limit: int = CONTEXT_EXCERPT_CHARS) -> str:
        """Trim long context (CVs, job descriptions) to ``limit`` characters."""
        if not text:
            return ""
        text = text.strip()
        if len(text) <= limit:
            return text
        return text[:limit] + "..."
