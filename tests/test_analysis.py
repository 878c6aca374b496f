import json

import pytest

from mock_interview.interview.analysis import FALLBACK_SUMMARY, InterviewAnalyzer
from mock_interview.interview.testing import MockLLMClient

REPORT = {
    "overallScore": 7,
    "strengths": ["clear communication", "solid fundamentals"],
    "improvementAreas": ["system design depth"],
    "recommendation": "hire",
    "summary": "A strong candidate.",
    "keyInsights": ["Owns outcomes"],
}


@pytest.fixture
def answered(controller):
    controller.process_assistant_message("Tell me about yourself.")
    controller.record_answer("I am a backend developer with six years of experience.")
    controller.process_assistant_message("Are you ready to continue to the next section?")
    controller.record_answer("Yes, let's go on.")
    controller.process_assistant_message("How would you shard a database?")
    controller.record_answer("By customer id, with a lookup service.")
    return controller


def test_full_interview_report(answered):
    llm = MockLLMClient([json.dumps(REPORT)])

    report = InterviewAnalyzer(llm).analyze(answered)

    assert report.overall_score == 7
    assert report.recommendation == "HIRE"
    assert report.improvement_areas == ["system design depth"]
    assert not report.is_fallback
    prompt = llm.request_history[0]["prompt"]
    assert "comprehensive assessment" in prompt
    assert "CANDIDATE: I am a backend developer" in prompt


def test_section_report_uses_only_that_section(answered):
    llm = MockLLMClient([json.dumps(dict(REPORT, recommendation="no hire"))])
    section = answered.sections[1]

    report = InterviewAnalyzer(llm).analyze(answered, section)

    assert report.section_title == "Section 2"
    assert report.recommendation == "NO_HIRE"
    prompt = llm.request_history[0]["prompt"]
    assert "Section: Section 2" in prompt
    assert "shard a database" in prompt
    assert "Tell me about yourself" not in prompt


@pytest.mark.parametrize("reply", [
    "no json here",
    json.dumps(dict(REPORT, overallScore=11)),
    json.dumps(dict(REPORT, recommendation="STRONG_YES")),
    RuntimeError("timeout"),
])
def test_failure_returns_neutral_report(answered, reply):
    report = InterviewAnalyzer(MockLLMClient([reply])).analyze(answered)

    assert report.is_fallback
    assert report.recommendation == "MAYBE"
    assert report.summary == FALLBACK_SUMMARY


def test_analyze_sections_skips_untouched_sections(answered):
    llm = MockLLMClient([json.dumps(REPORT), json.dumps(REPORT)])

    reports = InterviewAnalyzer(llm).analyze_sections(answered)

    assert sorted(reports) == ["section-1", "section-2"]
