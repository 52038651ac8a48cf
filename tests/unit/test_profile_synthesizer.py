from __future__ import annotations

import pytest

from agents.profile_synthesizer import ProfileSynthesizer, compute_analytics
from agents.types import ResumeProfile, Turn
from conftest import PROFILE_REPLY, ScriptedOracle, reply
from errors import MalformedOracleOutputError

PROFILE = ResumeProfile(skills=["Go"], job_area="Platform Engineering")


def _turns():
    return [
        Turn(turn_id="a", content="Q1", section="Introduction", difficulty_level=2, candidate_answer="hi", correct=True, ai_feedback="ok", asked_at="2026-01-05T09:00:00+00:00"),
        Turn(turn_id="b", content="Q2", section="Skills", difficulty_level=3, candidate_answer="x", correct=False, ai_feedback="ok", asked_at="2026-01-05T09:02:00+00:00"),
        Turn(turn_id="c", content="Q3", section="Personality", difficulty_level=4, candidate_answer="y", correct=True, ai_feedback="ok", asked_at="2026-01-05T09:04:00+00:00"),
    ]


def test_compute_analytics_from_turns():
    analytics = compute_analytics(_turns())
    assert analytics.total_questions == 3
    assert analytics.correct_answers == 2
    assert analytics.average_difficulty == 3.0
    assert compute_analytics([]).average_difficulty == 0.0


def test_synthesize_parses_profile_and_includes_rubric():
    oracle = ScriptedOracle(PROFILE_REPLY)
    out = ProfileSynthesizer(oracle).synthesize(profile=PROFILE, turns=_turns())
    assert out.performance_score == 72
    assert out.recommended_roles == ["Backend Engineer", "API Developer"]
    assert "Accuracy and reliability of answers: 30" in oracle.prompts[0]
    assert "Adaptability: 5" in oracle.prompts[0]


def test_recommended_roles_are_capped_at_three():
    raw = reply(performanceScore=55, recommendedRoles=["A", "B", "C", "D"], strengths=[], weaknesses=[])
    out = ProfileSynthesizer(ScriptedOracle(raw)).synthesize(profile=PROFILE, turns=_turns())
    assert out.recommended_roles == ["A", "B", "C"]


@pytest.mark.parametrize(
    "raw",
    [
        "The candidate did well overall.",
        reply(performanceScore=140, recommendedRoles=["A", "B"]),
        reply(performanceScore=60, recommendedRoles=["Only one"]),
        reply(recommendedRoles=["A", "B"]),
    ],
)
def test_invalid_profile_output_is_fatal(raw):
    with pytest.raises(MalformedOracleOutputError):
        ProfileSynthesizer(ScriptedOracle(raw)).synthesize(profile=PROFILE, turns=_turns())
