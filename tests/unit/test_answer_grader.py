"""Tests for per-turn and batch answer grading."""
from __future__ import annotations

import json

import pytest

from agents.answer_grader import INTRODUCTION_FEEDBACK, NO_FEEDBACK, AnswerGrader, pair_transcript
from agents.types import QAPair, TranscriptRecord
from conftest import ScriptedOracle, reply
from errors import MalformedOracleOutputError


def _grade(grader, *, section="Skills", answer="Use a B-tree index on the filter column."):
    return grader.grade(
        profile=_profile(),
        question="How do you speed up a slow lookup query?",
        answer=answer,
        difficulty_level=3,
        section=section,
    )


def _profile():
    from agents.types import ResumeProfile

    return ResumeProfile(skills=["PostgreSQL"], job_area="Backend Engineering")


def test_grade_returns_verdict_and_feedback():
    oracle = ScriptedOracle(reply(correct=True, aiFeedback="Also mention covering indexes for reads"))
    result = _grade(AnswerGrader(oracle))
    assert result.correct is True
    assert result.ai_feedback == "Also mention covering indexes for reads"
    assert "Difficulty (1-5): 3" in oracle.prompts[0]


def test_introduction_is_auto_correct_without_oracle():
    oracle = ScriptedOracle()
    result = _grade(AnswerGrader(oracle), section="Introduction")
    assert result.correct is True
    assert result.ai_feedback == INTRODUCTION_FEEDBACK
    assert oracle.prompts == []


@pytest.mark.parametrize("raw", ["Looks right to me", reply(aiFeedback="no verdict here"), reply(correct="maybe")])
def test_unreadable_grade_falls_back_to_incorrect(raw):
    result = _grade(AnswerGrader(ScriptedOracle(raw)))
    assert result.correct is False
    assert result.ai_feedback == NO_FEEDBACK


def test_feedback_is_trimmed_and_capped():
    oracle = ScriptedOracle(reply(correct=False, aiFeedback="  " + "x" * 300 + "  "))
    result = _grade(AnswerGrader(oracle, feedback_max_chars=50))
    assert len(result.ai_feedback) == 50


def test_pair_transcript_skips_non_adjacent_utterances():
    records = [
        TranscriptRecord(id="u0", role="user", text="hello?", timestamp=500),
        TranscriptRecord(id="a1", role="assistant", text="Tell me about Docker.", timestamp=1000),
        TranscriptRecord(id="u1", role="user", text="I containerised our API.", timestamp=2000),
        TranscriptRecord(id="a2", role="assistant", text="Question left hanging", timestamp=3000),
        TranscriptRecord(id="a3", role="assistant", text="Describe a team conflict.", timestamp=4000),
        TranscriptRecord(id="u3", role="user", text="We disagreed on deadlines.", timestamp=5000),
    ]
    pairs = pair_transcript(list(reversed(records)))
    assert [(p.question, p.answer) for p in pairs] == [
        ("Tell me about Docker.", "I containerised our API."),
        ("Describe a team conflict.", "We disagreed on deadlines."),
    ]
    assert pairs[0].asked_at == 1000


def _pairs():
    return [
        QAPair(question="Tell me about Docker.", answer="I containerised our API.", asked_at=1000),
        QAPair(question="Describe a team conflict.", answer="We disagreed on deadlines.", asked_at=4000),
    ]


def test_grade_batch_uses_local_text_and_clamps_difficulty():
    payload = [
        {"content": "ignored", "candidateAnswer": "ignored", "correct": True, "difficultyLevel": 9, "section": "skills", "aiFeedback": "Add image layering detail"},
        {"content": "x", "candidateAnswer": "y", "correct": False, "difficultyLevel": 0, "section": "Personality", "aiFeedback": "Describe the resolution you reached"},
    ]
    graded = AnswerGrader(ScriptedOracle("```json\n" + json.dumps(payload) + "\n```")).grade_batch(profile=_profile(), pairs=_pairs())
    assert [g.pair.question for g in graded] == ["Tell me about Docker.", "Describe a team conflict."]
    assert [g.difficulty_level for g in graded] == [5, 1]
    assert [g.section for g in graded] == ["Skills", "Personality"]
    assert [g.correct for g in graded] == [True, False]


def test_grade_batch_accepts_wrapped_list():
    payload = {"results": [{"correct": True, "difficultyLevel": 2}, {"correct": False, "difficultyLevel": 3}]}
    graded = AnswerGrader(ScriptedOracle(json.dumps(payload))).grade_batch(profile=_profile(), pairs=_pairs())
    assert len(graded) == 2
    assert graded[0].ai_feedback == NO_FEEDBACK


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps([{"correct": True, "difficultyLevel": 2}]),
        json.dumps([{"correct": True, "difficultyLevel": 2}, {"difficultyLevel": 2}]),
        json.dumps([{"correct": True, "difficultyLevel": "hard"}, {"correct": True, "difficultyLevel": 2}]),
    ],
)
def test_grade_batch_failures_are_fatal(raw):
    with pytest.raises(MalformedOracleOutputError):
        AnswerGrader(ScriptedOracle(raw)).grade_batch(profile=_profile(), pairs=_pairs())


def test_grade_batch_with_no_pairs_skips_oracle():
    oracle = ScriptedOracle()
    assert AnswerGrader(oracle).grade_batch(profile=_profile(), pairs=[]) == []
    assert oracle.prompts == []
