from __future__ import annotations

import json

import pytest

from agents.answer_grader import AnswerGrader
from agents.types import ResumeProfile, TranscriptRecord
from conftest import ScriptedOracle, reply
from errors import InvalidStateError, MalformedOracleOutputError
from services.capture import (
    PerTurnCapture,
    ToolCallCapture,
    TranscriptReplayCapture,
    build_strategies,
    turn_digest,
)

PROFILE = ResumeProfile(skills=["Python"])


def test_turn_digest_ignores_surrounding_whitespace():
    assert turn_digest("iv-1", " Q ", "A\n") == turn_digest("iv-1", "Q", "A")
    assert turn_digest("iv-1", "Q", "A") != turn_digest("iv-2", "Q", "A")


def test_build_strategies_covers_each_modality():
    strategies = build_strategies(AnswerGrader(ScriptedOracle()))
    assert isinstance(strategies["chat"], PerTurnCapture)
    assert isinstance(strategies["assistant"], ToolCallCapture)
    assert isinstance(strategies["voice"], TranscriptReplayCapture)
    assert strategies["chat"].turns_at_end(interview_id="iv-1", profile=PROFILE, records=[]) == []


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "record_answer", "arguments": {"question": "Q?", "answer": "A", "difficultyLevel": 4}},
        {"name": "record_answer", "arguments": json.dumps({"question": "Q?", "candidateAnswer": "A", "difficulty": 4})},
        {"function": {"name": "record_answer", "arguments": '{"content": "Q?", "answer": "A", "difficulty_level": 4}'}},
    ],
)
def test_decode_call_accepts_common_shapes(payload):
    call = ToolCallCapture(AnswerGrader(ScriptedOracle())).decode_call(payload)
    assert (call.question, call.answer, call.difficulty_level) == ("Q?", "A", 4)


def test_decode_call_leaves_missing_level_unset():
    call = ToolCallCapture(AnswerGrader(ScriptedOracle())).decode_call({"name": "record_answer", "arguments": {"question": "Q?", "answer": "A"}})
    assert call.difficulty_level is None
    assert call.section is None


def test_decode_call_rejects_other_tools_and_bad_arguments():
    capture = ToolCallCapture(AnswerGrader(ScriptedOracle()))
    with pytest.raises(InvalidStateError):
        capture.decode_call({"name": "end_call", "arguments": {}})
    with pytest.raises(MalformedOracleOutputError):
        capture.decode_call({"name": "record_answer", "arguments": {"question": "Q?", "answer": "A", "difficultyLevel": 9}})
    with pytest.raises(MalformedOracleOutputError):
        capture.decode_call({"name": "record_answer", "arguments": "not json"})


def test_transcript_replay_builds_turns():
    oracle = ScriptedOracle(json.dumps([{"correct": True, "difficultyLevel": 4, "section": "Work Experience", "aiFeedback": "Quantify the outcome you delivered"}]))
    records = [
        TranscriptRecord(id="a1", role="assistant", text="Tell me about a migration you led.", timestamp=1_767_603_600_000),
        TranscriptRecord(id="u1", role="user", text="I moved billing to Postgres.", timestamp=1_767_603_660_000),
    ]
    turns = TranscriptReplayCapture(AnswerGrader(oracle)).turns_at_end(interview_id="iv-1", profile=PROFILE, records=records)
    assert len(turns) == 1
    turn = turns[0]
    assert turn.turn_id == turn_digest("iv-1", "Tell me about a migration you led.", "I moved billing to Postgres.")
    assert turn.section == "Work Experience"
    assert turn.asked_at == "2026-01-05T09:00:00+00:00"


def test_voice_capture_does_not_grade_per_turn():
    capture = TranscriptReplayCapture(AnswerGrader(ScriptedOracle(reply(correct=True))))
    with pytest.raises(InvalidStateError):
        capture.grade_turn(profile=PROFILE, question="Q", answer="A", difficulty_level=2, section="Skills")
