from __future__ import annotations

import pytest

from agents.decision_classifier import DEFAULT_CONFIRM, DecisionClassifier
from conftest import ScriptedOracle, reply
from errors import OracleUnavailableError

QUESTION = "How would you index a large orders table in PostgreSQL?"


def test_direct_answer_is_next_step():
    oracle = ScriptedOracle(reply(action="next_step", message=""))
    decision = DecisionClassifier(oracle).classify(question=QUESTION, utterance="I'd add a composite index on (customer_id, created_at).")
    assert decision.action == "next_step"
    assert decision.message is None


def test_blank_utterance_confirms_without_oracle_call():
    oracle = ScriptedOracle()
    decision = DecisionClassifier(oracle).classify(question=QUESTION, utterance="   ")
    assert decision.action == "confirm"
    assert decision.message == DEFAULT_CONFIRM
    assert oracle.prompts == []


@pytest.mark.parametrize(
    "raw",
    [
        "I think they answered.",
        reply(action="dance"),
        reply(message="no action key"),
        "```json\n{\"action\": 7}\n```",
    ],
)
def test_unreadable_or_unknown_output_is_confirm(raw):
    decision = DecisionClassifier(ScriptedOracle(raw)).classify(question=QUESTION, utterance="whatever")
    assert decision.action == "confirm"
    assert decision.message


def test_proceed_without_pending_confirm_becomes_confirm():
    oracle = ScriptedOracle(reply(action="proceed"))
    decision = DecisionClassifier(oracle).classify(question=QUESTION, utterance="yes", pending_confirm=False)
    assert decision.action == "confirm"


def test_proceed_after_confirm_is_kept():
    oracle = ScriptedOracle(reply(action="proceed"))
    decision = DecisionClassifier(oracle).classify(question=QUESTION, utterance="yes", pending_confirm=True)
    assert decision.action == "proceed"
    assert "A skip confirmation is pending: yes" in oracle.prompts[0]


def test_confirm_keeps_oracle_message_and_tolerates_wrappers():
    oracle = ScriptedOracle('Result: {"data": {"action": "Confirm", "message": "Shall we skip this one?"}}')
    decision = DecisionClassifier(oracle).classify(question=QUESTION, utterance="I don't know, can we move on?")
    assert decision.action == "confirm"
    assert decision.message == "Shall we skip this one?"


def test_oracle_failure_propagates_as_unavailable():
    oracle = ScriptedOracle(RuntimeError("connection reset"))
    with pytest.raises(OracleUnavailableError):
        DecisionClassifier(oracle).classify(question=QUESTION, utterance="an answer")
