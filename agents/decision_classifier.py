"""Decision classifier gating candidate utterances before grading."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from agents.decoding import decode_structured, pick, unwrap
from agents.prompts import DECISION_PROMPT
from agents.types import Decision
from errors import MalformedOracleOutputError
from llm_gateway import Oracle, ask

logger = logging.getLogger(__name__)

DEFAULT_CONFIRM = "It sounds like you'd like to move on. Shall we skip to the next question?"

_ACTION_ALIASES: Dict[str, str] = {
    "next_step": "next_step",
    "nextstep": "next_step",
    "next": "next_step",
    "answer": "next_step",
    "confirm": "confirm",
    "proceed": "proceed",
}


def _normalize_action(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    return _ACTION_ALIASES.get(key)


def _confirm(message: Optional[str] = None) -> Decision:
    text = (message or "").strip()
    return Decision(action="confirm", message=text or DEFAULT_CONFIRM)


class DecisionClassifier:
    """Classify an utterance as ``next_step``, ``confirm`` or ``proceed``.

    Anything the classifier cannot read with certainty becomes ``confirm``, so
    an unclassified answer is never graded.
    """

    def __init__(self, oracle: Oracle) -> None:
        self._oracle = oracle

    def classify(self, *, question: str, utterance: str, pending_confirm: bool = False) -> Decision:
        if not utterance or not utterance.strip():
            return _confirm()

        prompt = DECISION_PROMPT.format(
            question=question.strip() or "(no question asked yet)",
            utterance=utterance.strip(),
            pending_confirm="yes" if pending_confirm else "no",
        )
        raw = ask(self._oracle, prompt)

        try:
            payload = unwrap(decode_structured(raw))
        except MalformedOracleOutputError as exc:
            logger.warning("Decision output unreadable, defaulting to confirm: %s", exc)
            return _confirm()

        action = _normalize_action(pick(payload, "action", "decision", "type", "intent"))
        message = pick(payload, "message", "reply", "text")
        message = message if isinstance(message, str) else None

        if action is None:
            logger.warning("Unknown decision action %r, defaulting to confirm", payload.get("action"))
            return _confirm(message)
        if action == "confirm":
            return _confirm(message)
        if action == "proceed" and not pending_confirm:
            logger.info("Proceed without a pending confirmation, asking to confirm instead")
            return _confirm()
        return Decision(action=action, message=(message or "").strip() or None)


__all__ = ["DecisionClassifier", "DEFAULT_CONFIRM"]
