"""Interview session state machine.

Every status change is one conditional UPDATE in ``InterviewStore``; this class
only decides which transition to attempt and turns a lost compare-and-set into
``InvalidStateError``. Oracle calls always finish before the write that records
their result, so no transaction is held open across one.
"""
from __future__ import annotations

import hashlib
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from agents.answer_grader import AnswerGrader
from agents.decision_classifier import DecisionClassifier
from agents.profile_synthesizer import ProfileSynthesizer
from agents.question_generator import QuestionGenerator, next_difficulty, opening_question
from agents.types import (
    Decision,
    GradeResult,
    InterviewProfile,
    QuestionOut,
    Section,
    TranscriptRecord,
    Turn,
    clamp_difficulty,
)
from config.settings import Settings
from errors import AuthorizationError, InvalidStateError, NotFoundError
from llm_gateway import Oracle
from observability import log_event, span
from services.capture import ToolCallCapture, TurnCaptureStrategy, build_strategies, turn_digest
from services.clock import Clock, to_iso, utc_now
from services.live import LivePublisher
from services.profiles import ProfileService
from services.scheduling import SchedulingService
from services.signals import GENERATE_PROFILE, SignalBus
from session_reports import generate_profile_pdf
from storage.asked import AskedQuestion, AskedQuestionLog
from storage.candidates import CandidateRecord, CandidateStore
from storage.decisions import DecisionLog
from storage.interviews import STARTABLE, InterviewSession, InterviewStore
from storage.profiles import ProfileStore
from storage.transcripts import TranscriptStore
from storage.turns import TurnStore

logger = logging.getLogger(__name__)

END_MESSAGE = "Interview session ended successfully"


class StartResult(BaseModel):  # Opening question plus the context prompts are built from
    question: str
    difficulty_level: int
    section: Section
    session: InterviewSession
    candidate: CandidateRecord


class EndResult(BaseModel):  # Outcome of a completed end transition
    interview_id: str
    status: str
    completion_min: float
    attempted_at: str
    turns_recorded: int
    message: str = END_MESSAGE


def _record_id(interview_id: str, role: str, text: str, timestamp: int) -> str:
    material = "\x1f".join((interview_id, role, text.strip(), str(timestamp)))
    return hashlib.sha1(material.encode("utf-8")).hexdigest()


class SessionStateMachine:
    def __init__(
        self,
        *,
        interviews: InterviewStore,
        candidates: CandidateStore,
        turns: TurnStore,
        profiles: ProfileStore,
        decisions: DecisionLog,
        asked: AskedQuestionLog,
        transcripts: TranscriptStore,
        oracle: Oracle,
        live: LivePublisher,
        signals: SignalBus,
        settings: Settings,
        clock: Clock = utc_now,
    ) -> None:
        self._interviews = interviews
        self._candidates = candidates
        self._turns = turns
        self._profiles = profiles
        self._decisions = decisions
        self._asked = asked
        self._transcripts = transcripts
        self._live = live
        self._signals = signals
        self._settings = settings
        self._clock = clock

        self._classifier = DecisionClassifier(oracle)
        self._generator = QuestionGenerator(
            oracle,
            seed_difficulty=settings.SEED_DIFFICULTY,
            minutes_per_question=settings.MINUTES_PER_QUESTION,
            max_attempts=settings.QUESTION_MAX_ATTEMPTS,
            novelty_threshold=settings.NOVELTY_THRESHOLD,
        )
        self._strategies = build_strategies(AnswerGrader(oracle, feedback_max_chars=settings.FEEDBACK_MAX_CHARS))
        self.profile_service = ProfileService(
            interviews=interviews,
            candidates=candidates,
            turns=turns,
            profiles=profiles,
            synthesizer=ProfileSynthesizer(oracle),
            clock=clock,
        )
        self.scheduling = SchedulingService(interviews, clock=clock, sweep_grace_min=settings.SWEEP_GRACE_MIN)
        signals.subscribe(GENERATE_PROFILE, self.profile_service.handle_signal)

    # -- lifecycle -------------------------------------------------------

    def start(self, candidate_id: str, interview_id: str) -> StartResult:
        session = self._owned(candidate_id, interview_id)
        if session.status not in STARTABLE:
            raise InvalidStateError(f"Interview is {session.status} and cannot be started")
        candidate = self._candidate(candidate_id)

        if not self._interviews.mark_started(interview_id, candidate_id, to_iso(self._clock())):
            raise InvalidStateError("Interview was started by another request")
        started = self._interviews.get(interview_id) or session

        opening = opening_question(candidate.full_name, self._settings.SEED_DIFFICULTY)
        self._asked.append(interview_id, opening, asked_at=to_iso(self._clock()))
        self._say(started, "assistant", opening.question)
        log_event("session", interview_id, status="ONGOING", action="start", section=opening.section)
        return StartResult(
            question=opening.question,
            difficulty_level=opening.difficulty_level or self._settings.SEED_DIFFICULTY,
            section=opening.section or "Introduction",
            session=started,
            candidate=candidate,
        )

    def end(
        self,
        candidate_id: str,
        interview_id: str,
        completion_min: float,
        transcript: Optional[Sequence[TranscriptRecord]] = None,
    ) -> EndResult:
        session = self._ongoing(candidate_id, interview_id)
        for record in transcript or ():
            self._store_transcript(session, record)

        candidate = self._candidate(candidate_id)
        strategy = self._strategy(session)
        records = self._transcripts.read_all(interview_id)
        with span(interview_id, "end_capture"):
            turns = strategy.turns_at_end(interview_id=interview_id, profile=candidate.resume_profile, records=records)

        now = self._clock()
        attempted_at = to_iso(now - timedelta(minutes=completion_min))
        if not self._interviews.complete(
            interview_id,
            candidate_id,
            completion_min=completion_min,
            attempted_at=attempted_at,
            turns=turns,
        ):
            raise InvalidStateError("Interview is no longer ongoing")

        log_event("session", interview_id, status="COMPLETED", action="end", turns=len(turns))
        self._signals.emit(GENERATE_PROFILE, {"interview_id": interview_id, "candidate_id": candidate_id})
        return EndResult(
            interview_id=interview_id,
            status="COMPLETED",
            completion_min=completion_min,
            attempted_at=attempted_at,
            turns_recorded=len(turns),
        )

    # -- turns -----------------------------------------------------------

    def submit_utterance(
        self,
        candidate_id: str,
        interview_id: str,
        *,
        question: str,
        answer: str,
        utterance_id: Optional[str] = None,
    ) -> Decision:
        session = self._ongoing(candidate_id, interview_id)
        if session.modality != "voice":
            stored = self._say(session, "user", answer, record_id=utterance_id)
            if utterance_id and not stored:
                replay = self._decisions.latest(interview_id)
                if replay is not None and replay.utterance == answer:
                    return Decision(action=replay.action, message=replay.message)

        pending = self._decisions.pending_confirm(interview_id)
        with span(interview_id, "classify"):
            decision = self._classifier.classify(question=question, utterance=answer, pending_confirm=pending)
        self._decisions.append(
            interview_id,
            decision,
            question=question,
            utterance=answer,
            created_at=to_iso(self._clock()),
        )
        log_event("decision", interview_id, action=decision.action)
        return decision

    def grade_answer(
        self,
        candidate_id: str,
        interview_id: str,
        *,
        question: str,
        answer: str,
        difficulty_level: int,
        section: Optional[Section],
        turn_id: Optional[str] = None,
    ) -> GradeResult:
        session = self._ongoing(candidate_id, interview_id)
        strategy = self._strategy(session)
        turn_id = turn_id or turn_digest(interview_id, question, answer)

        existing = self._turns.get(interview_id, turn_id)
        if existing is not None:
            return GradeResult(correct=existing.correct, ai_feedback=existing.ai_feedback)

        candidate = self._candidate(candidate_id)
        difficulty = clamp_difficulty(difficulty_level)
        with span(interview_id, "grade"):
            result = strategy.grade_turn(
                profile=candidate.resume_profile,
                question=question,
                answer=answer,
                difficulty_level=difficulty,
                section=section,
            )

        turn = Turn(
            turn_id=turn_id,
            content=question.strip(),
            section=section,
            difficulty_level=difficulty,
            candidate_answer=answer.strip(),
            correct=result.correct,
            ai_feedback=result.ai_feedback,
            asked_at=to_iso(self._clock()),
        )
        if not self.record_turn(interview_id, turn) and self._turns.get(interview_id, turn_id) is None:
            raise InvalidStateError("Interview ended before the answer was recorded")
        log_event("turn", interview_id, section=section, difficulty=difficulty, correct=result.correct)
        self._live.publish(interview_id, {"type": "turn", "turn": turn.model_dump()})
        return result

    def record_turn(self, interview_id: str, turn: Turn) -> bool:
        """Append one turn; ``False`` for a duplicate id or a session that is not ONGOING."""

        return self._turns.insert(interview_id, turn)

    def handle_tool_call(self, candidate_id: str, interview_id: str, payload: Dict[str, Any]) -> GradeResult:
        session = self._ongoing(candidate_id, interview_id)
        strategy = self._strategy(session)
        if not isinstance(strategy, ToolCallCapture):
            raise InvalidStateError(f"{session.modality} sessions do not accept tool calls")
        call = strategy.decode_call(payload)
        difficulty, section = call.difficulty_level, call.section
        if difficulty is None or section is None:
            # Calls that leave out the level or section take them from the question as it was asked.
            asked = self._matching_question(interview_id, call.question)
            if difficulty is None:
                difficulty = asked.difficulty_level if asked and asked.difficulty_level else self._current_difficulty(interview_id)
            if section is None and asked is not None:
                section = asked.section
        return self.grade_answer(
            candidate_id,
            interview_id,
            question=call.question,
            answer=call.answer,
            difficulty_level=difficulty,
            section=section,
            turn_id=call.turn_id,
        )

    def next_question(
        self,
        candidate_id: str,
        interview_id: str,
        *,
        remaining_min: float,
        total_min: float,
    ) -> QuestionOut:
        session = self._ongoing(candidate_id, interview_id)
        candidate = self._candidate(candidate_id)
        turns = self._turns.list_for(interview_id)
        history = self._asked.list_for(interview_id)
        asked = [entry.question for entry in history]
        asked += [record.text for record in self._transcripts.read_all(interview_id) if record.role == "assistant"]

        with span(interview_id, "generate_question"):
            out = self._generator.generate(
                profile=candidate.resume_profile,
                turns=turns,
                asked=asked,
                remaining_min=remaining_min,
                total_min=total_min,
                asked_sections=[entry.section for entry in history],
            )
        if not self._asked.append(interview_id, out, asked_at=to_iso(self._clock())):
            raise InvalidStateError("Interview ended before the question was asked")
        self._say(session, "assistant", out.question)
        log_event("question", interview_id, section=out.section, difficulty=out.difficulty_level)
        return out

    # -- transcripts -----------------------------------------------------

    def ingest_transcript(self, candidate_id: str, interview_id: str, record: TranscriptRecord) -> bool:
        session = self._ongoing(candidate_id, interview_id)
        return self._store_transcript(session, record)

    def transcript(self, interview_id: str) -> List[TranscriptRecord]:
        self._session(interview_id)
        return self._transcripts.read_all(interview_id)

    # -- profile ---------------------------------------------------------

    def get_profile(self, interview_id: str, candidate_id: Optional[str] = None) -> InterviewProfile:
        if candidate_id is None:
            self._session(interview_id)
        else:
            self._owned(candidate_id, interview_id)
        profile = self._profiles.get(interview_id)
        if profile is None:
            raise NotFoundError("Interview profile not found")
        return profile

    def profile_pdf(self, candidate_id: str, interview_id: str) -> bytes:
        session = self._owned(candidate_id, interview_id)
        profile = self.get_profile(interview_id)
        candidate = self._candidate(candidate_id)
        return generate_profile_pdf(session, candidate, profile, self._turns.list_for(interview_id))

    # -- helpers ---------------------------------------------------------

    def _session(self, interview_id: str) -> InterviewSession:
        session = self._interviews.get(interview_id)
        if session is None:
            raise NotFoundError("Interview not found")
        return session

    def _owned(self, candidate_id: str, interview_id: str) -> InterviewSession:
        session = self._session(interview_id)
        if session.candidate_id != candidate_id:
            raise AuthorizationError("Interview belongs to another candidate")
        return session

    def _ongoing(self, candidate_id: str, interview_id: str) -> InterviewSession:
        session = self._owned(candidate_id, interview_id)
        if session.status != "ONGOING":
            raise InvalidStateError(f"Interview is {session.status}, expected ONGOING")
        return session

    def _candidate(self, candidate_id: str) -> CandidateRecord:
        candidate = self._candidates.get(candidate_id)
        if candidate is None:
            raise NotFoundError("Candidate not found")
        return candidate

    def _strategy(self, session: InterviewSession) -> TurnCaptureStrategy:
        return self._strategies[session.modality]

    def _current_difficulty(self, interview_id: str) -> int:
        return next_difficulty(self._turns.list_for(interview_id), self._settings.SEED_DIFFICULTY)

    def _matching_question(self, interview_id: str, question: str) -> Optional[AskedQuestion]:
        wanted = " ".join(question.split()).lower()
        for entry in reversed(self._asked.list_for(interview_id)):
            if " ".join(entry.question.split()).lower() == wanted:
                return entry
        return None

    def _say(
        self,
        session: InterviewSession,
        role: str,
        text: str,
        *,
        record_id: Optional[str] = None,
    ) -> bool:
        """Log an engine-side utterance; voice transcripts come only from the client."""

        if session.modality == "voice" or not text.strip():
            return False
        timestamp = int(self._clock().timestamp() * 1000)
        record = TranscriptRecord(
            id=record_id or _record_id(session.interview_id, role, text, timestamp),
            role=role,
            text=text.strip(),
            timestamp=timestamp,
        )
        return self._store_transcript(session, record)

    def _store_transcript(self, session: InterviewSession, record: TranscriptRecord) -> bool:
        stored = self._transcripts.append(session.interview_id, record)
        if not stored:
            return False
        ttl = session.duration_min * 60 + self._settings.TRANSCRIPT_TTL_GRACE_S
        self._transcripts.set_expiry(session.interview_id, ttl)
        self._live.publish(session.interview_id, {"type": "transcript", "record": record.model_dump()})
        return True


__all__ = ["EndResult", "SessionStateMachine", "StartResult", "END_MESSAGE"]
