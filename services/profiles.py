from __future__ import annotations  # Exactly-once profile synthesis for completed interviews

import logging
from typing import Any, Dict

from agents.profile_synthesizer import ProfileSynthesizer, compute_analytics
from agents.types import InterviewProfile
from errors import InvalidStateError, NotFoundError
from observability import log_event, span
from services.clock import Clock, to_iso, utc_now
from storage.candidates import CandidateStore
from storage.interviews import InterviewStore
from storage.profiles import ProfileStore
from storage.turns import TurnStore

logger = logging.getLogger(__name__)


class ProfileService:
    """Build and store the one profile a completed interview gets.

    An existing row short-circuits before any Oracle call; a concurrent insert
    that loses the uniqueness race is a no-op and the stored row is returned.
    """

    def __init__(
        self,
        *,
        interviews: InterviewStore,
        candidates: CandidateStore,
        turns: TurnStore,
        profiles: ProfileStore,
        synthesizer: ProfileSynthesizer,
        clock: Clock = utc_now,
    ) -> None:
        self._interviews = interviews
        self._candidates = candidates
        self._turns = turns
        self._profiles = profiles
        self._synthesizer = synthesizer
        self._clock = clock

    def synthesize(self, interview_id: str) -> InterviewProfile:
        session = self._interviews.get(interview_id)
        if session is None:
            raise NotFoundError("Interview not found")
        if session.status != "COMPLETED":
            raise InvalidStateError(f"Interview is {session.status}, profiles need COMPLETED")

        existing = self._profiles.get(interview_id)
        if existing is not None:
            log_event("profile", interview_id, outcome="exists")
            return existing

        candidate = self._candidates.get(session.candidate_id)
        if candidate is None:
            raise NotFoundError("Candidate not found")
        turns = self._turns.list_for(interview_id)

        with span(interview_id, "synthesize_profile"):
            out = self._synthesizer.synthesize(profile=candidate.resume_profile, turns=turns)

        profile = InterviewProfile(
            interview_id=interview_id,
            performance_score=out.performance_score,
            recommended_roles=out.recommended_roles,
            strengths=out.strengths,
            weaknesses=out.weaknesses,
            analytics=compute_analytics(turns),
            created_at=to_iso(self._clock()),
        )
        inserted = self._profiles.insert(profile)
        log_event("profile", interview_id, outcome="created" if inserted else "exists", turns=len(turns))
        return self._profiles.get(interview_id) or profile

    def handle_signal(self, payload: Dict[str, Any]) -> None:  # generate-interview-profile subscriber
        self.synthesize(str(payload["interview_id"]))


__all__ = ["ProfileService"]
