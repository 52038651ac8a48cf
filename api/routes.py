"""FastAPI routes for candidate interview sessions."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from api.schemas import (
    AnalyticsResp,
    DecisionResp,
    EndReq,
    EndResp,
    FeedbackReq,
    FeedbackResp,
    GenerateReq,
    ProfileResp,
    QuestionResp,
    StartReq,
    StartResp,
    TokenResp,
    ToolCallReq,
    TranscriptAck,
    TranscriptIn,
    TranscriptReq,
    TranscriptResp,
    TtsReq,
    UtteranceReq,
)
from errors import (
    AuthorizationError,
    InvalidStateError,
    MalformedOracleOutputError,
    NotFoundError,
    OracleUnavailableError,
)
from services.sessions import SessionStateMachine
from services.speech import SpeechServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/candidate/interview/session")

RETRY_DETAIL = "The interviewer is temporarily unavailable, please try again."


def get_engine(request: Request) -> SessionStateMachine:
    return request.app.state.engine


def get_speech(request: Request) -> SpeechServices:
    return getattr(request.app.state, "speech", None) or SpeechServices()


def caller_id(x_candidate_id: str = Header(..., alias="X-Candidate-Id")) -> str:
    candidate_id = x_candidate_id.strip()
    if not candidate_id:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    return candidate_id


@router.post("/start", response_model=StartResp)
def start(
    req: StartReq,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> StartResp:
    result = engine.start(candidate_id, req.interview_id)
    return StartResp(
        interview_id=result.session.interview_id,
        status=result.session.status,
        modality=result.session.modality,
        duration_min=result.session.duration_min,
        question=result.question,
        section=result.section,
        difficulty_level=result.difficulty_level,
    )


@router.post("/response", response_model=DecisionResp)
def respond(
    req: UtteranceReq,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> DecisionResp:
    decision = engine.submit_utterance(
        candidate_id,
        req.interview_id,
        question=req.question,
        answer=req.candidate_answer,
        utterance_id=req.utterance_id,
    )
    return DecisionResp(action=decision.action, message=decision.message)


@router.post("/conversation/feedback", response_model=FeedbackResp)
def feedback(
    req: FeedbackReq,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> FeedbackResp:
    result = engine.grade_answer(
        candidate_id,
        req.interview_id,
        question=req.question,
        answer=req.candidate_answer,
        difficulty_level=req.difficulty_level,
        section=req.section,
        turn_id=req.turn_id,
    )
    return FeedbackResp(correct=result.correct, ai_feedback=result.ai_feedback)


@router.post("/conversation/generate", response_model=QuestionResp)
def generate(
    req: GenerateReq,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> QuestionResp:
    out = engine.next_question(
        candidate_id,
        req.interview_id,
        remaining_min=req.remaining_duration,
        total_min=req.interview_duration,
    )
    return QuestionResp(question=out.question, section=out.section, difficulty_level=out.difficulty_level)


@router.post("/end", response_model=EndResp)
def end(
    req: EndReq,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> EndResp:
    transcript = [record.to_record() for record in req.transcript] if req.transcript else None
    result = engine.end(candidate_id, req.interview_id, req.completion_min, transcript)
    return EndResp(
        message=result.message,
        interview_id=result.interview_id,
        status=result.status,
        completion_min=result.completion_min,
        attempted_at=result.attempted_at,
        turns_recorded=result.turns_recorded,
    )


@router.post("/transcript", response_model=TranscriptAck)
def ingest_transcript(
    req: TranscriptReq,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> TranscriptAck:
    stored = engine.ingest_transcript(candidate_id, req.interview_id, req.to_record())
    return TranscriptAck(stored=stored)


@router.post("/tool-call", response_model=FeedbackResp)
def tool_call(
    req: ToolCallReq,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> FeedbackResp:
    result = engine.handle_tool_call(
        candidate_id,
        req.interview_id,
        {"name": req.name, "arguments": req.arguments},
    )
    return FeedbackResp(correct=result.correct, ai_feedback=result.ai_feedback)


@router.get("/speech/token", response_model=TokenResp)
def speech_token(
    _: str = Depends(caller_id),
    speech: SpeechServices = Depends(get_speech),
) -> TokenResp:
    if speech.token_provider is None:
        raise HTTPException(status_code=501, detail="Speech-to-text is not configured")
    return TokenResp(token=speech.token_provider.get_streaming_token())


@router.post("/speech/tts")
def speech_tts(
    req: TtsReq,
    _: str = Depends(caller_id),
    speech: SpeechServices = Depends(get_speech),
) -> Response:
    if speech.synthesizer is None:
        raise HTTPException(status_code=501, detail="Text-to-speech is not configured")
    return Response(content=speech.synthesizer.synthesize(req.text), media_type=speech.audio_media_type)


@router.get("/{interview_id}/transcript", response_model=TranscriptResp)
def read_transcript(interview_id: str, engine: SessionStateMachine = Depends(get_engine)) -> TranscriptResp:
    records = engine.transcript(interview_id)
    return TranscriptResp(
        interview_id=interview_id,
        records=[TranscriptIn(id=r.id, role=r.role, text=r.text, timestamp=r.timestamp) for r in records],
    )


@router.get("/{interview_id}/profile", response_model=ProfileResp)
def read_profile(
    interview_id: str,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> ProfileResp:
    profile = engine.get_profile(interview_id, candidate_id)
    return ProfileResp(
        interview_id=profile.interview_id,
        performance_score=profile.performance_score,
        recommended_roles=profile.recommended_roles,
        strengths=profile.strengths,
        weaknesses=profile.weaknesses,
        analytics=AnalyticsResp(**profile.analytics.model_dump()),
        created_at=profile.created_at,
    )


@router.get("/{interview_id}/profile.pdf")
def read_profile_pdf(
    interview_id: str,
    candidate_id: str = Depends(caller_id),
    engine: SessionStateMachine = Depends(get_engine),
) -> Response:
    payload = engine.profile_pdf(candidate_id, interview_id)
    headers = {"Content-Disposition": f'attachment; filename="interview-profile-{interview_id}.pdf"'}
    return Response(content=payload, media_type="application/pdf", headers=headers)


def register_error_handlers(app: FastAPI) -> None:  # Map engine errors onto HTTP statuses
    def _handler(status_code: int):
        def handle(request: Request, exc: Exception) -> JSONResponse:
            logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc), "retryable": False})

        return handle

    app.add_exception_handler(NotFoundError, _handler(404))
    app.add_exception_handler(AuthorizationError, _handler(403))
    app.add_exception_handler(InvalidStateError, _handler(409))
    app.add_exception_handler(MalformedOracleOutputError, _handler(502))

    def oracle_unavailable(request: Request, exc: OracleUnavailableError) -> JSONResponse:
        logger.error("%s %s -> 503: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": RETRY_DETAIL, "retryable": True})

    app.add_exception_handler(OracleUnavailableError, oracle_unavailable)


__all__ = ["register_error_handlers", "router"]
