from __future__ import annotations  # FastAPI server exposing the interview session engine

import logging
from pathlib import Path
from typing import Optional

import redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import register_error_handlers, router
from config import Settings, load_config, resolve_route, settings
from llm_gateway import Oracle, build_oracle
from services.clock import Clock, utc_now
from services.live import LivePublisher, LoggingLivePublisher, RedisLivePublisher
from services.sessions import SessionStateMachine
from services.signals import Dispatch, SignalBus, inline_dispatch, thread_dispatch
from services.speech import SpeechServices
from storage.asked import AskedQuestionLog
from storage.candidates import CandidateStore
from storage.decisions import DecisionLog
from storage.interviews import InterviewStore
from storage.profiles import ProfileStore
from storage.transcripts import RedisTranscriptStore, SqliteTranscriptStore, TranscriptStore
from storage.turns import TurnStore


logger = logging.getLogger(__name__)


def build_engine(  # Wire stores, Oracle and transports from settings
    cfg: Settings = settings,
    *,
    oracle: Optional[Oracle] = None,
    live: Optional[LivePublisher] = None,
    dispatch: Optional[Dispatch] = None,
    clock: Clock = utc_now,
) -> SessionStateMachine:
    db_path = Path(cfg.DB_PATH)
    if oracle is None:
        route = resolve_route(load_config(Path(cfg.LLM_CONFIG_PATH)), cfg.ORACLE_ROUTE)
        logger.info("Using Oracle route=%s vendor=%s model=%s", route.name, route.vendor, route.model)
        oracle = build_oracle(route)

    transcripts: TranscriptStore
    if cfg.TRANSCRIPT_BACKEND == "redis":
        client = redis.Redis.from_url(cfg.REDIS_URL)
        transcripts = RedisTranscriptStore(client)
        live = live or RedisLivePublisher(client)
    else:
        transcripts = SqliteTranscriptStore(db_path)
        live = live or LoggingLivePublisher()

    if dispatch is None:
        dispatch = inline_dispatch if cfg.PROFILE_DISPATCH == "inline" else thread_dispatch

    return SessionStateMachine(
        interviews=InterviewStore(db_path),
        candidates=CandidateStore(db_path),
        turns=TurnStore(db_path),
        profiles=ProfileStore(db_path),
        decisions=DecisionLog(db_path),
        asked=AskedQuestionLog(db_path),
        transcripts=transcripts,
        oracle=oracle,
        live=live,
        signals=SignalBus(dispatch),
        settings=cfg,
        clock=clock,
    )


def create_app(engine: SessionStateMachine, *, speech: Optional[SpeechServices] = None) -> FastAPI:  # Build the HTTP app around an engine
    app = FastAPI(title="Interview Session API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.engine = engine
    app.state.speech = speech or SpeechServices()
    app.include_router(router)
    register_error_handlers(app)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


def create_default_app() -> FastAPI:  # Factory entry point, e.g. ``uvicorn api_server:create_default_app --factory``
    return create_app(build_engine(settings))


__all__ = ["build_engine", "create_app", "create_default_app"]
