from __future__ import annotations  # In-process signal bus for post-commit work

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

from observability import log_event

logger = logging.getLogger(__name__)

GENERATE_PROFILE = "generate-interview-profile"

Payload = Dict[str, Any]
Handler = Callable[[Payload], None]
Dispatch = Callable[[Callable[[], None]], None]


def thread_dispatch(work: Callable[[], None]) -> None:  # Run work on a daemon thread
    threading.Thread(target=work, name="signal-dispatch", daemon=True).start()


def inline_dispatch(work: Callable[[], None]) -> None:  # Run work on the caller's thread
    work()


class SignalBus:
    """Fan a topic out to its subscribers without making the emitter wait.

    ``dispatch`` decides where handlers run. A failing handler is logged and
    never reaches the emitter, which has already returned to its caller.
    """

    def __init__(self, dispatch: Dispatch = thread_dispatch) -> None:
        self._dispatch = dispatch
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._lock = threading.RLock()

    def subscribe(self, topic: str, handler: Handler) -> None:
        with self._lock:
            self._handlers[topic].append(handler)

    def emit(self, topic: str, payload: Payload) -> None:
        with self._lock:
            handlers = list(self._handlers.get(topic, ()))
        if not handlers:
            logger.warning("Signal %s emitted with no subscribers", topic)
            return
        for handler in handlers:
            self._dispatch(lambda handler=handler: self._run(topic, handler, payload))

    def _run(self, topic: str, handler: Handler, payload: Payload) -> None:
        interview_id = str(payload.get("interview_id", "-"))
        try:
            handler(payload)
        except Exception:  # noqa: BLE001
            logger.exception("Signal handler failed topic=%s interview=%s", topic, interview_id)
            log_event("signal", interview_id, level=logging.ERROR, action=topic, outcome="error")
            return
        log_event("signal", interview_id, action=topic, outcome="ok")


__all__ = ["GENERATE_PROFILE", "SignalBus", "inline_dispatch", "thread_dispatch"]
