from __future__ import annotations  # Live event publishing for the admin transcript view

import json
import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Protocol

import redis

logger = logging.getLogger(__name__)

LiveEvent = Dict[str, Any]


class LivePublisher(Protocol):  # Fire one event per new turn, keyed by interview id
    def publish(self, interview_id: str, event: LiveEvent) -> None: ...


class LoggingLivePublisher:  # Default without Redis; nothing subscribes in-process
    def publish(self, interview_id: str, event: LiveEvent) -> None:
        logger.debug("live %s %s", interview_id, event.get("type"))


class InMemoryLiveFeed:  # Process-local feed keeping the latest events per interview
    def __init__(self, maxlen: int = 500) -> None:
        self._maxlen = maxlen
        self._events: Dict[str, Deque[LiveEvent]] = {}
        self._lock = threading.Lock()

    def publish(self, interview_id: str, event: LiveEvent) -> None:
        with self._lock:
            events = self._events.get(interview_id)
            if events is None:
                events = self._events[interview_id] = deque(maxlen=self._maxlen)
            events.append(dict(event))

    def events(self, interview_id: str) -> List[LiveEvent]:
        with self._lock:
            return list(self._events.get(interview_id, ()))


class RedisLivePublisher:  # Redis pub/sub on ``interview:{id}:live``
    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @staticmethod
    def channel(interview_id: str) -> str:
        return f"interview:{interview_id}:live"

    def publish(self, interview_id: str, event: LiveEvent) -> None:
        try:
            self._client.publish(self.channel(interview_id), json.dumps(event))
        except redis.RedisError as exc:
            logger.warning("Live publish failed for %s: %s", interview_id, exc)


__all__ = ["InMemoryLiveFeed", "LiveEvent", "LivePublisher", "LoggingLivePublisher", "RedisLivePublisher"]
