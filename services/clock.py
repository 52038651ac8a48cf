from __future__ import annotations  # Time helpers shared by the services

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


def parse_iso(value: str) -> datetime:
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def millis_to_iso(millis: int) -> str:
    return to_iso(datetime.fromtimestamp(millis / 1000, tz=timezone.utc))


__all__ = ["Clock", "millis_to_iso", "parse_iso", "to_iso", "utc_now"]
