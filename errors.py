from __future__ import annotations  # Error taxonomy shared by the interview engine


class InterviewError(RuntimeError):  # Base error for engine failures
    retryable = False


class NotFoundError(InterviewError):  # Interview, candidate or profile missing
    pass


class AuthorizationError(InterviewError):  # Caller does not own the session
    pass


class InvalidStateError(InterviewError):  # Transition not allowed from current status
    pass


class OracleUnavailableError(InterviewError):  # Text generation failed or timed out
    retryable = True


class MalformedOracleOutputError(InterviewError):  # Completion could not be decoded
    pass


__all__ = [
    "InterviewError",
    "NotFoundError",
    "AuthorizationError",
    "InvalidStateError",
    "OracleUnavailableError",
    "MalformedOracleOutputError",
]
