"""Typed failures raised by the chat client.

Rate limiting and malformed event lines are absorbed internally and never
show up here.
"""


class DuckChatError(Exception):
    """Base exception for chat client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthError(DuckChatError):
    """The token probe failed or returned no token."""

    def __init__(self, message: str = "Unable to obtain VQD token"):
        super().__init__(message)


class HttpError(DuckChatError):
    """The chat endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        detail = f"HTTP Error {status_code}"
        if reason:
            detail += f": {reason}"
        super().__init__(detail)


class TransientServiceError(HttpError):
    """Rate-limited or anti-automation status that survived every retry."""

    def __init__(self, status_code: int, reason: str = "", attempts: int = 0):
        super().__init__(status_code, reason)
        self.attempts = attempts


class StreamError(DuckChatError):
    """Transport failure while reading the event stream."""

    def __init__(self, message: str):
        super().__init__(f"Stream read error: {message}")


class ServiceUnreachableError(DuckChatError):
    """Transport failure before the chat endpoint produced a response."""

    def __init__(self, message: str):
        super().__init__(f"Chat request failed: {message}")
