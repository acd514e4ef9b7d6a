"""Exceptions raised while resolving and dispatching a completion request."""
from __future__ import annotations


class LlmPromptError(Exception):
    """Base exception for all llm-prompt failures."""

    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UsageError(LlmPromptError):
    """Bad or missing command-line input. Raised before any network call."""

    exit_code = 2


class NetworkError(LlmPromptError):
    """The endpoint could not be reached."""

    pass


class HttpStatusError(LlmPromptError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        message = f"endpoint returned HTTP {status_code}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ParseError(LlmPromptError):
    """The response body was not the expected JSON."""

    pass
