"""
Error types for the orchestrator.
Every error raised to a caller is an OrchestratorError carrying the name
of the operation it came from.
"""

from typing import Optional

import httpx


class OrchestratorError(Exception):
    """Base class for all orchestrator errors."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def with_operation(self, operation: str) -> "OrchestratorError":
        if not self.operation:
            self.operation = operation
        return self

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ValidationError(OrchestratorError):
    """Bad text or model name. Never retried."""


class NetworkError(OrchestratorError):
    """Transport failure."""


class TransportConnectError(NetworkError):
    """The primary client could not connect to the LLM server."""


class RequestTimeoutError(OrchestratorError):
    """A request or call deadline was exceeded."""


class ModelNotFoundError(OrchestratorError):
    """The server returned no content, or does not know the model."""


class ModelDownloadError(OrchestratorError):
    """Pull or delete of a model failed."""


_USER_MESSAGES = [
    (ValidationError, "Invalid input provided"),
    (RequestTimeoutError, "The model server took too long to respond"),
    (NetworkError, "Connection to Ollama failed"),
    (ModelNotFoundError, "Model not found"),
    (ModelDownloadError, "Model download failed"),
]


def user_message(exc: BaseException) -> str:
    """Short human-readable summary for an error."""
    for error_type, message in _USER_MESSAGES:
        if isinstance(exc, error_type):
            return message
    return "Internal error"


def wrap_error(exc: BaseException, operation: str) -> OrchestratorError:
    """
    Map any exception onto the orchestrator taxonomy.

    Orchestrator errors pass through, annotated with the operation if they
    do not carry one yet. Foreign exceptions are wrapped and chained.
    """
    if isinstance(exc, OrchestratorError):
        return exc.with_operation(operation)

    if isinstance(exc, httpx.TimeoutException):
        wrapped: OrchestratorError = RequestTimeoutError(f"Request timed out: {exc}", operation)
    elif isinstance(exc, httpx.ConnectError):
        wrapped = TransportConnectError(f"Connection failed: {exc}", operation)
    elif isinstance(exc, (httpx.HTTPError, OSError)):
        wrapped = NetworkError(str(exc), operation)
    elif isinstance(exc, UnicodeError):
        wrapped = NetworkError(f"Undecodable data from server: {exc}", operation)
    elif isinstance(exc, ValueError):
        wrapped = ValidationError(f"Invalid argument: {exc}", operation)
    else:
        wrapped = OrchestratorError(f"Unexpected error: {exc}", operation)
    wrapped.__cause__ = exc
    return wrapped
