"""Error taxonomy shared by the services and the HTTP layer."""

from __future__ import annotations


class NewsRelayError(Exception):
    """Base class for errors raised by the relay."""

    status_code = 500
    public_message = "Internal server error"


class ValidationError(NewsRelayError):
    """A required request field is missing or unusable."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


class RemoteServiceError(NewsRelayError):
    """Embedding, search, or generation provider failed."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


class EmptyGenerationError(RemoteServiceError):
    """The generative model produced no usable text."""

    def __init__(self, service: str = "gemini") -> None:
        super().__init__(service, "model returned an empty response")


class StoreError(NewsRelayError):
    """Key-value store read or write failed."""

    def __init__(self, operation: str, key: str, cause: BaseException | None = None) -> None:
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown failure"
        super().__init__(f"store {operation} failed for key '{key}' ({detail})")
        self.operation = operation
        self.key = key
        self.cause = cause
