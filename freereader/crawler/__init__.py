"""Article crawling: strategies, fetching, extraction and orchestration.

Only the exception taxonomy lives at package level so the storage helpers in
``freereader.utils`` can import it without pulling in the orchestrator.
"""


class ExtractionError(Exception):
    """Base class for every extraction failure."""

    pass


class InvalidInputError(ExtractionError):
    """URL does not match the accepted article domains.

    Raised before any network access.
    """

    pass


class AttemptError(ExtractionError):
    """A single strategy attempt failed; the next retry/strategy may succeed."""

    pass


class NetworkTimeout(AttemptError):
    """Fetch exceeded its wall-clock budget."""

    pass


class HttpError(AttemptError):
    """Mirror answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str | None = None):
        self.status_code = status_code
        self.reason = reason or ""
        message = f"HTTP {status_code}"
        if self.reason:
            message = f"{message}: {self.reason}"
        super().__init__(message)


class TooShortResponse(AttemptError):
    """Body below the minimum viable size (empty or placeholder page)."""

    pass


class InsufficientText(AttemptError):
    """Markup is large enough but carries almost no visible text."""

    pass


class FetchError(AttemptError):
    """Connection-level failure (DNS, reset, TLS, ...)."""

    pass


class AllStrategiesExhaustedError(ExtractionError):
    """Every strategy and retry failed without a usable partial result."""

    def __init__(self, last_error: Exception | None = None):
        self.last_error = last_error
        detail = str(last_error) if last_error else "no attempt produced content"
        super().__init__(f"All extraction methods failed ({detail})")


class ExtractionCancelled(ExtractionError):
    """Caller cancelled the request (client disconnect, shutdown)."""

    pass


class SideChannelError(Exception):
    """Non-fatal persistence failure; never reaches the caller."""

    pass


class LoggingFailure(SideChannelError):
    pass


class CacheWriteFailure(SideChannelError):
    pass


class ReliabilityUpdateFailure(SideChannelError):
    pass


__all__ = [
    "AllStrategiesExhaustedError",
    "AttemptError",
    "CacheWriteFailure",
    "ExtractionCancelled",
    "ExtractionError",
    "FetchError",
    "HttpError",
    "InsufficientText",
    "InvalidInputError",
    "LoggingFailure",
    "NetworkTimeout",
    "ReliabilityUpdateFailure",
    "SideChannelError",
    "TooShortResponse",
]
