"""Value objects describing extraction results and caller-facing responses."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

WORDS_PER_MINUTE = 200

INVALID_INPUT_MESSAGE = "Please provide a valid Medium article URL"
GENERIC_FAILURE_MESSAGE = (
    "Unable to extract this article right now. Please try again later."
)
PARTIAL_WARNING = (
    "Article extraction was partially successful. Some content may be missing."
)


class AttemptStatus(Enum):
    """Outcome recorded for one attempt in the extraction log."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class ResponseStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


def reading_time_minutes(word_count: int) -> int:
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


@dataclass(frozen=True)
class ExtractionResult:
    """Immutable product of one successful fetch and parse."""

    title: str
    author: str
    content: str
    plain_text: str
    word_count: int
    reading_time: int
    completeness_score: int
    method: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the metadata mapping as well
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


@dataclass(frozen=True)
class ExtractionOutcome:
    """Result returned by the orchestrator along with how it was obtained."""

    result: ExtractionResult
    cached: bool = False
    warning: Optional[str] = None

    @property
    def is_partial(self) -> bool:
        return self.warning is not None


@dataclass(frozen=True)
class ArticleResponse:
    """Caller-facing response: success, partial success or failure."""

    status: ResponseStatus
    result: Optional[ExtractionResult] = None
    cached: bool = False
    warning: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: ExtractionOutcome) -> "ArticleResponse":
        status = ResponseStatus.PARTIAL if outcome.is_partial else ResponseStatus.SUCCESS
        return cls(
            status=status,
            result=outcome.result,
            cached=outcome.cached,
            warning=outcome.warning,
        )

    @classmethod
    def failure(cls, error: str, error_type: str) -> "ArticleResponse":
        return cls(status=ResponseStatus.FAILED, error=error, error_type=error_type)

    @property
    def ok(self) -> bool:
        return self.status is not ResponseStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape served over HTTP."""
        if not self.ok or self.result is None:
            return {"error": self.error, "errorType": self.error_type}

        payload: dict[str, Any] = {
            "content": self.result.content,
            "title": self.result.title,
            "author": self.result.author,
            "wordCount": self.result.word_count,
            "readingTime": self.result.reading_time,
            "cached": self.cached,
        }
        if self.warning:
            payload["warning"] = self.warning
        return payload
