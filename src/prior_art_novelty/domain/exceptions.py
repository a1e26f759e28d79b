"""Domain exceptions for the prior-art novelty pipeline.

All domain-specific exceptions inherit from ``PriorArtNoveltyError`` so
callers can catch the full family with a single ``except`` clause when needed.
"""

from __future__ import annotations

from typing import Any


class PriorArtNoveltyError(Exception):
    """Base exception for all prior-art novelty domain errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class StrategyInvalid(PriorArtNoveltyError):
    """Raised when a search strategy is malformed.

    Examples: not exactly three query variants, an unknown or duplicated
    variant label, or out-of-range page sizes.
    """

    def __init__(
        self,
        message: str = "Search strategy is invalid",
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.errors: list[str] = errors or []

    def __str__(self) -> str:
        base = super().__str__()
        if self.errors:
            return f"{base}: {'; '.join(self.errors)}"
        return base


class SourceUnavailable(PriorArtNoveltyError):
    """Raised when one search source fails for one query.

    The search executor absorbs this and proceeds with the remaining sources.
    """

    def __init__(
        self,
        message: str = "Search source unavailable",
        source: str = "",
        query: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source
        self.query = query


class ModelCallFailed(PriorArtNoveltyError):
    """Raised on a transport or provider error at the model boundary.

    Retryable at the caller's discretion with the same idempotency key.
    """

    def __init__(
        self,
        message: str = "Model call failed",
        task_code: str = "",
        idempotency_key: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.task_code = task_code
        self.idempotency_key = idempotency_key


class ResponseUnparseable(PriorArtNoveltyError):
    """Raised when every JSON repair heuristic has been exhausted.

    Only a bounded excerpt of the raw model output is kept.
    """

    def __init__(
        self,
        message: str = "Model response could not be parsed",
        excerpt: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.excerpt = excerpt


class DetailUnavailable(PriorArtNoveltyError):
    """Raised when full document detail cannot be fetched for a candidate."""

    def __init__(
        self,
        message: str = "Document detail unavailable",
        identifier: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.identifier = identifier


class AssessmentFailed(PriorArtNoveltyError):
    """Raised when an assessment ended without any usable result."""

    def __init__(
        self,
        message: str = "Novelty assessment failed",
        assessment_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.assessment_id = assessment_id


class InvalidTransition(PriorArtNoveltyError):
    """Raised on a backward or post-terminal assessment status change."""

    def __init__(
        self,
        message: str = "Invalid assessment status transition",
        current: str = "",
        requested: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.current = current
        self.requested = requested


class NotFound(PriorArtNoveltyError):
    """Raised when a run or assessment id is unknown to the store."""

    def __init__(
        self,
        message: str = "Not found",
        kind: str = "",
        key: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.kind = kind
        self.key = key
