"""Domain events for the prior-art novelty pipeline.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  The search
executor, the assessment graph and the service publish them on the
``EventBus``; report generation and notification hang off
``AssessmentTerminated``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import AssessmentStage, AssessmentStatus, ContentType, Determination, VariantLabel

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""


# ---------------------------------------------------------------------------
# Search events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourceFailed(DomainEvent):
    """One (variant, source) unit failed; the run continues without it."""

    run_id: str = ""
    variant: VariantLabel | None = None
    content_type: ContentType | None = None
    error: str = ""


@dataclass(frozen=True)
class SearchRunCompleted(DomainEvent):
    """All search units finished and the results were merged."""

    run_id: str = ""
    candidate_count: int = 0
    shortlisted_count: int = 0
    intersecting_count: int = 0
    threshold: int = 0
    failed_units: int = 0


# ---------------------------------------------------------------------------
# Assessment events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AssessmentStageCompleted(DomainEvent):
    """A stage of a novelty assessment produced its result."""

    assessment_id: str = ""
    stage: AssessmentStage = AssessmentStage.STAGE1_SCREENING
    determination: Determination | None = None
    escalated: tuple[str, ...] = ()


@dataclass(frozen=True)
class AssessmentTerminated(DomainEvent):
    """An assessment reached a terminal status.  Published exactly once."""

    assessment_id: str = ""
    status: AssessmentStatus = AssessmentStatus.FAILED
    determination: Determination | None = None
