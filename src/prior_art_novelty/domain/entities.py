"""Domain entities for the prior-art novelty pipeline.

Entities have *identity* (a run id, a candidate identifier within a run, an
assessment id) and a mutable lifecycle.  ``NoveltyAssessment`` guards its own
status transitions; ``UnifiedCandidate`` accumulates variant labels across
repeated merges.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from .enums import (
    AssessmentStatus,
    ConfidenceLevel,
    ContentType,
    Determination,
    IntersectionType,
    RunStatus,
    SourceScope,
    VariantLabel,
)
from .exceptions import InvalidTransition
from .values import (
    CandidateSnapshot,
    DetailedResult,
    InventionSummary,
    RawDocument,
    ScreeningResult,
)

# ---------------------------------------------------------------------------
# Search run
# ---------------------------------------------------------------------------

@dataclass
class SearchRun:
    """One execution of an approved search strategy."""

    strategy_hash: str
    source_scope: SourceScope = SourceScope.BOTH
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: RunStatus = RunStatus.RUNNING
    threshold: int | None = None
    candidate_count: int = 0
    shortlisted_ids: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str = ""
    created_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "strategy_hash": self.strategy_hash,
            "source_scope": self.source_scope.value,
            "status": self.status.value,
            "threshold": self.threshold,
            "candidate_count": self.candidate_count,
            "shortlisted_ids": list(self.shortlisted_ids),
            "warnings": list(self.warnings),
            "error": self.error,
            "created_at": self.created_at,
            "completed_at": self.completed_at,
        }


@dataclass(frozen=True)
class QueryExecution:
    """Record of one (variant, source) search call.

    Created only once the call has completed or failed, hence frozen.  The
    returned documents ride along for the merge step but are not part of the
    persisted record.
    """

    run_id: str
    variant: VariantLabel
    content_type: ContentType
    query: str
    requested: int
    page: int = 1
    api_calls: int = 1
    result_count: int = 0
    error: str = ""
    executed_at: float = field(default_factory=time.time)
    documents: tuple[RawDocument, ...] = field(default=(), compare=False, repr=False)

    @property
    def failed(self) -> bool:
        return bool(self.error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "variant": self.variant.value,
            "content_type": self.content_type.value,
            "query": self.query,
            "requested": self.requested,
            "page": self.page,
            "api_calls": self.api_calls,
            "result_count": self.result_count,
            "error": self.error,
            "executed_at": self.executed_at,
        }


# ---------------------------------------------------------------------------
# Unified candidate
# ---------------------------------------------------------------------------

@dataclass
class UnifiedCandidate:
    """A distinct document within one run, merged across variants.

    ``intersection_type`` is always derived from the size of
    ``variant_labels`` and is never stored independently.  Scholarly
    documents record which variants found them but never intersect.
    """

    run_id: str
    identifier: str
    content_type: ContentType = ContentType.PATENT
    title: str = ""
    abstract: str = ""
    link: str = ""
    variant_labels: set[VariantLabel] = field(default_factory=set)
    variant_scores: dict[VariantLabel, int] = field(default_factory=dict)
    score: int = 0
    shortlisted: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.run_id, self.identifier)

    @property
    def intersection_type(self) -> IntersectionType:
        if self.content_type is not ContentType.PATENT:
            return IntersectionType.NONE
        return IntersectionType.from_count(len(self.variant_labels))

    @property
    def is_intersecting(self) -> bool:
        return self.intersection_type is not IntersectionType.NONE

    def add_variant(self, label: VariantLabel, percent: int | None = None) -> None:
        self.variant_labels.add(label)
        if percent is not None:
            self.variant_scores[label] = percent

    def absorb(self, other: UnifiedCandidate) -> None:
        """Merge a later write of the same candidate into this one.

        Variant labels and per-variant scores accumulate; every other field
        takes the incoming value.
        """
        if other.key != self.key:
            raise ValueError(f"Cannot merge candidate {other.key} into {self.key}")
        self.variant_labels |= other.variant_labels
        self.variant_scores.update(other.variant_scores)
        self.content_type = other.content_type
        self.title = other.title
        self.abstract = other.abstract
        self.link = other.link
        self.score = other.score
        self.shortlisted = other.shortlisted

    def snapshot(self) -> CandidateSnapshot:
        return CandidateSnapshot(
            identifier=self.identifier,
            title=self.title,
            abstract=self.abstract,
            relevance=self.score,
            variant_labels=tuple(sorted(v.value for v in self.variant_labels)),
            intersection_type=self.intersection_type.value,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "identifier": self.identifier,
            "content_type": self.content_type.value,
            "title": self.title,
            "abstract": self.abstract,
            "link": self.link,
            "variant_labels": sorted(v.value for v in self.variant_labels),
            "variant_scores": {k.value: v for k, v in self.variant_scores.items()},
            "score": self.score,
            "intersection_type": self.intersection_type.value,
            "shortlisted": self.shortlisted,
        }


# ---------------------------------------------------------------------------
# Novelty assessment
# ---------------------------------------------------------------------------

@dataclass
class NoveltyAssessment:
    """A staged novelty determination for one invention.

    Status only ever moves forward (see ``AssessmentStatus.rank``); once a
    terminal status is reached nothing further may change it.
    """

    invention: InventionSummary
    candidates: tuple[CandidateSnapshot, ...] = ()
    run_id: str | None = None
    assessment_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: AssessmentStatus = AssessmentStatus.PENDING
    stage1: ScreeningResult | None = None
    escalated_ids: tuple[str, ...] = ()
    stage2: list[DetailedResult] = field(default_factory=list)
    determination: Determination | None = None
    confidence: int | None = None
    confidence_level: ConfidenceLevel | None = None
    remarks: str = ""
    suggestions: str = ""
    novel_aspects: list[str] = field(default_factory=list)
    non_novel_aspects: list[str] = field(default_factory=list)
    error: str = ""
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    # -- lifecycle --------------------------------------------------------------

    def can_transition(self, target: AssessmentStatus) -> bool:
        if self.status.is_terminal:
            return False
        if target in (AssessmentStatus.FAILED, AssessmentStatus.ABANDONED):
            return True
        return target.rank > self.status.rank

    def transition_to(self, target: AssessmentStatus) -> None:
        """Move to *target*, rejecting backward or post-terminal changes."""
        if not self.can_transition(target):
            raise InvalidTransition(
                f"Cannot move assessment {self.assessment_id} from "
                f"{self.status.value} to {target.value}",
                current=self.status.value,
                requested=target.value,
            )
        self.status = target
        self.updated_at = time.time()
        if target.is_terminal:
            self.completed_at = self.updated_at

    def fail(self, error: str) -> None:
        self.error = error
        self.transition_to(AssessmentStatus.FAILED)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def candidate(self, identifier: str) -> CandidateSnapshot | None:
        for c in self.candidates:
            if c.identifier == identifier:
                return c
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessment_id": self.assessment_id,
            "run_id": self.run_id,
            "invention": self.invention.to_dict(),
            "candidates": [c.to_dict() for c in self.candidates],
            "status": self.status.value,
            "stage1": self.stage1.to_dict() if self.stage1 else None,
            "escalated_ids": list(self.escalated_ids),
            "stage2": [r.to_dict() for r in self.stage2],
            "determination": self.determination.value if self.determination else None,
            "confidence": self.confidence,
            "confidence_level": (
                self.confidence_level.value if self.confidence_level else None
            ),
            "remarks": self.remarks,
            "suggestions": self.suggestions,
            "novel_aspects": list(self.novel_aspects),
            "non_novel_aspects": list(self.non_novel_aspects),
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }
