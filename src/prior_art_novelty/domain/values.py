"""Value objects for the prior-art novelty pipeline.

All types here are frozen dataclasses -- immutable, compared by value.
They represent search strategies, scored documents, model outputs and
audit records that have no identity beyond their content.
"""

from __future__ import annotations

import hashlib
import json
import re
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from .enums import (
    AssessmentStage,
    ConfidenceLevel,
    ContentType,
    Determination,
    Relevance,
    SourceScope,
    TaskCode,
    VariantLabel,
)
from .exceptions import StrategyInvalid

MAX_QUERY_LENGTH = 300
MAX_PAGE_SIZE = 50
MAX_PAGE = 20

# ---------------------------------------------------------------------------
# QueryVariant
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QueryVariant:
    """One of the three query formulations of a strategy."""

    label: VariantLabel
    query: str
    num: int = 20
    page: int = 1
    notes: str = ""

    @property
    def start(self) -> int:
        """Zero-based result offset for the requested page."""
        return (self.page - 1) * self.num

    def problems(self, index: int) -> list[str]:
        errors: list[str] = []
        if not self.query or not self.query.strip():
            errors.append(f"query_variants[{index}].query must be a non-empty string")
        elif len(self.query) > MAX_QUERY_LENGTH:
            errors.append(
                f"query_variants[{index}].query exceeds maximum length of "
                f"{MAX_QUERY_LENGTH} characters"
            )
        if not 1 <= self.num <= MAX_PAGE_SIZE:
            errors.append(f"query_variants[{index}].num must be between 1 and {MAX_PAGE_SIZE}")
        if not 1 <= self.page <= MAX_PAGE:
            errors.append(f"query_variants[{index}].page must be between 1 and {MAX_PAGE}")
        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label.value,
            "q": self.query,
            "num": self.num,
            "page": self.page,
            "notes": self.notes,
        }


# ---------------------------------------------------------------------------
# SearchStrategy
# ---------------------------------------------------------------------------

_ENGINE_SCOPES = {
    "google_patents": SourceScope.PATENT_ONLY,
    "google_scholar": SourceScope.BOTH,
}


@dataclass(frozen=True)
class SearchStrategy:
    """Immutable description of a prior-art search for one invention.

    Construction validates the structural invariants (exactly three variants
    labelled broad/baseline/narrow, bounded page sizes) and raises
    ``StrategyInvalid`` listing every problem found.  Approval produces a new
    instance; an approved strategy is never mutated.
    """

    variants: tuple[QueryVariant, ...]
    core_concepts: tuple[str, ...] = ()
    technical_features: tuple[str, ...] = ()
    synonym_groups: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    phrases: tuple[str, ...] = ()
    exclude_terms: tuple[str, ...] = ()
    source_scope: SourceScope = SourceScope.BOTH
    title: str = ""
    problem: str = ""
    solution: str = ""
    cpc_candidates: tuple[str, ...] = ()
    ipc_candidates: tuple[str, ...] = ()
    ambiguous_terms: tuple[str, ...] = ()
    sensitive_tokens: tuple[str, ...] = ()
    detail_fields: tuple[str, ...] = ()
    approved: bool = False

    def __post_init__(self) -> None:
        self.validate()

    # -- validation -----------------------------------------------------------

    def validate(self) -> None:
        """Raise ``StrategyInvalid`` listing every structural problem."""
        errors = self.problems()
        if errors:
            raise StrategyInvalid(errors=errors)

    def problems(self) -> list[str]:
        """Return every structural problem with this strategy (empty if valid)."""
        errors: list[str] = []
        if len(self.variants) != 3:
            errors.append(
                f"query_variants must contain exactly 3 items, got {len(self.variants)}"
            )
        seen: set[VariantLabel] = set()
        for i, variant in enumerate(self.variants):
            if not isinstance(variant.label, VariantLabel):
                errors.append(
                    f"query_variants[{i}].label must be one of: broad, baseline, narrow"
                )
                continue
            if variant.label in seen:
                errors.append(f"Duplicate label '{variant.label.value}' in query_variants")
            seen.add(variant.label)
            errors.extend(variant.problems(i))
        if self.approved and self.sensitive_tokens:
            errors.append("sensitive_tokens must be empty for approval")
        return errors

    def guardrail_warnings(self) -> list[str]:
        """Non-fatal quality warnings about the query formulations."""
        warnings: list[str] = []
        or_groups = 0
        for variant in self.variants:
            quoted = re.findall(r'"[^"]*"', variant.query)
            if len(quoted) > 2:
                warnings.append(
                    f"Query variant {variant.label.value} has {len(quoted)} quoted "
                    "phrases (max 2 allowed)"
                )
            or_groups += len(re.findall(r"\([^)]*\)", variant.query))
        if or_groups < 2:
            warnings.append("Consider adding more OR-groups for better recall")

        context_terms = [t.lower() for t in (*self.core_concepts, *self.technical_features)]
        for ambiguous in self.ambiguous_terms:
            has_context = any(
                ambiguous.lower() in v.query.lower()
                and any(c in v.query.lower() for c in context_terms)
                for v in self.variants
            )
            if not has_context:
                warnings.append(
                    f'Ambiguous term "{ambiguous}" may need context terms for disambiguation'
                )
        return warnings

    # -- accessors --------------------------------------------------------------

    def variant(self, label: VariantLabel) -> QueryVariant:
        for v in self.variants:
            if v.label is label:
                return v
        raise KeyError(label)

    def approve(self) -> SearchStrategy:
        """Return an approved copy of this strategy.

        Raises ``StrategyInvalid`` while ``sensitive_tokens`` is non-empty.
        """
        return replace(self, approved=True)

    def strategy_hash(self) -> str:
        """SHA-256 of the canonical JSON form, recorded on every run."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    # -- serialization ----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_summary": {
                "title": self.title,
                "problem_statement": self.problem,
                "solution_summary": self.solution,
            },
            "core_concepts": list(self.core_concepts),
            "technical_features": list(self.technical_features),
            "synonym_groups": [
                [canonical, *synonyms] for canonical, synonyms in self.synonym_groups.items()
            ],
            "phrases": list(self.phrases),
            "exclude_terms": list(self.exclude_terms),
            "cpc_candidates": list(self.cpc_candidates),
            "ipc_candidates": list(self.ipc_candidates),
            "ambiguous_terms": list(self.ambiguous_terms),
            "sensitive_tokens": list(self.sensitive_tokens),
            "fields_for_details": list(self.detail_fields),
            "source_scope": self.source_scope.value,
            "query_variants": [v.to_dict() for v in self.variants],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchStrategy:
        """Build a strategy from a search-bundle style mapping.

        Accepts ``synonym_groups`` either as a list of lists (first member is
        canonical) or as a ``canonical -> synonyms`` mapping, and variant
        queries under either ``q`` or ``query``.
        """
        errors: list[str] = []
        raw_variants = data.get("query_variants")
        if not isinstance(raw_variants, list):
            raise StrategyInvalid(errors=["query_variants must be a list"])

        variants: list[QueryVariant] = []
        for i, raw in enumerate(raw_variants):
            if not isinstance(raw, Mapping):
                errors.append(f"query_variants[{i}] must be an object")
                continue
            try:
                label = VariantLabel(str(raw.get("label", "")).lower())
            except ValueError:
                errors.append(
                    f"query_variants[{i}].label must be one of: broad, baseline, narrow"
                )
                continue
            try:
                num = int(raw.get("num", 20))
                page = int(raw.get("page", 1))
            except (TypeError, ValueError):
                errors.append(f"query_variants[{i}].num and page must be integers")
                continue
            variants.append(
                QueryVariant(
                    label=label,
                    query=str(raw.get("q", raw.get("query", "")) or ""),
                    num=num,
                    page=page,
                    notes=str(raw.get("notes", "") or ""),
                )
            )
        if errors:
            raise StrategyInvalid(errors=errors)

        summary = data.get("source_summary") or {}
        return cls(
            variants=tuple(variants),
            core_concepts=_str_tuple(data.get("core_concepts")),
            technical_features=_str_tuple(data.get("technical_features")),
            synonym_groups=_parse_synonym_groups(data.get("synonym_groups")),
            phrases=_str_tuple(data.get("phrases")),
            exclude_terms=_str_tuple(data.get("exclude_terms")),
            source_scope=_parse_scope(data),
            title=str(summary.get("title", data.get("title", "")) or ""),
            problem=str(summary.get("problem_statement", data.get("problem", "")) or ""),
            solution=str(summary.get("solution_summary", data.get("solution", "")) or ""),
            cpc_candidates=_str_tuple(data.get("cpc_candidates")),
            ipc_candidates=_str_tuple(data.get("ipc_candidates")),
            ambiguous_terms=_str_tuple(data.get("ambiguous_terms")),
            sensitive_tokens=_str_tuple(data.get("sensitive_tokens")),
            detail_fields=_str_tuple(data.get("fields_for_details")),
            approved=bool(data.get("approved", False)),
        )


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(v) for v in value if str(v).strip())


def _parse_synonym_groups(value: Any) -> dict[str, tuple[str, ...]]:
    groups: dict[str, tuple[str, ...]] = {}
    if not value:
        return groups
    if isinstance(value, Mapping):
        for canonical, synonyms in value.items():
            groups[str(canonical)] = _str_tuple(synonyms)
        return groups
    for group in value:
        members = _str_tuple(group)
        if members:
            groups[members[0]] = members[1:]
    return groups


def _parse_scope(data: Mapping[str, Any]) -> SourceScope:
    scope = data.get("source_scope")
    if scope:
        try:
            return SourceScope(str(scope).lower())
        except ValueError as exc:
            raise StrategyInvalid(
                errors=[
                    "source_scope must be one of: "
                    + ", ".join(s.value for s in SourceScope)
                ]
            ) from exc
    engine = (data.get("serpapi_defaults") or {}).get("engine")
    if isinstance(engine, str) and engine.strip():
        if engine not in _ENGINE_SCOPES:
            raise StrategyInvalid(
                errors=[
                    'serpapi_defaults.engine must be "google_patents", "google_scholar", '
                    "or undefined (for both)"
                ]
            )
        return _ENGINE_SCOPES[engine]
    return SourceScope.BOTH


# ---------------------------------------------------------------------------
# RawDocument
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawDocument:
    """Minimally parsed search hit, consumed by the aggregator."""

    identifier: str
    title: str = ""
    snippet: str = ""
    content_type: ContentType = ContentType.PATENT
    link: str = ""
    position: int = 0
    metadata: Mapping[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Relevance scoring
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TermMatch:
    """Where one term (or any of its synonyms) matched in a document."""

    in_title: bool
    in_abstract: int


@dataclass(frozen=True)
class RelevanceResult:
    """Textual relevance of one document against the strategy's terms."""

    title_matches: int
    abstract_matches: int
    total_score: int
    percent: int
    matched_terms: tuple[str, ...] = ()
    term_details: Mapping[str, TermMatch] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.percent <= 100:
            raise ValueError(f"percent must be in [0, 100], got {self.percent}")


# ---------------------------------------------------------------------------
# Invention & document detail
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InventionSummary:
    """The invention under assessment."""

    title: str
    problem: str = ""
    solution: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "problem": self.problem, "solution": self.solution}


@dataclass(frozen=True)
class DocumentDetail:
    """Full detail of one prior-art document.  Every field is optional."""

    title: str | None = None
    abstract: str | None = None
    claims: Any = None


@dataclass(frozen=True)
class CandidateSnapshot:
    """The view of a shortlisted candidate handed to novelty assessment."""

    identifier: str
    title: str = ""
    abstract: str = ""
    relevance: int = 0
    variant_labels: tuple[str, ...] = ()
    intersection_type: str = "NONE"

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "abstract": self.abstract,
            "relevance": self.relevance,
            "variant_labels": list(self.variant_labels),
            "intersection_type": self.intersection_type,
        }


# ---------------------------------------------------------------------------
# Interpreted model outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScreeningItem:
    """Stage 1 verdict for one candidate."""

    identifier: str
    relevance: Relevance
    reasoning: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "identifier": self.identifier,
            "relevance": self.relevance.value,
            "reasoning": self.reasoning,
        }


@dataclass(frozen=True)
class ScreeningResult:
    """Interpreted Stage 1 response."""

    items: tuple[ScreeningItem, ...]
    overall_determination: str = ""
    summary_remarks: str = ""
    partial: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_determination": self.overall_determination,
            "patent_assessments": [i.to_dict() for i in self.items],
            "summary_remarks": self.summary_remarks,
            "partial": self.partial,
        }


@dataclass(frozen=True)
class DetailedResult:
    """Interpreted Stage 2 response for one candidate."""

    identifier: str
    determination: Determination
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW
    novel_aspects: tuple[str, ...] = ()
    non_novel_aspects: tuple[str, ...] = ()
    technical_reasoning: str = ""
    suggestions: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "determination": self.determination.value,
            "confidence_level": self.confidence_level.value,
            "novel_aspects": list(self.novel_aspects),
            "non_novel_aspects": list(self.non_novel_aspects),
            "technical_reasoning": self.technical_reasoning,
            "suggestions": self.suggestions,
        }


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AssessmentCall:
    """Append-only audit record of one model invocation."""

    assessment_id: str
    stage: AssessmentStage
    task_code: TaskCode
    idempotency_key: str
    prompt: str
    raw_response: str = ""
    parsed: Mapping[str, Any] | None = None
    candidate_id: str = ""
    output_tokens: int = 0
    model_class: str = ""
    finish_reason: str = ""
    partial: bool = False
    error: str = ""
    call_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timestamp: float = field(default_factory=time.time)

    @property
    def succeeded(self) -> bool:
        return not self.error

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "assessment_id": self.assessment_id,
            "stage": self.stage.value,
            "task_code": self.task_code.value,
            "idempotency_key": self.idempotency_key,
            "candidate_id": self.candidate_id,
            "prompt": self.prompt,
            "raw_response": self.raw_response,
            "parsed": dict(self.parsed) if self.parsed is not None else None,
            "output_tokens": self.output_tokens,
            "model_class": self.model_class,
            "finish_reason": self.finish_reason,
            "partial": self.partial,
            "error": self.error,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssessmentCall:
        return cls(
            assessment_id=data.get("assessment_id", ""),
            stage=AssessmentStage(data.get("stage", AssessmentStage.STAGE1_SCREENING.value)),
            task_code=TaskCode(data.get("task_code", TaskCode.NOVELTY_SCREEN.value)),
            idempotency_key=data.get("idempotency_key", ""),
            prompt=data.get("prompt", ""),
            raw_response=data.get("raw_response", ""),
            parsed=data.get("parsed"),
            candidate_id=data.get("candidate_id", ""),
            output_tokens=int(data.get("output_tokens", 0)),
            model_class=data.get("model_class", ""),
            finish_reason=data.get("finish_reason", ""),
            partial=bool(data.get("partial", False)),
            error=data.get("error", ""),
            call_id=data.get("call_id") or uuid.uuid4().hex[:12],
            timestamp=float(data.get("timestamp", 0.0)),
        )
