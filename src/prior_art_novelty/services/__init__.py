"""Service layer for the prior-art novelty pipeline.

Re-exports the public API surface for convenience::

    from prior_art_novelty.services import (
        PriorArtService, ResultAggregator, SearchExecutor,
        extract_json, decide_screening, aggregate_detailed,
    )
"""

from prior_art_novelty.services.aggregation import MergeSummary, ResultAggregator
from prior_art_novelty.services.audit_trail import AssessmentAuditTrail, idempotency_key
from prior_art_novelty.services.decision import (
    DetailedDecision,
    ScreeningDecision,
    aggregate_detailed,
    decide_screening,
    status_for,
)
from prior_art_novelty.services.prompts import build_detailed_prompt, build_screening_prompt
from prior_art_novelty.services.relevance import score_relevance, score_text
from prior_art_novelty.services.response_parser import (
    DetailedOutput,
    ParseOutcome,
    ScreeningOutput,
    extract_json,
    interpret_detailed,
    interpret_screening,
)
from prior_art_novelty.services.search import SearchExecutor
from prior_art_novelty.services.terms import extract_terms
from prior_art_novelty.services.threshold import select_threshold

__all__ = [
    # Relevance
    "extract_terms",
    "score_relevance",
    "score_text",
    "select_threshold",
    # Search & merge
    "MergeSummary",
    "ResultAggregator",
    "SearchExecutor",
    # Interpretation
    "DetailedOutput",
    "ParseOutcome",
    "ScreeningOutput",
    "extract_json",
    "interpret_detailed",
    "interpret_screening",
    # Decisions
    "DetailedDecision",
    "ScreeningDecision",
    "aggregate_detailed",
    "decide_screening",
    "status_for",
    # Prompts & audit
    "AssessmentAuditTrail",
    "build_detailed_prompt",
    "build_screening_prompt",
    "idempotency_key",
    # Facade
    "PriorArtService",
]


def __getattr__(name: str):  # noqa: N807
    """Lazy-load the facade; it imports the graph, which imports this package."""
    if name == "PriorArtService":
        from prior_art_novelty.services.service import PriorArtService

        return PriorArtService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
