"""Merging of per-variant search results into unified candidates.

Classes
-------
ResultAggregator
    Scores patent hits per variant, classifies intersections, selects the
    shortlist and upserts candidates into the store.
MergeSummary
    What a merge produced; logged and recorded on the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from prior_art_novelty.domain.entities import QueryExecution, UnifiedCandidate
from prior_art_novelty.domain.enums import ContentType, VariantLabel
from prior_art_novelty.domain.values import SearchStrategy
from prior_art_novelty.infrastructure.config import (
    AggregationConfig,
    ScoringConfig,
    ThresholdConfig,
)
from prior_art_novelty.infrastructure.sources import normalize_patent_id
from prior_art_novelty.infrastructure.store import PriorArtStore
from prior_art_novelty.services.relevance import round_half_up, score_relevance
from prior_art_novelty.services.terms import extract_terms
from prior_art_novelty.services.threshold import select_threshold

logger = logging.getLogger(__name__)

SCHOLAR_PREFIX = "scholar:"


@dataclass(frozen=True)
class MergeSummary:
    """Result of one merge."""

    run_id: str
    candidate_count: int
    patent_count: int
    scholarly_count: int
    intersecting_count: int
    shortlisted_ids: tuple[str, ...]
    threshold: int
    used_fallback: bool = False


class ResultAggregator:
    """Turns completed query executions into scored, shortlisted candidates.

    Merging is idempotent per ``(run_id, identifier)``: re-running it over the
    same executions rewrites the same candidates.

    Parameters
    ----------
    store:
        Where candidates are upserted.
    scoring / threshold / aggregation:
        Scoring weights, cutoff constants and shortlist parameters.
    """

    def __init__(
        self,
        store: PriorArtStore,
        scoring: ScoringConfig | None = None,
        threshold: ThresholdConfig | None = None,
        aggregation: AggregationConfig | None = None,
    ) -> None:
        self._store = store
        self._scoring = scoring or ScoringConfig()
        self._threshold = threshold or ThresholdConfig()
        self._aggregation = aggregation or AggregationConfig()

    def merge(
        self,
        run_id: str,
        executions: Iterable[QueryExecution],
        strategy: SearchStrategy,
    ) -> MergeSummary:
        terms, synonyms = extract_terms(strategy)
        logger.debug("Run %s: scoring against %d terms", run_id, len(terms))

        patents: dict[str, UnifiedCandidate] = {}
        scholarly: dict[str, UnifiedCandidate] = {}

        for execution in executions:
            if execution.failed:
                continue
            for doc in execution.documents:
                if doc.content_type is ContentType.PATENT:
                    identifier = normalize_patent_id(doc.identifier)
                    if not identifier:
                        continue
                    relevance = score_relevance(doc, terms, synonyms, self._scoring)
                    candidate = patents.setdefault(
                        identifier,
                        UnifiedCandidate(
                            run_id=run_id,
                            identifier=identifier,
                            content_type=ContentType.PATENT,
                        ),
                    )
                    previous = candidate.variant_scores.get(execution.variant, 0)
                    candidate.add_variant(execution.variant, max(previous, relevance.percent))
                else:
                    identifier = f"{SCHOLAR_PREFIX}{doc.identifier}"
                    candidate = scholarly.setdefault(
                        identifier,
                        UnifiedCandidate(
                            run_id=run_id,
                            identifier=identifier,
                            content_type=ContentType.SCHOLARLY,
                        ),
                    )
                    candidate.add_variant(execution.variant)
                candidate.title = doc.title or candidate.title
                candidate.abstract = doc.snippet or candidate.abstract
                candidate.link = doc.link or candidate.link

        threshold = select_threshold(
            [max(c.variant_scores.values()) for c in patents.values()],
            config=self._threshold,
        )

        shortlist, used_fallback = self._select_shortlist(patents)
        intersecting = sum(1 for c in patents.values() if c.is_intersecting)

        for identifier, candidate in patents.items():
            candidate.score = round_half_up(float(np.mean(list(candidate.variant_scores.values()))))
            candidate.shortlisted = identifier in shortlist
            self._store.upsert_candidate(candidate)
        for candidate in scholarly.values():
            candidate.score = 0
            candidate.shortlisted = False
            self._store.upsert_candidate(candidate)

        summary = MergeSummary(
            run_id=run_id,
            candidate_count=len(patents) + len(scholarly),
            patent_count=len(patents),
            scholarly_count=len(scholarly),
            intersecting_count=intersecting,
            shortlisted_ids=tuple(sorted(shortlist)),
            threshold=threshold,
            used_fallback=used_fallback,
        )
        logger.info(
            "Run %s merged: %d patents, %d scholarly, %d intersecting, "
            "%d shortlisted%s, threshold %d%%",
            run_id,
            summary.patent_count,
            summary.scholarly_count,
            summary.intersecting_count,
            len(summary.shortlisted_ids),
            " (top-per-variant fallback)" if used_fallback else "",
            threshold,
        )
        return summary

    def _select_shortlist(
        self, patents: dict[str, UnifiedCandidate]
    ) -> tuple[set[str], bool]:
        """Intersecting patents, or the best few per variant when none intersect."""
        intersecting = {
            identifier
            for identifier, c in patents.items()
            if len(c.variant_labels) >= self._aggregation.min_intersection
        }
        if intersecting:
            return intersecting, False

        selected: set[str] = set()
        for label in VariantLabel:
            found = [
                (c.variant_scores[label], identifier)
                for identifier, c in patents.items()
                if label in c.variant_scores
            ]
            found.sort(key=lambda item: (-item[0], item[1]))
            top = found[: self._aggregation.fallback_per_variant]
            selected.update(identifier for _, identifier in top)
            logger.debug("Selected %d top patents from %s variant", len(top), label.value)
        return selected, True
