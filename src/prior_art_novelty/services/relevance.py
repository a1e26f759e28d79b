"""Textual relevance scoring of one document against the strategy's terms.

A term (or any of its synonyms) found in the title is worth
``title_weight`` points, counted once per term.  Every literal,
case-insensitive occurrence of the term or a synonym in the abstract is worth
one point.  The raw score is normalised to a percentage against
``len(terms) * normalization_divisor`` and capped at 100.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence

from prior_art_novelty.domain.values import RawDocument, RelevanceResult, TermMatch
from prior_art_novelty.infrastructure.config import ScoringConfig

_DEFAULT_SCORING = ScoringConfig()


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def score_text(
    title: str,
    abstract: str,
    terms: Sequence[str],
    synonyms: Mapping[str, Sequence[str]],
    config: ScoringConfig = _DEFAULT_SCORING,
) -> RelevanceResult:
    """Score a title and abstract pair.

    Parameters
    ----------
    title / abstract:
        Document text; either may be empty.
    terms:
        Distinct scoring terms (see ``extract_terms``).
    synonyms:
        Canonical term -> synonyms.
    config:
        Title weight and normalisation divisor.
    """
    title_lc = (title or "").lower()
    abstract_lc = (abstract or "").lower()

    total = 0
    title_matches = 0
    abstract_matches = 0
    matched: list[str] = []
    details: dict[str, TermMatch] = {}

    for term in terms:
        term_lc = term.lower()
        variants = [term_lc, *(s.lower() for s in synonyms.get(term_lc, ()))]
        variants = [v for v in variants if v]

        in_title = any(v in title_lc for v in variants)
        if in_title:
            total += config.title_weight
            title_matches += 1

        in_abstract = 0
        if abstract_lc:
            for variant in variants:
                in_abstract += len(re.findall(re.escape(variant), abstract_lc))
        total += in_abstract
        abstract_matches += in_abstract

        if in_title or in_abstract:
            matched.append(term)
            details[term] = TermMatch(in_title=in_title, in_abstract=in_abstract)

    if not terms:
        percent = 0
    else:
        ceiling = len(terms) * config.normalization_divisor
        percent = min(100, round_half_up(total / ceiling * 100))

    return RelevanceResult(
        title_matches=title_matches,
        abstract_matches=abstract_matches,
        total_score=total,
        percent=percent,
        matched_terms=tuple(matched),
        term_details=details,
    )


def score_relevance(
    document: RawDocument,
    terms: Sequence[str],
    synonyms: Mapping[str, Sequence[str]],
    config: ScoringConfig = _DEFAULT_SCORING,
) -> RelevanceResult:
    """Score a search hit, using its snippet as the abstract."""
    return score_text(document.title, document.snippet, terms, synonyms, config)
