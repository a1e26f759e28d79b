"""Search-term extraction from a search strategy."""

from __future__ import annotations

from prior_art_novelty.domain.values import SearchStrategy

MIN_PHRASE_WORD_LENGTH = 3


def extract_terms(strategy: SearchStrategy) -> tuple[list[str], dict[str, list[str]]]:
    """Return the distinct scoring terms and the synonym map of *strategy*.

    Terms are lower-cased core concepts, the words (longer than two
    characters) of every phrase, technical features, and the canonical member
    of each synonym group, in first-seen order.  The synonym map sends each
    canonical term to its remaining, lower-cased group members.
    """
    terms: dict[str, None] = {}
    synonyms: dict[str, list[str]] = {}

    for concept in strategy.core_concepts:
        terms.setdefault(concept.lower())

    for phrase in strategy.phrases:
        for word in phrase.lower().split():
            if len(word) >= MIN_PHRASE_WORD_LENGTH:
                terms.setdefault(word)

    for feature in strategy.technical_features:
        terms.setdefault(feature.lower())

    for canonical, members in strategy.synonym_groups.items():
        key = canonical.lower()
        terms.setdefault(key)
        synonyms[key] = [m.lower() for m in members]

    return list(terms), synonyms
