"""Prompt construction for the two assessment stages.

Both prompts are ``langchain_core`` ``PromptTemplate`` objects rendered to a
plain string, since the model gateway takes text rather than messages.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from langchain_core.prompts import PromptTemplate

from prior_art_novelty.domain.values import CandidateSnapshot, DocumentDetail, InventionSummary

# -- Templates ---------------------------------------------------------------

SCREENING_PROMPT = PromptTemplate.from_template(
    """Analyze patent novelty. Output ONLY valid JSON.

INVENTION:
Title: {title}
Problem: {problem}
Solution: {solution}

PATENTS:
{patent_list}

RULES:
- HIGH: patent teaches invention elements
- MEDIUM: patent relates but doesn't teach all elements
- LOW: patent is unrelated

DETERMINATION:
- All LOW = "NOVEL"
- Any HIGH = "NOT_NOVEL"
- Only MEDIUM = "DOUBT"

JSON OUTPUT:
{{
  "overall_determination": "NOVEL/NOT_NOVEL/DOUBT",
  "patent_assessments": [
    {{"publication_number": "id", "relevance": "HIGH/MEDIUM/LOW", "reasoning": "brief reason"}}
  ],
  "summary_remarks": "brief summary"
}}"""
)

DETAILED_PROMPT = PromptTemplate.from_template(
    """Compare invention with patent for novelty. Output ONLY valid JSON.

INVENTION:
Title: {title}
Problem: {problem}
Solution: {solution}

PATENT:
Number: {patent_number}
Title: {patent_title}
Abstract: {patent_abstract}
Claims: {patent_claims}

TASK:
- Compare elements systematically
- Status: NOVEL (fully novel), NOT_NOVEL (anticipated), PARTIALLY_NOVEL (some novel elements)

JSON OUTPUT:
{{
  "determination": "NOVEL/NOT_NOVEL/PARTIALLY_NOVEL",
  "confidence_level": "HIGH/MEDIUM/LOW",
  "novel_aspects": ["list novel features"],
  "non_novel_aspects": ["list anticipated features"],
  "technical_reasoning": "detailed comparison analysis",
  "suggestions": "how to achieve novelty if needed"
}}"""
)

NOT_AVAILABLE = "not available"


# -- Builders ----------------------------------------------------------------

def truncate_words(text: str, limit: int) -> str:
    """Keep the first *limit* words of *text*, marking a cut with ``...``."""
    words = (text or "").split()
    if len(words) <= limit:
        return " ".join(words)
    return " ".join(words[:limit]) + "..."


def build_screening_prompt(
    invention: InventionSummary,
    candidates: Sequence[CandidateSnapshot],
    abstract_word_limit: int = 200,
) -> str:
    entries = [
        f"Patent {c.identifier}:\n"
        f"Title: {c.title}\n"
        f"Abstract: {truncate_words(c.abstract, abstract_word_limit)}\n"
        f"Relevance: {c.relevance}%"
        for c in candidates
    ]
    return SCREENING_PROMPT.format(
        title=invention.title,
        problem=invention.problem,
        solution=invention.solution,
        patent_list="\n---\n".join(entries),
    )


def build_detailed_prompt(
    invention: InventionSummary,
    identifier: str,
    detail: DocumentDetail,
    fallback: CandidateSnapshot | None = None,
) -> str:
    """Render the Stage 2 prompt; missing detail falls back to the snapshot,
    then to ``not available``."""
    title = detail.title or (fallback.title if fallback else "") or f"Title {NOT_AVAILABLE}"
    abstract = (
        detail.abstract or (fallback.abstract if fallback else "") or f"Abstract {NOT_AVAILABLE}"
    )
    return DETAILED_PROMPT.format(
        title=invention.title,
        problem=invention.problem,
        solution=invention.solution,
        patent_number=identifier,
        patent_title=title,
        patent_abstract=abstract,
        patent_claims=_format_claims(detail.claims),
    )


def _format_claims(claims: object) -> str:
    if not claims:
        return f"Claims {NOT_AVAILABLE}"
    if isinstance(claims, str):
        return claims
    if isinstance(claims, (list, tuple)) and all(isinstance(c, str) for c in claims):
        return "\n".join(f"{i}. {c}" for i, c in enumerate(claims, start=1))
    return json.dumps(claims, indent=2, default=str)
