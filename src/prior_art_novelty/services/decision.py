"""Deterministic decision policies of the staged novelty assessment.

Model output is interpreted elsewhere; this module only maps interpreted
results to determinations:

* ``decide_screening`` applies the Stage 1 policy (any HIGH means
  NOT_NOVEL; otherwise any MEDIUM means DOUBT and escalates the MEDIUM
  candidates; otherwise NOVEL).
* ``aggregate_detailed`` combines Stage 2 results into one determination.
* ``status_for`` maps a final determination to a terminal status.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from prior_art_novelty.domain.enums import (
    AssessmentStatus,
    ConfidenceLevel,
    Determination,
    Relevance,
)
from prior_art_novelty.domain.values import DetailedResult, ScreeningItem

logger = logging.getLogger(__name__)

_DEFAULT_STAGE1_CONFIDENCE: Mapping[str, int] = {"NOT_NOVEL": 90, "DOUBT": 60, "NOVEL": 85}

_CONFIDENCE_ORDER = (ConfidenceLevel.HIGH, ConfidenceLevel.MEDIUM, ConfidenceLevel.LOW)


@dataclass(frozen=True)
class ScreeningDecision:
    """Stage 1 outcome: a determination and the candidates to escalate."""

    determination: Determination
    confidence: int
    escalate_ids: tuple[str, ...] = ()

    @property
    def needs_detail(self) -> bool:
        return self.determination is Determination.DOUBT and bool(self.escalate_ids)


@dataclass(frozen=True)
class DetailedDecision:
    """Aggregate of all successful Stage 2 results."""

    determination: Determination
    confidence_level: ConfidenceLevel
    remarks: str = ""
    suggestions: str = ""
    novel_aspects: tuple[str, ...] = ()
    non_novel_aspects: tuple[str, ...] = ()


def decide_screening(
    items: Sequence[ScreeningItem],
    confidences: Mapping[str, int] | None = None,
) -> ScreeningDecision:
    """Apply the Stage 1 policy to *items*.

    The model's own ``overall_determination`` is advisory and ignored here.
    """
    confidences = confidences or _DEFAULT_STAGE1_CONFIDENCE
    if any(i.relevance is Relevance.HIGH for i in items):
        return ScreeningDecision(Determination.NOT_NOVEL, confidences["NOT_NOVEL"])

    medium = tuple(dict.fromkeys(i.identifier for i in items if i.relevance is Relevance.MEDIUM))
    if medium:
        return ScreeningDecision(Determination.DOUBT, confidences["DOUBT"], medium)

    return ScreeningDecision(Determination.NOVEL, confidences["NOVEL"])


def aggregate_detailed(
    results: Sequence[DetailedResult],
    remarks: Sequence[str] | None = None,
) -> DetailedDecision:
    """Combine Stage 2 *results* into one decision.

    Any NOT_NOVEL wins; otherwise any PARTIALLY_NOVEL; otherwise NOVEL only
    when every result is NOVEL.  A mix that matches none of these (an
    unrecognised determination alongside NOVEL, say) is PARTIALLY_NOVEL.
    The confidence level is the highest reported.  Aspects are de-duplicated
    in first-seen order; remarks (each result's technical reasoning unless
    *remarks* is given) and suggestions are joined with ``"; "``.
    """
    if not results:
        raise ValueError("aggregate_detailed needs at least one result")

    determinations = [r.determination for r in results]
    if Determination.NOT_NOVEL in determinations:
        determination = Determination.NOT_NOVEL
    elif Determination.PARTIALLY_NOVEL in determinations:
        determination = Determination.PARTIALLY_NOVEL
    elif all(d is Determination.NOVEL for d in determinations):
        determination = Determination.NOVEL
    else:
        logger.debug("Mixed Stage 2 determinations %s", [d.value for d in determinations])
        determination = Determination.PARTIALLY_NOVEL

    if remarks is None:
        remarks = [r.technical_reasoning for r in results]

    levels = {r.confidence_level for r in results}
    confidence_level = next(c for c in _CONFIDENCE_ORDER if c in levels)

    novel = _unique(a for r in results for a in r.novel_aspects)
    non_novel = _unique(a for r in results for a in r.non_novel_aspects)

    return DetailedDecision(
        determination=determination,
        confidence_level=confidence_level,
        remarks="; ".join(r for r in remarks if r),
        suggestions="; ".join(r.suggestions for r in results if r.suggestions),
        novel_aspects=novel,
        non_novel_aspects=non_novel,
    )


def status_for(determination: Determination) -> AssessmentStatus:
    """Terminal status recorded for a final *determination*."""
    if determination is Determination.NOT_NOVEL:
        return AssessmentStatus.NOT_NOVEL
    if determination is Determination.NOVEL:
        return AssessmentStatus.NOVEL
    if determination is Determination.PARTIALLY_NOVEL:
        return AssessmentStatus.DOUBT_RESOLVED
    raise ValueError(f"{determination.value} is not a final determination")


def _unique(values) -> tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))
