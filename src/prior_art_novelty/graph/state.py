"""LangGraph state definition for the novelty assessment.

Defines ``AssessmentState``, the ``TypedDict`` that flows through the
assessment ``StateGraph``.  The assessment entity itself lives in the store;
the graph state only carries what routing needs between nodes.  ``events``
is append-only via ``Annotated[list, operator.add]``.

Note: We intentionally do NOT use ``from __future__ import annotations`` because
LangGraph needs to resolve type hints at runtime via ``get_type_hints()``.
"""

import operator
from typing import Annotated, Any, TypedDict

from prior_art_novelty.services.decision import DetailedDecision, ScreeningDecision


class AssessmentState(TypedDict, total=False):
    """State flowing through the assessment graph.

    Keys
    ----
    assessment_id:
        Store key of the ``NoveltyAssessment`` being driven.
    screening:
        Stage 1 decision, set by the ``screen`` node.
    stage2_succeeded:
        Number of candidates with a usable Stage 2 result.
    detailed:
        Aggregate of the Stage 2 results, set by ``assess_details``.
    error:
        Set by any node that hit an unrecoverable failure.
    aborted:
        The stored assessment moved on (abandoned) while a node ran; the
        graph stops without committing anything further.
    events:
        Domain events published while driving the assessment.
    """

    assessment_id: str
    screening: ScreeningDecision | None
    stage2_succeeded: int
    detailed: DetailedDecision | None
    error: str
    aborted: bool
    events: Annotated[list[Any], operator.add]
