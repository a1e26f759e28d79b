"""LangGraph rendition of the staged novelty assessment.

Public API
----------
build_assessment_graph
    Compile the screen / assess_details / finalize / fail graph.
AssessmentContext
    Collaborators (store, gateway, detail lookup, audit trail, event bus).
AssessmentState
    The ``TypedDict`` flowing between nodes.
route_after_screening, route_after_details
    Conditional edge functions.
"""

from prior_art_novelty.graph.builder import build_assessment_graph
from prior_art_novelty.graph.edges import route_after_details, route_after_screening
from prior_art_novelty.graph.nodes import (
    AssessmentContext,
    make_assess_details_node,
    make_fail_node,
    make_finalize_node,
    make_screen_node,
)
from prior_art_novelty.graph.state import AssessmentState

__all__ = [
    "AssessmentContext",
    "AssessmentState",
    "build_assessment_graph",
    "make_assess_details_node",
    "make_fail_node",
    "make_finalize_node",
    "make_screen_node",
    "route_after_details",
    "route_after_screening",
]
