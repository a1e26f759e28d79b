"""Build the novelty-assessment StateGraph.

``build_assessment_graph()`` wires the four nodes and two conditional edges
into a compiled LangGraph::

    START -> screen -+-> finalize ------> END
                     +-> assess_details -+-> finalize -> END
                     |                   +-> fail -----> END
                     +-> fail ------------------------> END
"""

from __future__ import annotations

from typing import Any

from langgraph.graph import END, START, StateGraph

from prior_art_novelty.graph.edges import route_after_details, route_after_screening
from prior_art_novelty.graph.nodes import (
    AssessmentContext,
    make_assess_details_node,
    make_fail_node,
    make_finalize_node,
    make_screen_node,
)
from prior_art_novelty.graph.state import AssessmentState


def build_assessment_graph(ctx: AssessmentContext, checkpointer: Any | None = None) -> Any:
    """Build and compile the assessment graph.

    Parameters
    ----------
    ctx:
        Collaborators injected into every node by closure.
    checkpointer:
        Optional LangGraph checkpointer for persistence.

    Returns
    -------
    CompiledStateGraph
        Invoke with ``{"assessment_id": ...}`` for an assessment already
        saved in ``ctx.store`` with status PENDING.
    """
    graph = StateGraph(AssessmentState)

    graph.add_node("screen", make_screen_node(ctx))
    graph.add_node("assess_details", make_assess_details_node(ctx))
    graph.add_node("finalize", make_finalize_node(ctx))
    graph.add_node("fail", make_fail_node(ctx))

    graph.add_edge(START, "screen")
    graph.add_conditional_edges(
        "screen",
        route_after_screening,
        {
            "assess_details": "assess_details",
            "finalize": "finalize",
            "fail": "fail",
            "__end__": END,
        },
    )
    graph.add_conditional_edges(
        "assess_details",
        route_after_details,
        {"finalize": "finalize", "fail": "fail", "__end__": END},
    )
    graph.add_edge("finalize", END)
    graph.add_edge("fail", END)

    return graph.compile(checkpointer=checkpointer)
