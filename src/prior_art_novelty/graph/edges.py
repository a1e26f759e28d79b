"""Conditional edge functions for the assessment graph."""

from __future__ import annotations

from typing import Any, Literal


def route_after_screening(
    state: dict[str, Any],
) -> Literal["assess_details", "finalize", "fail", "__end__"]:
    """After ``screen``: escalate a DOUBT, finish a clear result, or fail.

    Returns ``"__end__"`` when the assessment was abandoned meanwhile.
    """
    if state.get("aborted"):
        return "__end__"
    if state.get("error"):
        return "fail"
    decision = state.get("screening")
    if decision is None:
        return "fail"
    if decision.needs_detail:
        return "assess_details"
    return "finalize"


def route_after_details(state: dict[str, Any]) -> Literal["finalize", "fail", "__end__"]:
    """After ``assess_details``: finish if at least one candidate succeeded."""
    if state.get("aborted"):
        return "__end__"
    if state.get("error") or not state.get("stage2_succeeded"):
        return "fail"
    return "finalize"
