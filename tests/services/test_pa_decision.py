"""Tests for the Stage 1 / Stage 2 decision policies."""

from __future__ import annotations

import pytest

from prior_art_novelty.domain.enums import (
    AssessmentStatus,
    ConfidenceLevel,
    Determination,
    Relevance,
)
from prior_art_novelty.domain.values import DetailedResult, ScreeningItem
from prior_art_novelty.services.decision import aggregate_detailed, decide_screening, status_for


def _items(**relevances: str) -> list[ScreeningItem]:
    return [ScreeningItem(pid, Relevance(rel)) for pid, rel in relevances.items()]


def _result(
    pid: str,
    determination: Determination,
    level: ConfidenceLevel = ConfidenceLevel.LOW,
    **kwargs: object,
) -> DetailedResult:
    return DetailedResult(pid, determination, level, **kwargs)  # type: ignore[arg-type]


class TestDecideScreening:

    def test_any_high_is_not_novel(self) -> None:
        decision = decide_screening(_items(US1="MEDIUM", US2="HIGH", US3="LOW"))
        assert decision.determination is Determination.NOT_NOVEL
        assert decision.confidence == 90
        assert decision.escalate_ids == ()
        assert not decision.needs_detail

    def test_medium_escalates(self) -> None:
        decision = decide_screening(_items(US1="MEDIUM", US2="LOW", US3="MEDIUM"))
        assert decision.determination is Determination.DOUBT
        assert decision.confidence == 60
        assert decision.escalate_ids == ("US1", "US3")
        assert decision.needs_detail

    def test_all_low_is_novel(self) -> None:
        decision = decide_screening(_items(US1="LOW", US2="LOW"))
        assert decision.determination is Determination.NOVEL
        assert decision.confidence == 85

    def test_empty_is_novel(self) -> None:
        assert decide_screening([]).determination is Determination.NOVEL

    def test_duplicate_medium_escalated_once(self) -> None:
        items = [ScreeningItem("US1", Relevance.MEDIUM), ScreeningItem("US1", Relevance.MEDIUM)]
        assert decide_screening(items).escalate_ids == ("US1",)

    def test_custom_confidences(self) -> None:
        decision = decide_screening(_items(US1="LOW"), {"NOT_NOVEL": 1, "DOUBT": 2, "NOVEL": 3})
        assert decision.confidence == 3


class TestAggregateDetailed:

    def test_any_not_novel_wins(self) -> None:
        decision = aggregate_detailed([
            _result("US1", Determination.NOVEL),
            _result("US2", Determination.NOT_NOVEL),
            _result("US3", Determination.PARTIALLY_NOVEL),
        ])
        assert decision.determination is Determination.NOT_NOVEL

    def test_partial_beats_novel(self) -> None:
        decision = aggregate_detailed([
            _result("US1", Determination.NOVEL),
            _result("US2", Determination.PARTIALLY_NOVEL),
        ])
        assert decision.determination is Determination.PARTIALLY_NOVEL

    def test_all_novel(self) -> None:
        decision = aggregate_detailed([
            _result("US1", Determination.NOVEL),
            _result("US2", Determination.NOVEL),
        ])
        assert decision.determination is Determination.NOVEL

    def test_unrecognised_mix_is_partial(self) -> None:
        decision = aggregate_detailed([
            _result("US1", Determination.NOVEL),
            _result("US2", Determination.DOUBT),
        ])
        assert decision.determination is Determination.PARTIALLY_NOVEL

    def test_highest_confidence_level(self) -> None:
        decision = aggregate_detailed([
            _result("US1", Determination.NOVEL, ConfidenceLevel.LOW),
            _result("US2", Determination.NOVEL, ConfidenceLevel.MEDIUM),
        ])
        assert decision.confidence_level is ConfidenceLevel.MEDIUM

    def test_aspects_deduplicated_in_order(self) -> None:
        decision = aggregate_detailed([
            _result("US1", Determination.PARTIALLY_NOVEL, novel_aspects=("channels", "pump")),
            _result("US2", Determination.NOVEL, novel_aspects=("pump", "sensor")),
        ])
        assert decision.novel_aspects == ("channels", "pump", "sensor")

    def test_remarks_and_suggestions_joined(self) -> None:
        decision = aggregate_detailed(
            [
                _result("US1", Determination.NOVEL, suggestions="narrow claim 1"),
                _result("US2", Determination.NOVEL, technical_reasoning="ignored"),
            ],
            remarks=["US1: fine", "US2: also fine"],
        )
        assert decision.remarks == "US1: fine; US2: also fine"
        assert decision.suggestions == "narrow claim 1"

    def test_remarks_default_to_reasoning(self) -> None:
        decision = aggregate_detailed([
            _result("US1", Determination.NOVEL, technical_reasoning="different plate"),
        ])
        assert decision.remarks == "different plate"

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError):
            aggregate_detailed([])


class TestStatusFor:

    @pytest.mark.parametrize(
        ("determination", "status"),
        [
            (Determination.NOVEL, AssessmentStatus.NOVEL),
            (Determination.NOT_NOVEL, AssessmentStatus.NOT_NOVEL),
            (Determination.PARTIALLY_NOVEL, AssessmentStatus.DOUBT_RESOLVED),
        ],
    )
    def test_final_determinations(
        self, determination: Determination, status: AssessmentStatus
    ) -> None:
        assert status_for(determination) is status

    def test_doubt_is_not_final(self) -> None:
        with pytest.raises(ValueError):
            status_for(Determination.DOUBT)
