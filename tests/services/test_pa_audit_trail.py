"""Tests for AssessmentAuditTrail and idempotency keys."""

from __future__ import annotations

from prior_art_novelty.domain.enums import AssessmentStage, TaskCode
from prior_art_novelty.domain.values import AssessmentCall
from prior_art_novelty.infrastructure.store import InMemoryPriorArtStore
from prior_art_novelty.services.audit_trail import AssessmentAuditTrail, idempotency_key


def _call(key: str, error: str = "", stage: AssessmentStage = AssessmentStage.STAGE1_SCREENING) -> AssessmentCall:
    return AssessmentCall(
        assessment_id=key.split(":")[0],
        stage=stage,
        task_code=TaskCode.NOVELTY_SCREEN,
        idempotency_key=key,
        prompt="p",
        error=error,
    )


class TestIdempotencyKey:

    def test_stage1(self) -> None:
        assert idempotency_key("a1", AssessmentStage.STAGE1_SCREENING) == "a1:STAGE1_SCREENING"

    def test_stage2_includes_candidate(self) -> None:
        key = idempotency_key("a1", AssessmentStage.STAGE2_ASSESSMENT, "US1")
        assert key == "a1:STAGE2_ASSESSMENT:US1"


class TestAssessmentAuditTrail:

    def test_replayed_success_not_recorded_twice(self) -> None:
        trail = AssessmentAuditTrail()
        assert trail.record(_call("a1:STAGE1_SCREENING")) is True
        assert trail.record(_call("a1:STAGE1_SCREENING")) is False
        assert len(trail) == 1
        assert trail.has_succeeded("a1:STAGE1_SCREENING")

    def test_failed_call_allows_retry(self) -> None:
        trail = AssessmentAuditTrail()
        trail.record(_call("a1:STAGE1_SCREENING", error="timeout"))
        assert not trail.has_succeeded("a1:STAGE1_SCREENING")
        assert trail.record(_call("a1:STAGE1_SCREENING")) is True
        assert len(trail) == 2

    def test_forwards_to_store(self) -> None:
        store = InMemoryPriorArtStore()
        trail = AssessmentAuditTrail(store)
        trail.record(_call("a1:STAGE1_SCREENING"))
        trail.record(_call("a1:STAGE1_SCREENING"))
        assert len(store.list_calls("a1")) == 1

    def test_query(self) -> None:
        trail = AssessmentAuditTrail()
        trail.record(_call("a1:STAGE1_SCREENING"))
        trail.record(_call("a1:STAGE2_ASSESSMENT:US1", stage=AssessmentStage.STAGE2_ASSESSMENT))
        trail.record(_call("a2:STAGE1_SCREENING"))

        assert len(trail.query(assessment_id="a1")) == 2
        assert len(trail.query(stage=AssessmentStage.STAGE2_ASSESSMENT)) == 1
        assert len(trail.query(limit=1)) == 1

    def test_json_round_trip(self) -> None:
        trail = AssessmentAuditTrail()
        trail.record(_call("a1:STAGE1_SCREENING"))
        restored = AssessmentAuditTrail.from_json(trail.to_json())
        assert restored.entries == trail.entries
