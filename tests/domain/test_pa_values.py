"""Tests for domain enums and value objects."""

from __future__ import annotations

from typing import Any

import pytest

from prior_art_novelty.domain.enums import (
    AssessmentStage,
    AssessmentStatus,
    ContentType,
    IntersectionType,
    SourceScope,
    TaskCode,
    VariantLabel,
)
from prior_art_novelty.domain.exceptions import StrategyInvalid
from prior_art_novelty.domain.values import (
    AssessmentCall,
    QueryVariant,
    RelevanceResult,
    SearchStrategy,
)

# ===================================================================== #
#  Enums                                                                  #
# ===================================================================== #


class TestSourceScope:

    def test_both_includes_everything(self) -> None:
        assert SourceScope.BOTH.includes(ContentType.PATENT)
        assert SourceScope.BOTH.includes(ContentType.SCHOLARLY)

    def test_patent_only(self) -> None:
        assert SourceScope.PATENT_ONLY.includes(ContentType.PATENT)
        assert not SourceScope.PATENT_ONLY.includes(ContentType.SCHOLARLY)

    def test_scholarly_only(self) -> None:
        assert SourceScope.SCHOLARLY_ONLY.includes(ContentType.SCHOLARLY)
        assert not SourceScope.SCHOLARLY_ONLY.includes(ContentType.PATENT)


class TestIntersectionType:

    @pytest.mark.parametrize(
        ("count", "expected"),
        [
            (0, IntersectionType.NONE),
            (1, IntersectionType.NONE),
            (2, IntersectionType.I2),
            (3, IntersectionType.I3),
        ],
    )
    def test_from_count(self, count: int, expected: IntersectionType) -> None:
        assert IntersectionType.from_count(count) is expected


class TestAssessmentStatus:

    def test_terminal_statuses(self) -> None:
        terminal = {s for s in AssessmentStatus if s.is_terminal}
        assert terminal == {
            AssessmentStatus.NOVEL,
            AssessmentStatus.NOT_NOVEL,
            AssessmentStatus.DOUBT_RESOLVED,
            AssessmentStatus.FAILED,
            AssessmentStatus.ABANDONED,
        }

    def test_rank_follows_lifecycle(self) -> None:
        assert AssessmentStatus.PENDING.rank < AssessmentStatus.STAGE1_SCREENING.rank
        assert AssessmentStatus.STAGE1_COMPLETED.rank < AssessmentStatus.STAGE2_ASSESSMENT.rank
        assert AssessmentStatus.STAGE2_COMPLETED.rank < AssessmentStatus.NOVEL.rank

    def test_task_codes(self) -> None:
        assert TaskCode.NOVELTY_SCREEN.value == "LLM4_NOVELTY_SCREEN"
        assert TaskCode.NOVELTY_ASSESS.value == "LLM5_NOVELTY_ASSESS"


# ===================================================================== #
#  QueryVariant / SearchStrategy                                          #
# ===================================================================== #


class TestQueryVariant:

    def test_start_offset(self) -> None:
        assert QueryVariant(VariantLabel.BROAD, "q", num=10, page=1).start == 0
        assert QueryVariant(VariantLabel.BROAD, "q", num=10, page=3).start == 20

    def test_problems_reports_bounds(self) -> None:
        variant = QueryVariant(VariantLabel.NARROW, "  ", num=0, page=21)
        problems = variant.problems(2)
        assert len(problems) == 3
        assert all(p.startswith("query_variants[2]") for p in problems)


class TestSearchStrategy:

    def test_from_dict(self, strategy_data: dict[str, Any]) -> None:
        strategy = SearchStrategy.from_dict(strategy_data)
        assert [v.label for v in strategy.variants] == list(VariantLabel)
        assert strategy.source_scope is SourceScope.PATENT_ONLY
        assert strategy.synonym_groups == {"coolant": ("refrigerant",)}
        assert strategy.title == "Liquid cooled battery pack"
        assert strategy.approved is False

    def test_requires_three_variants(self, strategy_data: dict[str, Any]) -> None:
        strategy_data["query_variants"] = strategy_data["query_variants"][:2]
        with pytest.raises(StrategyInvalid, match="exactly 3"):
            SearchStrategy.from_dict(strategy_data)

    def test_rejects_duplicate_label(self, strategy_data: dict[str, Any]) -> None:
        strategy_data["query_variants"][2]["label"] = "broad"
        with pytest.raises(StrategyInvalid) as exc_info:
            SearchStrategy.from_dict(strategy_data)
        assert any("Duplicate label" in e for e in exc_info.value.errors)

    def test_rejects_unknown_label(self, strategy_data: dict[str, Any]) -> None:
        strategy_data["query_variants"][0]["label"] = "wide"
        with pytest.raises(StrategyInvalid, match="broad, baseline, narrow"):
            SearchStrategy.from_dict(strategy_data)

    def test_collects_every_problem(self, strategy_data: dict[str, Any]) -> None:
        strategy_data["query_variants"][0]["num"] = 0
        strategy_data["query_variants"][1]["q"] = "x" * 301
        with pytest.raises(StrategyInvalid) as exc_info:
            SearchStrategy.from_dict(strategy_data)
        assert len(exc_info.value.errors) == 2

    def test_sensitive_tokens_block_approval(self, strategy_data: dict[str, Any]) -> None:
        strategy_data["sensitive_tokens"] = ["ACME-internal"]
        draft = SearchStrategy.from_dict(strategy_data)
        assert draft.sensitive_tokens == ("ACME-internal",)
        with pytest.raises(StrategyInvalid, match="sensitive_tokens must be empty for approval"):
            draft.approve()

    def test_approved_bundle_with_sensitive_tokens_rejected(
        self, strategy_data: dict[str, Any]
    ) -> None:
        strategy_data["sensitive_tokens"] = ["ACME-internal"]
        strategy_data["approved"] = True
        with pytest.raises(StrategyInvalid, match="sensitive_tokens"):
            SearchStrategy.from_dict(strategy_data)

    def test_scope_from_engine(self, strategy_data: dict[str, Any]) -> None:
        del strategy_data["source_scope"]
        strategy_data["serpapi_defaults"] = {"engine": "google_patents"}
        assert SearchStrategy.from_dict(strategy_data).source_scope is SourceScope.PATENT_ONLY

    def test_scope_defaults_to_both(self, strategy_data: dict[str, Any]) -> None:
        del strategy_data["source_scope"]
        assert SearchStrategy.from_dict(strategy_data).source_scope is SourceScope.BOTH

    def test_unknown_engine_rejected(self, strategy_data: dict[str, Any]) -> None:
        del strategy_data["source_scope"]
        strategy_data["serpapi_defaults"] = {"engine": "bing"}
        with pytest.raises(StrategyInvalid, match="serpapi_defaults.engine"):
            SearchStrategy.from_dict(strategy_data)

    def test_approve_returns_new_instance(self, strategy_data: dict[str, Any]) -> None:
        strategy = SearchStrategy.from_dict(strategy_data)
        approved = strategy.approve()
        assert approved.approved is True
        assert strategy.approved is False
        assert approved.strategy_hash() == strategy.strategy_hash()

    def test_hash_tracks_content(self, strategy_data: dict[str, Any]) -> None:
        first = SearchStrategy.from_dict(strategy_data).strategy_hash()
        strategy_data["query_variants"][0]["q"] = "battery"
        assert SearchStrategy.from_dict(strategy_data).strategy_hash() != first
        assert len(first) == 64

    def test_round_trip_through_dict(self, strategy_data: dict[str, Any]) -> None:
        strategy = SearchStrategy.from_dict(strategy_data)
        assert SearchStrategy.from_dict(strategy.to_dict()) == strategy

    def test_guardrails_clean_strategy(self, strategy_data: dict[str, Any]) -> None:
        assert SearchStrategy.from_dict(strategy_data).guardrail_warnings() == []

    def test_guardrails_flag_quoted_phrases(self, strategy_data: dict[str, Any]) -> None:
        strategy_data["query_variants"][2]["q"] = '"a b" "c d" "e f" (x OR y)'
        warnings = SearchStrategy.from_dict(strategy_data).guardrail_warnings()
        assert any("3 quoted phrases" in w for w in warnings)

    def test_guardrails_flag_missing_or_groups(self, strategy_data: dict[str, Any]) -> None:
        for variant in strategy_data["query_variants"]:
            variant["q"] = "battery cooling"
        warnings = SearchStrategy.from_dict(strategy_data).guardrail_warnings()
        assert "Consider adding more OR-groups for better recall" in warnings

    def test_guardrails_flag_ambiguous_terms(self, strategy_data: dict[str, Any]) -> None:
        strategy_data["ambiguous_terms"] = ["cell"]
        strategy_data["query_variants"][0]["q"] = "cell (phone OR tower) (x OR y)"
        strategy_data["core_concepts"] = ["electrolyte"]
        strategy_data["technical_features"] = []
        warnings = SearchStrategy.from_dict(strategy_data).guardrail_warnings()
        assert any('Ambiguous term "cell"' in w for w in warnings)


# ===================================================================== #
#  Scoring & audit values                                                 #
# ===================================================================== #


class TestRelevanceResult:

    def test_percent_bounds(self) -> None:
        with pytest.raises(ValueError):
            RelevanceResult(title_matches=0, abstract_matches=0, total_score=0, percent=101)


class TestAssessmentCall:

    def test_from_dict_restores_record(self) -> None:
        call = AssessmentCall(
            assessment_id="a1",
            stage=AssessmentStage.STAGE2_ASSESSMENT,
            task_code=TaskCode.NOVELTY_ASSESS,
            idempotency_key="a1:STAGE2_ASSESSMENT:US1",
            prompt="compare",
            raw_response="{}",
            parsed={},
            candidate_id="US1",
            finish_reason="stop",
        )
        restored = AssessmentCall.from_dict(call.to_dict())
        assert restored == call
        assert restored.succeeded is True

    def test_error_marks_failure(self) -> None:
        call = AssessmentCall(
            assessment_id="a1",
            stage=AssessmentStage.STAGE1_SCREENING,
            task_code=TaskCode.NOVELTY_SCREEN,
            idempotency_key="a1:STAGE1_SCREENING",
            prompt="screen",
            error="RuntimeError: down",
        )
        assert call.succeeded is False
