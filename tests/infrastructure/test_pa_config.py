"""Tests for pipeline configuration."""

from __future__ import annotations

import json

import pytest

from prior_art_novelty.infrastructure.config import (
    AggregationConfig,
    AssessmentConfig,
    PipelineConfig,
    ScoringConfig,
    SearchSourceConfig,
    ThresholdConfig,
    load_config_from_json,
)


class TestSectionConfigs:

    def test_defaults_validate(self) -> None:
        PipelineConfig().validate()

    def test_default_constants(self) -> None:
        assert ScoringConfig().title_weight == 3
        assert ScoringConfig().normalization_divisor == 4
        threshold = ThresholdConfig()
        assert (threshold.floor, threshold.start, threshold.ceiling) == (30, 50, 80)
        assert AggregationConfig().fallback_per_variant == 5
        assert AssessmentConfig().stage1_confidence == {"NOT_NOVEL": 90, "DOUBT": 60, "NOVEL": 85}
        assert AssessmentConfig().stage2_confidence == 95

    def test_threshold_bounds_checked(self) -> None:
        with pytest.raises(ValueError, match="floor"):
            ThresholdConfig(floor=60, start=50).validate()

    def test_threshold_factors_checked(self) -> None:
        with pytest.raises(ValueError, match="raise_factor"):
            ThresholdConfig(raise_factor=0.5, lower_factor=0.5).validate()

    def test_min_intersection_checked(self) -> None:
        with pytest.raises(ValueError):
            AggregationConfig(min_intersection=1).validate()

    def test_stage1_confidence_checked(self) -> None:
        with pytest.raises(ValueError, match="DOUBT"):
            AssessmentConfig(stage1_confidence={"NOT_NOVEL": 90, "NOVEL": 85}).validate()

    def test_from_dict_ignores_unknown_keys(self) -> None:
        cfg = ScoringConfig.from_dict({"title_weight": 5, "colour": "blue"})
        assert cfg.title_weight == 5

    def test_from_dict_validates(self) -> None:
        with pytest.raises(ValueError):
            ScoringConfig.from_dict({"normalization_divisor": 0})


class TestSearchSourceConfig:

    def test_from_env(self) -> None:
        cfg = SearchSourceConfig.from_env(
            {"SERPAPI_API_KEY": "k1", "SERP_RATE": "2.5", "DETAILS_TTL_DAYS": "3"}
        )
        assert cfg.api_key == "k1"
        assert cfg.rate_limit_seconds == 2.5
        assert cfg.details_ttl_days == 3

    def test_from_env_legacy_key_name(self) -> None:
        assert SearchSourceConfig.from_env({"Serp_API_KEY": "k2"}).api_key == "k2"

    def test_from_env_empty(self) -> None:
        cfg = SearchSourceConfig.from_env({})
        assert cfg.api_key == ""
        assert cfg.rate_limit_seconds == 5.0

    def test_to_dict_masks_key(self) -> None:
        assert SearchSourceConfig(api_key="secret").to_dict()["api_key"] == "***"
        assert SearchSourceConfig().to_dict()["api_key"] == ""


class TestPipelineConfig:

    def test_load_from_json(self) -> None:
        cfg = load_config_from_json(json.dumps({
            "threshold": {"target": 10},
            "assessment": {"stage2_confidence": 90},
            "unknown": {"x": 1},
        }))
        assert cfg.threshold.target == 10
        assert cfg.assessment.stage2_confidence == 90
        assert cfg.scoring == ScoringConfig()

    def test_load_rejects_non_object(self) -> None:
        with pytest.raises(ValueError, match="object"):
            load_config_from_json("[1, 2]")

    def test_to_dict_sections(self) -> None:
        data = PipelineConfig().to_dict()
        assert set(data) == {"scoring", "threshold", "aggregation", "assessment", "sources"}

    def test_from_env(self) -> None:
        cfg = PipelineConfig.from_env({"SERPAPI_API_KEY": "k"})
        assert cfg.sources.api_key == "k"
        assert cfg.threshold == ThresholdConfig()
