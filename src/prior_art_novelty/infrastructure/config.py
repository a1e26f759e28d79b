"""Configuration dataclasses for the prior-art novelty pipeline.

Each config is a plain ``dataclass`` with a ``validate()`` method that raises
``ValueError`` on invalid combinations.  Configs are **frozen** so they can be
shared between worker threads without risking silent mutation.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any


# ===================================================================== #
#  Relevance scoring                                                     #
# ===================================================================== #

@dataclass(frozen=True)
class ScoringConfig:
    """Weights for textual relevance scoring.

    Attributes
    ----------
    title_weight:
        Points added once per term found in a document title.
    normalization_divisor:
        Per-term maximum used to turn the raw score into a percentage
        (``total / (terms * divisor) * 100``).
    """

    title_weight: int = 3
    normalization_divisor: int = 4

    def validate(self) -> None:
        if self.title_weight < 0:
            raise ValueError(f"title_weight must be >= 0, got {self.title_weight}")
        if self.normalization_divisor < 1:
            raise ValueError(
                f"normalization_divisor must be >= 1, got {self.normalization_divisor}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScoringConfig:
        return _build(cls, data)


# ===================================================================== #
#  Threshold selection                                                   #
# ===================================================================== #

@dataclass(frozen=True)
class ThresholdConfig:
    """Constants of the adaptive relevance cutoff.

    Attributes
    ----------
    start:
        Cutoff used when the score distribution needs no adjustment; also the
        "high score" mark that scores are counted against.
    floor / ceiling:
        Final clamp bounds.
    target:
        Desired number of candidates above the cutoff.
    raise_factor:
        Raise the cutoff when more than ``target * raise_factor`` scores
        reach ``start``.
    lower_factor:
        Lower the cutoff when fewer than ``target * lower_factor`` do.
    lower_quantile:
        Position (fraction of the sorted list) used when lowering.
    """

    start: int = 50
    floor: int = 30
    ceiling: int = 80
    target: int = 15
    raise_factor: float = 1.5
    lower_factor: float = 0.5
    lower_quantile: float = 0.3

    def validate(self) -> None:
        if not 0 <= self.floor <= self.start <= self.ceiling <= 100:
            raise ValueError(
                "threshold bounds must satisfy 0 <= floor <= start <= ceiling <= 100, "
                f"got floor={self.floor} start={self.start} ceiling={self.ceiling}"
            )
        if self.target < 1:
            raise ValueError(f"target must be >= 1, got {self.target}")
        if self.raise_factor <= self.lower_factor:
            raise ValueError(
                f"raise_factor ({self.raise_factor}) must exceed "
                f"lower_factor ({self.lower_factor})"
            )
        if not 0.0 <= self.lower_quantile < 1.0:
            raise ValueError(
                f"lower_quantile must be in [0, 1), got {self.lower_quantile}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ThresholdConfig:
        return _build(cls, data)


# ===================================================================== #
#  Aggregation                                                           #
# ===================================================================== #

@dataclass(frozen=True)
class AggregationConfig:
    """Shortlist selection parameters.

    Attributes
    ----------
    fallback_per_variant:
        Candidates taken from each variant when no document was found by two
        or more variants.
    min_intersection:
        Variant count at which a candidate is shortlisted outright.
    """

    fallback_per_variant: int = 5
    min_intersection: int = 2

    def validate(self) -> None:
        if self.fallback_per_variant < 1:
            raise ValueError(
                f"fallback_per_variant must be >= 1, got {self.fallback_per_variant}"
            )
        if self.min_intersection not in (2, 3):
            raise ValueError(
                f"min_intersection must be 2 or 3, got {self.min_intersection}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AggregationConfig:
        return _build(cls, data)


# ===================================================================== #
#  Assessment                                                            #
# ===================================================================== #

@dataclass(frozen=True)
class AssessmentConfig:
    """Parameters of the staged novelty assessment.

    Attributes
    ----------
    abstract_word_limit:
        Screening prompts truncate each abstract to this many words.
    excerpt_chars:
        Maximum raw-output excerpt kept on an unparseable response.
    min_truncated_chars:
        A truncated response shorter than this is treated as a failed call
        instead of being repaired.
    stage1_confidence:
        Confidence reported for each screening outcome.
    stage2_confidence:
        Confidence reported after detailed assessment.
    """

    abstract_word_limit: int = 200
    excerpt_chars: int = 200
    min_truncated_chars: int = 50
    stage1_confidence: dict[str, int] = field(
        default_factory=lambda: {"NOT_NOVEL": 90, "DOUBT": 60, "NOVEL": 85}
    )
    stage2_confidence: int = 95

    def __post_init__(self) -> None:
        if self.stage1_confidence is None:
            object.__setattr__(
                self, "stage1_confidence", {"NOT_NOVEL": 90, "DOUBT": 60, "NOVEL": 85}
            )

    def validate(self) -> None:
        if self.abstract_word_limit < 1:
            raise ValueError(
                f"abstract_word_limit must be >= 1, got {self.abstract_word_limit}"
            )
        if self.excerpt_chars < 1:
            raise ValueError(f"excerpt_chars must be >= 1, got {self.excerpt_chars}")
        if self.min_truncated_chars < 0:
            raise ValueError(
                f"min_truncated_chars must be >= 0, got {self.min_truncated_chars}"
            )
        for key in ("NOT_NOVEL", "DOUBT", "NOVEL"):
            value = self.stage1_confidence.get(key)
            if value is None or not 0 <= value <= 100:
                raise ValueError(
                    f"stage1_confidence[{key!r}] must be in [0, 100], got {value}"
                )
        if not 0 <= self.stage2_confidence <= 100:
            raise ValueError(
                f"stage2_confidence must be in [0, 100], got {self.stage2_confidence}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AssessmentConfig:
        return _build(cls, data)


# ===================================================================== #
#  Search sources                                                        #
# ===================================================================== #

SERPAPI_BASE_URL = "https://serpapi.com/search"


@dataclass(frozen=True)
class SearchSourceConfig:
    """Settings for the SerpAPI-backed search and detail sources.

    Attributes
    ----------
    api_key:
        SerpAPI key.  Empty means sources return no results (with a warning).
    base_url:
        Search endpoint.
    rate_limit_seconds:
        Minimum spacing between two calls to the same engine.
    timeout_seconds:
        HTTP timeout per request.
    details_ttl_days:
        How long fetched document details may be reused.
    max_workers:
        Thread-pool width for the search fan-out.
    """

    api_key: str = ""
    base_url: str = SERPAPI_BASE_URL
    rate_limit_seconds: float = 5.0
    timeout_seconds: float = 30.0
    details_ttl_days: int = 7
    max_workers: int = 6

    def validate(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must not be empty")
        if self.rate_limit_seconds < 0:
            raise ValueError(
                f"rate_limit_seconds must be >= 0, got {self.rate_limit_seconds}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )
        if self.details_ttl_days < 0:
            raise ValueError(
                f"details_ttl_days must be >= 0, got {self.details_ttl_days}"
            )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["api_key"] = "***" if self.api_key else ""
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchSourceConfig:
        return _build(cls, data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SearchSourceConfig:
        """Read ``SERPAPI_API_KEY`` (or ``Serp_API_KEY``), ``SERP_RATE`` and
        ``DETAILS_TTL_DAYS`` from the environment."""
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {
            "api_key": env.get("SERPAPI_API_KEY") or env.get("Serp_API_KEY") or "",
        }
        if env.get("SERP_RATE"):
            kwargs["rate_limit_seconds"] = float(env["SERP_RATE"])
        if env.get("DETAILS_TTL_DAYS"):
            kwargs["details_ttl_days"] = int(env["DETAILS_TTL_DAYS"])
        cfg = cls(**kwargs)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Umbrella config                                                       #
# ===================================================================== #

@dataclass(frozen=True)
class PipelineConfig:
    """All pipeline settings in one place."""

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    assessment: AssessmentConfig = field(default_factory=AssessmentConfig)
    sources: SearchSourceConfig = field(default_factory=SearchSourceConfig)

    def validate(self) -> None:
        self.scoring.validate()
        self.threshold.validate()
        self.aggregation.validate()
        self.assessment.validate()
        self.sources.validate()

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name).to_dict() for name in _CONFIG_MAP}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PipelineConfig:
        sections = {
            name: section_cls.from_dict(data[name])
            for name, section_cls in _CONFIG_MAP.items()
            if isinstance(data.get(name), Mapping)
        }
        cfg = cls(**sections)
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PipelineConfig:
        return cls(sources=SearchSourceConfig.from_env(environ))


def _build(cls: type, data: Mapping[str, Any]) -> Any:
    valid_keys = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_keys}
    cfg = cls(**filtered)
    cfg.validate()
    return cfg


# ===================================================================== #
#  Unified config loader                                                 #
# ===================================================================== #

_CONFIG_MAP: dict[str, type] = {
    "scoring": ScoringConfig,
    "threshold": ThresholdConfig,
    "aggregation": AggregationConfig,
    "assessment": AssessmentConfig,
    "sources": SearchSourceConfig,
}


def load_config_from_json(json_str: str) -> PipelineConfig:
    """Parse a JSON string into a validated ``PipelineConfig``.

    The JSON is expected to be an object whose top-level keys correspond to
    config section names (``scoring``, ``threshold``, ``aggregation``,
    ``assessment``, ``sources``).  Missing sections take their defaults and
    unknown sections are ignored.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    return PipelineConfig.from_dict(raw)
