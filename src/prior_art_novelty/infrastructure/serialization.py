"""Serialization utilities for the prior-art novelty pipeline.

Provides ``to_dict`` / ``from_dict`` conversion for strategies, invention
summaries, candidates and assessments, plus JSON and YAML text helpers.
JSON is always available; YAML support is optional (graceful fallback if
``pyyaml`` is not installed).
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Callable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from prior_art_novelty.domain.entities import (
    NoveltyAssessment,
    QueryExecution,
    SearchRun,
    UnifiedCandidate,
)
from prior_art_novelty.domain.events import DomainEvent
from prior_art_novelty.domain.values import (
    AssessmentCall,
    CandidateSnapshot,
    InventionSummary,
    SearchStrategy,
)

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
#  Optional YAML support                                                       #
# --------------------------------------------------------------------------- #

try:
    import yaml as _yaml  # type: ignore[import-untyped]

    _HAS_YAML = True
except ImportError:  # pragma: no cover
    _yaml = None  # type: ignore[assignment]
    _HAS_YAML = False

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


# =========================================================================== #
#  Reconstructors                                                              #
# =========================================================================== #

def invention_from_dict(data: Mapping[str, Any]) -> InventionSummary:
    """Accepts either ``problem``/``solution`` or the search-bundle
    ``problem_statement``/``solution_summary`` keys."""
    title = data.get("title")
    if not title:
        raise ValueError("Invention summary requires a 'title'")
    return InventionSummary(
        title=str(title),
        problem=str(data.get("problem") or data.get("problem_statement") or ""),
        solution=str(data.get("solution") or data.get("solution_summary") or ""),
    )


def candidate_from_dict(data: Mapping[str, Any]) -> CandidateSnapshot:
    identifier = data.get("identifier") or data.get("publication_number")
    if not identifier:
        raise ValueError("Candidate requires an 'identifier'")
    return CandidateSnapshot(
        identifier=str(identifier),
        title=str(data.get("title") or ""),
        abstract=str(data.get("abstract") or ""),
        relevance=int(data.get("relevance") or data.get("score") or 0),
        variant_labels=tuple(data.get("variant_labels") or ()),
        intersection_type=str(data.get("intersection_type") or "NONE"),
    )


# =========================================================================== #
#  Registry                                                                    #
# =========================================================================== #

_SERIALIZERS: dict[type, Callable[[Any], Any]] = {
    SearchStrategy: lambda o: o.to_dict(),
    InventionSummary: lambda o: o.to_dict(),
    CandidateSnapshot: lambda o: o.to_dict(),
    UnifiedCandidate: lambda o: o.to_dict(),
    SearchRun: lambda o: o.to_dict(),
    QueryExecution: lambda o: o.to_dict(),
    NoveltyAssessment: lambda o: o.to_dict(),
    AssessmentCall: lambda o: o.to_dict(),
}

_DESERIALIZERS: dict[type, Callable[[Mapping[str, Any]], Any]] = {
    SearchStrategy: SearchStrategy.from_dict,
    InventionSummary: invention_from_dict,
    CandidateSnapshot: candidate_from_dict,
    AssessmentCall: AssessmentCall.from_dict,
}


def serialize(obj: Any) -> Any:
    """Serialize a domain object (or a list of them) to plain data.

    Raises ``TypeError`` for unsupported types.
    """
    if isinstance(obj, (list, tuple)):
        return [serialize(o) for o in obj]
    to_fn = _SERIALIZERS.get(type(obj))
    if to_fn is None:
        raise TypeError(f"No serializer registered for {type(obj).__name__}")
    return to_fn(obj)


def event_to_dict(event: DomainEvent) -> dict[str, Any]:
    """Flatten a domain event, tagged with its class name under ``event``."""
    data: dict[str, Any] = {"event": type(event).__name__}
    for f in dataclasses.fields(event):
        value = getattr(event, f.name)
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        data[f.name] = value
    return data


def deserialize(data: Mapping[str, Any], target_type: type) -> Any:
    from_fn = _DESERIALIZERS.get(target_type)
    if from_fn is None:
        raise TypeError(f"No deserializer registered for {target_type.__name__}")
    return from_fn(data)


# =========================================================================== #
#  JSON helpers                                                                #
# =========================================================================== #

def to_json(obj: Any, *, indent: int | None = 2) -> str:
    return json.dumps(serialize(obj), indent=indent, default=str)


def from_json(json_str: str, target_type: type) -> Any:
    return deserialize(json.loads(json_str), target_type)


# =========================================================================== #
#  YAML helpers (optional)                                                     #
# =========================================================================== #

def to_yaml(obj: Any) -> str:
    """Serialize a domain object to a YAML string.

    Raises ``RuntimeError`` if PyYAML is not installed.
    """
    if not _HAS_YAML:
        raise RuntimeError(
            "PyYAML is not installed. Install it with: pip install pyyaml"
        )
    return _yaml.dump(serialize(obj), default_flow_style=False, sort_keys=False)


def from_yaml(yaml_str: str, target_type: type) -> Any:
    """Deserialize a YAML string into *target_type*.

    Raises ``RuntimeError`` if PyYAML is not installed.
    """
    if not _HAS_YAML:
        raise RuntimeError(
            "PyYAML is not installed. Install it with: pip install pyyaml"
        )
    return deserialize(_yaml.safe_load(yaml_str), target_type)


def yaml_available() -> bool:
    return _HAS_YAML


# =========================================================================== #
#  Files                                                                       #
# =========================================================================== #

def load_document(path: str | Path) -> Any:
    """Read a JSON or YAML file (chosen by suffix) into plain data."""
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in _YAML_SUFFIXES:
        if not _HAS_YAML:
            raise RuntimeError(
                f"Cannot read {p.name}: PyYAML is not installed. "
                "Install it with: pip install pyyaml"
            )
        return _yaml.safe_load(text)
    return json.loads(text)


def load_strategy(path: str | Path) -> SearchStrategy:
    """Load and validate a search strategy from a JSON or YAML file."""
    data = load_document(path)
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: top level must be an object")
    strategy = SearchStrategy.from_dict(data)
    logger.debug("Loaded strategy %s from %s", strategy.strategy_hash()[:12], path)
    return strategy
