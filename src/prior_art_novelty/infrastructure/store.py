"""PriorArtStore -- persistence boundary for runs, candidates and assessments.

``PriorArtStore`` is the abstract collaborator the services write through.
``InMemoryPriorArtStore`` is a thread-safe implementation with snapshot
serialization, used by the CLI and the test suite.  Stored entities are
copied on the way in and on the way out so callers never share mutable state
with the store.
"""

from __future__ import annotations

import copy
import json
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any

from prior_art_novelty.domain.entities import (
    NoveltyAssessment,
    QueryExecution,
    SearchRun,
    UnifiedCandidate,
)
from prior_art_novelty.domain.exceptions import NotFound
from prior_art_novelty.domain.values import AssessmentCall


class PriorArtStore(ABC):
    """Persistence interface used by the search and assessment services."""

    # -- runs -----------------------------------------------------------------

    @abstractmethod
    def save_run(self, run: SearchRun) -> None: ...

    @abstractmethod
    def get_run(self, run_id: str) -> SearchRun:
        """Return the run or raise ``NotFound``."""

    @abstractmethod
    def add_execution(self, execution: QueryExecution) -> None: ...

    @abstractmethod
    def list_executions(self, run_id: str) -> list[QueryExecution]: ...

    # -- candidates -----------------------------------------------------------

    @abstractmethod
    def upsert_candidate(self, candidate: UnifiedCandidate) -> UnifiedCandidate:
        """Insert or merge *candidate* keyed by ``(run_id, identifier)``.

        Variant labels accumulate across writes; other fields take the
        incoming value.  Returns the stored result.
        """

    @abstractmethod
    def list_candidates(self, run_id: str) -> list[UnifiedCandidate]: ...

    # -- assessments ----------------------------------------------------------

    @abstractmethod
    def save_assessment(self, assessment: NoveltyAssessment) -> None: ...

    @abstractmethod
    def get_assessment(self, assessment_id: str) -> NoveltyAssessment:
        """Return the assessment or raise ``NotFound``."""

    @abstractmethod
    def append_call(self, call: AssessmentCall) -> None: ...

    @abstractmethod
    def list_calls(self, assessment_id: str) -> list[AssessmentCall]: ...


class InMemoryPriorArtStore(PriorArtStore):
    """Thread-safe in-process store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._runs: dict[str, SearchRun] = {}
        self._executions: dict[str, list[QueryExecution]] = defaultdict(list)
        self._candidates: dict[str, dict[str, UnifiedCandidate]] = defaultdict(dict)
        self._assessments: dict[str, NoveltyAssessment] = {}
        self._calls: dict[str, list[AssessmentCall]] = defaultdict(list)

    # -- runs -----------------------------------------------------------------

    def save_run(self, run: SearchRun) -> None:
        with self._lock:
            self._runs[run.run_id] = copy.deepcopy(run)

    def get_run(self, run_id: str) -> SearchRun:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise NotFound(f"Unknown search run {run_id!r}", kind="run", key=run_id)
            return copy.deepcopy(run)

    def add_execution(self, execution: QueryExecution) -> None:
        with self._lock:
            self._executions[execution.run_id].append(execution)

    def list_executions(self, run_id: str) -> list[QueryExecution]:
        with self._lock:
            return list(self._executions.get(run_id, []))

    # -- candidates -----------------------------------------------------------

    def upsert_candidate(self, candidate: UnifiedCandidate) -> UnifiedCandidate:
        with self._lock:
            bucket = self._candidates[candidate.run_id]
            existing = bucket.get(candidate.identifier)
            if existing is None:
                bucket[candidate.identifier] = copy.deepcopy(candidate)
            else:
                existing.absorb(copy.deepcopy(candidate))
            return copy.deepcopy(bucket[candidate.identifier])

    def list_candidates(self, run_id: str) -> list[UnifiedCandidate]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._candidates.get(run_id, {}).values()]

    # -- assessments ----------------------------------------------------------

    def save_assessment(self, assessment: NoveltyAssessment) -> None:
        with self._lock:
            self._assessments[assessment.assessment_id] = copy.deepcopy(assessment)

    def get_assessment(self, assessment_id: str) -> NoveltyAssessment:
        with self._lock:
            assessment = self._assessments.get(assessment_id)
            if assessment is None:
                raise NotFound(
                    f"Unknown assessment {assessment_id!r}",
                    kind="assessment",
                    key=assessment_id,
                )
            return copy.deepcopy(assessment)

    def append_call(self, call: AssessmentCall) -> None:
        with self._lock:
            self._calls[call.assessment_id].append(call)

    def list_calls(self, assessment_id: str) -> list[AssessmentCall]:
        with self._lock:
            return list(self._calls.get(assessment_id, []))

    # -- introspection --------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs) + len(self._assessments)

    def to_dict(self) -> dict[str, Any]:
        """Serialize a snapshot of everything stored."""
        with self._lock:
            return {
                "runs": {k: r.to_dict() for k, r in self._runs.items()},
                "executions": {
                    k: [e.to_dict() for e in v] for k, v in self._executions.items()
                },
                "candidates": {
                    k: [c.to_dict() for c in v.values()]
                    for k, v in self._candidates.items()
                },
                "assessments": {k: a.to_dict() for k, a in self._assessments.items()},
                "calls": {
                    k: [c.to_dict() for c in v] for k, v in self._calls.items()
                },
            }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

