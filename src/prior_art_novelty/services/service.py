"""Caller-facing API of the prior-art pipeline.

``PriorArtService`` ties the search executor, the result aggregator and the
compiled assessment graph to one store and one event bus.  All operations are
synchronous; they return once the run or assessment has reached its end
state.

Example::

    service = PriorArtService(sources, gateway, detail_lookup=lookup)
    run_id = service.start_search(strategy.approve())
    assessment_id = service.start_assessment(invention, run_id=run_id)
    print(service.get_assessment(assessment_id).determination)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Sequence

from prior_art_novelty.domain.entities import NoveltyAssessment, SearchRun, UnifiedCandidate
from prior_art_novelty.domain.enums import AssessmentStatus, RunStatus
from prior_art_novelty.domain.events import AssessmentTerminated, SearchRunCompleted
from prior_art_novelty.domain.exceptions import (
    AssessmentFailed,
    InvalidTransition,
    PriorArtNoveltyError,
    StrategyInvalid,
)
from prior_art_novelty.domain.values import (
    AssessmentCall,
    CandidateSnapshot,
    InventionSummary,
    SearchStrategy,
)
from prior_art_novelty.graph.builder import build_assessment_graph
from prior_art_novelty.graph.nodes import AssessmentContext
from prior_art_novelty.infrastructure.config import PipelineConfig
from prior_art_novelty.infrastructure.event_bus import EventBus
from prior_art_novelty.infrastructure.llm import ModelGateway
from prior_art_novelty.infrastructure.sources import DetailLookup, SearchSource
from prior_art_novelty.infrastructure.store import InMemoryPriorArtStore, PriorArtStore
from prior_art_novelty.services.aggregation import ResultAggregator
from prior_art_novelty.services.audit_trail import AssessmentAuditTrail
from prior_art_novelty.services.search import SearchExecutor

logger = logging.getLogger(__name__)


class PriorArtService:
    """Search runs and novelty assessments over shared infrastructure.

    Parameters
    ----------
    sources:
        Search sources; each run uses those matching its strategy's scope.
    gateway:
        Model execution boundary for both assessment stages.  Only searches
        can be run without one.
    store:
        Persistence; defaults to an ``InMemoryPriorArtStore``.
    detail_lookup:
        Full-record lookup for Stage 2.
    event_bus:
        Bus for domain events; one is created when omitted.
    config:
        Pipeline configuration.
    """

    def __init__(
        self,
        sources: Sequence[SearchSource],
        gateway: ModelGateway | None = None,
        store: PriorArtStore | None = None,
        detail_lookup: DetailLookup | None = None,
        event_bus: EventBus | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.store = store or InMemoryPriorArtStore()
        self.event_bus = event_bus or EventBus()
        self.audit_trail = AssessmentAuditTrail(self.store)

        self._executor = SearchExecutor(
            sources,
            self.store,
            event_bus=self.event_bus,
            max_workers=self.config.sources.max_workers,
        )
        self._aggregator = ResultAggregator(
            self.store,
            scoring=self.config.scoring,
            threshold=self.config.threshold,
            aggregation=self.config.aggregation,
        )
        self._lock = threading.RLock()
        self._graph = None
        if gateway is not None:
            context = AssessmentContext(
                store=self.store,
                gateway=gateway,
                details=detail_lookup,
                audit_trail=self.audit_trail,
                event_bus=self.event_bus,
                config=self.config.assessment,
                lock=self._lock,
            )
            self._graph = build_assessment_graph(context)

    # -- search ---------------------------------------------------------------

    def start_search(self, strategy: SearchStrategy) -> str:
        """Execute an approved *strategy* and merge its results.

        Source failures are absorbed: the run completes with whatever the
        remaining sources returned.  It is marked FAILED only when every
        search unit failed.

        Raises
        ------
        StrategyInvalid
            If the strategy has not been approved.
        """
        if not strategy.approved:
            raise StrategyInvalid(
                "Search strategy must be approved before execution",
                errors=["strategy is not approved"],
            )

        run = SearchRun(
            strategy_hash=strategy.strategy_hash(),
            source_scope=strategy.source_scope,
            warnings=strategy.guardrail_warnings(),
        )
        self.store.save_run(run)
        for warning in run.warnings:
            logger.warning("Run %s: %s", run.run_id, warning)

        executions = self._executor.execute(run.run_id, strategy)
        summary = self._aggregator.merge(run.run_id, executions, strategy)

        failed = [e for e in executions if e.failed]
        run.threshold = summary.threshold
        run.candidate_count = summary.candidate_count
        run.shortlisted_ids = list(summary.shortlisted_ids)
        if executions and len(failed) == len(executions):
            run.status = RunStatus.FAILED
            run.error = "; ".join(dict.fromkeys(e.error for e in failed))
        else:
            run.status = RunStatus.COMPLETED
        run.completed_at = time.time()
        self.store.save_run(run)

        self.event_bus.publish(
            SearchRunCompleted(
                source_id=run.run_id,
                run_id=run.run_id,
                candidate_count=summary.candidate_count,
                shortlisted_count=len(summary.shortlisted_ids),
                intersecting_count=summary.intersecting_count,
                threshold=summary.threshold,
                failed_units=len(failed),
            )
        )
        return run.run_id

    def get_run(self, run_id: str) -> SearchRun:
        return self.store.get_run(run_id)

    def get_run_results(self, run_id: str) -> list[UnifiedCandidate]:
        """All candidates of a run, best score first."""
        self.store.get_run(run_id)
        candidates = self.store.list_candidates(run_id)
        candidates.sort(key=lambda c: (-c.score, c.identifier))
        return candidates

    def get_shortlist(self, run_id: str) -> list[CandidateSnapshot]:
        return [c.snapshot() for c in self.get_run_results(run_id) if c.shortlisted]

    # -- assessment -----------------------------------------------------------

    def start_assessment(
        self,
        invention: InventionSummary,
        candidates: Sequence[CandidateSnapshot | UnifiedCandidate] | None = None,
        run_id: str | None = None,
    ) -> str:
        """Run the staged assessment of *invention* and return its id.

        Without explicit *candidates* the shortlist of *run_id* is used.  The
        id is returned for failed assessments too; read ``status`` and
        ``error`` from ``get_assessment``.
        """
        if candidates is None:
            snapshots: tuple[CandidateSnapshot, ...] = (
                tuple(self.get_shortlist(run_id)) if run_id else ()
            )
        else:
            snapshots = tuple(
                c.snapshot() if isinstance(c, UnifiedCandidate) else c for c in candidates
            )

        if self._graph is None:
            raise PriorArtNoveltyError("No model gateway configured for assessments")

        assessment = NoveltyAssessment(invention=invention, candidates=snapshots, run_id=run_id)
        self.store.save_assessment(assessment)
        logger.info(
            "Assessment %s started with %d candidates",
            assessment.assessment_id, len(snapshots),
        )
        try:
            self._graph.invoke({"assessment_id": assessment.assessment_id, "events": []})
        except Exception as exc:
            logger.exception("Assessment %s aborted by an unexpected error", assessment.assessment_id)
            self._fail_unfinished(assessment.assessment_id, f"{type(exc).__name__}: {exc}")
        return assessment.assessment_id

    def _fail_unfinished(self, assessment_id: str, error: str) -> None:
        with self._lock:
            assessment = self.store.get_assessment(assessment_id)
            if assessment.is_terminal:
                return
            assessment.fail(error)
            self.store.save_assessment(assessment)
        self.event_bus.publish(
            AssessmentTerminated(
                source_id=assessment_id,
                assessment_id=assessment_id,
                status=AssessmentStatus.FAILED,
            )
        )

    def get_assessment(self, assessment_id: str) -> NoveltyAssessment:
        return self.store.get_assessment(assessment_id)

    def list_assessment_calls(self, assessment_id: str) -> list[AssessmentCall]:
        self.store.get_assessment(assessment_id)
        return self.store.list_calls(assessment_id)

    def abandon_assessment(self, assessment_id: str) -> NoveltyAssessment:
        """Move a non-terminal assessment to ABANDONED.

        Results of any stage still in progress are discarded when it tries
        to commit.

        Raises
        ------
        InvalidTransition
            If the assessment is already terminal.
        """
        with self._lock:
            assessment = self.store.get_assessment(assessment_id)
            assessment.transition_to(AssessmentStatus.ABANDONED)
            self.store.save_assessment(assessment)
        self.event_bus.publish(
            AssessmentTerminated(
                source_id=assessment_id,
                assessment_id=assessment_id,
                status=AssessmentStatus.ABANDONED,
                determination=assessment.determination,
            )
        )
        logger.info("Assessment %s abandoned", assessment_id)
        return assessment

    def require_determination(self, assessment_id: str) -> NoveltyAssessment:
        """Return the assessment, raising if it ended without a usable result.

        Raises
        ------
        AssessmentFailed
            If the assessment is FAILED or ABANDONED.
        InvalidTransition
            If it has not reached a terminal state yet.
        """
        assessment = self.store.get_assessment(assessment_id)
        if not assessment.is_terminal:
            raise InvalidTransition(
                f"Assessment {assessment_id} is still {assessment.status.value}",
                current=assessment.status.value,
                requested="terminal",
            )
        if assessment.status in (AssessmentStatus.FAILED, AssessmentStatus.ABANDONED):
            raise AssessmentFailed(
                assessment.error or f"Assessment {assessment_id} was {assessment.status.value}",
                assessment_id=assessment_id,
            )
        return assessment

