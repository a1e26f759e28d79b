"""Concurrent execution of a search strategy against its sources."""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Sequence

from prior_art_novelty.domain.entities import QueryExecution
from prior_art_novelty.domain.events import SourceFailed
from prior_art_novelty.domain.exceptions import SourceUnavailable
from prior_art_novelty.domain.values import QueryVariant, SearchStrategy
from prior_art_novelty.infrastructure.event_bus import EventBus
from prior_art_novelty.infrastructure.sources import SearchSource
from prior_art_novelty.infrastructure.store import PriorArtStore

logger = logging.getLogger(__name__)


class SearchExecutor:
    """Fans a strategy's variants out over every in-scope source.

    Each (variant, source) pair is one unit of work run on a thread pool.
    ``execute`` returns only after every unit has completed or failed; a
    unit whose source raises ``SourceUnavailable`` is recorded with its
    error and does not affect the others.

    Parameters
    ----------
    sources:
        Available search sources; filtered per run by ``source_scope``.
    store:
        Receives one ``QueryExecution`` per unit.
    event_bus:
        Optional bus on which ``SourceFailed`` is published.
    max_workers:
        Thread-pool width.
    """

    def __init__(
        self,
        sources: Sequence[SearchSource],
        store: PriorArtStore,
        event_bus: EventBus | None = None,
        max_workers: int = 6,
    ) -> None:
        self._sources = list(sources)
        self._store = store
        self._event_bus = event_bus
        self._max_workers = max_workers

    def execute(self, run_id: str, strategy: SearchStrategy) -> list[QueryExecution]:
        sources = [s for s in self._sources if strategy.source_scope.includes(s.kind)]
        if not sources:
            logger.warning(
                "Run %s: no source matches scope %s", run_id, strategy.source_scope.value
            )
            return []

        units = [(variant, source) for variant in strategy.variants for source in sources]
        logger.info("Run %s: executing %d search units", run_id, len(units))

        executions: list[QueryExecution] = []
        with concurrent.futures.ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = [pool.submit(self._run_unit, run_id, v, s) for v, s in units]
            for future in concurrent.futures.as_completed(futures):
                executions.append(future.result())

        # Completion order is arbitrary; merge order should not be.
        order = {(v.label, s.kind): i for i, (v, s) in enumerate(units)}
        executions.sort(key=lambda e: order[(e.variant, e.content_type)])

        for execution in executions:
            self._store.add_execution(execution)
            if execution.failed and self._event_bus is not None:
                self._event_bus.publish(
                    SourceFailed(
                        source_id=run_id,
                        run_id=run_id,
                        variant=execution.variant,
                        content_type=execution.content_type,
                        error=execution.error,
                    )
                )
        return executions

    def _run_unit(self, run_id: str, variant: QueryVariant, source: SearchSource) -> QueryExecution:
        try:
            documents = source.search(variant.query, variant.num, variant.start)
        except SourceUnavailable as exc:
            logger.warning(
                "Run %s: %s failed for %s variant: %s",
                run_id, source.name, variant.label.value, exc,
            )
            return QueryExecution(
                run_id=run_id,
                variant=variant.label,
                content_type=source.kind,
                query=variant.query,
                requested=variant.num,
                page=variant.page,
                error=str(exc),
            )

        documents = documents[: variant.num]
        logger.debug(
            "Run %s: %s returned %d results for %s variant",
            run_id, source.name, len(documents), variant.label.value,
        )
        return QueryExecution(
            run_id=run_id,
            variant=variant.label,
            content_type=source.kind,
            query=variant.query,
            requested=variant.num,
            page=variant.page,
            result_count=len(documents),
            documents=tuple(documents),
        )
