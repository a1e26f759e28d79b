"""Tests for SearchExecutor."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from prior_art_novelty.domain.enums import ContentType, VariantLabel
from prior_art_novelty.domain.events import SourceFailed
from prior_art_novelty.domain.values import RawDocument, SearchStrategy
from prior_art_novelty.infrastructure.event_bus import EventBus, EventStore
from prior_art_novelty.infrastructure.store import InMemoryPriorArtStore
from prior_art_novelty.services.search import SearchExecutor
from prior_art_novelty.testing import StaticSearchSource

BROAD_Q = "(battery OR cell) (cooling OR thermal)"
BASELINE_Q = "battery cooling plate (coolant OR refrigerant)"
NARROW_Q = '"liquid cooled battery pack" cooling plate'


class TestSearchExecutor:

    def test_runs_every_variant(
        self,
        store: InMemoryPriorArtStore,
        strategy: SearchStrategy,
        make_doc: Callable[..., RawDocument],
    ) -> None:
        source = StaticSearchSource({BROAD_Q: [make_doc("US1"), make_doc("US2")]})
        executions = SearchExecutor([source], store).execute("r1", strategy)

        assert [e.variant for e in executions] == list(VariantLabel)
        assert executions[0].result_count == 2
        assert executions[1].result_count == 0
        assert sorted(q for q, _, _ in source.calls) == sorted([BROAD_Q, BASELINE_Q, NARROW_Q])
        assert len(store.list_executions("r1")) == 3

    def test_failing_source_does_not_abort_run(
        self,
        store: InMemoryPriorArtStore,
        strategy_data: dict[str, Any],
        event_bus: EventBus,
        event_store: EventStore,
        make_doc: Callable[..., RawDocument],
    ) -> None:
        strategy_data["source_scope"] = "both"
        strategy = SearchStrategy.from_dict(strategy_data).approve()
        patents = StaticSearchSource(default=[make_doc("US1")])
        scholar = StaticSearchSource(kind=ContentType.SCHOLARLY, fail_queries=["*"])

        executions = SearchExecutor([patents, scholar], store, event_bus=event_bus).execute(
            "r1", strategy
        )

        failed = [e for e in executions if e.failed]
        ok = [e for e in executions if not e.failed]
        assert len(failed) == 3
        assert all(e.content_type is ContentType.SCHOLARLY for e in failed)
        assert all(e.result_count == 1 for e in ok)
        assert len(event_store.query(SourceFailed)) == 3

    def test_scope_filters_sources(
        self,
        store: InMemoryPriorArtStore,
        strategy: SearchStrategy,
    ) -> None:
        patents = StaticSearchSource()
        scholar = StaticSearchSource(kind=ContentType.SCHOLARLY)
        SearchExecutor([patents, scholar], store).execute("r1", strategy)
        assert len(patents.calls) == 3
        assert scholar.calls == []

    def test_no_matching_source(
        self, store: InMemoryPriorArtStore, strategy: SearchStrategy
    ) -> None:
        scholar = StaticSearchSource(kind=ContentType.SCHOLARLY)
        assert SearchExecutor([scholar], store).execute("r1", strategy) == []

    def test_page_and_size_are_passed(
        self,
        store: InMemoryPriorArtStore,
        strategy_data: dict[str, Any],
        make_doc: Callable[..., RawDocument],
    ) -> None:
        strategy_data["query_variants"][0].update({"num": 2, "page": 3})
        strategy = SearchStrategy.from_dict(strategy_data).approve()
        source = StaticSearchSource(default=[make_doc(f"US{i}") for i in range(5)])

        executions = SearchExecutor([source], store).execute("r1", strategy)

        assert (BROAD_Q, 2, 4) in source.calls
        broad = executions[0]
        assert broad.page == 3
        assert broad.result_count == 2
