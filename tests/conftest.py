"""Shared fixtures for the prior-art novelty test suite."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from typing import Any

import pytest

from prior_art_novelty.domain.enums import ContentType
from prior_art_novelty.domain.values import (
    CandidateSnapshot,
    InventionSummary,
    RawDocument,
    SearchStrategy,
)
from prior_art_novelty.infrastructure.config import PipelineConfig
from prior_art_novelty.infrastructure.event_bus import EventBus, EventStore
from prior_art_novelty.infrastructure.llm.langchain_gateway import ChatModelGateway
from prior_art_novelty.infrastructure.sources import DetailLookup, SearchSource
from prior_art_novelty.infrastructure.store import InMemoryPriorArtStore
from prior_art_novelty.services.service import PriorArtService
from prior_art_novelty.testing import ScriptedChatModel

BROAD_Q = "(battery OR cell) (cooling OR thermal)"
BASELINE_Q = "battery cooling plate (coolant OR refrigerant)"
NARROW_Q = '"liquid cooled battery pack" cooling plate'


# ===================================================================== #
#  Strategy & invention                                                  #
# ===================================================================== #


@pytest.fixture
def strategy_data() -> dict[str, Any]:
    """A valid, unapproved search bundle for a battery cooling invention."""
    return {
        "source_summary": {
            "title": "Liquid cooled battery pack",
            "problem_statement": "Cells overheat during fast charging.",
            "solution_summary": "A cooling plate with refrigerant channels under each cell row.",
        },
        "core_concepts": ["battery", "thermal"],
        "technical_features": ["cooling plate"],
        "synonym_groups": [["coolant", "refrigerant"]],
        "phrases": ["liquid cooled battery pack"],
        "source_scope": "patent_only",
        "query_variants": [
            {"label": "broad", "q": BROAD_Q, "num": 10},
            {"label": "baseline", "q": BASELINE_Q, "num": 10},
            {"label": "narrow", "q": NARROW_Q, "num": 10},
        ],
    }


@pytest.fixture
def strategy(strategy_data: dict[str, Any]) -> SearchStrategy:
    """Approved strategy built from ``strategy_data``."""
    return SearchStrategy.from_dict(strategy_data).approve()


@pytest.fixture
def invention() -> InventionSummary:
    return InventionSummary(
        title="Liquid cooled battery pack",
        problem="Cells overheat during fast charging.",
        solution="A cooling plate with refrigerant channels under each cell row.",
    )


@pytest.fixture
def snapshots() -> tuple[CandidateSnapshot, ...]:
    return (
        CandidateSnapshot("US1000001A", "Battery cooling plate", "A plate cools battery cells.", 72),
        CandidateSnapshot("US1000002B2", "Thermal pad for cells", "A pad spreads heat.", 55),
        CandidateSnapshot("US1000003A1", "Coolant pump", "A pump moves coolant.", 41),
    )


# ===================================================================== #
#  Documents & payloads                                                  #
# ===================================================================== #


@pytest.fixture
def make_doc() -> Callable[..., RawDocument]:
    def _make(
        identifier: str,
        title: str = "",
        snippet: str = "",
        content_type: ContentType = ContentType.PATENT,
    ) -> RawDocument:
        return RawDocument(
            identifier=identifier,
            title=title,
            snippet=snippet,
            content_type=content_type,
            link=f"https://example.org/{identifier}",
        )

    return _make


@pytest.fixture
def screening_json() -> Callable[..., str]:
    """Build a Stage 1 response from ``{identifier: relevance}``."""

    def _build(relevances: dict[str, str], overall: str = "") -> str:
        return json.dumps({
            "overall_determination": overall,
            "patent_assessments": [
                {"publication_number": pid, "relevance": rel, "reasoning": f"{rel.lower()} overlap"}
                for pid, rel in relevances.items()
            ],
            "summary_remarks": "Screened all candidates.",
        })

    return _build


@pytest.fixture
def detailed_json() -> Callable[..., str]:
    """Build a Stage 2 response."""

    def _build(
        determination: str,
        confidence: str = "HIGH",
        novel: Sequence[str] = (),
        non_novel: Sequence[str] = (),
        reasoning: str = "Compared element by element.",
        suggestions: str = "",
    ) -> str:
        return json.dumps({
            "determination": determination,
            "confidence_level": confidence,
            "novel_aspects": list(novel),
            "non_novel_aspects": list(non_novel),
            "technical_reasoning": reasoning,
            "suggestions": suggestions,
        })

    return _build


# ===================================================================== #
#  Infrastructure                                                        #
# ===================================================================== #


@pytest.fixture
def store() -> InMemoryPriorArtStore:
    return InMemoryPriorArtStore()


@pytest.fixture
def event_store() -> EventStore:
    return EventStore()


@pytest.fixture
def event_bus(event_store: EventStore) -> EventBus:
    """Bus that records every published event in ``event_store``."""
    bus = EventBus()
    bus.subscribe_all(event_store.append)
    return bus


@pytest.fixture
def make_service(
    store: InMemoryPriorArtStore, event_bus: EventBus
) -> Callable[..., tuple[PriorArtService, ScriptedChatModel]]:
    """Factory for a service driven by a scripted model."""

    def _make(
        responses: Sequence[Any] = (),
        sources: Sequence[SearchSource] = (),
        detail_lookup: DetailLookup | None = None,
        config: PipelineConfig | None = None,
    ) -> tuple[PriorArtService, ScriptedChatModel]:
        model = ScriptedChatModel(responses=list(responses))
        service = PriorArtService(
            list(sources),
            ChatModelGateway(model),
            store=store,
            detail_lookup=detail_lookup,
            event_bus=event_bus,
            config=config,
        )
        return service, model

    return _make
