"""Infrastructure layer for the prior-art novelty pipeline.

Re-exports the public API surface for convenience::

    from prior_art_novelty.infrastructure import (
        EventBus, EventStore, InMemoryPriorArtStore,
        PipelineConfig, ModelGateway, SearchSource,
    )
"""

from prior_art_novelty.infrastructure.config import (
    AggregationConfig,
    AssessmentConfig,
    PipelineConfig,
    ScoringConfig,
    SearchSourceConfig,
    ThresholdConfig,
    load_config_from_json,
)
from prior_art_novelty.infrastructure.event_bus import EventBus, EventStore
from prior_art_novelty.infrastructure.llm import ModelGateway, ModelResult
from prior_art_novelty.infrastructure.serialization import (
    deserialize,
    from_json,
    from_yaml,
    load_strategy,
    serialize,
    to_json,
    to_yaml,
    yaml_available,
)
from prior_art_novelty.infrastructure.sources import (
    DetailLookup,
    SearchSource,
    normalize_patent_id,
)
from prior_art_novelty.infrastructure.store import InMemoryPriorArtStore, PriorArtStore

__all__ = [
    # Event bus
    "EventBus",
    "EventStore",
    # Persistence
    "InMemoryPriorArtStore",
    "PriorArtStore",
    # Configuration
    "AggregationConfig",
    "AssessmentConfig",
    "PipelineConfig",
    "ScoringConfig",
    "SearchSourceConfig",
    "ThresholdConfig",
    "load_config_from_json",
    # Serialization
    "serialize",
    "deserialize",
    "to_json",
    "from_json",
    "to_yaml",
    "from_yaml",
    "load_strategy",
    "yaml_available",
    # Model boundary
    "ModelGateway",
    "ModelResult",
    # Sources
    "DetailLookup",
    "SearchSource",
    "normalize_patent_id",
]
