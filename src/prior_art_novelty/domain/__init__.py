"""Domain layer for the prior-art novelty pipeline.

Re-exports all public domain types so that consumers can write::

    from prior_art_novelty.domain import SearchStrategy, NoveltyAssessment
"""

# -- Enumerations -------------------------------------------------------------
from .enums import (
    AssessmentStage,
    AssessmentStatus,
    ConfidenceLevel,
    ContentType,
    Determination,
    IntersectionType,
    Relevance,
    RunStatus,
    SourceScope,
    TaskCode,
    VariantLabel,
)

# -- Value Objects ------------------------------------------------------------
from .values import (
    AssessmentCall,
    CandidateSnapshot,
    DetailedResult,
    DocumentDetail,
    InventionSummary,
    QueryVariant,
    RawDocument,
    RelevanceResult,
    ScreeningItem,
    ScreeningResult,
    SearchStrategy,
    TermMatch,
)

# -- Entities -----------------------------------------------------------------
from .entities import NoveltyAssessment, QueryExecution, SearchRun, UnifiedCandidate

# -- Domain Events ------------------------------------------------------------
from .events import (
    AssessmentStageCompleted,
    AssessmentTerminated,
    DomainEvent,
    SearchRunCompleted,
    SourceFailed,
)

# -- Exceptions ---------------------------------------------------------------
from .exceptions import (
    AssessmentFailed,
    DetailUnavailable,
    InvalidTransition,
    ModelCallFailed,
    NotFound,
    PriorArtNoveltyError,
    ResponseUnparseable,
    SourceUnavailable,
    StrategyInvalid,
)

__all__ = [
    # enums
    "AssessmentStage",
    "AssessmentStatus",
    "ConfidenceLevel",
    "ContentType",
    "Determination",
    "IntersectionType",
    "Relevance",
    "RunStatus",
    "SourceScope",
    "TaskCode",
    "VariantLabel",
    # values
    "AssessmentCall",
    "CandidateSnapshot",
    "DetailedResult",
    "DocumentDetail",
    "InventionSummary",
    "QueryVariant",
    "RawDocument",
    "RelevanceResult",
    "ScreeningItem",
    "ScreeningResult",
    "SearchStrategy",
    "TermMatch",
    # entities
    "NoveltyAssessment",
    "QueryExecution",
    "SearchRun",
    "UnifiedCandidate",
    # events
    "AssessmentStageCompleted",
    "AssessmentTerminated",
    "DomainEvent",
    "SearchRunCompleted",
    "SourceFailed",
    # exceptions
    "AssessmentFailed",
    "DetailUnavailable",
    "InvalidTransition",
    "ModelCallFailed",
    "NotFound",
    "PriorArtNoveltyError",
    "ResponseUnparseable",
    "SourceUnavailable",
    "StrategyInvalid",
]
