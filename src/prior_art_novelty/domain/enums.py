"""Domain enumerations for the prior-art novelty pipeline.

These enums capture the fixed vocabularies used across the domain layer:
query-variant labels, content and source kinds, intersection classes,
screening relevance, novelty determinations, and the assessment lifecycle.
"""

from enum import Enum


class VariantLabel(Enum):
    """The three query formulations every search strategy carries."""

    BROAD = "broad"
    BASELINE = "baseline"
    NARROW = "narrow"


class ContentType(Enum):
    """Kind of document a search source returns."""

    PATENT = "patent"
    SCHOLARLY = "scholarly"


class SourceScope(Enum):
    """Which source kinds a search run queries."""

    PATENT_ONLY = "patent_only"
    SCHOLARLY_ONLY = "scholarly_only"
    BOTH = "both"

    def includes(self, content_type: ContentType) -> bool:
        if self is SourceScope.BOTH:
            return True
        if self is SourceScope.PATENT_ONLY:
            return content_type is ContentType.PATENT
        return content_type is ContentType.SCHOLARLY


class IntersectionType(Enum):
    """How many variants independently found a candidate."""

    NONE = "NONE"
    I2 = "I2"  # found by exactly two variants
    I3 = "I3"  # found by all three

    @classmethod
    def from_count(cls, count: int) -> "IntersectionType":
        if count == 3:
            return cls.I3
        if count == 2:
            return cls.I2
        return cls.NONE


class Relevance(Enum):
    """Stage 1 screening relevance of one candidate."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Determination(Enum):
    """Categorical novelty outcome."""

    NOVEL = "NOVEL"
    NOT_NOVEL = "NOT_NOVEL"
    PARTIALLY_NOVEL = "PARTIALLY_NOVEL"
    DOUBT = "DOUBT"


class ConfidenceLevel(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AssessmentStage(Enum):
    """Phase of the novelty assessment that issued a model call."""

    STAGE1_SCREENING = "STAGE1_SCREENING"
    STAGE2_ASSESSMENT = "STAGE2_ASSESSMENT"


class TaskCode(Enum):
    """Task identifiers passed to the model execution boundary."""

    NOVELTY_SCREEN = "LLM4_NOVELTY_SCREEN"
    NOVELTY_ASSESS = "LLM5_NOVELTY_ASSESS"


class AssessmentStatus(Enum):
    """Finite-state-machine states of a novelty assessment.

    Members are declared in lifecycle order; ``rank`` is used to reject
    backward transitions.
    """

    PENDING = "PENDING"
    STAGE1_SCREENING = "STAGE1_SCREENING"
    STAGE1_COMPLETED = "STAGE1_COMPLETED"
    STAGE2_ASSESSMENT = "STAGE2_ASSESSMENT"
    STAGE2_COMPLETED = "STAGE2_COMPLETED"
    NOVEL = "NOVEL"
    NOT_NOVEL = "NOT_NOVEL"
    DOUBT_RESOLVED = "DOUBT_RESOLVED"  # final PARTIALLY_NOVEL
    FAILED = "FAILED"
    ABANDONED = "ABANDONED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @property
    def rank(self) -> int:
        if self.is_terminal:
            return len(_ORDER)
        return _ORDER.index(self)


_ORDER = (
    AssessmentStatus.PENDING,
    AssessmentStatus.STAGE1_SCREENING,
    AssessmentStatus.STAGE1_COMPLETED,
    AssessmentStatus.STAGE2_ASSESSMENT,
    AssessmentStatus.STAGE2_COMPLETED,
)

_TERMINAL_STATUSES = frozenset({
    AssessmentStatus.NOVEL,
    AssessmentStatus.NOT_NOVEL,
    AssessmentStatus.DOUBT_RESOLVED,
    AssessmentStatus.FAILED,
    AssessmentStatus.ABANDONED,
})


class RunStatus(Enum):
    """Lifecycle of a search run."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
