"""Prior-art aggregation and staged novelty determination.

Runs a three-variant search strategy against patent and scholarly sources,
merges and scores the results, and drives a two-stage, model-backed
assessment of whether an invention is NOVEL, NOT_NOVEL or PARTIALLY_NOVEL.
"""

__version__ = "0.1.0"

from prior_art_novelty.graph import AssessmentState, build_assessment_graph
from prior_art_novelty.services.service import PriorArtService

__all__ = [
    "AssessmentState",
    "PriorArtService",
    "build_assessment_graph",
]
