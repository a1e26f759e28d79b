"""Public testing utilities for the prior-art novelty pipeline.

Provides a scripted chat model and in-memory sources for writing
self-contained examples and tests without network access or API keys.
"""

from prior_art_novelty.testing.mock_llm import ScriptedChatModel
from prior_art_novelty.testing.sources import StaticDetailLookup, StaticSearchSource

__all__ = ["ScriptedChatModel", "StaticDetailLookup", "StaticSearchSource"]
