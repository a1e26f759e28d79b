"""Model execution boundary for the prior-art novelty pipeline.

Public API
----------
ModelGateway
    Abstract base class: ``invoke(task_code, prompt, idempotency_key)``.
ModelResult
    Structured result returned by every gateway.
ChatModelGateway
    Gateway over any LangChain ``BaseChatModel`` (lazy-loaded).

Quota, metering and provider routing live behind this interface and are not
this package's concern.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from prior_art_novelty.domain.enums import TaskCode

logger = logging.getLogger(__name__)

TRUNCATION_REASONS = frozenset({"length", "max_tokens", "MAX_TOKENS"})


# =========================================================================== #
#  Data structures                                                             #
# =========================================================================== #

@dataclass(frozen=True)
class ModelResult:
    """Outcome of one model call.

    Attributes
    ----------
    success:
        ``False`` on a transport or provider error; ``error`` then says why.
    output_text:
        Raw generated text.
    output_tokens:
        Tokens generated, when the provider reports usage.
    model_class:
        Which model (or model tier) actually served the call.
    finish_reason:
        Why generation stopped.  See :attr:`truncated`.
    error:
        Failure description.
    """

    success: bool
    output_text: str = ""
    output_tokens: int = 0
    model_class: str = ""
    finish_reason: str = ""
    error: str = ""

    @property
    def truncated(self) -> bool:
        return self.finish_reason in TRUNCATION_REASONS


# =========================================================================== #
#  Abstract gateway                                                            #
# =========================================================================== #

class ModelGateway(ABC):
    """Executes prompts on behalf of the assessment state machine.

    Implementations must be idempotent per ``idempotency_key``: invoking
    twice with the same key returns the first result without a second
    provider call.
    """

    @abstractmethod
    def invoke(self, task_code: TaskCode, prompt: str, idempotency_key: str) -> ModelResult:
        """Run *prompt* under *task_code*.

        Provider failures are reported as ``ModelResult(success=False)``
        rather than raised.
        """
        ...


__all__ = [
    "ChatModelGateway",
    "ModelGateway",
    "ModelResult",
    "TRUNCATION_REASONS",
]


def __getattr__(name: str):  # noqa: N807
    """Lazy-load the LangChain gateway so importing the ABC stays cheap."""
    if name == "ChatModelGateway":
        from prior_art_novelty.infrastructure.llm.langchain_gateway import ChatModelGateway

        return ChatModelGateway
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
