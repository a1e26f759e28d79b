"""Model gateway over a LangChain ``BaseChatModel``.

Any chat model (``ChatAnthropic``, ``ChatOpenAI``, the scripted test model)
can drive the novelty assessment through ``ChatModelGateway``.

Example
-------
::

    from langchain_anthropic import ChatAnthropic
    from prior_art_novelty.infrastructure.llm import ChatModelGateway

    gateway = ChatModelGateway(ChatAnthropic(model="claude-sonnet-4-5"))
    result = gateway.invoke(TaskCode.NOVELTY_SCREEN, prompt, "a1:STAGE1_SCREENING")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from prior_art_novelty.domain.enums import TaskCode
from prior_art_novelty.infrastructure.llm import ModelGateway, ModelResult

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a patent novelty analyst. Follow the output format exactly and "
    "respond with JSON only."
)


class ChatModelGateway(ModelGateway):
    """Runs prompts on a LangChain chat model and caches results per key.

    Parameters
    ----------
    model:
        Any LangChain chat model.
    models_by_task:
        Optional per-task overrides, e.g. a cheaper model for screening.
    system_prompt:
        System message sent ahead of every prompt.  Empty disables it.
    """

    def __init__(
        self,
        model: BaseChatModel,
        models_by_task: Mapping[TaskCode, BaseChatModel] | None = None,
        system_prompt: str = _SYSTEM_PROMPT,
    ) -> None:
        self.model = model
        self._models_by_task = dict(models_by_task or {})
        self._system_prompt = system_prompt
        self._cache: dict[str, ModelResult] = {}
        self._lock = threading.Lock()
        self.provider_calls = 0

    def invoke(self, task_code: TaskCode, prompt: str, idempotency_key: str) -> ModelResult:
        with self._lock:
            cached = self._cache.get(idempotency_key)
        if cached is not None:
            logger.debug("ChatModelGateway: cache hit for %s", idempotency_key)
            return cached

        model = self._models_by_task.get(task_code, self.model)
        messages: list[Any] = []
        if self._system_prompt:
            messages.append(SystemMessage(content=self._system_prompt))
        messages.append(HumanMessage(content=prompt))

        self.provider_calls += 1
        try:
            response = model.invoke(messages)
        except Exception as exc:
            logger.warning(
                "ChatModelGateway: %s call %s failed: %s",
                task_code.value,
                idempotency_key,
                exc,
            )
            # Failures are not cached so a retry with the same key reaches the provider.
            return ModelResult(
                success=False,
                model_class=_model_class(model),
                error=f"{type(exc).__name__}: {exc}",
            )

        result = ModelResult(
            success=True,
            output_text=_message_text(response),
            output_tokens=_output_tokens(response),
            model_class=_model_class(model, response),
            finish_reason=_finish_reason(response),
        )
        with self._lock:
            self._cache.setdefault(idempotency_key, result)
            return self._cache[idempotency_key]


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    # Content blocks (Anthropic-style lists)
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, Mapping) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


def _finish_reason(message: Any) -> str:
    metadata = getattr(message, "response_metadata", None) or {}
    for key in ("finish_reason", "stop_reason", "finishReason"):
        value = metadata.get(key)
        if value:
            return str(value)
    return ""


def _output_tokens(message: Any) -> int:
    if isinstance(message, AIMessage) and message.usage_metadata:
        return int(message.usage_metadata.get("output_tokens", 0))
    usage = (getattr(message, "response_metadata", None) or {}).get("usage") or {}
    return int(usage.get("output_tokens", usage.get("completion_tokens", 0)) or 0)


def _model_class(model: BaseChatModel, message: Any = None) -> str:
    metadata = getattr(message, "response_metadata", None) or {}
    name = metadata.get("model_name") or metadata.get("model")
    if name:
        return str(name)
    for attr in ("model_name", "model"):
        value = getattr(model, attr, None)
        if isinstance(value, str) and value:
            return value
    return model._llm_type
