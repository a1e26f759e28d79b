"""Scripted chat model for testing and examples.

Provides a ``ScriptedChatModel`` that replays pre-configured raw responses,
including provider metadata (finish reason, token usage), so the whole
assessment path, JSON repair included, runs without API keys.
"""

from __future__ import annotations

from typing import Any

from langchain_core.callbacks import CallbackManagerForLLMRun
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import ConfigDict


class ScriptedChatModel(BaseChatModel):
    """A chat model that answers from a script.

    Each entry of ``responses`` is one of:

    * a ``str``: returned verbatim with ``finish_reason``;
    * a ``dict`` with ``text`` and optionally ``finish_reason``;
    * a callable taking the prompt text and returning either of the above;
    * an ``Exception`` instance, raised instead of answering.

    Usage::

        model = ScriptedChatModel(responses=[
            '{"overall_determination": "DOUBT", "patent_assessments": [...]}',
            {"text": '{"determination": "NOVEL", ', "finish_reason": "length"},
            RuntimeError("provider unavailable"),
        ])
        # Each call returns the next entry.  After exhausting the list, it
        # cycles back to the start.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    responses: list[Any] = []
    finish_reason: str = "stop"
    label: str = "scripted"
    prompts: list[str] = []
    _call_index: int = 0

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        prompt = str(messages[-1].content) if messages else ""
        self.prompts.append(prompt)

        idx = self._call_index % len(self.responses) if self.responses else 0
        entry: Any = self.responses[idx] if self.responses else ""
        self._call_index += 1

        if callable(entry):
            entry = entry(prompt)
        if isinstance(entry, Exception):
            raise entry

        if isinstance(entry, dict):
            text = str(entry.get("text", ""))
            finish_reason = str(entry.get("finish_reason", self.finish_reason))
        else:
            text = str(entry)
            finish_reason = self.finish_reason

        tokens = len(text.split())
        message = AIMessage(
            content=text,
            response_metadata={"finish_reason": finish_reason, "model_name": self.label},
            usage_metadata={"input_tokens": 0, "output_tokens": tokens, "total_tokens": tokens},
        )
        return ChatResult(generations=[ChatGeneration(message=message)])

    @property
    def call_count(self) -> int:
        return self._call_index
