"""Tolerant interpretation of model output.

Every model response in the pipeline passes through ``extract_json`` and then
one of the typed interpreters (``interpret_screening``,
``interpret_detailed``).  ``extract_json`` applies a fixed sequence of
repairs, stopping at the first that yields a JSON object:

1. parse the text as-is (already-valid objects are returned unchanged);
2. strip a single fenced code block, optionally tagged ``json``;
3. slice from the first ``{`` to the last ``}``;
4. normalise trailing commas, doubled commas and unquoted keys;
5. when the output was truncated, close unterminated strings, objects and
   arrays;
6. pull ``patent_assessments`` / ``overall_determination`` out with targeted
   patterns and synthesise a partial object.

If nothing works ``ResponseUnparseable`` is raised with a bounded excerpt.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from prior_art_novelty.domain.enums import ConfidenceLevel, Determination, Relevance
from prior_art_novelty.domain.exceptions import ResponseUnparseable
from prior_art_novelty.domain.values import DetailedResult, ScreeningItem, ScreeningResult

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_DOUBLE_COMMA = re.compile(r",(\s*),")
_BARE_KEY = re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)\s*:")
_STRING = re.compile(r'"(?:\\.|[^"\\])*"?')
_ASSESSMENTS = re.compile(r'"patent_assessments"\s*:\s*\[([\s\S]*?)\]')
_OVERALL = re.compile(r'"overall_determination"\s*:\s*"([^"]*)"')

PARTIAL_MARKER = "_partial"


@dataclass(frozen=True)
class ParseOutcome:
    """A JSON object recovered from model output.

    ``partial`` is set when the object was completed or synthesised from a
    damaged response; ``repairs`` names the steps that were applied.
    """

    data: dict[str, Any]
    partial: bool = False
    repairs: tuple[str, ...] = field(default=())


# ===================================================================== #
#  Generic repair                                                        #
# ===================================================================== #

def extract_json(raw_text: str, was_truncated: bool = False, excerpt_chars: int = 200) -> ParseOutcome:
    """Recover a JSON object from *raw_text*.

    Parameters
    ----------
    raw_text:
        Model output, possibly wrapped in prose or code fences.
    was_truncated:
        The provider stopped on a length limit; enables closing of
        unterminated structures.
    excerpt_chars:
        Size bound of the excerpt carried by ``ResponseUnparseable``.
    """
    text = (raw_text or "").strip()
    repairs: list[str] = []

    data = _loads_object(text)
    if data is not None:
        return ParseOutcome(data=data)

    match = _FENCE.search(text)
    if match:
        text = match.group(1).strip()
        repairs.append("code_fence")

    start = text.find("{")
    last = text.rfind("}")
    if start != -1 and last > start:
        text = text[start:last + 1]
        repairs.append("slice")
    elif start > 0:
        text = text[start:]
        repairs.append("slice")

    data = _loads_object(text)
    if data is not None:
        return ParseOutcome(data=data, repairs=tuple(repairs))

    normalised = _normalise(text)
    if normalised != text:
        repairs.append("normalise")
        text = normalised
        data = _loads_object(text)
        if data is not None:
            return ParseOutcome(data=data, repairs=tuple(repairs))

    if was_truncated:
        balanced = _normalise(_balance(text))
        if balanced != text:
            data = _loads_object(balanced)
            if data is not None:
                repairs.append("balance")
                logger.info("Recovered truncated model output by closing open structures")
                return ParseOutcome(data=data, partial=True, repairs=tuple(repairs))

    data = _extract_screening_fields(text)
    if data is not None:
        repairs.append("pattern_extract")
        logger.warning("Model output was malformed; extracted partial screening fields")
        return ParseOutcome(data=data, partial=True, repairs=tuple(repairs))

    excerpt = (raw_text or "")[:excerpt_chars]
    raise ResponseUnparseable(
        f"Model returned invalid JSON after repairs: {', '.join(repairs) or 'none'}",
        excerpt=excerpt,
    )


def _loads_object(text: str) -> dict[str, Any] | None:
    if not text:
        return None
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _normalise(text: str) -> str:
    """Fix commas and unquoted keys outside string literals."""
    parts: list[str] = []
    pos = 0
    for literal in _STRING.finditer(text):
        parts.append(_normalise_bare(text[pos:literal.start()]))
        parts.append(literal.group(0))
        pos = literal.end()
    parts.append(_normalise_bare(text[pos:]))
    return "".join(parts)


def _normalise_bare(text: str) -> str:
    text = _TRAILING_COMMA.sub(r"\1", text)
    text = _DOUBLE_COMMA.sub(",", text)
    return _BARE_KEY.sub(r'\1"\2":', text)


def _balance(text: str) -> str:
    """Close an unterminated string and any open ``{``/``[``, innermost first."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack and stack[-1] == ch:
            stack.pop()

    if in_string:
        text += '"'
    text = text.rstrip()
    # A dangling separator cannot be completed sensibly.
    while text and text[-1] in ",:":
        if text[-1] == ":":
            text += " null"
            break
        text = text[:-1].rstrip()
    return text + "".join(reversed(stack))


def _extract_screening_fields(text: str) -> dict[str, Any] | None:
    match = _ASSESSMENTS.search(text)
    if not match:
        return None
    try:
        assessments = json.loads("[" + _normalise(match.group(1)) + "]")
    except ValueError:
        return None
    overall = _OVERALL.search(text)
    return {
        "patent_assessments": assessments,
        "overall_determination": overall.group(1) if overall else "UNKNOWN",
        "summary_remarks": "Extracted from partial model response",
        PARTIAL_MARKER: True,
    }


# ===================================================================== #
#  Typed payloads                                                        #
# ===================================================================== #

def _as_text(cls: type[BaseModel], value: Any) -> Any:
    # Models emit null for fields they have nothing to say about.
    return "" if value is None else str(value).strip()


class ScreeningAssessmentItem(BaseModel):
    """One entry of ``patent_assessments``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    identifier: str = Field(
        validation_alias=AliasChoices("identifier", "publication_number", "patent_number"),
    )
    relevance: str = "LOW"
    reasoning: str = ""

    blank_nulls = field_validator("identifier", "relevance", "reasoning", mode="before")(_as_text)


class ScreeningOutput(BaseModel):
    """Stage 1 response payload."""

    model_config = ConfigDict(extra="ignore")

    overall_determination: str = ""
    patent_assessments: list[ScreeningAssessmentItem] = Field(default_factory=list)
    summary_remarks: str = ""

    blank_nulls = field_validator("overall_determination", "summary_remarks", mode="before")(
        _as_text
    )

    @field_validator("patent_assessments", mode="before")
    @classmethod
    def _no_assessments(cls, value: Any) -> Any:
        return [] if value is None else value


class DetailedOutput(BaseModel):
    """Stage 2 response payload."""

    model_config = ConfigDict(extra="ignore")

    determination: str = ""
    confidence_level: str = "LOW"
    novel_aspects: list[str] = Field(default_factory=list)
    non_novel_aspects: list[str] = Field(default_factory=list)
    technical_reasoning: str = ""
    suggestions: str = ""
    remarks_novel: str = ""
    remarks_not_novel: str = ""
    remarks_partial: str = ""
    overall_assessment: str = ""

    blank_nulls = field_validator(
        "determination",
        "confidence_level",
        "technical_reasoning",
        "remarks_novel",
        "remarks_not_novel",
        "remarks_partial",
        "overall_assessment",
        mode="before",
    )(_as_text)

    @field_validator("novel_aspects", "non_novel_aspects", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return [str(v) for v in value]

    @field_validator("suggestions", mode="before")
    @classmethod
    def _join_suggestions(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return "; ".join(str(v) for v in value if v)
        return str(value)

    @property
    def remarks(self) -> str:
        return (
            self.remarks_novel
            or self.remarks_not_novel
            or self.remarks_partial
            or self.overall_assessment
            or self.technical_reasoning
        )


# ===================================================================== #
#  Interpreters                                                          #
# ===================================================================== #

def _validate(model: type[BaseModel], outcome: ParseOutcome) -> Any:
    try:
        return model.model_validate(outcome.data)
    except ValidationError as exc:
        excerpt = json.dumps(outcome.data, default=str)[:200]
        raise ResponseUnparseable(
            f"Model output does not match {model.__name__}: {exc.error_count()} error(s)",
            excerpt=excerpt,
        ) from exc


def interpret_screening(outcome: ParseOutcome) -> ScreeningResult:
    """Turn a repaired Stage 1 payload into a ``ScreeningResult``.

    Relevance values are upper-cased; anything other than HIGH or MEDIUM
    counts as LOW.  Items without an identifier are dropped.
    """
    payload: ScreeningOutput = _validate(ScreeningOutput, outcome)
    items: list[ScreeningItem] = []
    for item in payload.patent_assessments:
        if not item.identifier:
            logger.warning("Dropping screening item without identifier")
            continue
        try:
            relevance = Relevance(item.relevance.upper())
        except ValueError:
            logger.warning(
                "Unknown relevance %r for %s, treating as LOW", item.relevance, item.identifier
            )
            relevance = Relevance.LOW
        items.append(ScreeningItem(item.identifier, relevance, item.reasoning))
    return ScreeningResult(
        items=tuple(items),
        overall_determination=payload.overall_determination.strip().upper(),
        summary_remarks=payload.summary_remarks,
        partial=outcome.partial or bool(outcome.data.get(PARTIAL_MARKER)),
    )


def interpret_detailed(identifier: str, outcome: ParseOutcome) -> tuple[DetailedResult, str]:
    """Turn a repaired Stage 2 payload into a ``DetailedResult`` and its remarks.

    An unrecognised determination is kept as ``DOUBT`` so that aggregation
    treats it as a mixed outcome.
    """
    payload: DetailedOutput = _validate(DetailedOutput, outcome)
    try:
        determination = Determination(payload.determination.strip().upper())
    except ValueError:
        logger.warning(
            "Unknown determination %r for %s", payload.determination, identifier
        )
        determination = Determination.DOUBT
    try:
        confidence = ConfidenceLevel(payload.confidence_level.strip().upper())
    except ValueError:
        confidence = ConfidenceLevel.LOW
    result = DetailedResult(
        identifier=identifier,
        determination=determination,
        confidence_level=confidence,
        novel_aspects=tuple(payload.novel_aspects),
        non_novel_aspects=tuple(payload.non_novel_aspects),
        technical_reasoning=payload.technical_reasoning,
        suggestions=payload.suggestions,
    )
    return result, payload.remarks
