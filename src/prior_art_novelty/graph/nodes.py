"""LangGraph node functions for the novelty assessment.

Each ``make_*_node`` factory closes over an ``AssessmentContext`` and returns
a node that takes an ``AssessmentState`` and returns a partial update dict.
Nodes delegate prompt construction, interpretation and decisions to the
service modules and never reimplement that logic.

The ``NoveltyAssessment`` in the store is the record of truth.  Every node
re-reads it under the context lock before committing and stops with
``aborted`` if it has moved on (for example, abandoned by the caller).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from typing import Any, TypeVar

from prior_art_novelty.domain.entities import NoveltyAssessment
from prior_art_novelty.domain.enums import AssessmentStage, AssessmentStatus, TaskCode
from prior_art_novelty.domain.events import (
    AssessmentStageCompleted,
    AssessmentTerminated,
    DomainEvent,
)
from prior_art_novelty.domain.exceptions import (
    DetailUnavailable,
    ModelCallFailed,
    ResponseUnparseable,
)
from prior_art_novelty.domain.values import AssessmentCall, DocumentDetail, ScreeningResult
from prior_art_novelty.infrastructure.config import AssessmentConfig
from prior_art_novelty.infrastructure.event_bus import EventBus
from prior_art_novelty.infrastructure.llm import ModelGateway
from prior_art_novelty.infrastructure.sources import DetailLookup
from prior_art_novelty.infrastructure.store import PriorArtStore
from prior_art_novelty.services.audit_trail import AssessmentAuditTrail, idempotency_key
from prior_art_novelty.services.decision import (
    aggregate_detailed,
    decide_screening,
    status_for,
)
from prior_art_novelty.services.prompts import build_detailed_prompt, build_screening_prompt
from prior_art_novelty.services.response_parser import (
    ParseOutcome,
    extract_json,
    interpret_detailed,
    interpret_screening,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Node = Callable[[dict[str, Any]], dict[str, Any]]


@dataclass
class AssessmentContext:
    """Collaborators shared by the assessment nodes.

    Attributes
    ----------
    store:
        Holds the ``NoveltyAssessment`` records.
    gateway:
        Model execution boundary.
    details:
        Full-record lookup for Stage 2.  Without one, Stage 2 works from the
        shortlisted snapshot.
    audit_trail:
        Receives one ``AssessmentCall`` per model invocation.
    event_bus:
        Optional bus for stage and termination events.
    config:
        Assessment parameters.
    lock:
        Serialises read-check-write of assessments against ``abandon``.
    """

    store: PriorArtStore
    gateway: ModelGateway
    details: DetailLookup | None = None
    audit_trail: AssessmentAuditTrail = field(default_factory=AssessmentAuditTrail)
    event_bus: EventBus | None = None
    config: AssessmentConfig = field(default_factory=AssessmentConfig)
    lock: threading.RLock = field(default_factory=threading.RLock)

    def publish(self, event: DomainEvent) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event)


# -- helpers -----------------------------------------------------------------

def _commit(
    ctx: AssessmentContext,
    assessment_id: str,
    expected: Collection[AssessmentStatus] | None,
    mutate: Callable[[NoveltyAssessment], None],
) -> NoveltyAssessment | None:
    """Apply *mutate* and save, if the stored status is still *expected*.

    ``expected=None`` accepts any non-terminal status.  Returns ``None``
    when the assessment has moved on.
    """
    with ctx.lock:
        assessment = ctx.store.get_assessment(assessment_id)
        if assessment.is_terminal or (expected is not None and assessment.status not in expected):
            logger.info(
                "Assessment %s is %s; discarding update",
                assessment_id, assessment.status.value,
            )
            return None
        mutate(assessment)
        ctx.store.save_assessment(assessment)
        return assessment


def _call_model(
    ctx: AssessmentContext,
    assessment_id: str,
    stage: AssessmentStage,
    task_code: TaskCode,
    prompt: str,
    interpret: Callable[[ParseOutcome], T],
    identifier: str = "",
) -> T:
    """Invoke the model, interpret its output, and audit the call.

    A parse failure is retried once with truncation balancing forced on.

    Raises
    ------
    ModelCallFailed
        The gateway reported failure, or truncated output was too short to
        repair.
    ResponseUnparseable
        No repair produced a usable payload.
    """
    key = idempotency_key(assessment_id, stage, identifier or None)
    result = ctx.gateway.invoke(task_code, prompt, key)

    outcome: ParseOutcome | None = None
    interpreted: Any = None
    failure: Exception | None = None
    text = result.output_text or ""

    if not result.success:
        failure = ModelCallFailed(
            result.error or "Model call failed", task_code=task_code.value, idempotency_key=key
        )
    elif result.truncated and len(text.strip()) < ctx.config.min_truncated_chars:
        failure = ModelCallFailed(
            f"Truncated response of {len(text.strip())} chars is too short to repair",
            task_code=task_code.value,
            idempotency_key=key,
        )
    else:
        try:
            outcome = extract_json(text, result.truncated, ctx.config.excerpt_chars)
            interpreted = interpret(outcome)
        except ResponseUnparseable:
            logger.info("Retrying interpretation of %s with balancing forced", key)
            try:
                outcome = extract_json(text, True, ctx.config.excerpt_chars)
                interpreted = interpret(outcome)
            except ResponseUnparseable as exc:
                failure = exc

    ctx.audit_trail.record(
        AssessmentCall(
            assessment_id=assessment_id,
            stage=stage,
            task_code=task_code,
            idempotency_key=key,
            prompt=prompt,
            raw_response=text,
            parsed=outcome.data if outcome is not None else None,
            candidate_id=identifier,
            output_tokens=result.output_tokens,
            model_class=result.model_class,
            finish_reason=result.finish_reason,
            partial=outcome.partial if outcome is not None else False,
            error=str(failure) if failure is not None else "",
        )
    )
    if failure is not None:
        raise failure
    return interpreted


# -- nodes -------------------------------------------------------------------

def make_screen_node(ctx: AssessmentContext) -> Node:
    """Stage 1: screen all candidates in one model call."""

    def screen_node(state: dict[str, Any]) -> dict[str, Any]:
        assessment_id = state["assessment_id"]
        assessment = _commit(
            ctx,
            assessment_id,
            (AssessmentStatus.PENDING,),
            lambda a: a.transition_to(AssessmentStatus.STAGE1_SCREENING),
        )
        if assessment is None:
            return {"aborted": True}

        if not assessment.candidates:
            logger.info("Assessment %s: no candidates, nothing to screen", assessment_id)
            screening = ScreeningResult(items=(), summary_remarks="No prior art candidates to screen")
        else:
            prompt = build_screening_prompt(
                assessment.invention, assessment.candidates, ctx.config.abstract_word_limit
            )
            try:
                screening = _call_model(
                    ctx,
                    assessment_id,
                    AssessmentStage.STAGE1_SCREENING,
                    TaskCode.NOVELTY_SCREEN,
                    prompt,
                    interpret_screening,
                )
            except (ModelCallFailed, ResponseUnparseable) as exc:
                logger.warning("Assessment %s: screening failed: %s", assessment_id, exc)
                return {"error": f"Stage 1 screening failed: {exc}"}

        decision = decide_screening(screening.items, ctx.config.stage1_confidence)

        def apply(a: NoveltyAssessment) -> None:
            a.stage1 = screening
            a.escalated_ids = decision.escalate_ids
            a.determination = decision.determination
            a.confidence = decision.confidence
            a.remarks = screening.summary_remarks
            a.transition_to(AssessmentStatus.STAGE1_COMPLETED)

        if _commit(ctx, assessment_id, (AssessmentStatus.STAGE1_SCREENING,), apply) is None:
            return {"aborted": True}

        event = AssessmentStageCompleted(
            source_id=assessment_id,
            assessment_id=assessment_id,
            stage=AssessmentStage.STAGE1_SCREENING,
            determination=decision.determination,
            escalated=decision.escalate_ids,
        )
        ctx.publish(event)
        logger.info(
            "Assessment %s: screening -> %s (%d escalated)",
            assessment_id, decision.determination.value, len(decision.escalate_ids),
        )
        return {"screening": decision, "events": [event]}

    return screen_node


def make_assess_details_node(ctx: AssessmentContext) -> Node:
    """Stage 2: one model call per escalated candidate, sequentially.

    A candidate whose detail cannot be fetched, whose call fails, or whose
    output cannot be interpreted is skipped; the others still count.
    """

    def assess_details_node(state: dict[str, Any]) -> dict[str, Any]:
        assessment_id = state["assessment_id"]
        assessment = _commit(
            ctx,
            assessment_id,
            (AssessmentStatus.STAGE1_COMPLETED,),
            lambda a: a.transition_to(AssessmentStatus.STAGE2_ASSESSMENT),
        )
        if assessment is None:
            return {"aborted": True}

        results = []
        remarks: list[str] = []
        for identifier in assessment.escalated_ids:
            if ctx.store.get_assessment(assessment_id).is_terminal:
                return {"aborted": True}

            snapshot = assessment.candidate(identifier)
            if ctx.details is None:
                detail = DocumentDetail()
            else:
                try:
                    detail = ctx.details.fetch_detail(identifier)
                except DetailUnavailable as exc:
                    logger.warning(
                        "Assessment %s: skipping %s, detail unavailable: %s",
                        assessment_id, identifier, exc,
                    )
                    continue
                except Exception as exc:
                    logger.warning(
                        "Assessment %s: skipping %s, detail lookup raised %s: %s",
                        assessment_id, identifier, type(exc).__name__, exc,
                    )
                    continue

            prompt = build_detailed_prompt(assessment.invention, identifier, detail, snapshot)
            try:
                result, remark = _call_model(
                    ctx,
                    assessment_id,
                    AssessmentStage.STAGE2_ASSESSMENT,
                    TaskCode.NOVELTY_ASSESS,
                    prompt,
                    lambda outcome, _id=identifier: interpret_detailed(_id, outcome),
                    identifier=identifier,
                )
            except (ModelCallFailed, ResponseUnparseable) as exc:
                logger.warning(
                    "Assessment %s: skipping %s, detailed assessment failed: %s",
                    assessment_id, identifier, exc,
                )
                continue
            results.append(result)
            if remark:
                remarks.append(f"{identifier}: {remark}")

        if not results:
            return {
                "stage2_succeeded": 0,
                "error": "Stage 2 produced no usable result for any escalated candidate",
            }

        decision = aggregate_detailed(results, remarks)

        def apply(a: NoveltyAssessment) -> None:
            a.stage2 = list(results)
            a.transition_to(AssessmentStatus.STAGE2_COMPLETED)

        if _commit(ctx, assessment_id, (AssessmentStatus.STAGE2_ASSESSMENT,), apply) is None:
            return {"aborted": True}

        event = AssessmentStageCompleted(
            source_id=assessment_id,
            assessment_id=assessment_id,
            stage=AssessmentStage.STAGE2_ASSESSMENT,
            determination=decision.determination,
        )
        ctx.publish(event)
        logger.info(
            "Assessment %s: %d/%d candidates assessed -> %s",
            assessment_id, len(results), len(assessment.escalated_ids),
            decision.determination.value,
        )
        return {"stage2_succeeded": len(results), "detailed": decision, "events": [event]}

    return assess_details_node


def make_finalize_node(ctx: AssessmentContext) -> Node:
    """Record the final determination and terminal status."""

    def finalize_node(state: dict[str, Any]) -> dict[str, Any]:
        assessment_id = state["assessment_id"]
        detailed = state.get("detailed")
        screening = state.get("screening")

        if detailed is not None:
            determination = detailed.determination

            def apply(a: NoveltyAssessment) -> None:
                a.determination = detailed.determination
                a.confidence = ctx.config.stage2_confidence
                a.confidence_level = detailed.confidence_level
                a.remarks = detailed.remarks
                a.suggestions = detailed.suggestions
                a.novel_aspects = list(detailed.novel_aspects)
                a.non_novel_aspects = list(detailed.non_novel_aspects)
                a.transition_to(status_for(detailed.determination))

            expected = (AssessmentStatus.STAGE2_COMPLETED,)
        else:
            determination = screening.determination

            def apply(a: NoveltyAssessment) -> None:
                a.determination = screening.determination
                a.confidence = screening.confidence
                a.transition_to(status_for(screening.determination))

            expected = (AssessmentStatus.STAGE1_COMPLETED,)

        assessment = _commit(ctx, assessment_id, expected, apply)
        if assessment is None:
            return {"aborted": True}

        event = AssessmentTerminated(
            source_id=assessment_id,
            assessment_id=assessment_id,
            status=assessment.status,
            determination=determination,
        )
        ctx.publish(event)
        logger.info(
            "Assessment %s finished: %s (%s%%)",
            assessment_id, determination.value, assessment.confidence,
        )
        return {"events": [event]}

    return finalize_node


def make_fail_node(ctx: AssessmentContext) -> Node:
    """Move the assessment to FAILED, keeping the error."""

    def fail_node(state: dict[str, Any]) -> dict[str, Any]:
        assessment_id = state["assessment_id"]
        error = state.get("error") or "Assessment failed"
        assessment = _commit(ctx, assessment_id, None, lambda a: a.fail(error))
        if assessment is None:
            return {"aborted": True}

        event = AssessmentTerminated(
            source_id=assessment_id,
            assessment_id=assessment_id,
            status=AssessmentStatus.FAILED,
        )
        ctx.publish(event)
        logger.warning("Assessment %s failed: %s", assessment_id, error)
        return {"events": [event]}

    return fail_node
