"""Assessment audit trail: the append-only log of model calls.

Every model invocation made during a novelty assessment is recorded once,
with its prompt, raw output, parsed payload and provider metadata, so a
determination can be traced back to the exact text that produced it.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from prior_art_novelty.domain.enums import AssessmentStage
from prior_art_novelty.domain.values import AssessmentCall
from prior_art_novelty.infrastructure.store import PriorArtStore

logger = logging.getLogger(__name__)


def idempotency_key(
    assessment_id: str,
    stage: AssessmentStage,
    identifier: str | None = None,
) -> str:
    """``"{assessment_id}:{stage}"``, suffixed with the candidate for Stage 2."""
    key = f"{assessment_id}:{stage.value}"
    if identifier:
        key = f"{key}:{identifier}"
    return key


class AssessmentAuditTrail:
    """Serializable, append-only log of ``AssessmentCall`` records.

    A successful call is recorded at most once per idempotency key; a
    replayed step that reuses the key leaves the trail unchanged.  When a
    store is given every new record is forwarded to it.

    Parameters
    ----------
    store:
        Optional ``PriorArtStore`` that persists the calls.
    """

    def __init__(self, store: PriorArtStore | None = None) -> None:
        self._entries: list[AssessmentCall] = []
        self._succeeded_keys: set[str] = set()
        self._lock = threading.Lock()
        self._store = store

    def record(self, call: AssessmentCall) -> bool:
        """Append *call*.  Returns ``False`` if its key was already recorded."""
        with self._lock:
            if call.idempotency_key in self._succeeded_keys:
                logger.debug("Ignoring replayed call %s", call.idempotency_key)
                return False
            self._entries.append(call)
            if call.succeeded:
                self._succeeded_keys.add(call.idempotency_key)
        if self._store is not None:
            self._store.append_call(call)
        return True

    def has_succeeded(self, key: str) -> bool:
        with self._lock:
            return key in self._succeeded_keys

    def query(
        self,
        assessment_id: str | None = None,
        stage: AssessmentStage | None = None,
        limit: int = 100,
    ) -> list[AssessmentCall]:
        """Query entries by assessment and/or stage."""
        with self._lock:
            results = list(self._entries)
        if assessment_id is not None:
            results = [e for e in results if e.assessment_id == assessment_id]
        if stage is not None:
            results = [e for e in results if e.stage is stage]
        return results[:limit]

    @property
    def entries(self) -> list[AssessmentCall]:
        """All entries (read-only view)."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def to_dict(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self.entries]

    @classmethod
    def from_dict(cls, data: list[dict[str, Any]]) -> AssessmentAuditTrail:
        trail = cls()
        for d in data:
            trail.record(AssessmentCall.from_dict(d))
        return trail

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)

    @classmethod
    def from_json(cls, json_str: str) -> AssessmentAuditTrail:
        return cls.from_dict(json.loads(json_str))
