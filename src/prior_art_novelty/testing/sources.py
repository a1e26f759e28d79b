"""In-memory search sources and detail lookup for tests and examples."""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence

from prior_art_novelty.domain.enums import ContentType
from prior_art_novelty.domain.exceptions import DetailUnavailable, SourceUnavailable
from prior_art_novelty.domain.values import DocumentDetail, RawDocument
from prior_art_novelty.infrastructure.sources import DetailLookup, SearchSource


class StaticSearchSource(SearchSource):
    """Returns canned documents per query string.

    Parameters
    ----------
    results:
        Documents keyed by the exact query string.
    kind:
        Content type of every returned document.
    default:
        Documents for queries not in *results*.
    fail_queries:
        Queries for which ``SourceUnavailable`` is raised; ``"*"`` fails all.
    """

    def __init__(
        self,
        results: Mapping[str, Sequence[RawDocument]] | None = None,
        kind: ContentType = ContentType.PATENT,
        default: Sequence[RawDocument] = (),
        fail_queries: Sequence[str] = (),
        name: str = "",
    ) -> None:
        self._results = {q: list(docs) for q, docs in (results or {}).items()}
        self._kind = kind
        self._default = list(default)
        self._fail = set(fail_queries)
        self._name = name or f"static_{kind.value}"
        self._lock = threading.Lock()
        self.calls: list[tuple[str, int, int]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> ContentType:
        return self._kind

    def search(self, query: str, num: int, start: int = 0) -> list[RawDocument]:
        with self._lock:
            self.calls.append((query, num, start))
        if "*" in self._fail or query in self._fail:
            raise SourceUnavailable(f"{self._name} unavailable", source=self._name, query=query)
        return list(self._results.get(query, self._default))[:num]


class StaticDetailLookup(DetailLookup):
    """Returns canned details; unknown identifiers raise ``DetailUnavailable``."""

    def __init__(self, details: Mapping[str, DocumentDetail] | None = None) -> None:
        self._details = dict(details or {})
        self.requested: list[str] = []

    def fetch_detail(self, identifier: str) -> DocumentDetail:
        self.requested.append(identifier)
        try:
            return self._details[identifier]
        except KeyError:
            raise DetailUnavailable(
                f"No detail for {identifier}", identifier=identifier
            ) from None
