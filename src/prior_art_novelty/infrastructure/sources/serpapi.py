"""SerpAPI-backed search sources and patent detail lookup.

Uses ``httpx`` to query the SerpAPI search endpoint with the
``google_patents``, ``google_scholar`` and ``google_patents_details``
engines.  Calls to the same engine are spaced at least
``rate_limit_seconds`` apart; rate-limited responses (HTTP 429) are retried
with exponential backoff.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from prior_art_novelty.domain.enums import ContentType
from prior_art_novelty.domain.exceptions import (
    DetailUnavailable,
    PriorArtNoveltyError,
    SourceUnavailable,
)
from prior_art_novelty.domain.values import DocumentDetail, RawDocument
from prior_art_novelty.infrastructure.config import SearchSourceConfig
from prior_art_novelty.infrastructure.sources import (
    DetailLookup,
    SearchSource,
    normalize_patent_id,
)

logger = logging.getLogger(__name__)

PATENTS_ENGINE = "google_patents"
SCHOLAR_ENGINE = "google_scholar"
DETAILS_ENGINE = "google_patents_details"

DEFAULT_DETAIL_FIELDS = (
    "title",
    "abstract",
    "claims",
    "classifications",
    "publication_date",
    "priority_date",
    "worldwide_applications",
    "events",
    "patent_citations",
    "non_patent_citations",
    "pdf",
    "description",
)

# SerpAPI reports an empty result page as an error message.
_EMPTY_RESULT_MARKER = "hasn't returned any results"


class SerpApiError(PriorArtNoveltyError):
    """Raised by ``SerpApiClient`` for any failed request."""


# =========================================================================== #
#  HTTP client                                                                 #
# =========================================================================== #

class SerpApiClient:
    """Rate-limited SerpAPI HTTP client shared by sources and detail lookup.

    Parameters
    ----------
    config:
        Source settings (API key, endpoint, spacing, timeout).
    client:
        Optional pre-built ``httpx.Client``; tests pass one with a
        ``MockTransport``.
    max_retries:
        Retries on HTTP 429 before giving up.
    base_retry_delay:
        Base delay for exponential backoff on HTTP 429.
    """

    def __init__(
        self,
        config: SearchSourceConfig,
        client: httpx.Client | None = None,
        max_retries: int = 2,
        base_retry_delay: float = 1.0,
    ) -> None:
        self.config = config
        self._client = client or httpx.Client(timeout=httpx.Timeout(config.timeout_seconds))
        self._max_retries = max_retries
        self._base_retry_delay = base_retry_delay
        self._last_call: dict[str, float] = {}
        self._rate_lock = threading.Lock()

    @property
    def has_key(self) -> bool:
        return bool(self.config.api_key)

    def get(self, engine: str, params: Mapping[str, Any]) -> dict[str, Any]:
        """Issue one GET for *engine* and return the decoded JSON body."""
        query = {
            "engine": engine,
            "api_key": self.config.api_key,
            "hl": "en",
            "no_cache": "false",
            **{k: v for k, v in params.items() if v is not None},
        }
        for attempt in range(self._max_retries + 1):
            self._wait_turn(engine)
            try:
                response = self._client.get(self.config.base_url, params=query)
            except httpx.HTTPError as exc:
                raise SerpApiError(f"{engine} request failed: {exc}") from exc

            if response.status_code == 429 and attempt < self._max_retries:
                delay = self._base_retry_delay * (2 ** attempt)
                logger.warning(
                    "SerpApiClient: %s rate limited (attempt %d/%d), retrying in %.1fs",
                    engine,
                    attempt + 1,
                    self._max_retries + 1,
                    delay,
                )
                time.sleep(delay)
                continue

            try:
                data = response.json()
            except ValueError as exc:
                raise SerpApiError(
                    f"{engine} returned non-JSON body (HTTP {response.status_code})"
                ) from exc
            if response.status_code >= 400:
                raise SerpApiError(
                    f"{engine} failed: HTTP {response.status_code} "
                    f"{data.get('error', 'Unknown error') if isinstance(data, dict) else ''}"
                )
            if not isinstance(data, dict):
                raise SerpApiError(f"{engine} returned an unexpected payload")
            return data

        raise SerpApiError(f"{engine} rate limit exceeded after {self._max_retries + 1} attempts")

    def close(self) -> None:
        self._client.close()

    def _wait_turn(self, engine: str) -> None:
        spacing = self.config.rate_limit_seconds
        with self._rate_lock:
            now = time.monotonic()
            last = self._last_call.get(engine)
            wait = 0.0 if last is None else max(0.0, spacing - (now - last))
            # Reserve the slot before sleeping so concurrent callers queue up.
            self._last_call[engine] = now + wait
        if wait > 0:
            time.sleep(wait)


# =========================================================================== #
#  Search sources                                                              #
# =========================================================================== #

class SerpApiSource(SearchSource):
    """Google Patents or Google Scholar search through SerpAPI."""

    def __init__(self, client: SerpApiClient, kind: ContentType = ContentType.PATENT) -> None:
        self._client = client
        self._kind = kind
        self._engine = PATENTS_ENGINE if kind is ContentType.PATENT else SCHOLAR_ENGINE

    @property
    def name(self) -> str:
        return self._engine

    @property
    def kind(self) -> ContentType:
        return self._kind

    def search(self, query: str, num: int, start: int = 0) -> list[RawDocument]:
        if not self._client.has_key:
            logger.warning("Skipping %s search - no API key: %r", self._engine, query)
            return []

        try:
            data = self._client.get(
                self._engine, {"q": query, "num": num, "start": start or None}
            )
        except SerpApiError as exc:
            raise SourceUnavailable(str(exc), source=self._engine, query=query) from exc

        error = data.get("error")
        if error and _EMPTY_RESULT_MARKER not in str(error):
            raise SourceUnavailable(str(error), source=self._engine, query=query)

        results = data.get("organic_results") or []
        documents = [
            doc for doc in (self._to_document(r) for r in results) if doc is not None
        ]
        logger.debug("%s returned %d results for %r", self._engine, len(documents), query)
        return documents

    def _to_document(self, result: Mapping[str, Any]) -> RawDocument | None:
        if self._kind is ContentType.PATENT:
            raw_id = result.get("publication_number") or result.get("patent_id") or ""
            if not raw_id:
                return None
            return RawDocument(
                identifier=normalize_patent_id(str(raw_id)),
                title=str(result.get("title") or ""),
                snippet=str(result.get("snippet") or ""),
                content_type=ContentType.PATENT,
                link=str(result.get("link") or ""),
                position=int(result.get("position") or 0),
                metadata={
                    k: result[k]
                    for k in (
                        "assignee",
                        "inventor",
                        "priority_date",
                        "filing_date",
                        "publication_date",
                        "grant_date",
                        "pdf",
                    )
                    if result.get(k)
                },
            )

        identifier = result.get("link") or result.get("title") or ""
        if not identifier:
            return None
        summary = result.get("publication_info") or {}
        return RawDocument(
            identifier=str(identifier),
            title=str(result.get("title") or ""),
            snippet=str(result.get("snippet") or ""),
            content_type=ContentType.SCHOLARLY,
            link=str(result.get("link") or ""),
            position=int(result.get("position") or 0),
            metadata={
                k: v
                for k, v in {
                    "publication": summary.get("summary") if isinstance(summary, Mapping) else None,
                    "year": result.get("year"),
                    "doi": result.get("doi"),
                    "pdf": result.get("pdf_link"),
                }.items()
                if v
            },
        )


def serpapi_sources(
    config: SearchSourceConfig, client: httpx.Client | None = None
) -> list[SearchSource]:
    """Build the patent and scholarly sources over one shared client."""
    shared = SerpApiClient(config, client=client)
    return [
        SerpApiSource(shared, ContentType.PATENT),
        SerpApiSource(shared, ContentType.SCHOLARLY),
    ]


# =========================================================================== #
#  Detail lookup                                                               #
# =========================================================================== #

class SerpApiDetailLookup(DetailLookup):
    """Fetches patent detail with the ``google_patents_details`` engine.

    Tries the ``patent/<id>/en`` form first, then the bare id.  Successful
    lookups are reused for ``details_ttl_days``.
    """

    def __init__(
        self,
        client: SerpApiClient,
        fields: Sequence[str] = DEFAULT_DETAIL_FIELDS,
    ) -> None:
        self._client = client
        self._fields = tuple(fields) or DEFAULT_DETAIL_FIELDS
        self._cache: dict[str, tuple[float, DocumentDetail]] = {}
        self._lock = threading.Lock()

    def fetch_detail(self, identifier: str) -> DocumentDetail:
        number = normalize_patent_id(identifier)
        cached = self._cached(number)
        if cached is not None:
            return cached

        if not self._client.has_key:
            raise DetailUnavailable(
                f"No API key configured for detail lookup of {number}",
                identifier=number,
            )

        errors: list[str] = []
        for candidate_id in (f"patent/{number}/en", number):
            try:
                data = self._client.get(
                    DETAILS_ENGINE,
                    {"patent_id": candidate_id, "json_restrictor": ",".join(self._fields)},
                )
            except SerpApiError as exc:
                logger.debug("Detail lookup %s failed: %s", candidate_id, exc)
                errors.append(str(exc))
                continue
            if data.get("error"):
                errors.append(str(data["error"]))
                continue
            detail = DocumentDetail(
                title=data.get("title") or None,
                abstract=data.get("abstract") or None,
                claims=data.get("claims") or None,
            )
            with self._lock:
                self._cache[number] = (time.time(), detail)
            return detail

        raise DetailUnavailable(
            f"Could not fetch details for {number}: {'; '.join(errors)}",
            identifier=number,
        )

    def _cached(self, number: str) -> DocumentDetail | None:
        ttl = self._client.config.details_ttl_days * 86400
        with self._lock:
            entry = self._cache.get(number)
        if entry is None:
            return None
        fetched_at, detail = entry
        if time.time() - fetched_at > ttl:
            return None
        return detail
