"""Search sources and document-detail lookups.

Public API
----------
SearchSource
    Abstract base class for anything that answers one query with a list of
    ``RawDocument`` hits.
DetailLookup
    Abstract base class for fetching full detail (title, abstract, claims)
    of one document.
normalize_patent_id
    Canonical form of a patent identifier as returned by search engines.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from prior_art_novelty.domain.enums import ContentType
from prior_art_novelty.domain.values import DocumentDetail, RawDocument


# =========================================================================== #
#  Abstract interfaces                                                         #
# =========================================================================== #

class SearchSource(ABC):
    """One searchable corpus (patents, scholarly literature, ...)."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source identifier (e.g. ``"google_patents"``)."""
        ...

    @property
    @abstractmethod
    def kind(self) -> ContentType:
        """Kind of document this source returns."""
        ...

    @abstractmethod
    def search(self, query: str, num: int, start: int = 0) -> list[RawDocument]:
        """Run *query* and return up to *num* hits starting at offset *start*.

        Raises
        ------
        SourceUnavailable
            When the source cannot answer this query.
        """
        ...


class DetailLookup(ABC):
    """Fetches the full record of one document for detailed assessment."""

    @abstractmethod
    def fetch_detail(self, identifier: str) -> DocumentDetail:
        """Return the detail of *identifier*.

        Raises
        ------
        DetailUnavailable
            When no detail can be obtained.
        """
        ...


# =========================================================================== #
#  Identifier normalisation                                                    #
# =========================================================================== #

_WHITESPACE = re.compile(r"\s+")


def normalize_patent_id(patent_id: str) -> str:
    """Return the bare publication number for a search-engine patent id.

    ``patent/US1234567B1/en`` becomes ``US1234567B1``; ``scholar/...`` ids are
    kept as-is; whitespace is removed from bare numbers.
    """
    if patent_id.startswith("scholar/"):
        return patent_id
    if patent_id.startswith("patent/"):
        parts = patent_id.split("/")
        if len(parts) >= 2 and parts[1]:
            return parts[1]
    return _WHITESPACE.sub("", patent_id)


__all__ = [
    "DetailLookup",
    "SearchSource",
    "normalize_patent_id",
]
