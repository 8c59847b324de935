"""Keyword search over the document corpus."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from .documents import DocumentReadError, read_document
from .paths import DocumentRepository
from .sections import extract_sections, section_extent

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
MAX_TOP_K = 50
SNIPPET_LEAD = 80
SNIPPET_WIDTH = 240


@dataclass(frozen=True)
class SearchHit:
    path: str
    score: int
    snippet: str

    @property
    def rank_key(self) -> tuple[int, str]:
        return -self.score, self.path


@dataclass(frozen=True)
class SectionSearchHit:
    path: str
    section_title: str
    level: int
    score: int
    snippet: str

    @property
    def rank_key(self) -> tuple[int, str, str]:
        return -self.score, self.path, self.section_title


THit = TypeVar("THit", SearchHit, SectionSearchHit)


def tokenize(query: str) -> list[str]:
    """Split *query* into unique lowercase terms, keeping first-seen order."""

    return list(dict.fromkeys(query.lower().split()))


def count_occurrences(text: str, term: str) -> int:
    """Count non-overlapping occurrences of *term* in *text*."""

    if not term:
        return 0
    count = 0
    index = text.find(term)
    while index != -1:
        count += 1
        index = text.find(term, index + len(term))
    return count


def score(text: str, terms: Iterable[str]) -> int:
    """Sum the occurrences of every term in *text*, ignoring case."""

    lowered = text.lower()
    return sum(count_occurrences(lowered, term) for term in terms)


def make_snippet(text: str, anchor: str) -> str:
    """Build a single-line excerpt of *text* around the first match of *anchor*."""

    position = text.lower().find(anchor.lower()) if anchor else -1
    start = max(0, position - SNIPPET_LEAD) if position >= 0 else 0
    end = min(len(text), start + SNIPPET_WIDTH)
    snippet = text[start:end].replace("\n", " ").strip()
    if start > 0:
        snippet = f"… {snippet}"
    if end < len(text):
        snippet = f"{snippet} …"
    return snippet


def clamp_top_k(top_k: int | None) -> int:
    if top_k is None or top_k <= 0:
        return DEFAULT_TOP_K
    return min(top_k, MAX_TOP_K)


def rank_hits(hits: Sequence[THit], top_k: int | None = None) -> list[THit]:
    """Order hits by score (descending) then identifier, and keep the best *top_k*."""

    ranked = sorted(hits, key=lambda hit: hit.rank_key)
    return ranked[: clamp_top_k(top_k)]


def _iter_readable(repository: DocumentRepository):
    for path in repository.iter_document_files():
        try:
            content = read_document(path)
        except DocumentReadError as exc:
            logger.warning("Skipping %s during search: %s", path, exc.__cause__)
            continue
        yield path, content


def search_documents(
    repository: DocumentRepository, query: str, top_k: int | None = None
) -> list[SearchHit]:
    """Rank whole documents by how often the query terms occur in them."""

    terms = tokenize(query)
    if not terms:
        return []

    hits: list[SearchHit] = []
    for path, content in _iter_readable(repository):
        total = score(content, terms)
        if total > 0:
            hits.append(
                SearchHit(
                    path=repository.to_composite_path(path),
                    score=total,
                    snippet=make_snippet(content, terms[0]),
                )
            )
    return rank_hits(hits, top_k)


def search_sections(
    repository: DocumentRepository, query: str, top_k: int | None = None
) -> list[SectionSearchHit]:
    """Rank individual markdown sections by query term frequency."""

    terms = tokenize(query)
    if not terms:
        return []

    hits: list[SectionSearchHit] = []
    for path, content in _iter_readable(repository):
        composite = repository.to_composite_path(path)
        for section in extract_sections(content):
            body = section_extent(content, section)
            total = score(body, terms)
            if total > 0:
                hits.append(
                    SectionSearchHit(
                        path=composite,
                        section_title=section.title,
                        level=section.level,
                        score=total,
                        snippet=make_snippet(body, terms[0]),
                    )
                )
    return rank_hits(hits, top_k)
