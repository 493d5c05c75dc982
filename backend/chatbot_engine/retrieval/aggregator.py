"""Multi-source knowledge retrieval: fan out, merge, rank and format."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Sequence

from chatbot_engine.core.errors import ProviderError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.core.metrics import SEARCH_FAILURES
from chatbot_engine.models.entities import KnowledgeSource, SearchMatch
from chatbot_engine.retrieval.search import KnowledgeSearch

logger = get_logger(__name__)

NO_CONTEXT = ""
DEDUPE_PREFIX_CHARS = 100
MAX_SOURCE_URLS = 5


@dataclass(slots=True)
class SourceAttribution:
    title: str
    url: str
    score: float


@dataclass(slots=True)
class KnowledgeContext:
    text: str = NO_CONTEXT
    matches: list[SearchMatch] = field(default_factory=list)
    sources: list[SourceAttribution] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.text == NO_CONTEXT

    @property
    def sources_used(self) -> int:
        return len(self.matches)


class KnowledgeAggregator:
    """Searches every knowledge source of a chatbot and builds the context block."""

    def __init__(
        self,
        searcher: KnowledgeSearch,
        per_source_limit: int = 5,
        threshold: float = 0.65,
        global_cap: int = 8,
        max_workers: int = 4,
    ) -> None:
        self.searcher = searcher
        self.per_source_limit = per_source_limit
        self.threshold = threshold
        self.global_cap = global_cap
        self.max_workers = max_workers

    def aggregate(
        self,
        query: str,
        sources: Sequence[KnowledgeSource],
        per_source_limit: int | None = None,
        threshold: float | None = None,
        global_cap: int | None = None,
    ) -> KnowledgeContext:
        matches = self.collect(query, sources, per_source_limit, threshold)
        cap = global_cap or self.global_cap
        ranked = sorted(matches, key=lambda match: match.score, reverse=True)[:cap]
        if not ranked:
            logger.info("No knowledge matched query", extra={"ctx_sources": len(sources)})
            return KnowledgeContext()
        return KnowledgeContext(
            text=format_context(ranked),
            matches=ranked,
            sources=collect_source_urls(ranked),
        )

    def collect(
        self,
        query: str,
        sources: Sequence[KnowledgeSource],
        per_source_limit: int | None = None,
        threshold: float | None = None,
    ) -> list[SearchMatch]:
        """Run one search per source and merge results in fan-out order.

        A failing source is logged and contributes nothing. Matches repeating
        the opening of an earlier match's content are dropped.
        """
        if not sources:
            return []
        limit = per_source_limit or self.per_source_limit
        min_score = self.threshold if threshold is None else threshold
        workers = max(1, min(self.max_workers, len(sources)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="kb-search") as pool:
            futures = [
                pool.submit(self._search_source, query, source, limit, min_score)
                for source in sources
            ]
            per_source = []
            for source, future in zip(sources, futures):
                try:
                    per_source.append(future.result())
                except Exception as exc:
                    SEARCH_FAILURES.inc()
                    logger.warning(
                        "Knowledge source %s search failed: %s",
                        source.name,
                        exc,
                        extra={"ctx_source_id": source.id},
                    )
                    per_source.append([])

        merged: list[SearchMatch] = []
        seen: set[str] = set()
        for results in per_source:
            for match in results:
                key = match.content[:DEDUPE_PREFIX_CHARS]
                if key in seen:
                    continue
                seen.add(key)
                merged.append(match)
        return merged

    def _search_source(
        self,
        query: str,
        source: KnowledgeSource,
        limit: int,
        threshold: float,
    ) -> list[SearchMatch]:
        results = self.searcher.search(query, source, limit, threshold)
        for match in results:
            if not 0.0 <= match.score <= 1.0:
                raise ProviderError(f"Search returned out-of-range score {match.score} for source {source.id}")
        logger.debug("Source %s returned %s matches", source.name, len(results))
        return [match for match in results if match.score >= threshold]


def format_context(matches: Sequence[SearchMatch]) -> str:
    blocks = []
    for position, match in enumerate(matches, start=1):
        label = match.metadata.get("title") or match.source_name or "Knowledge Base"
        blocks.append(
            f"[Chunk {position} | Relevance: {match.score * 100:.1f}% | Source: {label}]\n{match.content}"
        )
    body = "\n\n---\n\n".join(blocks)
    return f"KNOWLEDGE BASE CONTEXT:\n\n{body}\n\n(Total sources: {len(matches)})"


def collect_source_urls(matches: Sequence[SearchMatch]) -> list[SourceAttribution]:
    """Best-scoring http(s) URL per source document, top five by score."""
    by_url: dict[str, SourceAttribution] = {}
    for match in matches:
        url = match.metadata.get("source") or match.metadata.get("url")
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            continue
        title = match.metadata.get("title") or match.metadata.get("filename") or match.source_name
        existing = by_url.get(url)
        if existing is None or match.score > existing.score:
            by_url[url] = SourceAttribution(title=title or "Untitled Source", url=url, score=match.score)
    ranked = sorted(by_url.values(), key=lambda item: item.score, reverse=True)
    return ranked[:MAX_SOURCE_URLS]


__all__ = [
    "NO_CONTEXT",
    "KnowledgeAggregator",
    "KnowledgeContext",
    "SourceAttribution",
    "format_context",
    "collect_source_urls",
]
