"""Similarity search over one knowledge source."""

from __future__ import annotations

from chatbot_engine.models.entities import KnowledgeSource, SearchMatch
from chatbot_engine.retrieval.embeddings import EmbeddingModel
from chatbot_engine.retrieval.vector_index import IndexRegistry


class KnowledgeSearch:
    """``search(query, source, limit, threshold) -> ranked matches``.

    Scores are cosine similarities clamped to [0, 1]; a source whose stored
    vectors do not match the query embedding's dimensionality raises
    DimensionMismatchError.
    """

    def __init__(self, registry: IndexRegistry, embedding_model: EmbeddingModel) -> None:
        self.registry = registry
        self.embedding_model = embedding_model

    def search(
        self,
        query: str,
        source: KnowledgeSource,
        limit: int = 5,
        threshold: float = 0.65,
    ) -> list[SearchMatch]:
        index = self.registry.get(source.id)
        if index.size == 0:
            return []
        vector = self.embedding_model.embed_query(query)
        hits = index.search(vector, top_k=limit, threshold=threshold)
        return [
            SearchMatch(
                content=hit.text,
                score=min(1.0, max(0.0, hit.score)),
                source_id=source.id,
                source_name=source.name,
                chunk_id=hit.chunk_id,
                metadata=hit.metadata,
            )
            for hit in hits
        ]


__all__ = ["KnowledgeSearch"]
