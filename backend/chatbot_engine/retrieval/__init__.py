"""Knowledge retrieval components."""

from .aggregator import KnowledgeAggregator, KnowledgeContext, SourceAttribution
from .embeddings import EmbeddingModel
from .search import KnowledgeSearch
from .vector_index import IndexRegistry, VectorIndex

__all__ = [
    "KnowledgeAggregator",
    "KnowledgeContext",
    "SourceAttribution",
    "EmbeddingModel",
    "KnowledgeSearch",
    "IndexRegistry",
    "VectorIndex",
]
