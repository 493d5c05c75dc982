"""In-memory vector indexes, one per knowledge source."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Any, Sequence

import orjson

from chatbot_engine.core.errors import DimensionMismatchError
from chatbot_engine.db.sqlite import SQLiteDatabase
from chatbot_engine.retrieval.embeddings import vector_from_bytes


@dataclass(slots=True)
class IndexedChunk:
    chunk_id: str
    text: str
    vector: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class SearchResult:
    chunk_id: str
    text: str
    score: float
    metadata: dict[str, Any]


class VectorIndex:
    """Cosine-similarity index for a single knowledge source.

    The dimensionality is fixed by the first vector stored (or by ``dim``).
    Any later upsert or query with a different length raises
    DimensionMismatchError instead of scoring.
    """

    def __init__(self, dim: int | None = None) -> None:
        self.dim = dim
        self._chunks: list[IndexedChunk] = []
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return len(self._chunks)

    def upsert(self, chunks: Sequence[IndexedChunk]) -> None:
        if not chunks:
            return
        with self._lock:
            expected = self.dim if self.dim is not None else len(chunks[0].vector)
            for chunk in chunks:
                if len(chunk.vector) != expected:
                    raise DimensionMismatchError(expected, len(chunk.vector))
            self.dim = expected
            known = {chunk.chunk_id: idx for idx, chunk in enumerate(self._chunks)}
            for chunk in chunks:
                if chunk.chunk_id in known:
                    self._chunks[known[chunk.chunk_id]] = chunk
                else:
                    known[chunk.chunk_id] = len(self._chunks)
                    self._chunks.append(chunk)

    def search(self, vector: Sequence[float], top_k: int = 5, threshold: float = 0.0) -> list[SearchResult]:
        """Top ``top_k`` chunks scoring at least ``threshold``, best first."""
        with self._lock:
            chunks = list(self._chunks)
            dim = self.dim
        if not chunks:
            return []
        if len(vector) != dim:
            raise DimensionMismatchError(dim or 0, len(vector))
        query_norm = _norm(vector)
        scored = []
        for chunk in chunks:
            score = _cosine(chunk.vector, vector, query_norm)
            if score >= threshold:
                scored.append((chunk, score))
        scored.sort(key=lambda item: item[1], reverse=True)
        return [
            SearchResult(chunk_id=chunk.chunk_id, text=chunk.text, score=score, metadata=chunk.metadata)
            for chunk, score in scored[:top_k]
        ]


class IndexRegistry:
    """Maps knowledge source ids to their VectorIndex, loaded lazily from sqlite."""

    def __init__(self, db: SQLiteDatabase, model: str) -> None:
        self.db = db
        self.model = model
        self._indexes: dict[str, VectorIndex] = {}
        self._lock = threading.Lock()

    def get(self, source_id: str) -> VectorIndex:
        """Cached index for a source; loads run outside the lock, first one stored wins."""
        with self._lock:
            index = self._indexes.get(source_id)
        if index is not None:
            return index
        loaded = self._load(source_id)
        with self._lock:
            return self._indexes.setdefault(source_id, loaded)

    def invalidate(self, source_id: str | None = None) -> None:
        with self._lock:
            if source_id is None:
                self._indexes.clear()
            else:
                self._indexes.pop(source_id, None)

    def _load(self, source_id: str) -> VectorIndex:
        rows = self.db.query(
            """
            SELECT chunks.id AS chunk_id, chunks.text, chunks.meta_json, embeddings.vector
            FROM chunks
            JOIN embeddings ON embeddings.chunk_id = chunks.id
            WHERE chunks.source_id = ? AND embeddings.model = ?
            ORDER BY chunks.ordinal, chunks.rowid
            """,
            [source_id, self.model],
        )
        index = VectorIndex()
        index.upsert(
            [
                IndexedChunk(
                    chunk_id=row["chunk_id"],
                    text=row["text"],
                    vector=vector_from_bytes(row["vector"]),
                    metadata=orjson.loads(row["meta_json"]) if row["meta_json"] else {},
                )
                for row in rows
            ]
        )
        return index


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(sum(value * value for value in vector))


def _cosine(a: Sequence[float], b: Sequence[float], b_norm: float) -> float:
    a_norm = _norm(a)
    if a_norm == 0 or b_norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / (a_norm * b_norm)


__all__ = ["VectorIndex", "IndexRegistry", "IndexedChunk", "SearchResult"]
