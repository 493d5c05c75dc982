"""Knowledge ingestion: chunk, embed, persist and index plain text."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import orjson

from chatbot_engine.core.errors import NotFoundError, ValidationError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.core.metrics import INDEXED_CHUNKS
from chatbot_engine.db.sqlite import SQLiteDatabase
from chatbot_engine.ingest.chunker import TextChunk, chunk_document
from chatbot_engine.retrieval.embeddings import EmbeddingModel, vector_to_bytes
from chatbot_engine.retrieval.vector_index import IndexedChunk, IndexRegistry
from chatbot_engine.utils.time import now_ms

logger = get_logger(__name__)


@dataclass(slots=True)
class IngestResult:
    source_id: str
    chunk_ids: list[str] = field(default_factory=list)

    @property
    def chunks(self) -> int:
        return len(self.chunk_ids)

    def to_dict(self) -> dict[str, Any]:
        return {"source_id": self.source_id, "chunks": self.chunks, "chunk_ids": list(self.chunk_ids)}


class KnowledgeIngestor:
    """Populate a knowledge source from raw text."""

    def __init__(
        self,
        database: SQLiteDatabase,
        embedding_model: EmbeddingModel,
        registry: IndexRegistry | None = None,
        max_words: int = 220,
        min_words: int = 60,
        overlap_words: int = 30,
    ) -> None:
        self.db = database
        self.embedding_model = embedding_model
        self.registry = registry
        self.max_words = max_words
        self.min_words = min_words
        self.overlap_words = overlap_words

    def ingest_text(self, source_id: str, text: str, metadata: dict[str, Any] | None = None) -> IngestResult:
        if self.db.query_one("SELECT id FROM knowledge_sources WHERE id = ?", [source_id]) is None:
            raise NotFoundError(f"Knowledge source {source_id} not found")
        if not text.strip():
            raise ValidationError("Document text is empty")

        chunks = chunk_document(
            text,
            max_words=self.max_words,
            min_words=self.min_words,
            overlap_words=self.overlap_words,
        )
        base_meta = dict(metadata or {})
        offset = self._next_ordinal(source_id)
        batch = self.embedding_model.encode([chunk.text for chunk in chunks])
        now = now_ms()

        with self.db.transaction() as conn:
            conn.executemany(
                "INSERT INTO chunks (id, source_id, ordinal, text, meta_json, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (
                        chunk.id,
                        source_id,
                        offset + chunk.ordinal,
                        chunk.text,
                        orjson.dumps(_chunk_metadata(base_meta, chunk)).decode("utf-8"),
                        now,
                    )
                    for chunk in chunks
                ],
            )
            conn.executemany(
                "INSERT INTO embeddings (chunk_id, model, dim, vector, created_at) VALUES (?, ?, ?, ?, ?)",
                [
                    (chunk.id, batch.model, batch.dim, vector_to_bytes(vector), now)
                    for chunk, vector in zip(chunks, batch.vectors)
                ],
            )

        if self.registry is not None:
            self.registry.get(source_id).upsert(
                [
                    IndexedChunk(
                        chunk_id=chunk.id,
                        text=chunk.text,
                        vector=vector,
                        metadata=_chunk_metadata(base_meta, chunk),
                    )
                    for chunk, vector in zip(chunks, batch.vectors)
                ]
            )
        self._update_index_metric()
        logger.info("Ingested %s chunks into source %s", len(chunks), source_id)
        return IngestResult(source_id=source_id, chunk_ids=[chunk.id for chunk in chunks])

    def _next_ordinal(self, source_id: str) -> int:
        row = self.db.query_one("SELECT COALESCE(MAX(ordinal) + 1, 0) AS next FROM chunks WHERE source_id = ?", [source_id])
        return int(row["next"]) if row else 0

    def _update_index_metric(self) -> None:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM chunks")
        INDEXED_CHUNKS.set(int(row["count"]) if row else 0)


def _chunk_metadata(base: dict[str, Any], chunk: TextChunk) -> dict[str, Any]:
    meta = dict(base)
    meta.update(chunk.metadata)
    meta["start_char"] = chunk.start_char
    meta["end_char"] = chunk.end_char
    return meta


__all__ = ["KnowledgeIngestor", "IngestResult"]
