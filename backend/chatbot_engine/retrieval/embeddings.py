"""Embedding model used for knowledge chunks and search queries."""

from __future__ import annotations

import hashlib
import math
import re
from array import array
from dataclasses import dataclass
from typing import Iterable, Sequence

_TOKEN_RE = re.compile(r"\w+")


@dataclass(slots=True)
class EmbeddingBatch:
    vectors: list[list[float]]
    model: str
    dim: int


class EmbeddingModel:
    """Deterministic hashed bag-of-words embeddings, one instance per model name.

    Vectors are L2-normalized with non-negative components, so cosine scores
    between two of them fall in [0, 1].
    """

    _instances: dict[tuple[str, int], "EmbeddingModel"] = {}

    def __init__(self, model_name: str, dim: int = 384) -> None:
        self.model_name = model_name
        self._dim = dim

    @classmethod
    def get(cls, model_name: str, dim: int = 384) -> "EmbeddingModel":
        key = (model_name or "hashed", dim)
        if key not in cls._instances:
            cls._instances[key] = EmbeddingModel(model_name=key[0], dim=dim)
        return cls._instances[key]

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: Iterable[str]) -> EmbeddingBatch:
        vectors = [self._embed(text) for text in texts]
        return EmbeddingBatch(vectors=vectors, model=self.model_name, dim=self._dim)

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _embed(self, text: str) -> list[float]:
        vector = [0.0] * self._dim
        for token in _TOKEN_RE.findall(text.lower()):
            vector[_hash_token(token, self._dim)] += 1.0
        _normalize(vector)
        return vector


def vector_to_bytes(vector: Sequence[float]) -> bytes:
    return array("f", vector).tobytes()


def vector_from_bytes(payload: bytes) -> list[float]:
    floats = array("f")
    floats.frombytes(payload)
    return list(floats)


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = ["EmbeddingModel", "EmbeddingBatch", "vector_to_bytes", "vector_from_bytes"]
