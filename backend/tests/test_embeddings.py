"""Tests for embedding utilities."""

from chatbot_engine.retrieval.embeddings import EmbeddingModel, vector_from_bytes, vector_to_bytes


def test_encoded_vectors_have_model_dim_and_unit_norm() -> None:
    model = EmbeddingModel.get("dummy-model")
    vectors = model.encode(["hello", "world"]).vectors
    assert len(vectors) == 2
    assert all(len(vec) == model.dim for vec in vectors)
    assert abs(sum(value * value for value in vectors[0]) - 1.0) < 1e-6


def test_instances_are_shared_per_name_and_dim() -> None:
    assert EmbeddingModel.get("m", 64) is EmbeddingModel.get("m", 64)
    assert EmbeddingModel.get("m", 32).dim == 32


def test_identical_text_scores_one_and_blob_round_trip() -> None:
    model = EmbeddingModel.get("dummy-model", 128)
    query = model.embed_query("Office hours are nine to five")
    doc = model.encode(["office hours are nine to five."]).vectors[0]
    assert abs(sum(a * b for a, b in zip(query, doc)) - 1.0) < 1e-6
    restored = vector_from_bytes(vector_to_bytes(doc))
    assert len(restored) == 128
    assert all(abs(a - b) < 1e-6 for a, b in zip(restored, doc))
