"""Paragraph and sentence aware chunking of knowledge documents."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

from chatbot_engine.utils.ids import new_id

_PARAGRAPH_RE = re.compile(r"\n\s*\n")
_SENTENCE_RE = re.compile(r"[^.!?\n]+[.!?]?")


@dataclass(slots=True)
class Span:
    text: str
    start: int
    end: int

    @property
    def words(self) -> int:
        return count_words(self.text)


@dataclass(slots=True)
class TextChunk:
    id: str
    ordinal: int
    text: str
    start_char: int
    end_char: int
    word_count: int
    metadata: dict[str, Any] = field(default_factory=dict)


def chunk_document(
    text: str,
    max_words: int = 220,
    min_words: int = 60,
    overlap_words: int = 30,
) -> list[TextChunk]:
    """Greedy packing of paragraphs (split into sentences when too long) into chunks.

    A chunk is closed once adding the next span would exceed ``max_words`` and
    the chunk already holds ``min_words``. Trailing spans worth at most
    ``overlap_words`` are repeated at the start of the following chunk.
    """
    if not text.strip():
        return []

    spans: list[Span] = []
    for paragraph in _paragraphs(text):
        spans.extend(_fit(paragraph, max_words))

    groups: list[list[Span]] = []
    current: list[Span] = []
    current_words = 0
    for span in spans:
        if current and current_words + span.words > max_words and current_words >= min_words:
            groups.append(current)
            current = _overlap_tail(current, overlap_words)
            current_words = sum(item.words for item in current)
        current.append(span)
        current_words += span.words
    if current:
        groups.append(current)

    chunks = []
    for ordinal, group in enumerate(groups):
        start, end = group[0].start, group[-1].end
        body = text[start:end]
        chunks.append(
            TextChunk(
                id=new_id("chk"),
                ordinal=ordinal,
                text=body,
                start_char=start,
                end_char=end,
                word_count=count_words(body),
                metadata={"span_count": len(group)},
            )
        )
    return chunks


def count_words(text: str) -> int:
    return max(1, len(text.split()))


def _paragraphs(text: str) -> Iterator[Span]:
    cursor = 0
    for match in _PARAGRAPH_RE.finditer(text):
        span = _strip(text, cursor, match.start())
        if span:
            yield span
        cursor = match.end()
    if cursor < len(text):
        span = _strip(text, cursor, len(text))
        if span:
            yield span


def _strip(text: str, start: int, end: int) -> Span | None:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return Span(text=text[start:end], start=start, end=end)


def _fit(span: Span, max_words: int) -> list[Span]:
    if span.words <= max_words:
        return [span]
    sentences = list(_sentences(span))
    if len(sentences) > 1:
        fitted: list[Span] = []
        for sentence in sentences:
            fitted.extend(_fit(sentence, max_words))
        return fitted
    return _split_words(span, max_words)


def _sentences(span: Span) -> Iterator[Span]:
    for match in _SENTENCE_RE.finditer(span.text):
        stripped = _strip(span.text, match.start(), match.end())
        if stripped:
            yield Span(
                text=stripped.text,
                start=span.start + stripped.start,
                end=span.start + stripped.end,
            )


def _split_words(span: Span, max_words: int) -> list[Span]:
    pieces: list[Span] = []
    positions = [match.span() for match in re.finditer(r"\S+", span.text)]
    for offset in range(0, len(positions), max_words):
        window = positions[offset : offset + max_words]
        start, end = window[0][0], window[-1][1]
        pieces.append(Span(text=span.text[start:end], start=span.start + start, end=span.start + end))
    return pieces


def _overlap_tail(spans: Sequence[Span], overlap_words: int) -> list[Span]:
    if overlap_words <= 0:
        return []
    kept: list[Span] = []
    budget = 0
    for span in reversed(spans):
        if budget + span.words > overlap_words:
            break
        kept.append(span)
        budget += span.words
    return list(reversed(kept))


__all__ = ["TextChunk", "chunk_document", "count_words"]
