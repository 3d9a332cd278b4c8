"""Text chunking strategies."""

from __future__ import annotations

from typing import Any

from langchain_text_splitters import TextSplitter

CHUNK_SIZE = 1500
CHUNK_OVERLAP = 200


def split_text(
    text: str,
    chunk_size: int = CHUNK_SIZE,
    chunk_overlap: int = CHUNK_OVERLAP,
) -> list[str]:
    """Split *text* into overlapping windows that avoid cutting words.

    Each window ends on the last whitespace before ``start + chunk_size``.
    A single token longer than *chunk_size* is hard-cut at the window
    boundary.  The cursor always advances by at least one character, so the
    loop terminates for any input; it stops as soon as a chunk reaches the
    end of the text.

    Parameters
    ----------
    text:
        Raw document text.
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of characters shared by consecutive chunks.

    Returns
    -------
    list[str]
        Chunks ordered by their start offset; their union covers *text*.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0 or chunk_overlap >= chunk_size:
        raise ValueError(
            f"chunk_overlap ({chunk_overlap}) must be in [0, chunk_size={chunk_size})"
        )

    chunks: list[str] = []
    length = len(text)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)

        actual_end = end
        if actual_end < length:
            while actual_end > start and not text[actual_end].isspace():
                actual_end -= 1
        if actual_end == start:
            actual_end = end

        chunks.append(text[start:actual_end])
        if actual_end >= length:
            break
        start += max(1, (actual_end - start) - chunk_overlap)
    return chunks


class SlidingWindowTextSplitter(TextSplitter):
    """LangChain splitter wrapper around :func:`split_text`.

    The ingestion pipeline splits through this class; ``split_documents``
    also works and copies metadata onto every chunk.
    """

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("strip_whitespace", False)
        super().__init__(chunk_size=chunk_size, chunk_overlap=chunk_overlap, **kwargs)

    def split_text(self, text: str) -> list[str]:
        return split_text(text, self._chunk_size, self._chunk_overlap)

