"""Citation assembly — numbered evidence for the prompt, sources for the UI.

Both outputs are built from the same ordered list of contexts in a single
pass, so ``[n]`` in the generated answer always points at
``sources[n - 1]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hybrid_rag.models import SourceReference
from hybrid_rag.providers.prompts import build_grounded_prompt

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

    from hybrid_rag.models import HybridContext

PREVIEW_LENGTH = 150
ELLIPSIS = "..."
RANK_DECAY = 0.1


@dataclass
class CitationBundle:
    """Evidence rendered for the generator plus the parallel source list."""

    context_block: str
    sources: list[SourceReference] = field(default_factory=list)


def normalize_content(text: str) -> str:
    """Collapse newlines to spaces and trim."""
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ").strip()


def preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """First *length* characters, with an ellipsis marker only if truncated."""
    if len(text) > length:
        return f"{text[:length]}{ELLIPSIS}"
    return text


def relevance_for(rank: int, score: float | None = None) -> float:
    """Relevance in ``[0, 1]``.

    Uses the store's similarity *score* when there is one; otherwise falls
    back to a rank placeholder that decreases by 0.1 per position.
    """
    value = score if score is not None else 1.0 - RANK_DECAY * rank
    return round(min(1.0, max(0.0, value)), 4)


class CitationPromptAssembler:
    """Builds the grounding prompt and the UI-facing source list."""

    def assemble(self, contexts: list[HybridContext]) -> CitationBundle:
        blocks: list[str] = []
        sources: list[SourceReference] = []
        for rank, ctx in enumerate(contexts):
            index = rank + 1
            content = normalize_content(ctx.content)
            concepts = list(ctx.connected_entities)

            blocks.append(
                f"SOURCE [{index}]:\n"
                f"- Content: {content}\n"
                f"- Related concepts: [{', '.join(concepts)}]"
            )
            sources.append(
                SourceReference(
                    index=index,
                    chunk_id=ctx.chunk_id,
                    short_content=preview(content),
                    relevance=relevance_for(rank, ctx.score),
                    concepts=concepts,
                )
            )
        return CitationBundle(context_block="\n\n".join(blocks), sources=sources)

    def build_messages(self, question: str, bundle: CitationBundle) -> list[BaseMessage]:
        return build_grounded_prompt(question, bundle.context_block)
