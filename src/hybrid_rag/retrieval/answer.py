"""Question answering over the hybrid knowledge base."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hybrid_rag.errors import ValidationError
from hybrid_rag.models import ChatResponse
from hybrid_rag.retrieval.citations import CitationPromptAssembler

if TYPE_CHECKING:
    from hybrid_rag.providers.shared import SharedAIService
    from hybrid_rag.retrieval.retriever import HybridRetriever

logger = logging.getLogger(__name__)


async def answer_question(
    question: str,
    *,
    ai: SharedAIService,
    retriever: HybridRetriever,
    assembler: CitationPromptAssembler | None = None,
    k: int | None = None,
) -> ChatResponse:
    """Embed *question*, retrieve grounded contexts and generate a cited answer.

    The generator's raw output is returned as-is together with the sources
    whose indices the ``[n]`` markers refer to.
    """
    if not question.strip():
        raise ValidationError("Message must not be empty")
    assembler = assembler or CitationPromptAssembler()

    embedding = await ai.generate_embedding(question)
    contexts = await retriever.retrieve(embedding, k=k)
    bundle = assembler.assemble(contexts)

    answer = await ai.generate(assembler.build_messages(question, bundle))
    logger.info(
        "Answered question with %d source(s), %d chars", len(bundle.sources), len(answer)
    )
    return ChatResponse(response=answer, sources=bundle.sources)
