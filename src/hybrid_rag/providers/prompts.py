"""Prompt templates used by the provider and the chat flow.

Keeping prompts in one place makes them easy to audit and version.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

# ── 1. Knowledge extraction ───────────────────────────────────────────

EXTRACTION_SYSTEM = """\
You are an expert Ontology Engineer. Extract entities and relationships
from the text supplied by the user.

Return strictly a JSON object with this structure:

  {"entities": [{"name": "...", "category": "..."}],
   "relations": [{"source": "...", "target": "...", "relation_type": "..."}]}

Rules:
- "source" and "target" must be entity names listed in "entities".
- Use short, canonical entity names so the same entity gets the same name
  across passages.
- Respond with **only** valid JSON — no markdown fences, no commentary.
"""


def build_extraction_prompt(text: str) -> list[BaseMessage]:
    """Build the prompt for per-chunk knowledge extraction."""
    return [
        SystemMessage(content=EXTRACTION_SYSTEM),
        HumanMessage(content=text),
    ]


# ── 2. Grounded answer with citations ─────────────────────────────────

GROUNDING_SYSTEM = """\
You are a knowledge assistant that answers using a knowledge graph and the
passages retrieved from it.

Rules:
1. Answer the user's question using **only** the SOURCES listed below.
2. Do not use outside knowledge that the sources do not support.
3. Cite every statement with the number of its source in the form [n],
   e.g. "The patient has a high fever [1] and chronic fatigue [2]."
4. When a statement combines several sources, chain the markers: [1][3].
5. Use Markdown to structure the answer (bold, lists, headings).
6. If the sources are insufficient, say so clearly.

RETRIEVED SOURCES:
{context}
"""


def build_grounded_prompt(question: str, context_block: str) -> list[BaseMessage]:
    """Build the chat messages for a citation-grounded answer.

    Parameters
    ----------
    question:
        The user's original question, passed through unchanged.
    context_block:
        Numbered sources rendered by
        :class:`~hybrid_rag.retrieval.citations.CitationPromptAssembler`.
    """
    return [
        SystemMessage(content=GROUNDING_SYSTEM.format(context=context_block)),
        HumanMessage(content=question),
    ]
