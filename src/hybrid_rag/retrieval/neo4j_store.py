"""Neo4j implementation of the knowledge-store abstraction.

Graph layout::

    (:Chunk {id, content, embedding})
    (:Chunk)-[:MENTIONS]->(:Entity {name, category})
    (:Entity)-[:RELATED {type}]->(:Entity)

Entities are merged on ``name`` so the same concept extracted from
different chunks becomes a single node.  Chunk embeddings live in the
``chunk_embeddings`` vector index (cosine similarity).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from hybrid_rag.errors import DatabaseError
from hybrid_rag.models import GraphData, HybridContext, VisEdge, VisNode
from hybrid_rag.retrieval.base import KnowledgeStore

if TYPE_CHECKING:
    from uuid import UUID

    from hybrid_rag.models import KnowledgeExtraction

logger = logging.getLogger(__name__)

VECTOR_INDEX = "chunk_embeddings"

# ── Cypher ─────────────────────────────────────────────────────────────

_SAVE_CHUNK = """
CREATE (c:Chunk {id: $id, content: $content, embedding: $embedding, created_at: datetime()})
"""

_SAVE_ENTITIES = """
MATCH (c:Chunk {id: $chunk_id})
UNWIND $entities AS ent
MERGE (e:Entity {name: ent.name})
ON CREATE SET e.category = ent.category
MERGE (c)-[:MENTIONS]->(e)
"""

_SAVE_RELATIONS = """
UNWIND $relations AS rel
MERGE (s:Entity {name: rel.source})
ON CREATE SET s.category = 'Concept'
MERGE (t:Entity {name: rel.target})
ON CREATE SET t.category = 'Concept'
MERGE (s)-[r:RELATED {type: rel.relation_type}]->(t)
"""

_HYBRID_CONTEXT = f"""
CALL db.index.vector.queryNodes('{VECTOR_INDEX}', $k, $embedding)
YIELD node, score
OPTIONAL MATCH (node)-[:MENTIONS]->(e:Entity)
OPTIONAL MATCH (e)-[:RELATED]-(n:Entity)
WITH node, score, collect(DISTINCT e.name) AS direct, collect(DISTINCT n.name) AS neighbours
RETURN node.id AS chunk_id, node.content AS content, score, direct, neighbours
ORDER BY score DESC
"""

_GRAPH_NODES = "MATCH (e:Entity) RETURN e.name AS name, e.category AS category"

_GRAPH_EDGES = """
MATCH (s:Entity)-[r:RELATED]->(t:Entity)
RETURN s.name AS source, t.name AS target, r.type AS label
"""


class Neo4jKnowledgeStore(KnowledgeStore):
    """Neo4j-backed knowledge store.

    Parameters
    ----------
    driver:
        An open async driver.  Use :meth:`connect` to build one from
        credentials.
    database:
        Target database name.
    max_neighbours:
        Cap on graph neighbours attached to each retrieved chunk.
    """

    def __init__(
        self,
        driver: AsyncDriver,
        *,
        database: str = "neo4j",
        max_neighbours: int = 15,
    ) -> None:
        self._driver = driver
        self._database = database
        self._max_neighbours = max_neighbours

    @classmethod
    async def connect(
        cls,
        uri: str,
        user: str,
        password: str,
        *,
        database: str = "neo4j",
    ) -> Neo4jKnowledgeStore:
        """Open a driver and verify connectivity."""
        driver = AsyncGraphDatabase.driver(uri, auth=(user, password))
        try:
            await driver.verify_connectivity()
        except (Neo4jError, DriverError, OSError) as exc:
            await driver.close()
            raise DatabaseError(f"Cannot connect to Neo4j at {uri}: {exc}") from exc
        logger.info("Connected to Neo4j at %s", uri)
        return cls(driver, database=database)

    async def close(self) -> None:
        await self._driver.close()
        logger.info("Closed Neo4j connection")

    # -- low-level helpers ----------------------------------------------------

    async def _execute_write(self, query: str, parameters: dict[str, Any] | None = None) -> None:
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(query, parameters or {})
                await result.consume()
        except (Neo4jError, DriverError, OSError) as exc:
            raise DatabaseError(f"Neo4j write failed: {exc}") from exc

    async def _execute_read(
        self, query: str, parameters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        try:
            async with self._driver.session(database=self._database) as session:
                result = await session.run(query, parameters or {})
                return await result.data()
        except (Neo4jError, DriverError, OSError) as exc:
            raise DatabaseError(f"Neo4j read failed: {exc}") from exc

    # -- KnowledgeStore overrides --------------------------------------------

    async def save_chunk(self, chunk_id: UUID, text: str, embedding: list[float]) -> None:
        await self._execute_write(
            _SAVE_CHUNK, {"id": str(chunk_id), "content": text, "embedding": embedding}
        )

    async def save_graph(self, chunk_id: UUID, extraction: KnowledgeExtraction) -> None:
        entities = [e.model_dump() for e in extraction.entities if e.name.strip()]
        relations = [
            r.model_dump()
            for r in extraction.relations
            if r.source.strip() and r.target.strip()
        ]
        if entities:
            await self._execute_write(
                _SAVE_ENTITIES, {"chunk_id": str(chunk_id), "entities": entities}
            )
        if relations:
            await self._execute_write(_SAVE_RELATIONS, {"relations": relations})
        logger.debug(
            "Graph saved for chunk %s: %d entities, %d relations",
            chunk_id,
            len(entities),
            len(relations),
        )

    async def find_hybrid_context(self, embedding: list[float], k: int) -> list[HybridContext]:
        rows = await self._execute_read(_HYBRID_CONTEXT, {"k": k, "embedding": embedding})
        return [
            HybridContext(
                chunk_id=row["chunk_id"],
                content=row["content"] or "",
                connected_entities=merge_entity_names(
                    row.get("direct") or [],
                    row.get("neighbours") or [],
                    limit=self._max_neighbours,
                ),
                score=row.get("score"),
            )
            for row in rows
        ]

    async def get_full_graph(self) -> GraphData:
        nodes = await self._execute_read(_GRAPH_NODES)
        edges = await self._execute_read(_GRAPH_EDGES)
        return GraphData(
            nodes=[
                VisNode(id=n["name"], label=n["name"], group=n.get("category") or "Concept")
                for n in nodes
            ],
            edges=[
                VisEdge(from_=e["source"], to=e["target"], label=e.get("label") or "")
                for e in edges
            ],
        )

    async def reset_database(self) -> None:
        logger.warning("Resetting Neo4j database: deleting all nodes and the vector index")
        await self._execute_write("MATCH (n) DETACH DELETE n")
        await self._execute_write(f"DROP INDEX {VECTOR_INDEX} IF EXISTS")

    async def create_indexes(self, dim: int) -> None:
        dim = int(dim)
        if dim <= 0:
            raise DatabaseError(f"Invalid vector dimension: {dim}")
        await self._execute_write(
            "CREATE CONSTRAINT chunk_id IF NOT EXISTS FOR (c:Chunk) REQUIRE c.id IS UNIQUE"
        )
        await self._execute_write(
            "CREATE CONSTRAINT entity_name IF NOT EXISTS FOR (e:Entity) REQUIRE e.name IS UNIQUE"
        )
        # Index options cannot be parameterised; dim is validated above.
        await self._execute_write(
            f"CREATE VECTOR INDEX {VECTOR_INDEX} IF NOT EXISTS "
            "FOR (c:Chunk) ON (c.embedding) "
            "OPTIONS {indexConfig: {"
            f"`vector.dimensions`: {dim}, "
            "`vector.similarity_function`: 'cosine'}}"
        )
        logger.info("Vector index %s ready (dim=%d)", VECTOR_INDEX, dim)

    async def health_check(self) -> bool:
        try:
            await self._driver.verify_connectivity()
            return True
        except (Neo4jError, DriverError, OSError):
            logger.warning("Neo4j health-check failed", exc_info=True)
            return False


def merge_entity_names(direct: list[str], neighbours: list[str], *, limit: int) -> list[str]:
    """Directly mentioned entities first, then one-hop neighbours, deduplicated."""
    merged: list[str] = []
    seen: set[str] = set()
    for name in [*direct, *neighbours]:
        if name and name not in seen:
            seen.add(name)
            merged.append(name)
    return merged[: max(limit, len(direct))]
