"""
Graph Builder - constructs knowledge graphs from a knowledge query.

Nodes come from a single read of the knowledge store. Edges come from
relationships the knowledge items declare, plus implicit SIMILAR_TO
edges inferred by a bounded similarity scan.
"""

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..config import ConfigurationError, build_option_overrides
from ..models import (
    Knowledge,
    KnowledgeGraph,
    KnowledgeNode,
    KnowledgeQuery,
    KnowledgeRelationship,
    KnowledgeType,
    GraphMetadata,
    NodeMetadata,
    RelationshipDirection,
    RelationshipMetadata,
    RelationshipType,
)
from ..storage import KnowledgeStore, ProjectContextProvider
from .similarity import find_similar_pairs


logger = logging.getLogger(__name__)

BUILDER_NAME = "graph-builder"

# Strength of relationships the knowledge declares itself
RELATED_STRENGTH = 0.8
DEPENDENCY_STRENGTH = 0.9


class GraphBuildOptions(BaseModel):
    """Options for building a knowledge graph."""

    name: str = "Knowledge Graph"
    description: Optional[str] = None

    # Filters forwarded to the knowledge store
    project_ids: List[str] = Field(default_factory=list)
    knowledge_types: List[KnowledgeType] = Field(default_factory=list)

    include_relationships: bool = True
    min_relationship_strength: float = Field(default=0.3, ge=0.0, le=1.0)

    detect_implicit_relationships: bool = True
    min_implicit_similarity: float = Field(default=0.7, ge=0.0, le=1.0)
    max_implicit_relationships: int = Field(default=100, ge=0)
    # Work budget for the O(n^2) scan; None means unbounded
    max_implicit_comparisons: Optional[int] = Field(default=None, ge=0)

    @classmethod
    def from_env(cls, **overrides) -> "GraphBuildOptions":
        """Defaults with environment overrides, then explicit overrides."""
        try:
            return cls(**{**build_option_overrides(), **overrides})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid graph build options: {e}") from e


def calculate_importance(knowledge: Knowledge) -> float:
    """
    Importance of a knowledge item from its usage counters.

    Base 0.5, plus up to 0.3 for accesses, 0.3 for applications and
    0.2 for the number of projects it was applied in; capped to [0, 1].
    """
    importance = 0.5
    importance += min(0.3, knowledge.access_count / 20)
    importance += min(0.3, knowledge.application_count / 10)
    importance += min(0.2, len(knowledge.applied_projects) / 5)
    return max(0.0, min(1.0, importance))


class GraphBuilder:
    """
    Builds knowledge graphs from knowledge store queries.

    The store is read exactly once per build; references to knowledge
    outside the query result are dropped rather than fetched.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        project_context: Optional[ProjectContextProvider] = None,
    ):
        self._store = store
        self._project_context = project_context

    async def build_graph(
        self,
        query: Optional[KnowledgeQuery] = None,
        options: Optional[GraphBuildOptions] = None,
    ) -> KnowledgeGraph:
        """
        Build a knowledge graph from a query.

        Args:
            query: Knowledge filter; project and type filters from the
                options are added to it
            options: Build options (environment defaults when omitted)

        Returns:
            A new, validated knowledge graph. An empty query result
            yields an empty graph.
        """
        options = options or GraphBuildOptions.from_env()
        query = self._apply_filters(query or KnowledgeQuery(), options)

        # Store errors propagate unchanged
        items = await self._store.query(query)

        nodes: Dict[str, KnowledgeNode] = {}
        for knowledge in items:
            if knowledge.id in nodes:
                logger.debug(f"Duplicate knowledge {knowledge.id} in query result, keeping first")
                continue
            nodes[knowledge.id] = self.create_node(knowledge)

        relationships: Dict[str, KnowledgeRelationship] = {}
        if options.include_relationships:
            for rel in self._explicit_relationships(nodes, options.min_relationship_strength):
                relationships[rel.id] = rel

        implicit_count = 0
        if options.detect_implicit_relationships:
            for rel in self._implicit_relationships(nodes, relationships, options):
                relationships[rel.id] = rel
                implicit_count += 1

        graph = KnowledgeGraph(
            name=options.name,
            description=options.description,
            nodes=nodes,
            relationships=relationships,
            metadata=GraphMetadata(
                projects=ordered_unique(node.source_project for node in nodes.values()),
                knowledge_types=ordered_unique(node.knowledge.type for node in nodes.values()),
                query=query.model_dump_json(exclude_defaults=True),
            ),
        )

        logger.info(
            f"Built graph {graph.id} '{graph.name}': {graph.node_count} nodes, "
            f"{graph.relationship_count} relationships ({implicit_count} implicit)"
        )
        return graph

    def create_node(self, knowledge: Knowledge) -> KnowledgeNode:
        """Wrap a knowledge item in a node with derived importance."""
        return KnowledgeNode(
            id=knowledge.id,
            knowledge=knowledge,
            metadata=NodeMetadata(
                importance=calculate_importance(knowledge),
                created_at=knowledge.created_at,
            ),
        )

    # =========================================================
    # HELPER METHODS
    # =========================================================

    def _apply_filters(self, query: KnowledgeQuery, options: GraphBuildOptions) -> KnowledgeQuery:
        """Merge the option filters into the query without mutating it."""
        updates = {}
        if options.project_ids:
            updates["source_projects"] = ordered_unique([*query.source_projects, *options.project_ids])
        if options.knowledge_types:
            updates["types"] = ordered_unique([*query.types, *options.knowledge_types])
        return query.model_copy(update=updates) if updates else query

    def _explicit_relationships(
        self,
        nodes: Dict[str, KnowledgeNode],
        min_strength: float,
    ) -> List[KnowledgeRelationship]:
        """Edges for references the knowledge items declare."""
        declared = [
            (RelationshipType.RELATED, RELATED_STRENGTH, RelationshipDirection.BI, "related_ids"),
            (RelationshipType.DEPENDS_ON, DEPENDENCY_STRENGTH, RelationshipDirection.UNI, "dependency_ids"),
        ]

        relationships: List[KnowledgeRelationship] = []
        for node_id, node in nodes.items():
            for rel_type, strength, direction, attribute in declared:
                if strength < min_strength:
                    continue
                for target_id in getattr(node.knowledge, attribute):
                    if target_id == node_id:
                        continue
                    if target_id not in nodes:
                        logger.debug(
                            f"Dropping {rel_type.value} reference {node_id} -> {target_id}: "
                            f"target outside graph"
                        )
                        continue
                    relationships.append(
                        create_relationship(node_id, target_id, rel_type, strength, direction)
                    )
        return relationships

    def _implicit_relationships(
        self,
        nodes: Dict[str, KnowledgeNode],
        existing: Dict[str, KnowledgeRelationship],
        options: GraphBuildOptions,
    ) -> List[KnowledgeRelationship]:
        """SIMILAR_TO edges between sufficiently similar, unlinked nodes."""
        scan = find_similar_pairs(
            list(nodes.values()),
            existing.values(),
            min_similarity=options.min_implicit_similarity,
            max_pairs=options.max_implicit_relationships,
            max_comparisons=options.max_implicit_comparisons,
            project_context=self._project_context,
        )
        logger.debug(
            f"Implicit relationship scan: {scan.comparisons} comparisons, "
            f"{len(scan.pairs)} matches"
        )
        return [
            create_relationship(
                pair.source.id,
                pair.target.id,
                RelationshipType.SIMILAR_TO,
                pair.similarity,
                RelationshipDirection.BI,
                inferred=True,
            )
            for pair in scan.pairs
        ]


def create_relationship(
    source_id: str,
    target_id: str,
    rel_type: RelationshipType,
    strength: float,
    direction: RelationshipDirection,
    created_by: str = BUILDER_NAME,
    **extra,
) -> KnowledgeRelationship:
    """Create a relationship whose confidence equals its strength."""
    return KnowledgeRelationship(
        source_id=source_id,
        target_id=target_id,
        type=rel_type,
        strength=strength,
        direction=direction,
        metadata=RelationshipMetadata(created_by=created_by, confidence=strength, **extra),
    )


def ordered_unique(values) -> list:
    """Distinct values in first-appearance order."""
    seen: list = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
