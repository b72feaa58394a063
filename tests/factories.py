"""
Builders for knowledge, nodes and graphs used across the test suite.
"""

from typing import Iterable, Optional

from knowledge_transfer import (
    Knowledge,
    KnowledgeGraph,
    KnowledgeNode,
    KnowledgeRelationship,
    KnowledgeType,
    NodeMetadata,
    RelationshipDirection,
    RelationshipMetadata,
    RelationshipType,
)


def make_knowledge(
    knowledge_id: str,
    project: str = "alpha",
    knowledge_type: KnowledgeType = KnowledgeType.CODE_PATTERN,
    content: str = "",
    tags: Iterable[str] = (),
    **fields,
) -> Knowledge:
    return Knowledge(
        id=knowledge_id,
        type=knowledge_type,
        title=fields.pop("title", knowledge_id.replace("_", " ").title()),
        content=content,
        source_project=project,
        tags=set(tags),
        **fields,
    )


def make_node(
    knowledge_id: str,
    project: str = "alpha",
    importance: float = 0.5,
    metadata: Optional[dict] = None,
    **knowledge_fields,
) -> KnowledgeNode:
    return KnowledgeNode(
        id=knowledge_id,
        knowledge=make_knowledge(knowledge_id, project=project, **knowledge_fields),
        metadata=NodeMetadata(importance=importance, **(metadata or {})),
    )


def make_relationship(
    rel_id: str,
    source_id: str,
    target_id: str,
    strength: float = 0.8,
    rel_type: RelationshipType = RelationshipType.RELATED,
    direction: RelationshipDirection = RelationshipDirection.BI,
    **metadata,
) -> KnowledgeRelationship:
    return KnowledgeRelationship(
        id=rel_id,
        source_id=source_id,
        target_id=target_id,
        type=rel_type,
        strength=strength,
        direction=direction,
        metadata=RelationshipMetadata(**metadata),
    )


def make_graph(
    name: str,
    nodes: Iterable[KnowledgeNode],
    relationships: Iterable[KnowledgeRelationship] = (),
) -> KnowledgeGraph:
    return KnowledgeGraph(
        name=name,
        nodes={node.id: node for node in nodes},
        relationships={rel.id: rel for rel in relationships},
    )
