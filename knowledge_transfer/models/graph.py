"""
Knowledge graph models.

A graph wraps knowledge items as nodes and connects them with typed,
weighted relationships. Graphs are immutable snapshots: every model here
is frozen, and construction validates endpoint integrity and id
uniqueness.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from .base import Knowledge, KnowledgeType, utcnow


class KnowledgeGraphError(Exception):
    """Base exception for knowledge graph operations."""
    pass


class RelationshipType(str, Enum):
    """Types of relationships between knowledge nodes."""
    RELATED = "related"
    DEPENDS_ON = "depends_on"
    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    SIMILAR_TO = "similar_to"
    CONTRADICTS = "contradicts"
    REPLACES = "replaces"
    CUSTOM = "custom"


class RelationshipDirection(str, Enum):
    UNI = "uni"
    BI = "bi"


class NodeMetadata(BaseModel):
    """Derived scoring metadata for a node. Extra keys are kept as-is."""

    importance: float = Field(default=0.5, ge=0.0, le=1.0)
    centrality: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    community: Optional[str] = None

    model_config = {"extra": "allow", "frozen": True}


class KnowledgeNode(BaseModel):
    """A graph vertex wrapping exactly one knowledge item."""

    id: str
    knowledge: Knowledge
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    model_config = {"from_attributes": True, "frozen": True}

    @model_validator(mode="after")
    def _check_knowledge_id(self) -> "KnowledgeNode":
        if self.id != self.knowledge.id:
            raise ValueError(
                f"Node id {self.id!r} does not match knowledge id {self.knowledge.id!r}"
            )
        return self

    @property
    def importance(self) -> float:
        return self.metadata.importance

    @property
    def source_project(self) -> str:
        return self.knowledge.source_project

    def metadata_dict(self) -> Dict[str, Any]:
        """Metadata as a plain dict, extra keys included."""
        return self.metadata.model_dump()


class RelationshipMetadata(BaseModel):
    """Provenance and confidence for a relationship. Extra keys allowed."""

    created_at: datetime = Field(default_factory=utcnow)
    created_by: str = "system"
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = {"extra": "allow", "frozen": True}


class KnowledgeRelationship(BaseModel):
    """A typed, weighted edge between two nodes of the same graph."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    source_id: str
    target_id: str
    type: RelationshipType
    strength: float = Field(..., ge=0.0, le=1.0)
    direction: RelationshipDirection = RelationshipDirection.UNI
    metadata: RelationshipMetadata = Field(default_factory=RelationshipMetadata)

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def confidence(self) -> float:
        return self.metadata.confidence

    def connects(self, node_a: str, node_b: str) -> bool:
        """Whether this edge joins the two nodes, in either direction."""
        return (
            (self.source_id == node_a and self.target_id == node_b)
            or (self.source_id == node_b and self.target_id == node_a)
        )

    def metadata_dict(self) -> Dict[str, Any]:
        return self.metadata.model_dump()


class GraphMetadata(BaseModel):
    """Graph-level metadata. Extra keys (query, parent graphs...) allowed."""

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    projects: List[str] = Field(default_factory=list)
    knowledge_types: List[KnowledgeType] = Field(default_factory=list)

    model_config = {"extra": "allow", "frozen": True}


class KnowledgeGraph(BaseModel):
    """
    A complete knowledge graph snapshot.

    Invariants checked on construction:
    - node and relationship dict keys equal the ids of their values
    - every relationship endpoint keys a node of this graph
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    description: Optional[str] = None
    nodes: Dict[str, KnowledgeNode] = Field(default_factory=dict)
    relationships: Dict[str, KnowledgeRelationship] = Field(default_factory=dict)
    metadata: GraphMetadata = Field(default_factory=GraphMetadata)

    model_config = {"from_attributes": True, "frozen": True}

    @model_validator(mode="after")
    def _check_integrity(self) -> "KnowledgeGraph":
        for key, node in self.nodes.items():
            if key != node.id:
                raise ValueError(f"Node keyed as {key!r} has id {node.id!r}")

        for key, rel in self.relationships.items():
            if key != rel.id:
                raise ValueError(f"Relationship keyed as {key!r} has id {rel.id!r}")
            missing = [
                endpoint for endpoint in (rel.source_id, rel.target_id)
                if endpoint not in self.nodes
            ]
            if missing:
                raise ValueError(
                    f"Relationship {rel.id} references missing node(s): {', '.join(missing)}"
                )
        return self

    # =========================================================
    # ACCESSORS
    # =========================================================

    @property
    def node_ids(self) -> Set[str]:
        return set(self.nodes)

    @property
    def relationship_ids(self) -> Set[str]:
        return set(self.relationships)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def relationship_count(self) -> int:
        return len(self.relationships)

    def get_node(self, node_id: str) -> Optional[KnowledgeNode]:
        return self.nodes.get(node_id)

    def iter_relationships(self, node_id: str) -> Iterator[KnowledgeRelationship]:
        """Relationships touching a node, in either direction."""
        for rel in self.relationships.values():
            if rel.source_id == node_id or rel.target_id == node_id:
                yield rel

    def neighbors(self, node_id: str) -> List[str]:
        """Ids of nodes directly connected to ``node_id``."""
        result: List[str] = []
        for rel in self.iter_relationships(node_id):
            other = rel.target_id if rel.source_id == node_id else rel.source_id
            if other not in result:
                result.append(other)
        return result

    def find_relationship(self, node_a: str, node_b: str) -> Optional[KnowledgeRelationship]:
        """First relationship joining two nodes, in either direction."""
        for rel in self.relationships.values():
            if rel.connects(node_a, node_b):
                return rel
        return None

    def has_relationship_between(self, node_a: str, node_b: str) -> bool:
        return self.find_relationship(node_a, node_b) is not None
