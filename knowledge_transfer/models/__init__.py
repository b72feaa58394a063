"""
Knowledge Transfer Domain Models.

Storage-agnostic Pydantic models for knowledge items and the
knowledge graphs built from them.
"""

from .base import (
    Knowledge,
    KnowledgeType,
    KnowledgeQuery,
    ProjectContext,
    SortField,
    SortDirection,
)

from .graph import (
    KnowledgeGraphError,
    KnowledgeGraph,
    KnowledgeNode,
    KnowledgeRelationship,
    GraphMetadata,
    NodeMetadata,
    RelationshipMetadata,
    RelationshipType,
    RelationshipDirection,
)

from .metadata import (
    MetadataKind,
    kind_of,
    merge_value,
    reconcile_metadata,
)

__all__ = [
    # Base models
    "Knowledge",
    "KnowledgeQuery",
    "ProjectContext",
    # Graph models
    "KnowledgeGraph",
    "KnowledgeNode",
    "KnowledgeRelationship",
    "GraphMetadata",
    "NodeMetadata",
    "RelationshipMetadata",
    # Enums
    "KnowledgeType",
    "SortField",
    "SortDirection",
    "RelationshipType",
    "RelationshipDirection",
    "MetadataKind",
    # Errors
    "KnowledgeGraphError",
    # Metadata reconciliation
    "kind_of",
    "merge_value",
    "reconcile_metadata",
]
