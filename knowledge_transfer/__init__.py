"""
Knowledge Transfer Graph Core.

Builds knowledge graphs from harvested engineering knowledge, infers
similarity edges between items, and merges graphs from different
projects under a selectable, conflict-aware strategy.

Quick Start:
    from knowledge_transfer import (
        GraphBuilder, GraphBuildOptions, GraphMerger, GraphMergeOptions,
        MergeStrategy,
        InMemoryKnowledgeStore,
    )

    builder = GraphBuilder(InMemoryKnowledgeStore(items))
    graph_a = await builder.build_graph(options=GraphBuildOptions(project_ids=["api"]))
    graph_b = await builder.build_graph(options=GraphBuildOptions(project_ids=["web"]))

    result = GraphMerger().merge_graphs(
        graph_a, graph_b, GraphMergeOptions(strategy=MergeStrategy.UNION)
    )
    graph, stats, notes = result
"""

from .models import (
    Knowledge,
    KnowledgeType,
    KnowledgeQuery,
    ProjectContext,
    KnowledgeGraph,
    KnowledgeGraphError,
    KnowledgeNode,
    KnowledgeRelationship,
    GraphMetadata,
    NodeMetadata,
    RelationshipMetadata,
    RelationshipType,
    RelationshipDirection,
)

from .storage import (
    KnowledgeStore,
    KnowledgeStoreError,
    ProjectContextProvider,
    InMemoryKnowledgeStore,
    InMemoryProjectContextProvider,
)

from .services import (
    GraphBuilder,
    GraphBuildOptions,
    GraphMerger,
    GraphMergeOptions,
    GraphMergeResult,
    GraphMergeError,
    MergeConfigurationError,
    MergeStats,
    MergeStrategy,
    GraphAnalyzer,
    GraphAnalysisOptions,
    text_similarity,
    node_similarity,
)

from .config import ConfigurationError

__version__ = "0.1.0"

__all__ = [
    # Models
    "Knowledge",
    "KnowledgeType",
    "KnowledgeQuery",
    "ProjectContext",
    "KnowledgeGraph",
    "KnowledgeNode",
    "KnowledgeRelationship",
    "GraphMetadata",
    "NodeMetadata",
    "RelationshipMetadata",
    "RelationshipType",
    "RelationshipDirection",
    # Storage
    "KnowledgeStore",
    "ProjectContextProvider",
    "InMemoryKnowledgeStore",
    "InMemoryProjectContextProvider",
    # Services
    "GraphBuilder",
    "GraphBuildOptions",
    "GraphMerger",
    "GraphMergeOptions",
    "GraphMergeResult",
    "MergeStats",
    "MergeStrategy",
    "GraphAnalyzer",
    "GraphAnalysisOptions",
    "text_similarity",
    "node_similarity",
    # Errors
    "KnowledgeGraphError",
    "KnowledgeStoreError",
    "GraphMergeError",
    "MergeConfigurationError",
    "ConfigurationError",
]
