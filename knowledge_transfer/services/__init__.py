"""
Services layer for the knowledge graph core.

Builds graphs from a knowledge store, merges graphs and analyzes them.
"""

from .similarity import (
    text_similarity,
    tag_similarity,
    node_similarity,
    project_affinity,
    find_similar_pairs,
    SimilarPair,
    PairScanResult,
)
from .graph_builder import GraphBuilder, GraphBuildOptions, calculate_importance
from .graph_merger import (
    GraphMerger,
    GraphMergeOptions,
    GraphMergeResult,
    GraphMergeError,
    MergeConfigurationError,
    MergeStats,
    MergeStrategy,
    calculate_merge_stats,
)
from .graph_analyzer import (
    GraphAnalyzer,
    GraphAnalysisOptions,
    GraphAnalysisResult,
    GraphStats,
    CentralityResult,
    CommunityResult,
)

__all__ = [
    # Similarity
    "text_similarity",
    "tag_similarity",
    "node_similarity",
    "project_affinity",
    "find_similar_pairs",
    "SimilarPair",
    "PairScanResult",
    # Builder
    "GraphBuilder",
    "GraphBuildOptions",
    "calculate_importance",
    # Merger
    "GraphMerger",
    "GraphMergeOptions",
    "GraphMergeResult",
    "GraphMergeError",
    "MergeConfigurationError",
    "MergeStats",
    "MergeStrategy",
    "calculate_merge_stats",
    # Analyzer
    "GraphAnalyzer",
    "GraphAnalysisOptions",
    "GraphAnalysisResult",
    "GraphStats",
    "CentralityResult",
    "CommunityResult",
]
