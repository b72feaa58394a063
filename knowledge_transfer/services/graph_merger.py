"""
Graph Merger - combines two knowledge graphs into a new one.

Strategies decide which nodes and relationships survive; colliding ids
are reconciled with the metadata rule from ``models.metadata``.
Optionally, SIMILAR_TO edges are inferred between nodes that come from
different source projects. Inputs are never modified.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..config import ConfigurationError, merge_option_overrides
from ..models import (
    KnowledgeGraph,
    KnowledgeGraphError,
    KnowledgeNode,
    KnowledgeRelationship,
    GraphMetadata,
    NodeMetadata,
    RelationshipDirection,
    RelationshipMetadata,
    RelationshipType,
    reconcile_metadata,
)
from ..storage import ProjectContextProvider
from .graph_builder import create_relationship, ordered_unique
from .similarity import find_similar_pairs


logger = logging.getLogger(__name__)

MERGER_NAME = "graph-merger"


class GraphMergeError(KnowledgeGraphError):
    """Base exception for graph merge operations."""
    pass


class MergeConfigurationError(GraphMergeError):
    """Raised before any work when merge options cannot be applied."""
    pass


class MergeStrategy(str, Enum):
    """Policy deciding which nodes and relationships survive a merge."""
    UNION = "union"                       # everything from both graphs
    INTERSECTION = "intersection"         # only ids present in both
    FIRST_PRIORITY = "first_priority"     # first graph wins conflicts
    SECOND_PRIORITY = "second_priority"   # second graph wins conflicts
    CUSTOM = "custom"                     # caller-supplied function


CustomMergeFunction = Callable[[KnowledgeGraph, KnowledgeGraph], KnowledgeGraph]


class GraphMergeOptions(BaseModel):
    """Options for merging two knowledge graphs."""

    strategy: MergeStrategy = MergeStrategy.UNION
    custom_merge_function: Optional[CustomMergeFunction] = None

    merge_node_metadata: bool = True
    merge_relationship_metadata: bool = True
    min_relationship_strength: float = Field(default=0.3, ge=0.0, le=1.0)

    create_cross_graph_relationships: bool = True
    min_cross_graph_similarity: float = Field(default=0.7, ge=0.0, le=1.0)
    max_cross_graph_relationships: int = Field(default=100, ge=0)
    # Work budget for the O(n^2) scan; None means unbounded
    max_cross_graph_comparisons: Optional[int] = Field(default=None, ge=0)

    @classmethod
    def from_env(cls, **overrides) -> "GraphMergeOptions":
        """Defaults with environment overrides, then explicit overrides."""
        try:
            return cls(**{**merge_option_overrides(), **overrides})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid graph merge options: {e}") from e


class MergeStats(BaseModel):
    """Statistics about a merge operation."""

    nodes_from_first: int = 0
    nodes_from_second: int = 0
    total_nodes: int = 0
    relationships_from_first: int = 0
    relationships_from_second: int = 0
    total_relationships: int = 0
    new_cross_graph_relationships: int = 0
    conflicts: int = 0
    conflict_resolution: str = ""


@dataclass
class GraphMergeResult:
    """Merged graph with its statistics and merge notes."""
    graph: KnowledgeGraph
    stats: MergeStats
    notes: List[str] = field(default_factory=list)

    def __iter__(self) -> Iterator:
        return iter((self.graph, self.stats, self.notes))


@dataclass
class _MergeState:
    """Working collections for one merge call."""
    nodes: Dict[str, KnowledgeNode] = field(default_factory=dict)
    relationships: Dict[str, KnowledgeRelationship] = field(default_factory=dict)
    notes: List[str] = field(default_factory=list)
    conflicts: int = 0


class GraphMerger:
    """
    Merges knowledge graphs.

    FIRST_PRIORITY and SECOND_PRIORITY are deliberately not commutative:
    on a colliding id the priority graph's payload survives and only
    metadata from the other graph is reconciled into it.
    """

    def __init__(self, project_context: Optional[ProjectContextProvider] = None):
        self._project_context = project_context

    def merge_graphs(
        self,
        first: KnowledgeGraph,
        second: KnowledgeGraph,
        options: Optional[GraphMergeOptions] = None,
    ) -> GraphMergeResult:
        """
        Merge two graphs into a new graph.

        Args:
            first: First input graph (read only)
            second: Second input graph (read only)
            options: Merge options (environment defaults when omitted)

        Returns:
            GraphMergeResult with the new graph, stats and notes

        Raises:
            MergeConfigurationError: unknown strategy, or CUSTOM without
                a merge function
        """
        options = options or GraphMergeOptions.from_env()
        strategy = self._resolve_strategy(options)

        if strategy == MergeStrategy.CUSTOM:
            return self._apply_custom_strategy(first, second, options)

        state = _MergeState()
        if strategy == MergeStrategy.UNION:
            self._apply_union_strategy(first, second, options, state)
            conflict_resolution = "Kept all nodes and relationships"
        elif strategy == MergeStrategy.INTERSECTION:
            self._apply_intersection_strategy(first, second, options, state)
            conflict_resolution = "Kept only nodes and relationships present in both graphs"
        elif strategy == MergeStrategy.FIRST_PRIORITY:
            self._apply_priority_strategy(first, second, options, state, first_priority=True)
            conflict_resolution = "Prioritized first graph in conflicts"
        else:
            self._apply_priority_strategy(first, second, options, state, first_priority=False)
            conflict_resolution = "Prioritized second graph in conflicts"

        new_cross_graph = 0
        if options.create_cross_graph_relationships:
            new_cross_graph = self._create_cross_graph_relationships(state, options)

        merged = KnowledgeGraph(
            name=f"Merged: {first.name} + {second.name}",
            description=f"Merged graph from {first.name} and {second.name}",
            nodes=state.nodes,
            relationships=state.relationships,
            metadata=GraphMetadata(
                projects=ordered_unique([*first.metadata.projects, *second.metadata.projects]),
                knowledge_types=ordered_unique(
                    [*first.metadata.knowledge_types, *second.metadata.knowledge_types]
                ),
                parent_graphs=[first.id, second.id],
                merge_strategy=strategy.value,
            ),
        )

        stats = calculate_merge_stats(first, second, merged)
        stats.conflicts = state.conflicts
        stats.conflict_resolution = conflict_resolution
        stats.new_cross_graph_relationships = new_cross_graph

        logger.info(
            f"Merged graphs {first.id} + {second.id} ({strategy.value}): "
            f"{stats.total_nodes} nodes, {stats.total_relationships} relationships, "
            f"{stats.conflicts} conflicts, {new_cross_graph} cross-graph"
        )
        return GraphMergeResult(graph=merged, stats=stats, notes=state.notes)

    # =========================================================
    # STRATEGIES
    # =========================================================

    def _resolve_strategy(self, options: GraphMergeOptions) -> MergeStrategy:
        try:
            strategy = MergeStrategy(options.strategy)
        except ValueError:
            raise MergeConfigurationError(f"Unsupported merge strategy: {options.strategy!r}") from None
        if strategy == MergeStrategy.CUSTOM and options.custom_merge_function is None:
            raise MergeConfigurationError("CUSTOM strategy requires a custom_merge_function")
        return strategy

    def _apply_custom_strategy(
        self,
        first: KnowledgeGraph,
        second: KnowledgeGraph,
        options: GraphMergeOptions,
    ) -> GraphMergeResult:
        """Delegate to the caller's function; its errors propagate."""
        merged = options.custom_merge_function(first, second)
        stats = calculate_merge_stats(first, second, merged)
        stats.conflict_resolution = "Resolved by custom merge function"
        logger.info(f"Merged graphs {first.id} + {second.id} with custom function")
        return GraphMergeResult(graph=merged, stats=stats, notes=["Used custom merge function"])

    def _apply_union_strategy(
        self,
        first: KnowledgeGraph,
        second: KnowledgeGraph,
        options: GraphMergeOptions,
        state: _MergeState,
    ) -> None:
        """Keep every node and relationship from both graphs."""
        state.nodes.update(first.nodes)
        for node_id, node in second.nodes.items():
            existing = state.nodes.get(node_id)
            if existing is None:
                state.nodes[node_id] = node
            elif options.merge_node_metadata:
                state.nodes[node_id] = self._merge_node(existing, node, state.notes)

        self._copy_relationships(first, options, state)
        for rel in self._eligible_relationships(second, options, state):
            existing_rel = state.relationships.get(rel.id)
            if existing_rel is None:
                state.relationships[rel.id] = rel
            elif options.merge_relationship_metadata:
                state.relationships[rel.id] = self._merge_relationship(
                    existing_rel, rel, state.notes, keep_strength=False
                )

        state.notes.append(
            "Applied union strategy: kept all nodes and relationships from both graphs"
        )

    def _apply_intersection_strategy(
        self,
        first: KnowledgeGraph,
        second: KnowledgeGraph,
        options: GraphMergeOptions,
        state: _MergeState,
    ) -> None:
        """Keep only nodes and relationships whose ids are in both graphs."""
        for node_id, node in first.nodes.items():
            other = second.nodes.get(node_id)
            if other is None:
                continue
            if options.merge_node_metadata:
                state.nodes[node_id] = self._merge_node(node, other, state.notes)
            else:
                state.nodes[node_id] = node

        for rel_id, rel in first.relationships.items():
            other_rel = second.relationships.get(rel_id)
            if other_rel is None:
                continue
            merge_notes: List[str] = []
            if options.merge_relationship_metadata:
                candidate = self._merge_relationship(rel, other_rel, merge_notes, keep_strength=False)
                eligible = self._is_eligible(candidate, options, state)
            else:
                # Without merging, both copies must pass the threshold
                candidate = rel
                eligible = (
                    self._is_eligible(rel, options, state)
                    and self._is_eligible(other_rel, options, state)
                )
            if eligible:
                state.relationships[rel_id] = candidate
                state.notes.extend(merge_notes)

        state.notes.append(
            "Applied intersection strategy: kept only nodes and relationships present in both graphs"
        )

    def _apply_priority_strategy(
        self,
        first: KnowledgeGraph,
        second: KnowledgeGraph,
        options: GraphMergeOptions,
        state: _MergeState,
        first_priority: bool,
    ) -> None:
        """
        Keep the priority graph verbatim, add the other graph's new ids.

        A colliding id counts as a conflict; the priority element keeps
        its payload and, if enabled, absorbs the other copy's metadata.
        """
        priority, secondary = (first, second) if first_priority else (second, first)

        state.nodes.update(priority.nodes)
        for node_id, node in secondary.nodes.items():
            existing = state.nodes.get(node_id)
            if existing is None:
                state.nodes[node_id] = node
                continue
            state.conflicts += 1
            if options.merge_node_metadata:
                state.nodes[node_id] = self._merge_node(
                    existing, node, state.notes, label="conflicting node"
                )

        self._copy_relationships(priority, options, state)
        for rel in secondary.relationships.values():
            if rel.id not in priority.relationships:
                if self._is_eligible(rel, options, state):
                    state.relationships[rel.id] = rel
                continue
            # Colliding ids never take the secondary copy, even if the priority copy was dropped
            state.conflicts += 1
            existing_rel = state.relationships.get(rel.id)
            if existing_rel is not None and options.merge_relationship_metadata:
                state.relationships[rel.id] = self._merge_relationship(
                    existing_rel, rel, state.notes, keep_strength=True,
                    label="conflicting relationship",
                )

        which = "first" if first_priority else "second"
        state.notes.append(
            f"Applied {which} priority strategy: prioritized {which} graph in conflicts"
        )

    # =========================================================
    # CROSS-GRAPH RELATIONSHIPS
    # =========================================================

    def _create_cross_graph_relationships(
        self,
        state: _MergeState,
        options: GraphMergeOptions,
    ) -> int:
        """Add SIMILAR_TO edges between similar nodes of different projects."""
        scan = find_similar_pairs(
            list(state.nodes.values()),
            state.relationships.values(),
            min_similarity=options.min_cross_graph_similarity,
            max_pairs=options.max_cross_graph_relationships,
            max_comparisons=options.max_cross_graph_comparisons,
            eligible=lambda a, b: a.source_project != b.source_project,
            project_context=self._project_context,
        )

        for pair in scan.pairs:
            rel = create_relationship(
                pair.source.id,
                pair.target.id,
                RelationshipType.SIMILAR_TO,
                pair.similarity,
                RelationshipDirection.BI,
                created_by=MERGER_NAME,
                is_cross_project=True,
            )
            state.relationships[rel.id] = rel

        if scan.pairs:
            state.notes.append(f"Created {len(scan.pairs)} cross-project relationships")
        if scan.budget_exhausted:
            state.notes.append(
                f"Cross-graph scan stopped after {scan.comparisons} comparisons"
            )
        return len(scan.pairs)

    # =========================================================
    # HELPER METHODS
    # =========================================================

    def _is_eligible(
        self,
        rel: KnowledgeRelationship,
        options: GraphMergeOptions,
        state: _MergeState,
    ) -> bool:
        """Strong enough, and both endpoints survived node selection."""
        if rel.strength < options.min_relationship_strength:
            return False
        if rel.source_id not in state.nodes or rel.target_id not in state.nodes:
            logger.debug(f"Skipping relationship {rel.id}: endpoint not in merged graph")
            return False
        return True

    def _eligible_relationships(
        self,
        graph: KnowledgeGraph,
        options: GraphMergeOptions,
        state: _MergeState,
    ) -> Iterator[KnowledgeRelationship]:
        for rel in graph.relationships.values():
            if self._is_eligible(rel, options, state):
                yield rel

    def _copy_relationships(
        self,
        graph: KnowledgeGraph,
        options: GraphMergeOptions,
        state: _MergeState,
    ) -> None:
        for rel in self._eligible_relationships(graph, options, state):
            state.relationships[rel.id] = rel

    def _merge_node(
        self,
        survivor: KnowledgeNode,
        other: KnowledgeNode,
        notes: List[str],
        label: str = "node",
    ) -> KnowledgeNode:
        """Reconcile ``other``'s metadata into ``survivor``; knowledge is kept."""
        merged, changed = reconcile_metadata(survivor.metadata_dict(), other.metadata_dict())
        note = _merge_note(label, survivor.id, changed)
        notes.append(note)
        logger.debug(note)
        return survivor.model_copy(update={"metadata": NodeMetadata(**merged)})

    def _merge_relationship(
        self,
        survivor: KnowledgeRelationship,
        other: KnowledgeRelationship,
        notes: List[str],
        keep_strength: bool,
        label: str = "relationship",
    ) -> KnowledgeRelationship:
        """
        Reconcile ``other``'s metadata into ``survivor``.

        Type, direction and endpoints always come from ``survivor``.
        Strength is the max of both unless ``keep_strength`` is set.
        """
        merged, changed = reconcile_metadata(survivor.metadata_dict(), other.metadata_dict())
        strength = survivor.strength if keep_strength else max(survivor.strength, other.strength)
        if strength != survivor.strength:
            changed.append("strength")
        note = _merge_note(label, survivor.id, changed)
        notes.append(note)
        logger.debug(note)
        return survivor.model_copy(
            update={"strength": strength, "metadata": RelationshipMetadata(**merged)}
        )


def _merge_note(label: str, element_id: str, changed: List[str]) -> str:
    note = f"Merged metadata for {label} {element_id}"
    if changed:
        note += f" (updated: {', '.join(changed)})"
    return note


def calculate_merge_stats(
    first: KnowledgeGraph,
    second: KnowledgeGraph,
    merged: KnowledgeGraph,
) -> MergeStats:
    """
    Count how much of each input survived in a merged graph.

    Elements are attributed by id, so an id present in both inputs
    counts for both.
    """
    return MergeStats(
        nodes_from_first=len(merged.node_ids & first.node_ids),
        nodes_from_second=len(merged.node_ids & second.node_ids),
        total_nodes=merged.node_count,
        relationships_from_first=len(merged.relationship_ids & first.relationship_ids),
        relationships_from_second=len(merged.relationship_ids & second.relationship_ids),
        total_relationships=merged.relationship_count,
    )
