"""
Graph analytics for knowledge graphs.

Implements:
- Basic statistics (degree, density, components, distributions)
- Centrality metrics (degree, betweenness, closeness)
- Community detection (label propagation) with modularity
- Annotation of node centrality and community metadata

All analysis treats relationships as undirected and ignores those
weaker than the configured minimum strength.
"""

import logging
from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from ..models import GraphMetadata, KnowledgeGraph, NodeMetadata
from ..models.base import utcnow


logger = logging.getLogger(__name__)


class GraphAnalysisOptions(BaseModel):
    """Options for graph analysis."""

    top_nodes_count: int = Field(default=5, ge=0)
    detect_communities: bool = True
    min_relationship_strength: float = Field(default=0.3, ge=0.0, le=1.0)
    max_label_iterations: int = Field(default=20, ge=1)


@dataclass
class GraphStats:
    """Structural statistics of a graph."""
    node_count: int = 0
    relationship_count: int = 0
    avg_node_degree: float = 0.0
    density: float = 0.0
    component_count: int = 0
    node_type_distribution: dict[str, int] = field(default_factory=dict)
    relationship_type_distribution: dict[str, int] = field(default_factory=dict)
    project_distribution: dict[str, int] = field(default_factory=dict)


@dataclass
class CentralityResult:
    """Centrality scores for a node."""
    node_id: str
    degree: float = 0.0
    betweenness: float = 0.0
    closeness: float = 0.0

    @property
    def interpretation(self) -> str:
        """Human-readable interpretation of centrality."""
        if self.degree > 0.5 and self.betweenness > 0.1:
            return "Knowledge hub"
        elif self.betweenness > 0.08:
            return "Bridge between clusters"
        elif self.degree == 0.0:
            return "Isolated knowledge"
        return "Standard node"


@dataclass
class CommunityResult:
    """Detected communities and the quality of the division."""
    count: int = 0
    members: dict[str, list[str]] = field(default_factory=dict)
    modularity: float = 0.0


@dataclass
class GraphAnalysisResult:
    """Complete analysis of a knowledge graph."""
    stats: GraphStats
    centrality: list[CentralityResult]
    top_degree_nodes: list[CentralityResult]
    top_betweenness_nodes: list[CentralityResult]
    top_closeness_nodes: list[CentralityResult]
    communities: CommunityResult


class GraphAnalyzer:
    """
    Analytics service for knowledge graphs.

    Stateless; every call works on the graph it is given and never
    modifies it.
    """

    def analyze(
        self,
        graph: KnowledgeGraph,
        options: GraphAnalysisOptions | None = None,
    ) -> GraphAnalysisResult:
        """Run statistics, centrality and community detection."""
        options = options or GraphAnalysisOptions()
        adjacency = self._adjacency(graph, options.min_relationship_strength)

        centrality = self.compute_centrality(graph, options)
        top = options.top_nodes_count

        communities = (
            self.detect_communities(graph, options)
            if options.detect_communities
            else CommunityResult()
        )

        result = GraphAnalysisResult(
            stats=self._stats(graph, adjacency, options),
            centrality=centrality,
            top_degree_nodes=sorted(centrality, key=lambda r: r.degree, reverse=True)[:top],
            top_betweenness_nodes=sorted(centrality, key=lambda r: r.betweenness, reverse=True)[:top],
            top_closeness_nodes=sorted(centrality, key=lambda r: r.closeness, reverse=True)[:top],
            communities=communities,
        )
        logger.info(
            f"Analyzed graph {graph.id}: {result.stats.component_count} components, "
            f"{communities.count} communities"
        )
        return result

    def annotate(
        self,
        graph: KnowledgeGraph,
        options: GraphAnalysisOptions | None = None,
    ) -> KnowledgeGraph:
        """
        Return a new graph with node centrality and community set.

        Centrality is the node's degree centrality; the community label
        comes from label propagation. The result gets its own id and
        records the source graph as ``annotated_from``.
        """
        options = options or GraphAnalysisOptions()
        degree = {r.node_id: r.degree for r in self.compute_centrality(graph, options)}

        labels: dict[str, str] = {}
        for label, members in self.detect_communities(graph, options).members.items():
            for node_id in members:
                labels[node_id] = label

        nodes = {}
        for node_id, node in graph.nodes.items():
            metadata = NodeMetadata(**{
                **node.metadata.model_dump(),
                "centrality": degree.get(node_id, 0.0),
                "community": labels.get(node_id),
            })
            nodes[node_id] = node.model_copy(update={"metadata": metadata})

        return KnowledgeGraph(
            name=graph.name,
            description=graph.description,
            nodes=nodes,
            relationships=graph.relationships,
            metadata=GraphMetadata(
                **{**graph.metadata.model_dump(), "updated_at": utcnow(), "annotated_from": graph.id}
            ),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Centrality Metrics
    # ─────────────────────────────────────────────────────────────────────────

    def compute_centrality(
        self,
        graph: KnowledgeGraph,
        options: GraphAnalysisOptions | None = None,
    ) -> list[CentralityResult]:
        """
        Compute degree, betweenness and closeness centrality.

        Returns:
            List of CentralityResult in node insertion order
        """
        options = options or GraphAnalysisOptions()
        adjacency = self._adjacency(graph, options.min_relationship_strength)
        node_ids = list(graph.nodes)
        n = len(node_ids)
        if n == 0:
            return []

        betweenness = self._compute_betweenness(node_ids, adjacency)
        results = []
        for node_id in node_ids:
            degree = len(adjacency[node_id]) / (n - 1) if n > 1 else 0.0
            results.append(CentralityResult(
                node_id=node_id,
                degree=degree,
                betweenness=betweenness[node_id],
                closeness=self._closeness(node_id, adjacency, n),
            ))
        return results

    def _compute_betweenness(
        self,
        node_ids: list[str],
        adjacency: dict[str, set[str]],
    ) -> dict[str, float]:
        """
        Compute betweenness centrality using Brandes algorithm.

        Betweenness measures how often a node lies on shortest paths
        between other nodes - high betweenness = bridge.
        """
        betweenness = {nid: 0.0 for nid in node_ids}

        for source in node_ids:
            stack = []
            predecessors: dict[str, list[str]] = defaultdict(list)
            sigma = {nid: 0.0 for nid in node_ids}
            sigma[source] = 1.0
            dist = {nid: -1 for nid in node_ids}
            dist[source] = 0

            queue = deque([source])
            while queue:
                v = queue.popleft()
                stack.append(v)
                for w in sorted(adjacency[v]):
                    if dist[w] < 0:
                        dist[w] = dist[v] + 1
                        queue.append(w)
                    if dist[w] == dist[v] + 1:
                        sigma[w] += sigma[v]
                        predecessors[w].append(v)

            # Back-propagation
            delta = {nid: 0.0 for nid in node_ids}
            while stack:
                w = stack.pop()
                for v in predecessors[w]:
                    delta[v] += (sigma[v] / sigma[w]) * (1 + delta[w])
                if w != source:
                    betweenness[w] += delta[w]

        # Undirected: each path was counted from both ends
        n = len(node_ids)
        if n > 2:
            norm = 1.0 / ((n - 1) * (n - 2))
            for nid in betweenness:
                betweenness[nid] *= norm
        else:
            betweenness = {nid: 0.0 for nid in node_ids}

        return betweenness

    def _closeness(self, node_id: str, adjacency: dict[str, set[str]], n: int) -> float:
        """Wasserman-Faust closeness, scaled by the reachable fraction."""
        distances = self._bfs_distances(node_id, adjacency)
        reachable = len(distances) - 1
        total = sum(distances.values())
        if reachable <= 0 or total == 0:
            return 0.0
        return (reachable / total) * (reachable / (n - 1))

    # ─────────────────────────────────────────────────────────────────────────
    # Community Detection
    # ─────────────────────────────────────────────────────────────────────────

    def detect_communities(
        self,
        graph: KnowledgeGraph,
        options: GraphAnalysisOptions | None = None,
    ) -> CommunityResult:
        """
        Detect communities with weighted label propagation.

        Nodes are visited in insertion order and ties are broken by the
        smallest label, so the result is deterministic. Labels are
        renamed community-1, community-2... in order of first member.
        """
        options = options or GraphAnalysisOptions()
        weights = self._weights(graph, options.min_relationship_strength)
        node_ids = list(graph.nodes)
        if not node_ids:
            return CommunityResult()

        labels = {nid: nid for nid in node_ids}
        for iteration in range(options.max_label_iterations):
            changed = False
            for node_id in node_ids:
                neighbors = weights[node_id]
                if not neighbors:
                    continue
                scores: Counter = Counter()
                for neighbor, weight in neighbors.items():
                    scores[labels[neighbor]] += weight
                best = max(scores.values())
                new_label = min(label for label, score in scores.items() if score == best)
                if new_label != labels[node_id]:
                    labels[node_id] = new_label
                    changed = True
            if not changed:
                logger.debug(f"Label propagation converged in {iteration + 1} iterations")
                break

        members: dict[str, list[str]] = {}
        renamed: dict[str, str] = {}
        for node_id in node_ids:
            raw = labels[node_id]
            if raw not in renamed:
                renamed[raw] = f"community-{len(renamed) + 1}"
            members.setdefault(renamed[raw], []).append(node_id)

        assignment = {nid: renamed[labels[nid]] for nid in node_ids}
        return CommunityResult(
            count=len(members),
            members=members,
            modularity=self._modularity(weights, assignment),
        )

    def _modularity(
        self,
        weights: dict[str, dict[str, float]],
        assignment: dict[str, str],
    ) -> float:
        """Newman modularity of a community assignment (weighted)."""
        total = sum(sum(neighbors.values()) for neighbors in weights.values()) / 2
        if total == 0:
            return 0.0

        internal: dict[str, float] = defaultdict(float)
        degree: dict[str, float] = defaultdict(float)
        for node_id, neighbors in weights.items():
            community = assignment[node_id]
            degree[community] += sum(neighbors.values())
            for neighbor, weight in neighbors.items():
                if assignment[neighbor] == community:
                    internal[community] += weight / 2

        return sum(
            internal[c] / total - (degree[c] / (2 * total)) ** 2
            for c in set(assignment.values())
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Statistics
    # ─────────────────────────────────────────────────────────────────────────

    def _stats(
        self,
        graph: KnowledgeGraph,
        adjacency: dict[str, set[str]],
        options: GraphAnalysisOptions,
    ) -> GraphStats:
        n = graph.node_count
        relationships = [
            rel for rel in graph.relationships.values()
            if rel.strength >= options.min_relationship_strength
        ]
        linked_pairs = sum(len(neighbors) for neighbors in adjacency.values()) / 2
        max_pairs = n * (n - 1) / 2

        return GraphStats(
            node_count=n,
            relationship_count=len(relationships),
            avg_node_degree=(2 * len(relationships) / n) if n else 0.0,
            density=(linked_pairs / max_pairs) if max_pairs else 0.0,
            component_count=len(self._components(list(graph.nodes), adjacency)),
            node_type_distribution=dict(Counter(
                node.knowledge.type.value for node in graph.nodes.values()
            )),
            relationship_type_distribution=dict(Counter(rel.type.value for rel in relationships)),
            project_distribution=dict(Counter(
                node.source_project for node in graph.nodes.values()
            )),
        )

    def _components(self, node_ids: list[str], adjacency: dict[str, set[str]]) -> list[set[str]]:
        """Connected components, found by BFS."""
        visited: set[str] = set()
        components: list[set[str]] = []
        for node_id in node_ids:
            if node_id in visited:
                continue
            component = set(self._bfs_distances(node_id, adjacency))
            visited |= component
            components.append(component)
        return components

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _adjacency(self, graph: KnowledgeGraph, min_strength: float) -> dict[str, set[str]]:
        """Undirected neighbor sets, self-loops excluded."""
        return {
            node_id: set(neighbors)
            for node_id, neighbors in self._weights(graph, min_strength).items()
        }

    def _weights(
        self,
        graph: KnowledgeGraph,
        min_strength: float,
    ) -> dict[str, dict[str, float]]:
        """Undirected weighted adjacency; parallel edges add up."""
        weights: dict[str, dict[str, float]] = {nid: {} for nid in graph.nodes}
        for rel in graph.relationships.values():
            if rel.strength < min_strength or rel.source_id == rel.target_id:
                continue
            a, b = rel.source_id, rel.target_id
            weights[a][b] = weights[a].get(b, 0.0) + rel.strength
            weights[b][a] = weights[b].get(a, 0.0) + rel.strength
        return weights

    def _bfs_distances(self, start: str, adjacency: dict[str, set[str]]) -> dict[str, int]:
        distances = {start: 0}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for neighbor in adjacency[current]:
                if neighbor not in distances:
                    distances[neighbor] = distances[current] + 1
                    queue.append(neighbor)
        return distances
