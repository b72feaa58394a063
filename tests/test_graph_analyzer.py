"""
Unit tests for graph analytics: statistics, centrality and communities.
"""

import pytest

from knowledge_transfer import GraphAnalysisOptions, KnowledgeType, RelationshipType
from factories import make_graph, make_node, make_relationship


@pytest.fixture
def path_graph():
    """n1 - n2 - n3"""
    return make_graph("Path", [make_node("n1"), make_node("n2"), make_node("n3")], [
        make_relationship("r1", "n1", "n2"),
        make_relationship("r2", "n2", "n3", rel_type=RelationshipType.DEPENDS_ON),
    ])


@pytest.fixture
def two_clusters():
    """Two strong triangles joined by one moderate bridge c - d."""
    nodes = [make_node(nid, project="alpha" if nid in "abc" else "beta") for nid in "abcdef"]
    relationships = [
        make_relationship("ab", "a", "b", strength=0.9),
        make_relationship("ac", "a", "c", strength=0.9),
        make_relationship("bc", "b", "c", strength=0.9),
        make_relationship("de", "d", "e", strength=0.9),
        make_relationship("df", "d", "f", strength=0.9),
        make_relationship("ef", "e", "f", strength=0.9),
        make_relationship("cd", "c", "d", strength=0.4),
    ]
    return make_graph("Clusters", nodes, relationships)


class TestStatistics:
    """Test structural statistics."""

    def test_path_graph(self, graph_analyzer, path_graph):
        stats = graph_analyzer.analyze(path_graph).stats

        assert stats.node_count == 3
        assert stats.relationship_count == 2
        assert stats.avg_node_degree == pytest.approx(4 / 3)
        assert stats.density == pytest.approx(2 / 3)
        assert stats.component_count == 1
        assert stats.node_type_distribution == {KnowledgeType.CODE_PATTERN.value: 3}
        assert stats.relationship_type_distribution == {"related": 1, "depends_on": 1}
        assert stats.project_distribution == {"alpha": 3}

    def test_weak_relationships_are_ignored(self, graph_analyzer, two_clusters):
        options = GraphAnalysisOptions(min_relationship_strength=0.5)
        stats = graph_analyzer.analyze(two_clusters, options).stats

        assert stats.relationship_count == 6
        assert stats.component_count == 2

    def test_empty_graph(self, graph_analyzer):
        result = graph_analyzer.analyze(make_graph("Empty", []))

        assert result.stats.node_count == 0
        assert result.stats.density == 0.0
        assert result.centrality == []
        assert result.communities.count == 0


class TestCentrality:
    """Test degree, betweenness and closeness centrality."""

    def test_path_graph(self, graph_analyzer, path_graph):
        scores = {r.node_id: r for r in graph_analyzer.compute_centrality(path_graph)}

        assert scores["n2"].degree == 1.0
        assert scores["n1"].degree == 0.5
        assert scores["n2"].betweenness == pytest.approx(1.0)
        assert scores["n1"].betweenness == 0.0
        assert scores["n2"].closeness == pytest.approx(1.0)
        assert scores["n1"].closeness == pytest.approx(2 / 3)

    def test_bridges_have_highest_betweenness(self, graph_analyzer, two_clusters):
        result = graph_analyzer.analyze(two_clusters, GraphAnalysisOptions(top_nodes_count=2))

        assert [r.node_id for r in result.top_betweenness_nodes] == ["c", "d"]
        assert result.top_betweenness_nodes[0].betweenness == pytest.approx(0.6)

    def test_isolated_node(self, graph_analyzer):
        graph = make_graph("Lonely", [make_node("a"), make_node("b")])
        scores = graph_analyzer.compute_centrality(graph)

        assert all(r.degree == 0.0 and r.closeness == 0.0 for r in scores)
        assert scores[0].interpretation == "Isolated knowledge"


class TestCommunities:
    """Test label propagation community detection."""

    def test_two_clusters(self, graph_analyzer, two_clusters):
        communities = graph_analyzer.detect_communities(two_clusters)

        assert communities.count == 2
        assert communities.members == {
            "community-1": ["a", "b", "c"],
            "community-2": ["d", "e", "f"],
        }
        assert communities.modularity == pytest.approx(0.431, abs=1e-3)

    def test_deterministic(self, graph_analyzer, two_clusters):
        assert graph_analyzer.detect_communities(two_clusters) == graph_analyzer.detect_communities(two_clusters)

    def test_isolated_nodes_are_singletons(self, graph_analyzer):
        graph = make_graph("Lonely", [make_node("a"), make_node("b")])
        communities = graph_analyzer.detect_communities(graph)

        assert communities.count == 2
        assert communities.modularity == 0.0

    def test_detection_can_be_disabled(self, graph_analyzer, two_clusters):
        result = graph_analyzer.analyze(two_clusters, GraphAnalysisOptions(detect_communities=False))
        assert result.communities.count == 0


class TestAnnotate:
    """Test writing analysis results back into node metadata."""

    def test_annotates_copy(self, graph_analyzer, two_clusters):
        annotated = graph_analyzer.annotate(two_clusters)

        assert annotated.nodes["a"].metadata.community == "community-1"
        assert annotated.nodes["f"].metadata.community == "community-2"
        assert annotated.nodes["c"].metadata.centrality == pytest.approx(3 / 5)
        assert annotated.relationship_ids == two_clusters.relationship_ids
        assert annotated.id != two_clusters.id
        assert annotated.metadata.annotated_from == two_clusters.id

        assert two_clusters.nodes["a"].metadata.community is None
        assert two_clusters.nodes["c"].metadata.centrality is None
