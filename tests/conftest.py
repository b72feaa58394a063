"""
Pytest configuration for knowledge graph tests.

Provides shared fixtures for unit tests and BDD step definitions.
"""

import pytest
import sys
from pathlib import Path

# Add the repository root to path for imports
root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path))

from knowledge_transfer import (
    GraphAnalyzer,
    GraphBuilder,
    GraphMerger,
    InMemoryKnowledgeStore,
    InMemoryProjectContextProvider,
    KnowledgeType,
    ProjectContext,
)
from factories import make_knowledge, make_node, make_graph


KT_ENV_VARS = (
    "KT_MIN_RELATIONSHIP_STRENGTH",
    "KT_MIN_IMPLICIT_SIMILARITY",
    "KT_MAX_IMPLICIT_RELATIONSHIPS",
    "KT_MIN_CROSS_GRAPH_SIMILARITY",
    "KT_MAX_CROSS_GRAPH_RELATIONSHIPS",
    "KT_MERGE_STRATEGY",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Option defaults must not depend on the developer's shell."""
    for var in KT_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def knowledge_store():
    """Fresh in-memory knowledge store for each test."""
    return InMemoryKnowledgeStore()


@pytest.fixture
def project_context():
    """Project context with two Python projects and one Go project."""
    return InMemoryProjectContextProvider([
        ProjectContext(id="alpha", name="Alpha API", languages=["python"], frameworks=["fastapi"]),
        ProjectContext(id="beta", name="Beta Worker", languages=["python", "sql"]),
        ProjectContext(id="gamma", name="Gamma Gateway", languages=["go"]),
    ])


@pytest.fixture
def graph_builder(knowledge_store):
    """Graph builder reading from the in-memory store."""
    return GraphBuilder(knowledge_store)


@pytest.fixture
def graph_merger():
    """Graph merger without project context."""
    return GraphMerger()


@pytest.fixture
def graph_analyzer():
    return GraphAnalyzer()


@pytest.fixture
def sample_knowledge(knowledge_store):
    """Knowledge harvested from two projects, with declared references."""
    items = {}

    items["retry"] = make_knowledge(
        "retry",
        project="alpha",
        content="Retry failed requests with exponential backoff and jitter",
        tags={"resilience", "http"},
        metadata={"related_memories": ["circuit"], "dependencies": ["http_client"]},
        access_count=10,
    )
    items["circuit"] = make_knowledge(
        "circuit",
        project="alpha",
        content="Circuit breaker stops calling failing downstream services",
        tags={"resilience"},
    )
    items["http_client"] = make_knowledge(
        "http_client",
        project="alpha",
        knowledge_type=KnowledgeType.DEPENDENCY,
        content="Shared pooled client configuration",
        tags={"http"},
    )
    items["retry_worker"] = make_knowledge(
        "retry_worker",
        project="beta",
        content="Retry failed requests with exponential backoff and jitter",
        tags={"resilience", "http"},
        application_count=4,
        applied_projects=["alpha", "beta"],
    )

    for item in items.values():
        knowledge_store.add(item)
    return items


@pytest.fixture
def scenario_b_graphs():
    """Two graphs sharing node n1 with different importance."""
    graph_a = make_graph("A", [
        make_node("n1", project="X", importance=0.4, content="Validate request payloads"),
        make_node("n2", project="X", content="Cache compiled templates"),
    ])
    graph_b = make_graph("B", [
        make_node("n1", project="X", importance=0.7, content="Validate request payloads"),
        make_node("n3", project="Y", content="Rotate signing keys monthly"),
    ])
    return graph_a, graph_b
