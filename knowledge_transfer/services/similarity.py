"""
Similarity scoring for knowledge nodes.

Text similarity is token-set Jaccard; node similarity averages the
factors that apply to a pair. Both are pure and deterministic.
The pair scan shared by the graph builder and merger lives here too.
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Iterable, Optional, Sequence

from ..models import KnowledgeNode, KnowledgeRelationship
from ..storage import ProjectContextProvider


logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")

MIN_TOKEN_LENGTH = 4

# Factor scores
SAME_TYPE_SCORE = 1.0
DIFFERENT_TYPE_SCORE = 0.2
SAME_PROJECT_SCORE = 0.8
SHARED_LANGUAGE_SCORE = 0.4
DIFFERENT_PROJECT_SCORE = 0.1


def tokenize(text: str) -> frozenset[str]:
    """Lowercased word tokens longer than three characters."""
    cleaned = _NON_WORD.sub(" ", text.lower())
    return frozenset(token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH)


@lru_cache(maxsize=4096)
def text_similarity(text_a: str, text_b: str) -> float:
    """
    Jaccard similarity of the token sets of two strings.

    Returns 0.0 when neither string has a qualifying token.
    """
    tokens_a = tokenize(text_a or "")
    tokens_b = tokenize(text_b or "")
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def tag_similarity(tags_a: Iterable[str], tags_b: Iterable[str]) -> Optional[float]:
    """Shared tags over the larger tag set, or None if either side has none."""
    set_a, set_b = set(tags_a), set(tags_b)
    if not set_a or not set_b:
        return None
    return len(set_a & set_b) / max(len(set_a), len(set_b))


def project_affinity(
    project_a: str,
    project_b: str,
    project_context: Optional[ProjectContextProvider],
) -> Optional[float]:
    """
    Affinity between two source projects.

    None means the factor does not apply: no context provider was given,
    or either project could not be resolved, even when both sides name
    the same project.
    """
    if project_context is None:
        return None

    context_a = project_context.get_project(project_a)
    context_b = project_context.get_project(project_b)
    if context_a is None or context_b is None:
        return None

    if project_a == project_b:
        return SAME_PROJECT_SCORE

    if set(context_a.languages) & set(context_b.languages):
        return SHARED_LANGUAGE_SCORE
    return DIFFERENT_PROJECT_SCORE


def node_similarity(
    node_a: KnowledgeNode,
    node_b: KnowledgeNode,
    project_context: Optional[ProjectContextProvider] = None,
) -> float:
    """
    Average of the similarity factors that apply to two nodes.

    Factors: knowledge type, tag overlap, content similarity and, when a
    project context provider is available, project affinity.
    """
    knowledge_a = node_a.knowledge
    knowledge_b = node_b.knowledge

    factors = [
        SAME_TYPE_SCORE if knowledge_a.type == knowledge_b.type else DIFFERENT_TYPE_SCORE,
        text_similarity(knowledge_a.content, knowledge_b.content),
    ]

    tags = tag_similarity(knowledge_a.tags, knowledge_b.tags)
    if tags is not None:
        factors.append(tags)

    affinity = project_affinity(
        knowledge_a.source_project, knowledge_b.source_project, project_context
    )
    if affinity is not None:
        factors.append(affinity)

    if not factors:
        return 0.0
    return min(1.0, max(0.0, sum(factors) / len(factors)))


# ─────────────────────────────────────────────────────────────────────────────
# Bounded pair scan
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class SimilarPair:
    """Two nodes whose similarity passed the threshold."""
    source: KnowledgeNode
    target: KnowledgeNode
    similarity: float


@dataclass
class PairScanResult:
    """Outcome of a bounded similarity scan."""
    pairs: list[SimilarPair] = field(default_factory=list)
    comparisons: int = 0
    budget_exhausted: bool = False


def find_similar_pairs(
    nodes: Sequence[KnowledgeNode],
    existing: Iterable[KnowledgeRelationship],
    min_similarity: float,
    max_pairs: int,
    max_comparisons: Optional[int] = None,
    eligible: Optional[Callable[[KnowledgeNode, KnowledgeNode], bool]] = None,
    project_context: Optional[ProjectContextProvider] = None,
) -> PairScanResult:
    """
    Scan unordered node pairs for similarity edges.

    Pairs are visited in (i, j) order with i < j over ``nodes`` as given,
    so truncation by ``max_pairs`` or ``max_comparisons`` is deterministic.
    Pairs already joined by a relationship, or rejected by ``eligible``,
    are skipped without counting as comparisons.

    Args:
        nodes: Nodes in scan order
        existing: Relationships already present
        min_similarity: Threshold for a pair to be reported
        max_pairs: Stop once this many pairs were found
        max_comparisons: Stop after this many similarity computations
        eligible: Optional pair filter
        project_context: Passed through to node_similarity
    """
    result = PairScanResult()
    if max_pairs <= 0:
        return result

    linked = {frozenset((rel.source_id, rel.target_id)) for rel in existing}

    for i, node_a in enumerate(nodes):
        for node_b in nodes[i + 1:]:
            if frozenset((node_a.id, node_b.id)) in linked:
                continue
            if eligible is not None and not eligible(node_a, node_b):
                continue
            if max_comparisons is not None and result.comparisons >= max_comparisons:
                result.budget_exhausted = True
                logger.warning(
                    f"Similarity scan stopped after {result.comparisons} comparisons "
                    f"({len(result.pairs)} pairs found)"
                )
                return result

            result.comparisons += 1
            similarity = node_similarity(node_a, node_b, project_context)
            if similarity >= min_similarity:
                result.pairs.append(SimilarPair(node_a, node_b, similarity))
                linked.add(frozenset((node_a.id, node_b.id)))
                if len(result.pairs) >= max_pairs:
                    return result

    return result
