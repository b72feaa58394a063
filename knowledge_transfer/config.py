"""
Environment-driven defaults for graph building and merging.

Configuration via environment variables:
- KT_MIN_RELATIONSHIP_STRENGTH: weakest relationship kept (0-1)
- KT_MIN_IMPLICIT_SIMILARITY: threshold for implicit SIMILAR_TO edges (0-1)
- KT_MAX_IMPLICIT_RELATIONSHIPS: cap on implicit edges per build
- KT_MIN_CROSS_GRAPH_SIMILARITY: threshold for cross-graph edges (0-1)
- KT_MAX_CROSS_GRAPH_RELATIONSHIPS: cap on cross-graph edges per merge
- KT_MERGE_STRATEGY: union|intersection|first_priority|second_priority

Unset variables fall back to the option model defaults.
"""

import logging
import os
from typing import Any, Callable, Dict, Optional

from .models import KnowledgeGraphError


logger = logging.getLogger(__name__)


class ConfigurationError(KnowledgeGraphError):
    """Raised when an environment override cannot be parsed."""
    pass


BUILD_ENV_VARS: Dict[str, tuple[str, Callable[[str], Any]]] = {
    "min_relationship_strength": ("KT_MIN_RELATIONSHIP_STRENGTH", float),
    "min_implicit_similarity": ("KT_MIN_IMPLICIT_SIMILARITY", float),
    "max_implicit_relationships": ("KT_MAX_IMPLICIT_RELATIONSHIPS", int),
}

MERGE_ENV_VARS: Dict[str, tuple[str, Callable[[str], Any]]] = {
    "min_relationship_strength": ("KT_MIN_RELATIONSHIP_STRENGTH", float),
    "min_cross_graph_similarity": ("KT_MIN_CROSS_GRAPH_SIMILARITY", float),
    "max_cross_graph_relationships": ("KT_MAX_CROSS_GRAPH_RELATIONSHIPS", int),
    "strategy": ("KT_MERGE_STRATEGY", str.lower),
}


def _read_overrides(
    env_vars: Dict[str, tuple[str, Callable[[str], Any]]],
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Collect option overrides from the environment."""
    overrides: Dict[str, Any] = {}
    for option, (var, parse) in env_vars.items():
        raw = environ.get(var) if environ is not None else os.getenv(var)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[option] = parse(raw.strip())
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {var}: {raw!r}") from e
    if overrides:
        logger.debug(f"Option overrides from environment: {overrides}")
    return overrides


def build_option_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """GraphBuildOptions fields overridden by the environment."""
    return _read_overrides(BUILD_ENV_VARS, environ)


def merge_option_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """GraphMergeOptions fields overridden by the environment."""
    return _read_overrides(MERGE_ENV_VARS, environ)
