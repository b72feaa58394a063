"""
Storage collaborators for the knowledge graph core.

Provides the abstract knowledge store and project context interfaces
plus in-memory implementations.
"""

from .base import (
    KnowledgeStore,
    KnowledgeStoreError,
    ProjectContextProvider,
)
from .memory import InMemoryKnowledgeStore, InMemoryProjectContextProvider

__all__ = [
    "KnowledgeStore",
    "KnowledgeStoreError",
    "ProjectContextProvider",
    "InMemoryKnowledgeStore",
    "InMemoryProjectContextProvider",
]
