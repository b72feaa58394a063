"""
Collaborator interfaces consumed by the graph core.

The knowledge store is the only upstream dependency of the graph
builder; project context is optional and only feeds similarity scoring.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import Knowledge, KnowledgeGraphError, KnowledgeQuery, ProjectContext


class KnowledgeStoreError(KnowledgeGraphError):
    """Raised by knowledge store implementations."""
    pass


class KnowledgeStore(ABC):
    """
    Read access to harvested knowledge items.

    Connection management belongs to the implementation; the graph
    builder only ever calls ``query``.
    """

    @abstractmethod
    async def query(self, query: KnowledgeQuery) -> List[Knowledge]:
        """
        Return the knowledge items matching a query.

        An empty list is a valid result. Retries, if any, belong here
        rather than in the callers.
        """
        pass


class ProjectContextProvider(ABC):
    """Lookup of per-project language and framework context."""

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[ProjectContext]:
        """Get a project's context, or None if it is unknown."""
        pass
