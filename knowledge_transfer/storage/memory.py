"""
In-memory collaborators for testing and development.

Note: These are NOT persistence layers. Production deployments plug
their own KnowledgeStore into the graph builder.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..models import Knowledge, KnowledgeQuery, ProjectContext, SortDirection
from .base import KnowledgeStore, KnowledgeStoreError, ProjectContextProvider


logger = logging.getLogger(__name__)


class InMemoryKnowledgeStore(KnowledgeStore):
    """
    Dict-backed knowledge store.

    Supports every KnowledgeQuery filter, sorting and pagination.
    Insertion order is the natural result order when no sort is given.
    """

    def __init__(self, items: Optional[Iterable[Knowledge]] = None) -> None:
        self._items: Dict[str, Knowledge] = {}
        self.query_count = 0
        for item in items or []:
            self.add(item)

    # =========================================================
    # KNOWLEDGE ITEMS
    # =========================================================

    def add(self, item: Knowledge) -> Knowledge:
        """Add a knowledge item."""
        if item.id in self._items:
            raise KnowledgeStoreError(f"Knowledge already exists: {item.id}")
        self._items[item.id] = item
        logger.debug(f"Stored knowledge: {item.id} ({item.type.value})")
        return item

    def get(self, knowledge_id: str) -> Optional[Knowledge]:
        return self._items.get(knowledge_id)

    def remove(self, knowledge_id: str) -> bool:
        if knowledge_id not in self._items:
            return False
        del self._items[knowledge_id]
        return True

    def __len__(self) -> int:
        return len(self._items)

    async def query(self, query: KnowledgeQuery) -> List[Knowledge]:
        """Filter, sort and paginate the stored items."""
        self.query_count += 1
        results = [item for item in self._items.values() if self._matches(item, query)]

        if query.sort_by is not None:
            field_name = query.sort_by.value
            results.sort(
                key=lambda item: getattr(item, field_name),
                reverse=query.sort_direction == SortDirection.DESC,
            )

        results = results[query.offset:]
        if query.limit is not None:
            results = results[:query.limit]
        return results

    def _matches(self, item: Knowledge, query: KnowledgeQuery) -> bool:
        """Check one item against every filter of a query."""
        if query.types and item.type not in query.types:
            return False
        if query.source_projects and item.source_project not in query.source_projects:
            return False
        if query.tags and not set(query.tags).issubset(item.tags):
            return False
        if query.applied_project and query.applied_project not in item.applied_projects:
            return False
        if query.language and item.language != query.language:
            return False
        if query.created_after and item.created_at < query.created_after:
            return False
        if query.created_before and item.created_at > query.created_before:
            return False
        if query.search_term:
            term = query.search_term.lower()
            haystack = " ".join((item.title, item.description, item.content)).lower()
            if term not in haystack:
                return False
        return True


class InMemoryProjectContextProvider(ProjectContextProvider):
    """Dict-backed project context lookup."""

    def __init__(self, projects: Optional[Iterable[ProjectContext]] = None) -> None:
        self._projects: Dict[str, ProjectContext] = {}
        for project in projects or []:
            self.register(project)

    def register(self, project: ProjectContext) -> ProjectContext:
        self._projects[project.id] = project
        return project

    def get_project(self, project_id: str) -> Optional[ProjectContext]:
        return self._projects.get(project_id)
