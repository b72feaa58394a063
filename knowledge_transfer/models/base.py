"""
Base domain models for cross-project knowledge.

These models are storage-agnostic. Knowledge items are owned by an
external store; the graph core only ever reads them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current time, used as the default for timestamps."""
    return datetime.now(timezone.utc)


class KnowledgeType(str, Enum):
    """Types of knowledge that can be transferred between projects."""
    CODE_PATTERN = "code_pattern"
    ARCHITECTURE = "architecture"
    BEST_PRACTICE = "best_practice"
    SOLUTION = "solution"
    ALGORITHM = "algorithm"
    CONFIGURATION = "configuration"
    DEPENDENCY = "dependency"
    CUSTOM = "custom"


class Knowledge(BaseModel):
    """
    A reusable piece of engineering knowledge harvested from a project.

    Declared relationships to other knowledge live in ``metadata``:
    ``related_memories`` and ``dependencies`` hold lists of knowledge ids.
    """

    id: str
    type: KnowledgeType
    title: str = ""
    description: str = ""
    content: str = ""

    # Provenance
    source_project: str
    source_file_path: Optional[str] = None
    language: Optional[str] = None
    created_by: str = "system"

    # Classification
    tags: Set[str] = Field(default_factory=set)

    # Usage counters
    access_count: int = Field(default=0, ge=0)
    application_count: int = Field(default=0, ge=0)
    applied_projects: List[str] = Field(default_factory=list)

    # Compatibility constraints (languages, frameworks, environments, notes)
    compatibility: Optional[Dict[str, Any]] = None

    metadata: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def related_ids(self) -> List[str]:
        """Ids declared as related knowledge."""
        return list(self.metadata.get("related_memories") or [])

    @property
    def dependency_ids(self) -> List[str]:
        """Ids this knowledge declares as dependencies."""
        return list(self.metadata.get("dependencies") or [])


class SortField(str, Enum):
    """Fields a knowledge query can be sorted by."""
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    ACCESS_COUNT = "access_count"
    APPLICATION_COUNT = "application_count"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class KnowledgeQuery(BaseModel):
    """
    Filter forwarded to the knowledge store.

    List filters match any of their values; ``tags`` uses AND logic.
    """

    search_term: Optional[str] = None
    types: List[KnowledgeType] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    source_projects: List[str] = Field(default_factory=list)
    applied_project: Optional[str] = None
    language: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None

    sort_by: Optional[SortField] = None
    sort_direction: SortDirection = SortDirection.DESC

    limit: Optional[int] = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)


class ProjectContext(BaseModel):
    """Languages and frameworks a project is built with."""

    id: str
    name: str = ""
    languages: List[str] = Field(default_factory=list)
    frameworks: List[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}
