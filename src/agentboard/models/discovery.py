"""Models for tool and knowledge discovery."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from agentboard.models.task import WireModel


class ToolDefinition(WireModel):
    """Metadata describing one callable capability. ``name`` is the natural key."""

    name: str
    description: str
    input_schema: dict[str, Any] = Field(default_factory=dict)
    registered_at: datetime


class KnowledgeEntry(WireModel):
    """A piece of retrievable knowledge. Immutable once stored."""

    id: str
    collection: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ToolMatch(WireModel):
    name: str
    description: str
    score: float
    registered_at: datetime


class KnowledgeMatch(WireModel):
    entry: KnowledgeEntry
    score: float


class CollectionUsage(WireModel):
    collection: str
    count: int


class IndexReport(WireModel):
    """Outcome of a batch indexing run."""

    indexed: int
    names: list[str] = Field(default_factory=list)
