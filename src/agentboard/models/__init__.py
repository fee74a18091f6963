"""Domain models."""

from agentboard.models.discovery import (
    CollectionUsage,
    IndexReport,
    KnowledgeEntry,
    KnowledgeMatch,
    ToolDefinition,
    ToolMatch,
)
from agentboard.models.task import (
    AgentTask,
    ClearResult,
    HumanTask,
    TaskStatus,
    TodoInput,
    TodoItem,
)

__all__ = [
    "AgentTask",
    "ClearResult",
    "CollectionUsage",
    "HumanTask",
    "IndexReport",
    "KnowledgeEntry",
    "KnowledgeMatch",
    "TaskStatus",
    "TodoInput",
    "TodoItem",
    "ToolDefinition",
    "ToolMatch",
]
