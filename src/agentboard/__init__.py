"""agentboard: task coordination and tool/knowledge discovery for agents."""

from agentboard.exceptions import (
    BackendUnavailableError,
    CoordinatorError,
    NotFoundError,
    PartialWriteError,
    ValidationError,
)
from agentboard.registry import ToolMetadataRegistry
from agentboard.router import ToolResponse, ToolRouter

__version__ = "0.1.0"

__all__ = [
    "BackendUnavailableError",
    "CoordinatorError",
    "NotFoundError",
    "PartialWriteError",
    "ToolMetadataRegistry",
    "ToolResponse",
    "ToolRouter",
    "ValidationError",
]
