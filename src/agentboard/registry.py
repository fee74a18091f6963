"""Tool metadata registry.

Built once at startup and handed to every capability module during its own
setup. Registering a name again replaces the previous definition. Indexing
reads a ``snapshot()``, never the live table.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from agentboard.exceptions import ValidationError
from agentboard.models.discovery import ToolDefinition
from agentboard.validation import require_text, utcnow

logger = logging.getLogger(__name__)


class ToolMetadataRegistry:
    """In-process table of tool definitions keyed by name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, name: str, description: str, input_schema: dict[str, Any] | None = None) -> ToolDefinition:
        """Add or replace the definition for ``name``."""
        name = require_text(name, "name")
        description = require_text(description, "description")
        if input_schema is not None and not isinstance(input_schema, dict):
            raise ValidationError("inputSchema must be a JSON object", field="inputSchema")

        definition = ToolDefinition(
            name=name,
            description=description,
            input_schema=dict(input_schema or {}),
            registered_at=utcnow(),
        )
        with self._lock:
            replaced = name in self._tools
            # Re-insert so snapshot order follows the latest registration
            self._tools.pop(name, None)
            self._tools[name] = definition
        logger.debug(f"{'Re-registered' if replaced else 'Registered'} tool: {name}")
        return definition

    def snapshot(self) -> tuple[ToolDefinition, ...]:
        """Stable copy of every definition, oldest registration first."""
        with self._lock:
            return tuple(self._tools.values())

    def get(self, name: str) -> ToolDefinition | None:
        with self._lock:
            return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)
