"""Capability contract and name-based dispatch.

A capability is a name, a description and an async handler whose annotated
signature is its input contract. The router is built once at startup; adding
a capability records it in the dispatch table and in the tool metadata
registry, so the two never disagree about what exists.
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from fastmcp.exceptions import ToolError
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from agentboard.exceptions import CoordinatorError, NotFoundError, ValidationError
from agentboard.logging import format_component
from agentboard.registry import ToolMetadataRegistry

if TYPE_CHECKING:
    from fastmcp import FastMCP

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


@dataclass
class Capability:
    """One named, callable unit of the external interface."""

    name: str
    description: str
    handler: Handler
    _adapter: TypeAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._adapter = TypeAdapter(self.handler)

    @functools.cached_property
    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the handler's arguments, keyed by their wire names."""
        return self._adapter.json_schema()

    async def invoke(self, arguments: dict[str, Any]) -> Any:
        try:
            call = self._adapter.validate_python(arguments)
        except PydanticValidationError as e:
            raise ValidationError(
                f"invalid arguments for {self.name}",
                errors=e.errors(include_url=False, include_context=False),
            ) from None
        return await call


class ToolResponse(BaseModel):
    """Tagged outcome of a dispatched call: a result or an error, never both."""

    ok: bool
    result: Any = None
    error: dict[str, Any] | None = None

    @classmethod
    def failure(cls, error: CoordinatorError) -> ToolResponse:
        return cls(ok=False, error=error.to_dict())


class ToolRouter:
    """Dispatch table from capability name to handler."""

    def __init__(self, registry: ToolMetadataRegistry) -> None:
        self.registry = registry
        self._capabilities: dict[str, Capability] = {}

    def add(self, name: str, description: str, handler: Handler) -> Capability:
        capability = Capability(name=name, description=description, handler=handler)
        self._capabilities[name] = capability
        self.registry.register(name, description, capability.input_schema)
        return capability

    def get(self, name: str) -> Capability:
        capability = self._capabilities.get(name)
        if capability is None:
            raise NotFoundError(f"unknown tool {name!r}", name=name)
        return capability

    def names(self) -> list[str]:
        return list(self._capabilities)

    def __len__(self) -> int:
        return len(self._capabilities)

    async def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResponse:
        """Run ``name`` with ``arguments``. Domain errors come back tagged."""
        try:
            result = await self.get(name).invoke(arguments or {})
        except CoordinatorError as e:
            logger.info(f"{format_component('MCP')} {name} failed: {e.kind}: {e.message}")
            return ToolResponse.failure(e)
        return ToolResponse(ok=True, result=result)

    def mount(self, mcp: FastMCP) -> None:
        """Expose every capability as a tool on ``mcp``."""
        for capability in self._capabilities.values():
            mcp.tool(
                _as_mcp_tool(capability.handler),
                name=capability.name,
                description=capability.description,
            )
            logger.debug(f"{format_component('MCP')} Mounted {capability.name}")
        logger.info(f"{format_component('MCP')} Mounted {len(self._capabilities)} tools")


def _as_mcp_tool(handler: Handler) -> Handler:
    """Wrap ``handler`` so domain errors reach the client as tagged ToolErrors."""

    @functools.wraps(handler)
    async def wrapper(**kwargs: Any) -> Any:
        try:
            return await handler(**kwargs)
        except CoordinatorError as e:
            raise ToolError(json.dumps(e.to_dict(), default=str)) from e

    return wrapper
