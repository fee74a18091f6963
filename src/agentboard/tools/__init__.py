"""MCP capabilities exposed by the agentboard server."""

from agentboard.tools.coordinator_tools import register_coordinator_tools
from agentboard.tools.discovery_tools import register_discovery_tools
from agentboard.tools.knowledge_tools import register_knowledge_tools

__all__ = ["register_coordinator_tools", "register_discovery_tools", "register_knowledge_tools"]
