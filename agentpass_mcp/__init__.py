"""AgentPass: expose HTTP API endpoints as MCP tools."""

from agentpass_mcp.bridge import *  # noqa: F401,F403
from agentpass_mcp.bridge import __all__

__version__ = "1.0.0"
