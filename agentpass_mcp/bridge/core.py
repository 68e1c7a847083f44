"""Protocol server for the generated tool set.

This module provides the ToolServer class which answers the two protocol
operations (``tools/list`` and ``tools/call``) over an immutable tool list,
and adapts it to an MCP lowlevel Server for the SDK driven transports.
"""

import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

from mcp import types as mcp_types
from mcp.server.lowlevel import Server

from .errors import AgentPassError, MCPError, ToolNotFoundError
from .pipeline import InvocationPipeline
from .models import Tool

logging.basicConfig(stream=sys.stderr, level=logging.INFO, format='[%(levelname)s] %(message)s')


def to_text(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, default=str)


class ToolServer:
    """Serves a fixed set of tools through the invocation pipeline

    Args:
        tools: Tools generated for the server, never changed afterwards
        pipeline: Pipeline used for every call
        info: Server name/version/description
        capabilities: Advertised capability flags
    """

    def __init__(
        self,
        tools: Sequence[Tool],
        pipeline: Optional[InvocationPipeline] = None,
        info: Optional[Dict[str, Any]] = None,
        capabilities: Optional[Dict[str, bool]] = None,
    ):
        self._tools = tuple(tools)
        self._by_name: Dict[str, Tool] = {}
        for tool in self._tools:
            # first registration wins on duplicate names
            self._by_name.setdefault(tool.name, tool)
        self.pipeline = pipeline or InvocationPipeline()
        self.info = dict(info or {"name": "agentpass-mcp-server", "version": "1.0.0"})
        self.capabilities = dict(capabilities or {"tools": True})
        logging.info(f"[ToolServer] Initialized '{self.info.get('name')}' with {len(self._tools)} tools")

    @property
    def tools(self) -> tuple:
        return self._tools

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._by_name.get(name)

    def list_tools(self) -> List[Dict[str, Any]]:
        """Name, description and input schema of every tool"""
        return [tool.definition() for tool in self._tools]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Invoke a tool by exact name

        Returns:
            Content list holding one text block with the call result

        Raises:
            ToolNotFoundError: If no tool has this name
            MCPError: If the invocation failed, wrapping the underlying error
        """
        arguments = arguments or {}
        tool = self._by_name.get(name)
        if tool is None:
            logging.warning(f"[ToolServer] Tool '{name}' not found")
            raise ToolNotFoundError(name, arguments)

        logging.info(f"[ToolServer] Tool call: {name} with args: {json.dumps(arguments, default=str)}")
        try:
            result = await self.pipeline.invoke(tool, arguments)
        except Exception as error:
            reason = error.message if isinstance(error, AgentPassError) else str(error)
            raise MCPError(
                f"Tool '{name}' execution failed: {reason}",
                tool=name,
                arguments=arguments,
                original_error=error,
            ) from error

        return [{"type": "text", "text": to_text(result)}]

    def create_mcp_server(self) -> Server:
        """MCP lowlevel Server delegating to this tool server"""
        server = Server(
            self.info.get("name", "agentpass-mcp-server"),
            version=self.info.get("version"),
            instructions=self.info.get("description"),
        )

        @server.list_tools()
        async def list_tools() -> List[mcp_types.Tool]:
            tool_list = [
                mcp_types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
                for tool in self._tools
            ]
            logging.info(f"[ToolServer] Returning {len(tool_list)} tools to MCP client")
            return tool_list

        @server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: Optional[dict]) -> List[mcp_types.TextContent]:
            content = await self.call_tool(name, arguments)
            return [mcp_types.TextContent(type="text", text=block["text"]) for block in content]

        return server


__all__ = [
    "ToolServer",
    "to_text",
]
