"""One-shot generation of an MCP server from endpoint descriptors.

This module provides ``generate_server`` and the AgentPass facade which
collects endpoints and middleware before generation. Generation snapshots
both: endpoints or hooks added later never reach an existing server.
"""

import logging
import re
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import BridgeOptions
from .core import ToolServer
from .errors import MCPError
from .middleware import MiddlewareBuilder
from .models import EndpointDescriptor, MiddlewareConfig, MiddlewarePhase, ServerState, Tool, TransportKind
from .pipeline import InvocationPipeline
from .schema import build_tool
from .transport import ServerRuntime, TransportConfig

EndpointTransformer = Callable[[EndpointDescriptor], EndpointDescriptor]


class MCPServer:
    """A generated server: tool set, protocol server and transport runtime

    Args:
        tool_server: Protocol server holding the generated tools
        runtime: Transport runtime exposing it
        options: Options the server was generated with
    """

    def __init__(self, tool_server: ToolServer, runtime: ServerRuntime, options: BridgeOptions):
        self.tool_server = tool_server
        self.runtime = runtime
        self.info = dict(tool_server.info)
        self.capabilities = options.resolved_capabilities()
        self.metadata = dict(options.metadata)

    @property
    def transport(self) -> TransportConfig:
        return self.runtime.runtime.transport

    @property
    def tools(self) -> Sequence[Tool]:
        return self.tool_server.tools

    @property
    def state(self) -> ServerState:
        return self.runtime.state

    async def start(self) -> None:
        await self.runtime.start()

    async def stop(self) -> None:
        await self.runtime.stop()

    async def wait(self) -> None:
        await self.runtime.wait()

    def is_running(self) -> bool:
        return self.runtime.is_running()

    def get_address(self) -> Optional[str]:
        return self.runtime.get_address()

    def list_tools(self) -> List[Dict[str, Any]]:
        return self.tool_server.list_tools()

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return await self.tool_server.call_tool(name, arguments)


def _transport_kind(value: Any) -> TransportKind:
    try:
        return TransportKind(value.value if isinstance(value, TransportKind) else value)
    except ValueError:
        raise MCPError(f"Unsupported transport: {value}") from None


def generate_server(
    endpoints: Sequence[EndpointDescriptor],
    middleware: Optional[MiddlewareConfig] = None,
    options: Optional[BridgeOptions] = None,
) -> MCPServer:
    """Build the tools for ``endpoints`` and wire them to a transport

    Args:
        endpoints: Ordered endpoint descriptors from a discoverer
        middleware: Frozen middleware configuration
        options: Generation options

    Returns:
        A server in the NotStarted state

    Raises:
        MCPError: If there are no endpoints or the transport is unsupported
    """
    options = options or BridgeOptions()
    if not endpoints:
        raise MCPError("No endpoints provided for MCP server generation")
    kind = _transport_kind(options.transport)

    tools = []
    for endpoint in endpoints:
        try:
            tools.append(build_tool(endpoint, options.overrides, options.base_url, options.request_timeout))
        except Exception as e:
            logging.warning(f"[Generator] Failed to create MCP tool for endpoint {endpoint.id or endpoint.path}: {e}")

    info = {
        "name": options.name or "agentpass-mcp-server",
        "version": options.version or "1.0.0",
        "description": options.description,
    }
    tool_server = ToolServer(
        tools,
        pipeline=InvocationPipeline(middleware),
        info=info,
        capabilities=options.resolved_capabilities(),
    )
    runtime = ServerRuntime(
        tool_server,
        TransportConfig(kind=kind, host=options.host, port=options.port, cors=options.cors),
    )
    logging.info(f"[Generator] Generated '{info['name']}' with {len(tools)} tools over {kind.value}")
    return MCPServer(tool_server, runtime, options)


_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


class AgentPass:
    """Collects endpoints and middleware, then generates MCP servers

    Args:
        name: Default server name
        version: Default server version
        description: Default server description
    """

    def __init__(self, name: str = "agentpass", version: str = "1.0.0", description: Optional[str] = None):
        self.name = name
        self.version = version
        self.description = description
        self._endpoints: Dict[str, EndpointDescriptor] = {}
        self._middleware = MiddlewareBuilder()
        self._transformers: List[EndpointTransformer] = []

    def define_endpoint(self, endpoint: EndpointDescriptor) -> EndpointDescriptor:
        """Register an endpoint, assigning an id if it has none

        Returns:
            The stored (transformed) descriptor
        """
        for transformer in self._transformers:
            endpoint = transformer(endpoint)
        if not endpoint.id:
            endpoint = replace(endpoint, id=self.endpoint_id(endpoint))
        self._endpoints[endpoint.id] = endpoint
        logging.info(f"[AgentPass] Defined endpoint '{endpoint.id}' ({endpoint.method.value} {endpoint.path})")
        return endpoint

    def define_endpoints(self, endpoints: Sequence[EndpointDescriptor]) -> None:
        for endpoint in endpoints:
            self.define_endpoint(endpoint)

    @staticmethod
    def endpoint_id(endpoint: EndpointDescriptor) -> str:
        return f"{endpoint.method.value}_{_NON_ALNUM.sub('_', endpoint.path)}"

    def use(self, phase, hook: Callable[..., Any]) -> "AgentPass":
        self._middleware.use(phase, hook)
        return self

    def transform(self, transformer: EndpointTransformer) -> "AgentPass":
        """Register a transformer applied to endpoints defined from now on"""
        self._transformers.append(transformer)
        return self

    def get_endpoints(self) -> List[EndpointDescriptor]:
        return list(self._endpoints.values())

    def get_endpoint(self, endpoint_id: str) -> Optional[EndpointDescriptor]:
        return self._endpoints.get(endpoint_id)

    def get_middleware(self) -> MiddlewareConfig:
        return self._middleware.build()

    def get_stats(self) -> Dict[str, int]:
        middleware = self._middleware.build()
        return {
            "endpoints": len(self._endpoints),
            "transformers": len(self._transformers),
            "middleware_phases": sum(1 for phase in MiddlewarePhase if middleware.hooks(phase)),
        }

    def reset(self) -> None:
        self._endpoints.clear()
        self._middleware.clear()
        self._transformers.clear()

    def generate_mcp_server(self, options: Optional[BridgeOptions] = None, **kwargs: Any) -> MCPServer:
        """Generate a server from the endpoints and middleware registered so far

        Options may be passed as a BridgeOptions or as keyword arguments
        (snake_case or camelCase).

        Raises:
            MCPError: If no endpoints were defined or the options are invalid
        """
        if not self._endpoints:
            raise MCPError("No endpoints discovered. Define or discover endpoints first.")
        base = dict(vars(options)) if options is not None else {}
        try:
            options = BridgeOptions.from_dict({**base, **kwargs})
        except TypeError as e:
            raise MCPError(f"Invalid MCP server options: {e}") from e
        if options.name is None or options.version is None or options.description is None:
            options = replace(
                options,
                name=options.name or self.name,
                version=options.version or self.version,
                description=options.description or self.description,
            )
        return generate_server(self.get_endpoints(), self._middleware.build(), options)


__all__ = [
    "MCPServer",
    "AgentPass",
    "generate_server",
]
