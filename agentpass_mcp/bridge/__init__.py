"""HTTP endpoint to MCP tool bridge.

This package turns endpoint descriptors into MCP tools, forwards tool calls
to the real backend API through ordered middleware phases and exposes the
tools over stdio, request/response HTTP or an event stream.
"""

from .auth import ApiKeyAuth
from .config import BridgeOptions
from .core import ToolServer
from .errors import (
    AgentPassError,
    BackendCallError,
    DiscoveryError,
    MCPError,
    MiddlewareError,
    ToolNotFoundError,
)
from .generator import AgentPass, MCPServer, generate_server
from .middleware import MiddlewareBuilder, MiddlewareRunner
from .models import (
    EndpointDescriptor,
    EndpointParameter,
    HTTPMethod,
    InvocationContext,
    MiddlewareConfig,
    MiddlewarePhase,
    ParameterLocation,
    RequestBody,
    ServerState,
    Tool,
    ToolOverrides,
    TransportKind,
)
from .pipeline import InvocationPipeline
from .schema import build_tool
from .transport import ServerRuntime, TransportConfig

__all__ = [
    "AgentPass",
    "ApiKeyAuth",
    "BridgeOptions",
    "MCPServer",
    "generate_server",
    "ToolServer",
    "InvocationPipeline",
    "MiddlewareBuilder",
    "MiddlewareRunner",
    "ServerRuntime",
    "TransportConfig",
    "build_tool",
    "EndpointDescriptor",
    "EndpointParameter",
    "HTTPMethod",
    "InvocationContext",
    "MiddlewareConfig",
    "MiddlewarePhase",
    "ParameterLocation",
    "RequestBody",
    "ServerState",
    "Tool",
    "ToolOverrides",
    "TransportKind",
    "AgentPassError",
    "BackendCallError",
    "DiscoveryError",
    "MCPError",
    "MiddlewareError",
    "ToolNotFoundError",
]
