"""Generation-time configuration for a bridged MCP server."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .models import EndpointHook, ToolOverrides

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3000
DEFAULT_REQUEST_TIMEOUT = 30.0

DEFAULT_CAPABILITIES = {
    "tools": True,
    "resources": False,
    "prompts": False,
    "logging": False,
}

# camelCase spellings accepted by from_dict
_ALIASES = {
    "baseUrl": "base_url",
    "toolNaming": "tool_naming",
    "toolDescription": "tool_description",
    "requestTimeout": "request_timeout",
}


@dataclass
class BridgeOptions:
    """Options recognised when generating a server

    Args:
        name: Server name advertised to clients
        version: Server version advertised to clients
        description: Server description
        transport: "stdio", "http" or "sse"
        host: Listener host for the network transports
        port: Listener port for the network transports, 0 picks a free port
        cors: Answer CORS preflights on the HTTP transport
        base_url: Prefix for every backend call
        tool_naming: Optional override returning a tool name for an endpoint
        tool_description: Optional override returning a tool description
        capabilities: Advertised capability flags, only tools are served
        request_timeout: Backend request timeout in seconds
        metadata: Free-form metadata copied onto the generated server
    """
    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    transport: str = "stdio"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors: bool = True
    base_url: str = DEFAULT_BASE_URL
    tool_naming: Optional[EndpointHook] = None
    tool_description: Optional[EndpointHook] = None
    capabilities: Dict[str, bool] = field(default_factory=dict)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def overrides(self) -> ToolOverrides:
        return ToolOverrides(tool_naming=self.tool_naming, tool_description=self.tool_description)

    def resolved_capabilities(self) -> Dict[str, bool]:
        return {**DEFAULT_CAPABILITIES, **self.capabilities}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeOptions":
        """Build options from a mapping using snake_case or camelCase keys

        Raises:
            TypeError: If an unknown option is supplied
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            key = _ALIASES.get(key, key)
            if key not in known:
                raise TypeError(f"Unknown option: {key}")
            kwargs[key] = value
        return cls(**kwargs)


__all__ = [
    "BridgeOptions",
    "DEFAULT_BASE_URL",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_CAPABILITIES",
]
