"""Data models shared by the tool bridge.

This module contains the endpoint descriptors handed over by discoverers,
the generated tools, the middleware configuration and the per-call
invocation context.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union


class HTTPMethod(Enum):
    """HTTP methods an endpoint may declare"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ParameterLocation(Enum):
    """Where a parameter travels in the outbound request"""
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"


class MiddlewarePhase(Enum):
    """Phases a tool call goes through, in execution order"""
    AUTH = "auth"
    AUTHZ = "authz"
    PRE = "pre"
    POST = "post"
    ERROR = "error"


class TransportKind(Enum):
    """Wire transports a generated server can be exposed over"""
    STDIO = "stdio"
    HTTP = "http"
    SSE = "sse"


class ServerState(Enum):
    """Lifecycle of a generated server"""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class EndpointParameter:
    """A single parameter declared by an endpoint

    Args:
        name: Parameter name
        type: JSON type ("string", "number", "integer", "boolean", "object", "array")
        location: Where the parameter is sent
        required: Whether the parameter must be supplied
        description: Parameter description for tool documentation
        schema: Extra JSON schema keywords merged into the property
        example: Example value
    """
    name: str
    type: str = "string"
    location: ParameterLocation = ParameterLocation.QUERY
    required: bool = False
    description: Optional[str] = None
    schema: Optional[Dict[str, Any]] = None
    example: Any = None

    def __post_init__(self):
        if not isinstance(self.location, ParameterLocation):
            object.__setattr__(self, "location", ParameterLocation(self.location))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EndpointParameter":
        return cls(
            name=data["name"],
            type=data.get("type") or (data.get("schema") or {}).get("type", "string"),
            location=ParameterLocation(data.get("in", data.get("location", "query"))),
            required=bool(data.get("required", False)),
            description=data.get("description"),
            schema=data.get("schema"),
            example=data.get("example"),
        )


@dataclass(frozen=True)
class RequestBody:
    """Request body declaration keyed by media type

    Args:
        content: Mapping of media type to ``{"schema": {...}}``
        required: Whether a body must be sent
        description: Body description
    """
    content: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    required: bool = False
    description: Optional[str] = None

    def json_schema(self) -> Optional[Dict[str, Any]]:
        """Schema of the JSON media type, if one is declared"""
        media = self.content.get("application/json")
        if media is None:
            for media_type, candidate in self.content.items():
                if media_type.split(";")[0].strip().endswith("json"):
                    media = candidate
                    break
        if not media:
            return None
        return media.get("schema")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequestBody":
        return cls(
            content=dict(data.get("content") or {}),
            required=bool(data.get("required", False)),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class EndpointDescriptor:
    """Immutable description of one backend HTTP operation

    Args:
        method: HTTP method
        path: Path template, placeholders as ``{name}`` or ``:name``
        id: Identifier assigned by the discoverer
        description: Long description
        summary: Short summary
        tags: Grouping tags
        parameters: Declared parameters
        request_body: Optional request body declaration
        responses: Response schemas keyed by status code
        security: Security requirements
        metadata: Free-form discoverer metadata
    """
    method: HTTPMethod
    path: str
    id: Optional[str] = None
    description: Optional[str] = None
    summary: Optional[str] = None
    tags: Tuple[str, ...] = ()
    parameters: Tuple[EndpointParameter, ...] = ()
    request_body: Optional[RequestBody] = None
    responses: Dict[str, Any] = field(default_factory=dict)
    security: Tuple[Dict[str, List[str]], ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.method, HTTPMethod):
            object.__setattr__(self, "method", HTTPMethod(str(self.method).upper()))
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "security", tuple(self.security))

    def parameters_in(self, location: ParameterLocation) -> List[EndpointParameter]:
        return [param for param in self.parameters if param.location is location]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EndpointDescriptor":
        """Create a descriptor from a JSON/OpenAPI shaped dictionary

        Raises:
            KeyError: If ``method`` or ``path`` is missing
            ValueError: If the method or a parameter location is invalid
        """
        request_body = data.get("requestBody", data.get("request_body"))
        return cls(
            method=HTTPMethod(str(data["method"]).upper()),
            path=data["path"],
            id=data.get("id"),
            description=data.get("description"),
            summary=data.get("summary"),
            tags=tuple(data.get("tags") or ()),
            parameters=tuple(EndpointParameter.from_dict(param) for param in data.get("parameters") or ()),
            request_body=RequestBody.from_dict(request_body) if request_body else None,
            responses=dict(data.get("responses") or {}),
            security=tuple(data.get("security") or ()),
            metadata=dict(data.get("metadata") or {}),
        )


EndpointHook = Callable[[EndpointDescriptor], str]


@dataclass(frozen=True)
class ToolOverrides:
    """Optional naming and description overrides applied when building tools"""
    tool_naming: Optional[EndpointHook] = None
    tool_description: Optional[EndpointHook] = None


@dataclass(frozen=True)
class ToolHandler:
    """Everything the invocation pipeline needs to serve one tool

    Args:
        endpoint: Endpoint the tool forwards to
        base_url: Prefix for the backend URL
        timeout: Backend request timeout in seconds
    """
    endpoint: EndpointDescriptor
    base_url: str
    timeout: float = 30.0


@dataclass(frozen=True)
class Tool:
    """Protocol tool generated from one endpoint"""
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler

    def definition(self) -> Dict[str, Any]:
        """Name/description/schema triple exposed to protocol callers"""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ToolArguments:
    """Call arguments resolved once into their request locations"""
    path: Dict[str, Any]
    query: Dict[str, Any]
    headers: Dict[str, str]
    body: Any = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OutboundRequest:
    """The request derived from a tool call, open to middleware mutation"""
    path: str
    method: HTTPMethod
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Any = None
    url: Optional[str] = None


@dataclass
class InvocationContext:
    """Per-call state threaded through every middleware phase"""
    endpoint: EndpointDescriptor
    request: OutboundRequest
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user: Any = None
    metadata: Dict[str, Any] = field(default_factory=dict)


HookResult = Union[Any, Awaitable[Any]]
AuthHook = Callable[[InvocationContext], HookResult]
AuthzHook = Callable[[InvocationContext], HookResult]
PreHook = Callable[[InvocationContext], HookResult]
PostHook = Callable[[InvocationContext, Any], HookResult]
ErrorHook = Callable[[InvocationContext, BaseException], HookResult]


@dataclass(frozen=True)
class MiddlewareConfig:
    """Ordered hook lists, one per phase, frozen once built"""
    auth: Tuple[AuthHook, ...] = ()
    authz: Tuple[AuthzHook, ...] = ()
    pre: Tuple[PreHook, ...] = ()
    post: Tuple[PostHook, ...] = ()
    error: Tuple[ErrorHook, ...] = ()

    def hooks(self, phase: MiddlewarePhase) -> Tuple[Callable[..., HookResult], ...]:
        return getattr(self, phase.value)


__all__ = [
    "HTTPMethod",
    "ParameterLocation",
    "MiddlewarePhase",
    "TransportKind",
    "ServerState",
    "EndpointParameter",
    "RequestBody",
    "EndpointDescriptor",
    "ToolOverrides",
    "ToolHandler",
    "Tool",
    "ToolArguments",
    "OutboundRequest",
    "InvocationContext",
    "MiddlewareConfig",
]
