"""Conversion of endpoint descriptors into MCP tool definitions.

Everything in this module is a pure function of the descriptor and the
optional overrides: no I/O happens while a tool is built.
"""

import copy
import re
from typing import Any, Dict, List, Optional

from .config import DEFAULT_BASE_URL, DEFAULT_REQUEST_TIMEOUT
from .models import EndpointDescriptor, HTTPMethod, ParameterLocation, Tool, ToolHandler, ToolOverrides

ACTIONS = {
    HTTPMethod.GET: "Retrieve",
    HTTPMethod.POST: "Create",
    HTTPMethod.PUT: "Update",
    HTTPMethod.PATCH: "Modify",
    HTTPMethod.DELETE: "Delete",
    HTTPMethod.HEAD: "Check",
    HTTPMethod.OPTIONS: "Get options for",
}

_PLACEHOLDER_SEGMENT = re.compile(r"^(?:\{(?P<brace>[^{}]+)\}|:(?P<colon>[A-Za-z_][A-Za-z0-9_]*))$")
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")


def placeholder_name(segment: str) -> Optional[str]:
    """Return the placeholder name of a path segment, None for literal segments"""
    match = _PLACEHOLDER_SEGMENT.match(segment)
    if not match:
        return None
    return match.group("brace") or match.group("colon")


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def resource_segment(path: str) -> Optional[str]:
    """Last path segment that is not a placeholder"""
    literal = [segment for segment in _segments(path) if placeholder_name(segment) is None]
    return literal[-1] if literal else None


def default_tool_name(endpoint: EndpointDescriptor) -> str:
    """``{method}_{resource}``, suffixed with ``_by_{param}`` when the path ends in a placeholder"""
    name = f"{endpoint.method.value}_{resource_segment(endpoint.path) or 'endpoint'}"
    segments = _segments(endpoint.path)
    trailing = placeholder_name(segments[-1]) if segments else None
    if trailing:
        name = f"{name}_by_{trailing}"
    return _INVALID_NAME_CHARS.sub("_", name).lower()


def default_tool_description(endpoint: EndpointDescriptor) -> str:
    if endpoint.description:
        return endpoint.description
    if endpoint.summary:
        return endpoint.summary

    resource = resource_segment(endpoint.path) or "resource"
    if resource.endswith("s") and len(resource) > 1:
        resource = resource[:-1]
    return f"{ACTIONS.get(endpoint.method, 'Interact with')} {resource}"


def _parameter_property(param_type: str, description: Optional[str], extra: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    prop: Dict[str, Any] = {"type": param_type}
    if description:
        prop["description"] = description
    if extra:
        prop.update(copy.deepcopy(extra))
    return prop


def build_input_schema(endpoint: EndpointDescriptor) -> Dict[str, Any]:
    """JSON schema of the arguments accepted by the endpoint's tool

    Path and query parameters become top-level properties, a JSON request
    body becomes ``body`` and header parameters are grouped under ``headers``.
    """
    properties: Dict[str, Any] = {}
    required: List[str] = []

    for param in endpoint.parameters:
        if param.location not in (ParameterLocation.PATH, ParameterLocation.QUERY):
            continue
        properties[param.name] = _parameter_property(param.type, param.description, param.schema)
        if param.required:
            required.append(param.name)

    body_schema = endpoint.request_body.json_schema() if endpoint.request_body else None
    if body_schema is not None:
        properties["body"] = {
            **copy.deepcopy(body_schema),
            "description": endpoint.request_body.description or "Request body",
        }
        if endpoint.request_body.required:
            required.append("body")

    header_params = endpoint.parameters_in(ParameterLocation.HEADER)
    if header_params:
        headers: Dict[str, Any] = {
            "type": "object",
            "description": "HTTP headers",
            "properties": {
                param.name: _parameter_property(param.type, param.description, None)
                for param in header_params
            },
        }
        required_headers = [param.name for param in header_params if param.required]
        if required_headers:
            headers["required"] = required_headers
        properties["headers"] = headers

    return {"type": "object", "properties": properties, "required": required}


def build_tool(
    endpoint: EndpointDescriptor,
    overrides: Optional[ToolOverrides] = None,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> Tool:
    """Build the MCP tool for one endpoint

    Args:
        endpoint: Endpoint to expose
        overrides: Optional naming/description overrides, used verbatim
        base_url: Prefix for the backend calls made by the tool
        timeout: Backend request timeout in seconds

    Returns:
        Tool bound to a handler record for the endpoint
    """
    overrides = overrides or ToolOverrides()
    name = overrides.tool_naming(endpoint) if overrides.tool_naming else default_tool_name(endpoint)
    description = (
        overrides.tool_description(endpoint) if overrides.tool_description else default_tool_description(endpoint)
    )
    return Tool(
        name=name,
        description=description,
        input_schema=build_input_schema(endpoint),
        handler=ToolHandler(endpoint=endpoint, base_url=base_url, timeout=timeout),
    )


__all__ = [
    "ACTIONS",
    "placeholder_name",
    "resource_segment",
    "default_tool_name",
    "default_tool_description",
    "build_input_schema",
    "build_tool",
]
