"""Invocation pipeline: tool arguments in, backend HTTP call, result out.

Each call resolves its arguments into path/query/header/body parts, runs
the auth, authz and pre phases, forwards the request to the real API with
aiohttp and threads the response through the post phase. Any failure runs
the error phase before it reaches the caller.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from .errors import BackendCallError
from .middleware import MiddlewareRunner
from .models import (
    HTTPMethod,
    InvocationContext,
    MiddlewareConfig,
    OutboundRequest,
    Tool,
    ToolArguments,
    ToolHandler,
)
from .schema import placeholder_name

USER_AGENT = "AgentPass/1.0.0"
BODY_METHODS = (HTTPMethod.POST, HTTPMethod.PUT, HTTPMethod.PATCH)
RESERVED_ARGUMENTS = ("body", "headers")


def path_placeholders(template: str) -> List[str]:
    """Names of the whole-segment ``{name}`` and ``:name`` placeholders in a path template"""
    return [name for name in map(placeholder_name, template.split("/")) if name]


def substitute_path(template: str, params: Dict[str, Any]) -> str:
    """Replace every placeholder segment that has a value in ``params``"""
    segments = []
    for segment in template.split("/"):
        name = placeholder_name(segment)
        if name is not None and name in params:
            segment = quote(str(params[name]), safe="")
        segments.append(segment)
    return "/".join(segments)


def resolve_arguments(template: str, arguments: Optional[Dict[str, Any]]) -> ToolArguments:
    """Split a flat argument map into its request locations

    Keys matching a path placeholder go to the path, ``headers`` and ``body``
    are taken as-is and every other key becomes a query parameter.
    """
    arguments = dict(arguments or {})
    placeholders = set(path_placeholders(template))

    path = {name: value for name, value in arguments.items() if name in placeholders and value is not None}
    query = {
        name: value
        for name, value in arguments.items()
        if name not in RESERVED_ARGUMENTS and name not in placeholders and value is not None
    }
    raw_headers = arguments.get("headers")
    headers = {str(k): str(v) for k, v in raw_headers.items()} if isinstance(raw_headers, dict) else {}

    return ToolArguments(path=path, query=query, headers=headers, body=arguments.get("body"), raw=arguments)


def _query_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return [_query_value(item) for item in value]
    return json.dumps(value)


class InvocationPipeline:
    """Runs tool calls against the backend API with the configured middleware

    Args:
        middleware: Frozen middleware configuration shared by every call
    """

    def __init__(self, middleware: Optional[MiddlewareConfig] = None):
        self.middleware = middleware or MiddlewareConfig()
        self.runner = MiddlewareRunner(self.middleware)

    def create_context(self, handler: ToolHandler, arguments: Optional[Dict[str, Any]]) -> InvocationContext:
        endpoint = handler.endpoint
        resolved = resolve_arguments(endpoint.path, arguments)
        return InvocationContext(
            endpoint=endpoint,
            request=OutboundRequest(
                path=endpoint.path,
                method=endpoint.method,
                headers=dict(resolved.headers),
                params=dict(resolved.path),
                query=dict(resolved.query),
                body=resolved.body,
            ),
            metadata={
                "mcp_tool": True,
                "original_args": resolved.raw,
                "base_url": handler.base_url,
            },
        )

    async def invoke(self, tool: Tool, arguments: Optional[Dict[str, Any]], base_url: Optional[str] = None) -> Any:
        """Invoke a tool and return the result of the post phase

        Args:
            tool: Tool to invoke
            arguments: Flat argument map supplied by the protocol caller
            base_url: Optional prefix overriding the tool's own base URL

        Returns:
            Whatever the last post hook returned, or the backend result
            ``{status, statusText, headers, data}`` when there are none

        Raises:
            MiddlewareError: A phase aborted the call
            BackendCallError: The backend could not be reached
        """
        context = self.create_context(tool.handler, arguments)
        if base_url is not None:
            context.metadata["base_url"] = base_url

        logging.info(f"[Pipeline] {context.request_id} {tool.name}: {context.request.method.value} {context.request.path}")
        try:
            await self.runner.run_auth(context)
            await self.runner.run_authz(context)
            await self.runner.run_pre(context)
            response = await self.send(tool.handler, context)
            return await self.runner.run_post(context, response)
        except Exception as error:
            logging.warning(f"[Pipeline] {context.request_id} {tool.name} failed: {error}")
            await self.runner.run_error(context, error)
            raise

    async def send(self, handler: ToolHandler, context: InvocationContext) -> Dict[str, Any]:
        """Issue the outbound HTTP request described by the context

        Every HTTP status is returned as a result; only connection level
        failures and timeouts raise.
        """
        request = context.request
        base_url = str(context.metadata.get("base_url") or handler.base_url).rstrip("/")
        url = base_url + substitute_path(request.path, request.params)
        request.url = url

        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            **request.headers,
        }
        params = {name: _query_value(value) for name, value in request.query.items()}
        payload = request.body if request.method in BODY_METHODS and request.body is not None else None
        timeout = aiohttp.ClientTimeout(total=handler.timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    request.method.value,
                    url,
                    params=params,
                    headers=headers,
                    json=payload,
                ) as response:
                    return await self._process_response(response)
        except asyncio.TimeoutError as exc:
            error_msg = f"HTTP request to {url} timed out after {handler.timeout} seconds"
            logging.error(f"[Pipeline] {error_msg}")
            raise BackendCallError(error_msg, method=request.method.value, url=url) from exc
        except aiohttp.ClientError as exc:
            logging.error(f"[Pipeline] HTTP request to {url} failed: {exc}")
            raise BackendCallError(
                f"HTTP request failed: {exc}", method=request.method.value, url=url
            ) from exc

    async def _process_response(self, response: aiohttp.ClientResponse) -> Dict[str, Any]:
        if response.content_type and "json" in response.content_type:
            try:
                data = await response.json(content_type=None)
            except ValueError:
                data = await response.text()
        else:
            data = await response.text()

        if response.status >= 400:
            logging.warning(f"[Pipeline] Backend returned {response.status} for {response.method} {response.url}")
        return {
            "status": response.status,
            "statusText": response.reason,
            "headers": dict(response.headers),
            "data": data,
        }


__all__ = [
    "InvocationPipeline",
    "path_placeholders",
    "substitute_path",
    "resolve_arguments",
    "USER_AGENT",
]
