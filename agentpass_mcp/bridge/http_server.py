"""Starlette applications for the network transports.

The request/response transport answers one JSON-RPC message per POST on
``/mcp``. The event-stream transport opens an MCP session per ``GET /sse``
and receives that session's calls on ``POST /sse/messages/``.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from mcp.server.lowlevel import Server
from mcp.server.sse import SseServerTransport
from mcp.types import LATEST_PROTOCOL_VERSION
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from .core import ToolServer
from .errors import MCPError, ToolNotFoundError

MCP_PATH = "/mcp"
SSE_PATH = "/sse"
SSE_MESSAGES_PATH = "/sse/messages/"
SESSION_HEADER = "mcp-session-id"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, Mcp-Session-Id",
    "Access-Control-Max-Age": "86400",
}


def jsonrpc_result(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def jsonrpc_error(request_id: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def _cors_middleware() -> List[Middleware]:
    return [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
            expose_headers=["Mcp-Session-Id"],
        )
    ]


class JsonRpcDispatcher:
    """Maps JSON-RPC messages onto a ToolServer

    Args:
        tool_server: Protocol server answering the calls
    """

    def __init__(self, tool_server: ToolServer):
        self.tool_server = tool_server

    async def dispatch(self, message: Any) -> Optional[Dict[str, Any]]:
        """Handle one message, returning None for notifications"""
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            return jsonrpc_error(None, INVALID_REQUEST, "Invalid Request")

        method = message["method"]
        params = message.get("params")
        if "id" not in message:
            logging.debug(f"[HTTPTransport] Notification received: {method}")
            return None
        request_id = message["id"]
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            return jsonrpc_error(request_id, INVALID_PARAMS, "Invalid params: 'params' must be an object")

        if method == "initialize":
            return jsonrpc_result(request_id, self._initialize_result(params))
        if method == "ping":
            return jsonrpc_result(request_id, {})
        if method == "tools/list":
            return jsonrpc_result(request_id, {"tools": self.tool_server.list_tools()})
        if method == "tools/call":
            return await self._call_tool(request_id, params)

        return jsonrpc_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize_result(self, params: Dict[str, Any]) -> Dict[str, Any]:
        capabilities: Dict[str, Any] = {}
        if self.tool_server.capabilities.get("tools"):
            capabilities["tools"] = {"listChanged": False}
        return {
            "protocolVersion": params.get("protocolVersion", LATEST_PROTOCOL_VERSION),
            "capabilities": capabilities,
            "serverInfo": {
                "name": self.tool_server.info.get("name"),
                "version": self.tool_server.info.get("version"),
            },
        }

    async def _call_tool(self, request_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            return jsonrpc_error(request_id, INVALID_PARAMS, "Invalid params: 'name' must be a string")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return jsonrpc_error(request_id, INVALID_PARAMS, "Invalid params: 'arguments' must be an object")

        try:
            content = await self.tool_server.call_tool(name, arguments)
        except ToolNotFoundError as error:
            return jsonrpc_error(request_id, INVALID_PARAMS, error.message, error.to_dict())
        except MCPError as error:
            logging.error(f"[HTTPTransport] {error.message}")
            return jsonrpc_error(request_id, INTERNAL_ERROR, error.message, error.to_dict())
        return jsonrpc_result(request_id, {"content": content})


def create_http_app(tool_server: ToolServer, cors: bool = True) -> Starlette:
    """Request/response transport: ``POST /mcp`` and ``OPTIONS /mcp``"""
    dispatcher = JsonRpcDispatcher(tool_server)

    async def handle_mcp(request: Request) -> Response:
        if request.method == "OPTIONS":
            if not cors:
                return Response(status_code=405)
            return Response(status_code=204, headers=CORS_HEADERS)

        session_id = request.headers.get(SESSION_HEADER) or uuid.uuid4().hex
        headers = {"Mcp-Session-Id": session_id}
        try:
            payload = await request.json()
        except ValueError as exc:
            logging.warning(f"[HTTPTransport] Malformed request body: {exc}")
            return JSONResponse(jsonrpc_error(None, PARSE_ERROR, f"Parse error: {exc}"), status_code=400, headers=headers)

        if isinstance(payload, list):
            replies = [reply for reply in [await dispatcher.dispatch(message) for message in payload] if reply]
            if not replies:
                return Response(status_code=202, headers=headers)
            return JSONResponse(replies, headers=headers)

        reply = await dispatcher.dispatch(payload)
        if reply is None:
            return Response(status_code=202, headers=headers)
        return JSONResponse(reply, headers=headers)

    return Starlette(
        routes=[Route(MCP_PATH, handle_mcp, methods=["POST", "OPTIONS"])],
        middleware=_cors_middleware() if cors else [],
    )


class _ASGIEndpoint:
    """Lets a Route serve a raw ASGI callable instead of a request handler"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send) -> None:
        await self.app(scope, receive, send)


def create_sse_app(mcp_server: Server, cors: bool = True) -> Starlette:
    """Event-stream transport: ``GET /sse`` plus ``POST /sse/messages[/]``

    Each open stream is one MCP session; it ends when the client disconnects.
    """
    sse = SseServerTransport(SSE_MESSAGES_PATH)
    post_message = _ASGIEndpoint(sse.handle_post_message)

    async def handle_sse(request: Request) -> Response:
        logging.info(f"[SSETransport] Session opened from {request.client.host if request.client else 'unknown'}")
        async with sse.connect_sse(request.scope, request.receive, request._send) as (read_stream, write_stream):
            await mcp_server.run(read_stream, write_stream, mcp_server.create_initialization_options())
        logging.info("[SSETransport] Session closed")
        return Response()

    return Starlette(
        routes=[
            Route(SSE_PATH, handle_sse, methods=["GET"]),
            Route(SSE_MESSAGES_PATH.rstrip("/"), post_message, methods=["POST"]),
            Mount(SSE_MESSAGES_PATH, app=sse.handle_post_message),
        ],
        middleware=_cors_middleware() if cors else [],
    )


__all__ = [
    "JsonRpcDispatcher",
    "create_http_app",
    "create_sse_app",
    "MCP_PATH",
    "SSE_PATH",
    "SSE_MESSAGES_PATH",
]
