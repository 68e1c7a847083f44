"""Transport runtime: start/stop lifecycle of a generated server.

The runtime owns the transport resources (the stdio session task or the
uvicorn listener) inside a ServerRuntimeState and only mutates it from
``start()`` and ``stop()``.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple

import uvicorn
from mcp.server.stdio import stdio_server

from .core import ToolServer
from .errors import MCPError
from .http_server import MCP_PATH, SSE_MESSAGES_PATH, SSE_PATH, create_http_app, create_sse_app
from .models import ServerState, TransportKind

STARTUP_POLL_INTERVAL = 0.05
GRACEFUL_SHUTDOWN_TIMEOUT = 2
STDIO_STOP_TIMEOUT = 2.0


@dataclass(frozen=True)
class TransportConfig:
    """Transport selected at generation time"""
    kind: TransportKind
    host: str = "localhost"
    port: int = 3000
    cors: bool = True

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "config": {"host": self.host, "port": self.port, "cors": self.cors},
        }


@dataclass
class ServerRuntimeState:
    """Mutable lifecycle record of one generated server"""
    transport: TransportConfig
    state: ServerState = ServerState.NOT_STARTED
    task: Optional[asyncio.Task] = None
    listener: Optional[uvicorn.Server] = None
    bound: Optional[Tuple[str, int]] = None


class _EmbeddedUvicornServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the host process"""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class ServerRuntime:
    """Exposes a ToolServer over the configured transport

    Args:
        tool_server: Protocol server to expose
        transport: Transport kind and listener settings
    """

    def __init__(self, tool_server: ToolServer, transport: TransportConfig):
        self.tool_server = tool_server
        self.runtime = ServerRuntimeState(transport=transport)

    @property
    def state(self) -> ServerState:
        return self.runtime.state

    def is_running(self) -> bool:
        return self.runtime.state is ServerState.RUNNING

    def get_address(self) -> Optional[str]:
        """``http://host:port`` of the listener while running, None for stdio"""
        if not self.is_running() or self.runtime.bound is None:
            return None
        host, port = self.runtime.bound
        return f"http://{host}:{port}"

    async def start(self) -> None:
        """Open the transport

        Raises:
            MCPError: If the server is already running or the listener cannot bind
        """
        if self.runtime.state is ServerState.RUNNING:
            raise MCPError("MCP server is already running")

        kind = self.runtime.transport.kind
        if kind is TransportKind.STDIO:
            self.runtime.task = asyncio.create_task(self._serve_stdio())
            self.runtime.bound = None
        else:
            await self._start_listener()

        self.runtime.state = ServerState.RUNNING
        logging.info(f"[Runtime] MCP server '{self.tool_server.info.get('name')}' running over {kind.value}")
        self._log_endpoints()

    async def stop(self) -> None:
        """Close the transport; a no-op unless running"""
        if self.runtime.state is not ServerState.RUNNING:
            return

        listener, task = self.runtime.listener, self.runtime.task
        try:
            if listener is not None:
                listener.should_exit = True
                if task is not None:
                    await task
            elif task is not None:
                task.cancel()
                await asyncio.wait({task}, timeout=STDIO_STOP_TIMEOUT)
        finally:
            self.runtime.listener = None
            self.runtime.task = None
            self.runtime.bound = None
            self.runtime.state = ServerState.STOPPED
            logging.info(f"[Runtime] MCP server '{self.tool_server.info.get('name')}' stopped")

    async def wait(self) -> None:
        """Block until the transport finishes on its own (stdin closed, listener exit)"""
        task = self.runtime.task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _serve_stdio(self) -> None:
        mcp_server = self.tool_server.create_mcp_server()
        async with stdio_server() as (read_stream, write_stream):
            await mcp_server.run(read_stream, write_stream, mcp_server.create_initialization_options())
        logging.info("[Runtime] stdio session ended")

    def _create_app(self) -> Any:
        transport = self.runtime.transport
        if transport.kind is TransportKind.HTTP:
            return create_http_app(self.tool_server, cors=transport.cors)
        return create_sse_app(self.tool_server.create_mcp_server(), cors=transport.cors)

    async def _start_listener(self) -> None:
        transport = self.runtime.transport
        config = uvicorn.Config(
            self._create_app(),
            host=transport.host,
            port=transport.port,
            log_level="warning",
            lifespan="off",
            timeout_graceful_shutdown=GRACEFUL_SHUTDOWN_TIMEOUT,
        )
        listener = _EmbeddedUvicornServer(config)
        task = asyncio.create_task(self._serve_listener(listener))

        while not listener.started:
            if task.done():
                task.result()
                raise MCPError(f"Listener on {transport.host}:{transport.port} exited during startup")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        sockname = listener.servers[0].sockets[0].getsockname()
        self.runtime.listener = listener
        self.runtime.task = task
        self.runtime.bound = (transport.host, sockname[1])

    async def _serve_listener(self, listener: uvicorn.Server) -> None:
        config = listener.config
        try:
            await listener.serve()
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind
            raise MCPError(f"Failed to start listener on {config.host}:{config.port}") from exc

    def _log_endpoints(self) -> None:
        address = self.get_address()
        if address is None:
            logging.info("[Runtime]   - stdio (single session)")
        elif self.runtime.transport.kind is TransportKind.HTTP:
            logging.info(f"[Runtime]   - POST {address}{MCP_PATH} (MCP protocol)")
        else:
            logging.info(f"[Runtime]   - GET {address}{SSE_PATH} (event stream)")
            logging.info(f"[Runtime]   - POST {address}{SSE_MESSAGES_PATH} (session messages)")
        tool_names = [tool.name for tool in self.tool_server.tools]
        logging.info(f"[Runtime]   - Available tools: {tool_names}")


__all__ = [
    "TransportConfig",
    "ServerRuntimeState",
    "ServerRuntime",
]
