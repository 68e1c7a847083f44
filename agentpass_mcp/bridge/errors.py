"""Error types raised by the tool bridge.

Every error carries a stable ``code`` and an optional ``details`` mapping so
transports can render it without knowing the concrete class.
"""

from typing import Any, Dict, Optional


class AgentPassError(Exception):
    """Base class for all bridge errors

    Args:
        message: Human readable error message
        code: Stable machine readable error code
        details: Optional free-form details
    """

    def __init__(self, message: str, code: str = "AGENTPASS_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class DiscoveryError(AgentPassError):
    """Raised by endpoint discoverers when introspection fails"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DISCOVERY_ERROR", details)


class MCPError(AgentPassError):
    """Protocol level error (generation failures, unknown tools, failed calls)

    When raised from a tool call it records the tool name, the arguments the
    caller supplied and the underlying error.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        tool: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, "MCP_ERROR", details)
        self.tool = tool
        self.arguments = arguments
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Render the error object sent back to protocol callers"""
        return {
            "message": self.message,
            "tool": self.tool,
            "arguments": self.arguments,
            "originalError": describe_error(self.original_error) if self.original_error else None,
        }


class ToolNotFoundError(MCPError):
    """Raised when a call names a tool the server does not hold"""

    def __init__(self, tool: str, arguments: Optional[Dict[str, Any]] = None):
        super().__init__(f"Tool not found: {tool}", tool=tool, arguments=arguments)


class BackendCallError(MCPError):
    """The outbound HTTP call to the real API failed

    Args:
        message: Error message
        status: HTTP status code, None for connection level failures
        status_text: HTTP reason phrase if a response was received
        body: Response body if a response was received
        method: HTTP method of the failed request
        url: Full URL of the failed request
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        status_text: Optional[str] = None,
        body: Any = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
    ):
        super().__init__(
            message,
            details={
                "status": status,
                "statusText": status_text,
                "data": body,
                "config": {"method": method, "url": url},
            },
        )
        self.status = status
        self.status_text = status_text
        self.body = body
        self.method = method
        self.url = url


class MiddlewareError(AgentPassError):
    """A middleware phase aborted the call

    Args:
        message: Error message
        phase: Failing phase (auth, authz, pre, post or error)
        original_error: Exception raised by the hook, if any
    """

    def __init__(self, message: str, phase: str, original_error: Optional[BaseException] = None):
        super().__init__(message, "MIDDLEWARE_ERROR", {"phase": phase})
        self.phase = phase
        self.original_error = original_error


def describe_error(error: BaseException) -> Dict[str, Any]:
    """Serialize an exception into a JSON friendly mapping"""
    described: Dict[str, Any] = {"name": type(error).__name__, "message": str(error)}
    if isinstance(error, AgentPassError):
        described["code"] = error.code
    if isinstance(error, MiddlewareError):
        described["phase"] = error.phase
    if isinstance(error, BackendCallError):
        described["status"] = error.status
        described["statusText"] = error.status_text
        described["data"] = error.body
    return described


__all__ = [
    "AgentPassError",
    "DiscoveryError",
    "MCPError",
    "ToolNotFoundError",
    "BackendCallError",
    "MiddlewareError",
    "describe_error",
]
