"""API key authentication hook."""

import inspect
from typing import Any, Callable, Optional

from .models import InvocationContext


class ApiKeyAuth:
    """Authenticate calls with an API key taken from headers or query

    Args:
        validator: Maps a key to an identity (sync or async); falsy means invalid
        header: Header carrying the key, matched case-insensitively
        query: Optional query parameter checked when the header is absent
        required: Reject calls without a valid key
    """

    def __init__(
        self,
        validator: Callable[[str], Any],
        header: Optional[str] = "x-api-key",
        query: Optional[str] = None,
        required: bool = True,
    ):
        self.validator = validator
        self.header = header
        self.query = query
        self.required = required

    def extract_key(self, context: InvocationContext) -> Optional[str]:
        if self.header:
            wanted = self.header.lower()
            for name, value in context.request.headers.items():
                if name.lower() == wanted and value:
                    return value
        if self.query:
            value = context.request.query.get(self.query)
            if value:
                return str(value)
        return None

    async def __call__(self, context: InvocationContext) -> Any:
        api_key = self.extract_key(context)
        if not api_key:
            if self.required:
                raise PermissionError("API key is required")
            return None

        try:
            identity = self.validator(api_key)
            if inspect.isawaitable(identity):
                identity = await identity
        except Exception as e:
            raise PermissionError(f"API key validation failed: {e}") from e

        if not identity and self.required:
            raise PermissionError("Invalid API key")
        return identity

    def middleware(self) -> Callable[[InvocationContext], Any]:
        """Auth hook suitable for ``use("auth", ...)``"""
        return self.__call__


__all__ = [
    "ApiKeyAuth",
]
