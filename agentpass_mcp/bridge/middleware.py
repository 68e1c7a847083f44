"""Middleware phases run around every tool invocation.

Hooks may be plain functions or coroutines. Each hook is awaited to
completion before the next one in the same phase starts.
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, NoReturn

from .errors import MiddlewareError
from .models import HookResult, InvocationContext, MiddlewareConfig, MiddlewarePhase


async def _call_hook(hook: Callable[..., HookResult], *args: Any) -> Any:
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class MiddlewareBuilder:
    """Collects hooks per phase before generation

    ``build()`` returns a frozen snapshot; hooks registered afterwards do not
    affect configurations that were already built.
    """

    def __init__(self):
        self._hooks: Dict[MiddlewarePhase, List[Callable[..., HookResult]]] = {
            phase: [] for phase in MiddlewarePhase
        }

    def use(self, phase, hook: Callable[..., HookResult]) -> "MiddlewareBuilder":
        """Append a hook to a phase

        Args:
            phase: MiddlewarePhase or its string value
            hook: Callable receiving the context (and the response/error for post/error)

        Raises:
            ValueError: If the phase is unknown
            TypeError: If the hook is not callable
        """
        phase = MiddlewarePhase(phase)
        if not callable(hook):
            raise TypeError(f"Middleware for phase '{phase.value}' must be callable")
        self._hooks[phase].append(hook)
        return self

    def build(self) -> MiddlewareConfig:
        return MiddlewareConfig(**{phase.value: tuple(hooks) for phase, hooks in self._hooks.items()})

    def clear(self) -> None:
        for hooks in self._hooks.values():
            hooks.clear()


class MiddlewareRunner:
    """Executes the hook lists of a MiddlewareConfig against a context"""

    def __init__(self, config: MiddlewareConfig):
        self.config = config

    async def run_auth(self, context: InvocationContext) -> Any:
        """Run auth hooks; a truthy return value becomes the context identity"""
        try:
            for hook in self.config.auth:
                identity = await _call_hook(hook, context)
                if identity:
                    context.user = identity
        except Exception as error:
            raise MiddlewareError(f"Authentication failed: {error}", "auth", error) from error
        return context.user

    async def run_authz(self, context: InvocationContext) -> None:
        """Run authz hooks; every hook must grant access"""
        for hook in self.config.authz:
            try:
                authorized = await _call_hook(hook, context)
            except Exception as error:
                raise MiddlewareError(f"Authorization failed: {error}", "authz", error) from error
            if not authorized:
                raise MiddlewareError("Authorization failed: Access denied", "authz")

    async def run_pre(self, context: InvocationContext) -> None:
        try:
            for hook in self.config.pre:
                await _call_hook(hook, context)
        except Exception as error:
            raise MiddlewareError(f"Pre-middleware failed: {error}", "pre", error) from error

    async def run_post(self, context: InvocationContext, response: Any) -> Any:
        """Thread the response through the post hooks, returning the last result"""
        try:
            for hook in self.config.post:
                response = await _call_hook(hook, context, response)
        except Exception as error:
            raise MiddlewareError(f"Post-middleware failed: {error}", "post", error) from error
        return response

    async def run_error(self, context: InvocationContext, error: BaseException) -> NoReturn:
        """Let every error hook observe the failure, then re-raise it

        A hook raising its own exception replaces the original error; the
        remaining hooks are skipped in that case.
        """
        for hook in self.config.error:
            await _call_hook(hook, context, error)
        logging.debug(f"[Middleware] Error phase finished for request {context.request_id}, re-raising")
        raise error


__all__ = [
    "MiddlewareBuilder",
    "MiddlewareRunner",
]
