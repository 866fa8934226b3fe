"""
Tenant context management for EDucore.

This module holds the active :class:`TenantContext` for the request being
served, using Python's contextvars. The context is set once at request entry
(see :mod:`educore.multitenancy.initializer`) and is then visible everywhere
in that request's call graph without explicit passing.

Key Features:
    - One immutable context per logical request
    - Survives ``await`` suspension points and follows tasks created with
      ``asyncio.create_task`` (each task copies the context it was created in)
    - Never visible to concurrently running requests
    - Context manager and decorators for background jobs and scripts

Example:
    from educore.multitenancy.context import (
        TenantContext, TenantScope, get_current, run
    )

    ctx = TenantContext(school_id="school-A", user_id="user-1")

    with TenantScope(ctx):
        get_current().school_id  # "school-A"

    run(ctx, lambda: get_current().school_id)  # "school-A"
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, TypeVar
import functools
import inspect
import logging

from educore.multitenancy.errors import TenantContextMissingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantContext:
    """Tenant identity of the request being served.

    Attributes:
        school_id: The tenant (school) the request is bound to.
        branch_id: The branch within the school, if any.
        is_super_admin: Platform operator; bypasses automatic scoping.
        user_id: The authenticated user.
    """

    school_id: str | None = None
    branch_id: str | None = None
    is_super_admin: bool = False
    user_id: str | None = None

    @property
    def is_scoped(self) -> bool:
        """Whether queries made under this context get tenant filters."""
        return not self.is_super_admin and bool(self.school_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_current_context: ContextVar[TenantContext | None] = ContextVar(
    "tenant_context", default=None
)

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])


def get_current() -> TenantContext | None:
    """Get the tenant context of the current execution context.

    Returns:
        The context established by the nearest enclosing scope, or None
        when called outside any request or :class:`TenantScope`.
    """
    return _current_context.get()


def require_context() -> TenantContext:
    """Get the current tenant context or raise.

    Raises:
        TenantContextMissingError: If no context is active.
    """
    context = _current_context.get()
    if context is None:
        raise TenantContextMissingError()
    return context


class TenantScope:
    """Context manager establishing a tenant context for a block.

    Works as both a sync and an async context manager, nests correctly
    and restores the enclosing context on exit.

    Example:
        async with TenantScope(TenantContext(school_id="school-A")):
            await handle_request()
    """

    def __init__(self, context: TenantContext):
        self._context = context
        self._token: Token[TenantContext | None] | None = None

    @property
    def context(self) -> TenantContext:
        return self._context

    def __enter__(self) -> TenantContext:
        self._token = _current_context.set(self._context)
        logger.debug("Entered tenant context: %s", self._context.school_id)
        return self._context

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _current_context.reset(self._token)
            self._token = None
        logger.debug("Exited tenant context: %s", self._context.school_id)

    async def __aenter__(self) -> TenantContext:
        return self.__enter__()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def run(context: TenantContext, callback: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run ``callback`` with ``context`` as the current tenant context.

    The context is current for the dynamic extent of the call and the
    previous context is restored afterwards, whether the callback returns
    or raises. Coroutines are not awaited here; use :func:`run_async`.

    Args:
        context: The tenant context to establish.
        callback: The function to call.
        *args: Positional arguments for the callback.
        **kwargs: Keyword arguments for the callback.

    Returns:
        Whatever ``callback`` returns.
    """
    with TenantScope(context):
        return callback(*args, **kwargs)


async def run_async(
    context: TenantContext,
    callback: Callable[..., Awaitable[T]] | Awaitable[T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await ``callback`` with ``context`` as the current tenant context.

    Accepts either an async callable (called with ``args``/``kwargs``) or
    an already created awaitable. Tasks spawned inside inherit the context.

    Example:
        count = await run_async(ctx, client.learner.count)
    """
    async with TenantScope(context):
        if inspect.isawaitable(callback):
            return await callback
        return await callback(*args, **kwargs)


async def run_with_tenant_context(
    context: TenantContext, callback: Callable[[], Awaitable[T]]
) -> T:
    """Run an async job under a tenant context (background jobs, tests)."""
    return await run_async(context, callback)


def with_tenant(context: TenantContext) -> Callable[[F], F]:
    """Decorator to run a function under a fixed tenant context.

    Example:
        @with_tenant(TenantContext(school_id="school-A"))
        async def nightly_fee_reminders():
            ...
    """
    def decorator(func: F) -> F:
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                async with TenantScope(context):
                    return await func(*args, **kwargs)
            return async_wrapper  # type: ignore
        else:
            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                with TenantScope(context):
                    return func(*args, **kwargs)
            return sync_wrapper  # type: ignore

    return decorator


def tenant_required(func: F) -> F:
    """Decorator that raises :class:`TenantContextMissingError` when called
    outside a tenant context."""
    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            require_context()
            return await func(*args, **kwargs)
        return async_wrapper  # type: ignore
    else:
        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            require_context()
            return func(*args, **kwargs)
        return sync_wrapper  # type: ignore
