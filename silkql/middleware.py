"""Async middleware pipeline around resolvers.

A middleware is ``async def mw(next, options)``. It may call ``await next()``
zero or more times and returns the field value. The first middleware of a
list is the outermost one.

Example:
    async def timing(next, options):
        started = time.monotonic()
        try:
            return await next()
        finally:
            _logger.info("%s took %.3fs", options.info.field_name, time.monotonic() - started)
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence

__all__ = ['Middleware', 'Chain', 'CallOptions', 'compose', 'build_chain', 'apply_middlewares']

Middleware = Callable[[Callable[[], Awaitable[Any]], 'CallOptions'], Any]
Chain = Callable[[Callable[[], Any], 'CallOptions'], Awaitable[Any]]


@dataclass
class CallOptions:
    """What a middleware knows about the call it wraps.

    Attributes:
        parse_input: Memoized async callable returning the validated input.
        parent: Parent value for ``field`` operations, None for root operations.
        output_silk: Silk of the operation output.
        info: graphql-core ``GraphQLResolveInfo`` when called by the executor.
        type: ``query``, ``mutation``, ``subscription`` or ``field``.
    """

    parse_input: Optional[Callable[[], Awaitable[Any]]] = None
    parent: Any = None
    output_silk: Any = None
    info: Any = None
    type: Optional[str] = None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def compose(*lists: Optional[Iterable[Middleware]]) -> List[Middleware]:
    """Concatenate middleware lists, skipping None and repeated references."""
    out: List[Middleware] = []
    for lst in lists:
        for mw in lst or ():
            if mw is None or any(mw is seen for seen in out):
                continue
            out.append(mw)
    return out


def _link(mw: Middleware, nxt: Chain) -> Chain:
    async def step(inner, options):
        return await _maybe_await(mw(lambda: nxt(inner, options), options))
    return step


async def _terminal(inner, options):
    return await _maybe_await(inner())


def build_chain(middlewares: Sequence[Middleware]) -> Chain:
    """Compose ``middlewares`` once into a reusable ``chain(inner, options)``."""
    chain: Chain = _terminal
    for mw in reversed(compose(middlewares)):
        chain = _link(mw, chain)
    return chain


async def apply_middlewares(middlewares: Sequence[Middleware], inner: Callable[[], Any], options: Optional[CallOptions] = None) -> Any:
    """Run ``inner`` through ``middlewares`` (first is outermost)."""
    return await build_chain(middlewares)(inner, options if options is not None else CallOptions())
