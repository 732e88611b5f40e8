"""Per-call resolver payload.

Every field call made by a woven schema publishes its ``(root, args,
context, info)`` in a context variable for the duration of the call, so
helpers deep inside user code can reach the request context without
threading it through arguments. Sibling fields resolved concurrently each
run in their own asyncio task context and never see each other's payload.
"""
from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

__all__ = ['ResolverPayload', 'use_resolver_payload', 'use_context', 'resolver_payload_scope']


@dataclass(frozen=True)
class ResolverPayload:
    root: Any = None
    args: Dict[str, Any] = field(default_factory=dict)
    context: Any = None
    info: Any = None


_current_payload: contextvars.ContextVar[Optional[ResolverPayload]] = contextvars.ContextVar(
    "silkql_resolver_payload", default=None
)


def use_resolver_payload() -> Optional[ResolverPayload]:
    """Return the payload of the field being resolved, or None outside a resolver."""
    return _current_payload.get()


def use_context() -> Any:
    """Return the execution context value (``context_value`` given to graphql())."""
    payload = _current_payload.get()
    return payload.context if payload is not None else None


@contextmanager
def resolver_payload_scope(payload: ResolverPayload) -> Iterator[ResolverPayload]:
    token = _current_payload.set(payload)
    try:
        yield payload
    finally:
        _current_payload.reset(token)
