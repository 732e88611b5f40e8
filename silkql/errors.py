"""Error taxonomy for silkql.

Weave-time errors (``UnsupportedSchemaError``, ``InvalidTargetError``,
``SchemaCompositionError``) abort schema construction. Resolution-time errors
(``ValidationError``, ``UnresolvedVariantError``) surface as field errors
through the GraphQL executor.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

__all__ = [
    'SilkQLError',
    'ValidationError',
    'UnsupportedSchemaError',
    'InvalidTargetError',
    'UnresolvedVariantError',
    'SchemaCompositionError',
]


class SilkQLError(Exception):
    """Base class for every error raised by silkql."""


class ValidationError(SilkQLError):
    """Raised when a raw value does not satisfy a silk's native schema.

    Attributes:
        issues: One entry per failing location, each a dict with ``path``
            (tuple of keys/indices) and ``message``.
    """

    def __init__(self, message: str = "Validation failed", issues: Optional[Sequence[Dict[str, Any]]] = None):
        self.issues: List[Dict[str, Any]] = [dict(i) for i in (issues or [])]
        if self.issues:
            details = "; ".join(_format_issue(i) for i in self.issues)
            message = f"{message}: {details}"
        super().__init__(message)

    @property
    def messages(self) -> Dict[str, List[str]]:
        """Issues grouped by dotted path (empty string for the root value)."""
        out: Dict[str, List[str]] = {}
        for issue in self.issues:
            key = ".".join(str(p) for p in issue.get('path', ()) or ())
            out.setdefault(key, []).append(str(issue.get('message', '')))
        return out


def _format_issue(issue: Dict[str, Any]) -> str:
    path = ".".join(str(p) for p in issue.get('path', ()) or ())
    msg = issue.get('message', '')
    return f"{path}: {msg}" if path else str(msg)


class UnsupportedSchemaError(SilkQLError):
    """A native schema has a shape with no GraphQL mapping."""


class InvalidTargetError(SilkQLError):
    """An operation was applied to a GraphQL type of the wrong kind."""


class UnresolvedVariantError(SilkQLError):
    """A union value matched none of the registered options."""

    def __init__(self, message: str, *, type_name: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.type_name = type_name
        self.value = value


class SchemaCompositionError(SilkQLError):
    """Resolvers or types cannot be combined into one schema."""
