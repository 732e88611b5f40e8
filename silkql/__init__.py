"""silkql public API.

``silk`` and ``resolver`` are both submodules and functions; the names bound
here are the functions. SQLAlchemy-backed entity operations are exported
lazily so that importing ``silkql`` does not import the ORM layer.
"""
from __future__ import annotations

from .errors import (
    InvalidTargetError,
    SchemaCompositionError,
    SilkQLError,
    UnresolvedVariantError,
    UnsupportedSchemaError,
    ValidationError,
)
from .config import StrawberryConfig, WeaverConfig
from .core.meta import SilkMeta, meta, object_type, union_type
from .core.weaver_context import WeaverContext
from .middleware import CallOptions, apply_middlewares, compose
from .context import ResolverPayload, use_context, use_resolver_payload
from .silk import GraphQLSilk, Silk, ensure_silk, get_graphql_input_type, get_graphql_type, parse_silk, silk
from .resolver import FieldOrOperation, Resolver, field, mutation, query, resolver, subscription
from .schema import SchemaWeaver, weave


def __getattr__(name: str):  # PEP 562 lazy exports
    if name == 'EntityOperationWeaver':
        from .operations import EntityOperationWeaver
        return EntityOperationWeaver
    raise AttributeError(name)


__all__ = [
    'SilkQLError', 'ValidationError', 'UnsupportedSchemaError', 'InvalidTargetError',
    'UnresolvedVariantError', 'SchemaCompositionError',
    'WeaverConfig', 'StrawberryConfig', 'WeaverContext',
    'SilkMeta', 'meta', 'object_type', 'union_type',
    'CallOptions', 'apply_middlewares', 'compose',
    'ResolverPayload', 'use_context', 'use_resolver_payload',
    'Silk', 'GraphQLSilk', 'silk', 'ensure_silk', 'get_graphql_type', 'get_graphql_input_type', 'parse_silk',
    'FieldOrOperation', 'Resolver', 'query', 'mutation', 'subscription', 'field', 'resolver',
    'SchemaWeaver', 'weave',
    'EntityOperationWeaver',
]
