"""Weave resolvers and silks into one graphql-core schema."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from graphql import (
    GraphQLField,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    get_nullable_type,
    is_object_type,
    validate_schema,
)

from .config import WeaverConfig
from .context import ResolverPayload, resolver_payload_scope
from .core.weaver_context import WeaverContext
from .errors import InvalidTargetError, SchemaCompositionError, UnsupportedSchemaError
from .middleware import Middleware, compose
from .resolver import FieldOrOperation, Resolver, input_arguments
from .silk import ensure_silk

_logger = logging.getLogger("silkql")

__all__ = ['SchemaWeaver', 'weave']

_ROOT_NAMES = {'query': 'Query', 'mutation': 'Mutation', 'subscription': 'Subscription'}


def _make_resolver(op: FieldOrOperation, outer: Tuple[Middleware, ...]):
    chain = op.chain_for(outer)

    async def _resolver(source, info, **args):
        payload = ResolverPayload(root=source, args=args, context=info.context, info=info)
        with resolver_payload_scope(payload):
            return await op.execute(
                args if op.input is not None else None,
                parent=source,
                info=info,
                chain=chain,
            )
    return _resolver


def _make_subscriber(op: FieldOrOperation, outer: Tuple[Middleware, ...]):
    chain = op.chain_for(outer)

    async def _subscribe(source, info, **args):
        payload = ResolverPayload(root=source, args=args, context=info.context, info=info)
        with resolver_payload_scope(payload):
            return await op.open_stream(
                args if op.input is not None else None,
                info=info,
                payload=payload,
                chain=chain,
            )

    def _resolve_event(event, info, **args):
        return event
    return _subscribe, _resolve_event


class SchemaWeaver:
    """Collect resolvers, silks and config, then build the schema once.

    Example:
        schema = SchemaWeaver().add(book_resolver).add(WeaverConfig(...)).weave_schema()
    """

    def __init__(self, config: Optional[WeaverConfig] = None, context: Optional[WeaverContext] = None, middlewares: Optional[Sequence[Middleware]] = None):
        self.context = context or WeaverContext(config)
        if config is not None:
            self.context.config = config
        self.middlewares: List[Middleware] = compose(middlewares)
        self.resolvers: List[Resolver] = []
        self.silks: List[Any] = []

    @property
    def config(self) -> WeaverConfig:
        return self.context.config

    def add(self, item: Any) -> 'SchemaWeaver':
        if isinstance(item, WeaverConfig):
            self.context.config = item
        elif isinstance(item, Resolver):
            self.resolvers.append(item)
        elif isinstance(item, FieldOrOperation):
            raise SchemaCompositionError("Operations must be collected with resolver() before weaving")
        else:
            self.silks.append(item)
        return self

    def _field(self, op: FieldOrOperation, outer: Tuple[Middleware, ...]) -> GraphQLField:
        ctx = self.context
        output_type = ensure_silk(op.output).get_output_type(ctx)
        args = input_arguments(op.input, ctx)
        if op.type == 'subscription':
            subscribe, resolve = _make_subscriber(op, outer)
            return GraphQLField(
                output_type,
                args=args,
                resolve=resolve,
                subscribe=subscribe,
                description=op.description,
                deprecation_reason=op.deprecation_reason,
                extensions=op.extensions,
            )
        return GraphQLField(
            output_type,
            args=args,
            resolve=_make_resolver(op, outer),
            description=op.description,
            deprecation_reason=op.deprecation_reason,
            extensions=op.extensions,
        )

    def _parent_type(self, parent: Any) -> GraphQLObjectType:
        parent_type = get_nullable_type(ensure_silk(parent).get_output_type(self.context))
        if not is_object_type(parent_type):
            raise InvalidTargetError(f"Fields can only be added to object types, got {parent_type}")
        return parent_type  # type: ignore[return-value]

    def _collect(self) -> Tuple[Dict[str, Dict[str, GraphQLField]], List[GraphQLNamedType]]:
        roots: Dict[str, Dict[str, GraphQLField]] = {k: {} for k in _ROOT_NAMES}
        config = self.config
        for res in self.resolvers:
            outer = tuple(compose(self.middlewares, res.middlewares))
            parent_type = self._parent_type(res.parent) if res.parent is not None else None
            for name, op in res.items():
                gql_name = config.convert_name(name)
                if op.type == 'field':
                    if parent_type is None:
                        raise SchemaCompositionError(f"Field '{name}' needs a parent; declare it with resolver.of()")
                    self.context.add_extra_field(parent_type, gql_name, self._field(op, outer))
                    continue
                bucket = roots[op.type]
                if gql_name in bucket:
                    raise SchemaCompositionError(f"{_ROOT_NAMES[op.type]}.{gql_name} is defined by more than one resolver")
                bucket[gql_name] = self._field(op, outer)
                _logger.debug("silkql: registered %s.%s", _ROOT_NAMES[op.type], gql_name)
        orphans = [get_nullable_type(ensure_silk(s).get_output_type(self.context)) for s in self.silks]
        return roots, orphans

    def weave_schema(self) -> GraphQLSchema:
        """Build and validate the schema, then freeze the context.

        Raises:
            SchemaCompositionError: Duplicate operations, conflicting type
                names, a field added twice, or a silk that cannot be derived.
        """
        try:
            roots, orphans = self._collect()
        except (UnsupportedSchemaError, InvalidTargetError) as e:
            raise SchemaCompositionError(str(e)) from e
        root_types = {
            kind: GraphQLObjectType(_ROOT_NAMES[kind], fields) if fields else None
            for kind, fields in roots.items()
        }
        try:
            schema = GraphQLSchema(
                query=root_types['query'],
                mutation=root_types['mutation'],
                subscription=root_types['subscription'],
                types=orphans or None,
                description=self.config.schema_description,
            )
        except TypeError as e:
            raise SchemaCompositionError(str(e)) from e
        errors = validate_schema(schema)
        if errors:
            raise SchemaCompositionError("; ".join(err.message for err in errors))
        self.context.freeze()
        _logger.debug(
            "silkql: woven schema with %d query, %d mutation, %d subscription fields",
            len(roots['query']), len(roots['mutation']), len(roots['subscription']),
        )
        return schema


def weave(*items: Any, config: Optional[WeaverConfig] = None, context: Optional[WeaverContext] = None, middlewares: Optional[Sequence[Middleware]] = None) -> GraphQLSchema:
    """Weave resolvers, silks and an optional ``WeaverConfig`` into a schema.

    ``items`` may mix :class:`Resolver` collections, a :class:`WeaverConfig`
    and extra silks/natives to include as orphan types. ``middlewares`` wrap
    every operation, outside the resolver and operation middlewares.
    """
    weaver = SchemaWeaver(config=config, context=context, middlewares=middlewares)
    for item in items:
        weaver.add(item)
    return weaver.weave_schema()
