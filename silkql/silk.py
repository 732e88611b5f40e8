"""Silks: a native schema paired with the adapter that understands it.

A silk is the single source of truth for one value: the same object yields
its GraphQL output type, its GraphQL input type and its runtime validation.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from graphql import (
    GraphQLInputField,
    GraphQLList,
    GraphQLNonNull,
    is_input_type,
    is_interface_type,
    is_list_type,
    is_non_null_type,
    is_object_type,
    is_output_type,
    is_type,
)

from .core.derive import TypeDeriver
from .core.weaver_context import WeaverContext
from .errors import UnsupportedSchemaError, ValidationError

__all__ = [
    'Silk',
    'GraphQLSilk',
    'silk',
    'ensure_silk',
    'get_graphql_type',
    'get_graphql_input_type',
    'parse_silk',
]


class Silk:
    """Native schema wrapped with its adapter.

    Derived types are memoized in the :class:`WeaverContext` passed in, never
    on the silk itself, so one silk can take part in any number of weaves.
    """

    def __init__(self, native: Any, adapter: Any):
        self.native = native
        self.adapter = adapter

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.native!r}>"

    def get_output_type(self, context: Optional[WeaverContext] = None):
        context = context or WeaverContext()
        preset = context.config.preset_for(self.native)
        if preset is not None:
            return preset if is_non_null_type(preset) else GraphQLNonNull(preset)
        return TypeDeriver(context).output_from_shape(self.adapter.shape_of(self.native), self.adapter)

    def get_input_type(self, context: Optional[WeaverContext] = None):
        context = context or WeaverContext()
        preset = context.config.preset_for(self.native)
        if preset is not None:
            return preset if is_non_null_type(preset) else GraphQLNonNull(preset)
        return TypeDeriver(context).input_from_shape(self.adapter.shape_of(self.native), self.adapter)

    def parse(self, value: Any) -> Any:
        """Validate ``value`` with the native library.

        Raises:
            ValidationError: The value does not satisfy the schema.
        """
        return self.adapter.parse(self.native, value)


def _to_input_type(gql_type: Any, context: WeaverContext):
    if is_non_null_type(gql_type):
        return GraphQLNonNull(_to_input_type(gql_type.of_type, context))
    if is_list_type(gql_type):
        return GraphQLList(_to_input_type(gql_type.of_type, context))
    if is_input_type(gql_type):
        return gql_type
    if is_object_type(gql_type) or is_interface_type(gql_type):
        name = f"{gql_type.name}{context.config.input_suffix}"

        def build_fields() -> Dict[str, GraphQLInputField]:
            return {
                fname: GraphQLInputField(_to_input_type(f.type, context), description=f.description)
                for fname, f in gql_type.fields.items()
            }
        return context.ensure_input_object_type(
            context.key('input', gql_type), name, build_fields, description=gql_type.description
        )
    raise UnsupportedSchemaError(f"{gql_type} cannot be used as an input type")


class GraphQLSilk(Silk):
    """Silk over a ready graphql-core type.

    Output types are used as-is. Object types used as input are converted to
    input object types named with the configured input suffix.
    """

    def __init__(self, gql_type: Any, parse: Optional[Callable[[Any], Any]] = None):
        if not is_type(gql_type):
            raise UnsupportedSchemaError(f"{gql_type!r} is not a GraphQL type")
        super().__init__(gql_type, None)
        self._parse = parse

    def get_output_type(self, context: Optional[WeaverContext] = None):
        if not is_output_type(self.native):
            raise UnsupportedSchemaError(f"{self.native} is not an output type")
        return self.native

    def get_input_type(self, context: Optional[WeaverContext] = None):
        return _to_input_type(self.native, context or WeaverContext())

    def parse(self, value: Any) -> Any:
        if self._parse is None:
            return value
        return self._parse(value)


class _NullableSilk(Silk):
    def __init__(self, inner: Silk):
        super().__init__(inner.native, inner.adapter)
        self.inner = inner

    def get_output_type(self, context: Optional[WeaverContext] = None):
        t = self.inner.get_output_type(context)
        return t.of_type if is_non_null_type(t) else t

    def get_input_type(self, context: Optional[WeaverContext] = None):
        t = self.inner.get_input_type(context)
        return t.of_type if is_non_null_type(t) else t

    def parse(self, value: Any) -> Any:
        if value is None:
            return None
        return self.inner.parse(value)


class _ListSilk(Silk):
    def __init__(self, inner: Silk):
        super().__init__(inner.native, inner.adapter)
        self.inner = inner

    def get_output_type(self, context: Optional[WeaverContext] = None):
        return GraphQLNonNull(GraphQLList(self.inner.get_output_type(context)))

    def get_input_type(self, context: Optional[WeaverContext] = None):
        return GraphQLNonNull(GraphQLList(self.inner.get_input_type(context)))

    def parse(self, value: Any) -> Any:
        if value is None or isinstance(value, (str, bytes)) or not hasattr(value, '__iter__'):
            raise ValidationError("Invalid list", issues=[{'path': (), 'message': "Expected a list"}])
        out: List[Any] = []
        issues: List[Dict[str, Any]] = []
        for i, item in enumerate(value):
            try:
                out.append(self.inner.parse(item))
            except ValidationError as e:
                issues.extend({'path': (i, *tuple(x.get('path', ()))), 'message': x.get('message', '')} for x in e.issues)
        if issues:
            raise ValidationError("Invalid list", issues=issues)
        return out


def silk(gql_type: Any, parse: Optional[Callable[[Any], Any]] = None) -> GraphQLSilk:
    """Wrap a graphql-core type as a silk, with an optional parse function.

    Example:
        Hello = silk(GraphQLNonNull(GraphQLString))
        Names = silk.list(silk(GraphQLNonNull(GraphQLString)))
    """
    return GraphQLSilk(gql_type, parse)


def _nullable(s: Any) -> Silk:
    return _NullableSilk(ensure_silk(s))


def _list(s: Any) -> Silk:
    return _ListSilk(ensure_silk(s))


silk.nullable = _nullable  # type: ignore[attr-defined]
silk.list = _list  # type: ignore[attr-defined]


def ensure_silk(obj: Any) -> Silk:
    """Return ``obj`` as a silk, dispatching natives through the adapter registry.

    Raises:
        UnsupportedSchemaError: No adapter handles ``obj``.
    """
    if isinstance(obj, Silk):
        return obj
    if is_type(obj):
        return GraphQLSilk(obj)
    from .adapters.base import get_adapter
    return get_adapter(obj).silk(obj)


def get_graphql_type(obj: Any, context: Optional[WeaverContext] = None):
    """Derive the GraphQL output type of a silk or native schema."""
    return ensure_silk(obj).get_output_type(context or WeaverContext())


def get_graphql_input_type(obj: Any, context: Optional[WeaverContext] = None):
    return ensure_silk(obj).get_input_type(context or WeaverContext())


def parse_silk(obj: Any, value: Any) -> Any:
    return ensure_silk(obj).parse(value)
