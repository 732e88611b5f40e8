from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Tuple

from graphql import (
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLField,
    GraphQLInputField,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLUnionType,
    is_input_type,
    is_object_type,
    is_output_type,
    is_type,
)

from ..errors import SchemaCompositionError, UnresolvedVariantError, UnsupportedSchemaError
from .shapes import (
    ArrayShape,
    DiscriminatedUnionShape,
    EnumShape,
    NullableShape,
    ObjectShape,
    OptionalShape,
    ScalarShape,
    UnionShape,
)
from .weaver_context import WeaverContext

_logger = logging.getLogger("silkql")

__all__ = ['TypeDeriver', 'read_source']


def read_source(value: Any, key: str) -> Any:
    """Read ``key`` from a mapping or an attribute-bearing object."""
    if isinstance(value, Mapping):
        return value.get(key)
    return getattr(value, key, None)


def _make_source_resolver(source: str):
    def _resolver(parent, info, **_args):
        return read_source(parent, source)
    return _resolver


def _unwrap(gql_type: Any) -> Tuple[Any, bool]:
    """Return (nullable base type, is_nullable) for a possibly non-null type."""
    if isinstance(gql_type, GraphQLNonNull):
        return gql_type.of_type, False
    return gql_type, True


def _lookup_variant(mapping: Mapping[Any, Any], value: Any) -> Any:
    try:
        if value in mapping:
            return mapping[value]
    except TypeError:
        return None
    if isinstance(value, Enum):
        return mapping.get(value.value)
    return None


class TypeDeriver:
    """Walk adapter shapes and emit graphql-core types.

    All named types go through the :class:`WeaverContext`, so the same native
    schema always yields the same type object within one weave.
    """

    def __init__(self, context: WeaverContext):
        self.context = context
        self.config = context.config

    # ---------- public ----------
    def output_type(self, native: Any):
        base, nullable = self._output(native)
        return base if nullable else GraphQLNonNull(base)

    def input_type(self, native: Any):
        base, nullable = self._input(native)
        return base if nullable else GraphQLNonNull(base)

    def output_from_shape(self, shape: Any, adapter: Any):
        base, nullable = self._output_shape(shape, adapter)
        return base if nullable else GraphQLNonNull(base)

    def input_from_shape(self, shape: Any, adapter: Any):
        base, nullable = self._input_shape(shape, adapter)
        return base if nullable else GraphQLNonNull(base)

    # ---------- dispatch ----------
    def _resolve_native(self, native: Any):
        """Classify a native as a silk, a ready GraphQL type or an adapter shape."""
        from ..silk import Silk
        if isinstance(native, Silk):
            return 'silk', native
        if is_type(native):
            return 'type', native
        preset = self.config.preset_for(native)
        if preset is not None:
            _logger.debug("silkql: preset type %s replaces derivation of %r", preset, native)
            return 'preset', preset
        from ..adapters.base import get_adapter
        adapter = get_adapter(native)
        return 'shape', (adapter.shape_of(native), adapter)

    def _output(self, native: Any) -> Tuple[Any, bool]:
        kind, payload = self._resolve_native(native)
        if kind == 'silk':
            return _unwrap(payload.get_output_type(self.context))
        if kind == 'preset':
            return _unwrap(payload)[0], False
        if kind == 'type':
            if not is_output_type(payload):
                raise UnsupportedSchemaError(f"{payload} is not an output type")
            return _unwrap(payload)
        shape, adapter = payload
        return self._output_shape(shape, adapter)

    def _input(self, native: Any) -> Tuple[Any, bool]:
        kind, payload = self._resolve_native(native)
        if kind == 'silk':
            return _unwrap(payload.get_input_type(self.context))
        if kind == 'preset':
            return _unwrap(payload)[0], False
        if kind == 'type':
            if not is_input_type(payload):
                raise UnsupportedSchemaError(f"{payload} is not an input type")
            return _unwrap(payload)
        shape, adapter = payload
        return self._input_shape(shape, adapter)

    # ---------- output ----------
    def _output_shape(self, shape: Any, adapter: Any) -> Tuple[Any, bool]:
        if isinstance(shape, ScalarShape):
            return shape.type, False
        if isinstance(shape, EnumShape):
            return self._enum(shape), False
        if isinstance(shape, (NullableShape, OptionalShape)):
            # Optional keys and nullable values collapse into GraphQL's single nullability bit
            base, _ = self._output(shape.inner)
            return base, True
        if isinstance(shape, ArrayShape):
            element, element_nullable = self._output(shape.element)
            return GraphQLList(element if element_nullable else GraphQLNonNull(element)), False
        if isinstance(shape, ObjectShape):
            return self._object(shape, adapter), False
        if isinstance(shape, (UnionShape, DiscriminatedUnionShape)):
            return self._union(shape, adapter), False
        raise UnsupportedSchemaError(f"Unknown schema shape: {shape!r}")

    def _field_type(self, fs: Any, derive: Callable[[Any], Tuple[Any, bool]]):
        base, nullable = derive(fs.native)
        nullable = nullable or not fs.required
        if fs.nullable is not None:
            nullable = fs.nullable
        return base if nullable else GraphQLNonNull(base)

    def _object(self, shape: ObjectShape, adapter: Any) -> GraphQLObjectType:
        key = self.context.key('output', shape.key)

        def build_fields() -> Dict[str, GraphQLField]:
            out: Dict[str, GraphQLField] = {}
            for fs in shape.fields.values():
                if fs.hidden:
                    continue
                gql_name = self.config.convert_name(fs.graphql_name)
                if gql_name in out:
                    raise SchemaCompositionError(f"Field '{gql_name}' appears twice on type {shape.name}")
                out[gql_name] = GraphQLField(
                    self._field_type(fs, self._output),
                    description=fs.description,
                    deprecation_reason=fs.deprecation_reason,
                    resolve=None if gql_name == fs.source else _make_source_resolver(fs.source),
                )
            return out

        build_interfaces = None
        if shape.interfaces:
            def build_interfaces():
                out = []
                for native in shape.interfaces:
                    base, _ = self._output(native)
                    out.append(self.context.ensure_interface_type(base))
                return out

        return self.context.ensure_object_type(
            key,
            shape.name,
            build_fields,
            description=shape.description,
            build_interfaces=build_interfaces,
            classes=shape.classes,
        )

    def _enum(self, shape: EnumShape) -> GraphQLEnumType:
        def factory():
            return GraphQLEnumType(
                shape.name,
                {name: GraphQLEnumValue(value) for name, value in shape.values.items()},
                description=shape.description,
            )
        return self.context.ensure_named_type(self.context.key('enum', shape.key), shape.name, factory)  # type: ignore[return-value]

    def _union(self, shape: Any, adapter: Any) -> GraphQLUnionType:
        key = self.context.key('union', shape.key)
        existing = self.context.get(key)
        if existing is not None:
            return existing  # type: ignore[return-value]
        options = tuple(shape.options)
        types = []
        for option in options:
            base, _ = self._output(option)
            if not is_object_type(base):
                raise UnsupportedSchemaError(f"Union {shape.name} option {base} is not an object type")
            types.append(base)
        if isinstance(shape, DiscriminatedUnionShape):
            resolve_type = self._discriminated_resolver(shape, options, types)
        else:
            resolve_type = self._union_resolver(shape, options, types)

        def factory():
            return GraphQLUnionType(shape.name, types, resolve_type=resolve_type, description=shape.description)
        return self.context.ensure_named_type(key, shape.name, factory)  # type: ignore[return-value]

    def _discriminated_resolver(self, shape: DiscriminatedUnionShape, options, types):
        names_by_option = {id(o): t.name for o, t in zip(options, types)}
        discriminator = shape.discriminator
        mapping = shape.mapping

        def resolve_type(value, info, abstract_type):
            disc = read_source(value, discriminator)
            option = _lookup_variant(mapping, disc)
            if option is None:
                raise UnresolvedVariantError(
                    f"Value {disc!r} of '{discriminator}' matches no variant of {shape.name}",
                    type_name=shape.name,
                    value=value,
                )
            return names_by_option[id(option)]
        return resolve_type

    def _union_resolver(self, shape: UnionShape, options, types):
        context = self.context
        names = {t.name for t in types}
        pairs = list(zip(options, types))

        def resolve_type(value, info, abstract_type):
            found = context.object_type_for_value(value)
            if found is not None and found.name in names:
                return found.name
            if shape.matches is not None:
                for option, gql_type in pairs:
                    if shape.matches(option, value):
                        return gql_type.name
            raise UnresolvedVariantError(
                f"Value of type {type(value).__name__} matches no variant of {shape.name}",
                type_name=shape.name,
                value=value,
            )
        return resolve_type

    # ---------- input ----------
    def _input_shape(self, shape: Any, adapter: Any) -> Tuple[Any, bool]:
        if isinstance(shape, ScalarShape):
            return shape.type, False
        if isinstance(shape, EnumShape):
            return self._enum(shape), False
        if isinstance(shape, (NullableShape, OptionalShape)):
            base, _ = self._input(shape.inner)
            return base, True
        if isinstance(shape, ArrayShape):
            element, element_nullable = self._input(shape.element)
            return GraphQLList(element if element_nullable else GraphQLNonNull(element)), False
        if isinstance(shape, ObjectShape):
            return self._input_object(shape, adapter), False
        if isinstance(shape, (UnionShape, DiscriminatedUnionShape)):
            raise UnsupportedSchemaError(f"Union {shape.name} cannot be used as an input type")
        raise UnsupportedSchemaError(f"Unknown schema shape: {shape!r}")

    def _input_object(self, shape: ObjectShape, adapter: Any):
        name = shape.input_name or f"{shape.name}{self.config.input_suffix}"
        key = self.context.key('input', shape.key)

        def build_fields() -> Dict[str, GraphQLInputField]:
            out: Dict[str, GraphQLInputField] = {}
            for fs in shape.fields.values():
                if fs.hidden or fs.read_only:
                    continue
                gql_name = self.config.convert_name(fs.graphql_name)
                if gql_name in out:
                    raise SchemaCompositionError(f"Field '{gql_name}' appears twice on input type {name}")
                out[gql_name] = GraphQLInputField(
                    self._field_type(fs, self._input),
                    description=fs.description,
                    out_name=fs.parse_key,
                )
            return out

        return self.context.ensure_input_object_type(key, name, build_fields, description=shape.description)
