"""pydantic v2 adapter.

Handles ``BaseModel`` subclasses, ``Enum`` classes, the builtin scalar types
and typing annotations built from them (``Optional``, ``list``, ``Union``,
``Literal``, ``Annotated``). Validation runs through pydantic itself.
"""
from __future__ import annotations

import collections.abc
import datetime
import decimal
import logging
import types
import uuid
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union, get_args, get_origin

from graphql import GraphQLBoolean, GraphQLFloat, GraphQLID, GraphQLInt, GraphQLString
from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.fields import FieldInfo

from ..core.meta import find_meta, find_union_config, get_object_config
from ..core.naming import docstring_of, parse_field_config, parse_object_config
from ..core.shapes import (
    ArrayShape,
    DiscriminatedUnionShape,
    EnumShape,
    FieldShape,
    NullableShape,
    ObjectShape,
    ScalarShape,
    UnionShape,
)
from ..errors import UnsupportedSchemaError, ValidationError
from .base import SchemaAdapter

_logger = logging.getLogger("silkql")

__all__ = ['PydanticAdapter']

_SCALARS = {
    str: GraphQLString,
    bool: GraphQLBoolean,
    int: GraphQLInt,
    float: GraphQLFloat,
    decimal.Decimal: GraphQLFloat,
    uuid.UUID: GraphQLID,
    datetime.datetime: GraphQLString,
    datetime.date: GraphQLString,
    datetime.time: GraphQLString,
}

_ARRAY_ORIGINS = (
    list, set, frozenset, tuple,
    collections.abc.Sequence, collections.abc.MutableSequence,
    collections.abc.Set, collections.abc.MutableSet, collections.abc.Iterable,
)


def _is_union(native: Any) -> bool:
    origin = get_origin(native)
    return origin is Union or origin is types.UnionType


def _strip_annotated(native: Any) -> Any:
    while get_origin(native) is Annotated:
        native = get_args(native)[0]
    return native


def _without_none(native: Any) -> Any:
    """Return ``native`` without its ``None`` member, or ``native`` itself if it has none."""
    if not _is_union(native):
        return native
    args = get_args(native)
    present = tuple(a for a in args if a is not type(None))
    if len(present) == len(args) or not present:
        return native
    return present[0] if len(present) == 1 else Union[present]  # type: ignore[valid-type]


def _is_model(native: Any) -> bool:
    return isinstance(native, type) and issubclass(native, BaseModel)


class PydanticAdapter(SchemaAdapter):
    name = 'pydantic'

    def __init__(self):
        self._type_adapters: Dict[Any, TypeAdapter] = {}

    def handles(self, native: Any) -> bool:
        if isinstance(native, type):
            if issubclass(native, (BaseModel, Enum)):
                return True
            return any(base in _SCALARS for base in native.__mro__)
        return get_origin(native) is not None

    # ---------- shapes ----------
    def shape_of(self, native: Any):
        origin = get_origin(native)
        if origin is Annotated:
            inner, *extras = get_args(native)
            discriminator = self._discriminator_of(extras)
            union = _strip_annotated(inner)
            if discriminator is not None or (_is_union(union) and find_union_config(extras) is not None):
                present = _without_none(union)
                if present is not union:
                    return NullableShape(Annotated[(present, *extras)])  # type: ignore[valid-type]
                if discriminator is not None:
                    return self._discriminated_union(inner, discriminator, extras)
                return self._union(union, extras)
            return self.shape_of(inner)
        if _is_union(native):
            present = _without_none(native)
            if present is not native:
                return NullableShape(present)
            return self._union(native, ())
        if origin in _ARRAY_ORIGINS:
            args = get_args(native)
            if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
                raise UnsupportedSchemaError(f"Only homogeneous tuples map to GraphQL lists, got {native!r}")
            if not args:
                raise UnsupportedSchemaError(f"List element type missing in {native!r}")
            return ArrayShape(args[0])
        if origin is Literal:
            return ScalarShape(self._literal_scalar(native))
        if isinstance(native, type):
            if issubclass(native, BaseModel):
                return self._object(native)
            if issubclass(native, Enum):
                return EnumShape(
                    key=native,
                    name=native.__name__,
                    values={m.name: m for m in native},
                    description=docstring_of(native),
                )
            for base in native.__mro__:
                if base in _SCALARS:
                    return ScalarShape(_SCALARS[base])
        raise UnsupportedSchemaError(f"Cannot derive a GraphQL type from {native!r}")

    def _literal_scalar(self, native: Any):
        values = get_args(native)
        kinds = {type(v) for v in values}
        if kinds <= {bool}:
            return GraphQLBoolean
        if kinds <= {int}:
            return GraphQLInt
        if kinds <= {str}:
            return GraphQLString
        raise UnsupportedSchemaError(f"Literal values of mixed types cannot be mapped: {native!r}")

    def object_name(self, model: type) -> Tuple[str, Optional[str]]:
        """Return the (name, description) of a model's object type.

        Precedence: ``object_type()`` config, then ``model_config['title']``
        (both parsed as ``Name: description``), then the class name. The class
        docstring is the fallback description.
        """
        cfg = get_object_config(model)
        name, description = model.__name__, None
        if cfg is not None and cfg.name:
            name, description = parse_object_config(cfg.name)
        else:
            title = (getattr(model, 'model_config', None) or {}).get('title')
            if title:
                name, description = parse_object_config(title)
        if cfg is not None and cfg.description:
            description = cfg.description
        return name, description or docstring_of(model)

    def _object(self, model: type) -> ObjectShape:
        name, description = self.object_name(model)
        cfg = get_object_config(model)
        fields: Dict[str, FieldShape] = {}
        for fname, info in model.model_fields.items():
            fields[fname] = self._field(fname, info)
        for cname, cinfo in (getattr(model, 'model_computed_fields', None) or {}).items():
            fields[cname] = FieldShape(
                native=cinfo.return_type,
                source=cname,
                read_only=True,
                name=cinfo.alias if cinfo.alias and cinfo.alias != cname else None,
                description=parse_field_config(cinfo.description),
            )
        return ObjectShape(
            key=model,
            name=name,
            fields=fields,
            description=description,
            interfaces=tuple(cfg.interfaces) if cfg is not None else (),
            classes=(model,),
        )

    def _field(self, fname: str, info: FieldInfo) -> FieldShape:
        m = find_meta(info.metadata)
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        if m is not None and m.hidden and (m.name or m.nullable is not None or m.read_only or m.deprecation_reason):
            _logger.warning("silkql: field %s is hidden; its other GraphQL options are ignored", fname)
        native = info.annotation
        type_markers = [x for x in info.metadata if find_union_config([x]) is not None]
        if info.discriminator is not None:
            native = Annotated[(native, Field(discriminator=info.discriminator), *type_markers)]  # type: ignore[valid-type]
        elif type_markers:
            native = Annotated[(native, *type_markers)]  # type: ignore[valid-type]
        alias = info.validation_alias if isinstance(info.validation_alias, str) else info.alias
        deprecated = getattr(info, 'deprecated', None)
        if m is not None and m.deprecation_reason:
            deprecated = m.deprecation_reason
        elif deprecated is not None and not isinstance(deprecated, str):
            deprecated = getattr(deprecated, 'message', None) or "Deprecated"
        return FieldShape(
            native=native,
            source=fname,
            required=info.is_required(),
            nullable=m.nullable if m is not None else None,
            hidden=bool(info.exclude) or bool(m and m.hidden) or bool(extra.get('hidden')),
            read_only=bool(m and m.read_only) or bool(extra.get('read_only')),
            name=(m.name if m is not None and m.name else None) or (info.alias or None),
            description=parse_field_config((m.description if m is not None else None) or info.description),
            deprecation_reason=deprecated or None,
            input_key=alias or None,
        )

    def _discriminator_of(self, extras: List[Any]) -> Optional[str]:
        for x in extras:
            disc = getattr(x, 'discriminator', None) if isinstance(x, FieldInfo) else None
            if disc is None:
                continue
            if not isinstance(disc, str):
                raise UnsupportedSchemaError("Only string discriminators can be mapped to GraphQL unions")
            return disc
        return None

    def _union_name(self, options: Tuple[Any, ...], extras: Any) -> Tuple[str, Optional[str]]:
        cfg = find_union_config(extras)
        if cfg is not None and cfg.name:
            return cfg.name, cfg.description
        return 'Or'.join(self.object_name(o)[0] for o in options), None

    def _union_options(self, native: Any) -> Tuple[Any, ...]:
        options = tuple(_strip_annotated(a) for a in get_args(native))
        for o in options:
            if not _is_model(o):
                raise UnsupportedSchemaError(f"GraphQL unions may only contain object types, got {o!r}")
        return options

    def _union(self, native: Any, extras: Any) -> UnionShape:
        options = self._union_options(native)
        name, description = self._union_name(options, extras)
        return UnionShape(
            key=('union', name, options),
            name=name,
            options=options,
            description=description,
            matches=self._matches,
        )

    def _discriminated_union(self, inner: Any, discriminator: str, extras: Any) -> DiscriminatedUnionShape:
        inner = _strip_annotated(inner)
        if not _is_union(inner):
            raise UnsupportedSchemaError(f"Discriminator '{discriminator}' set on a non-union type {inner!r}")
        options = self._union_options(inner)
        mapping: Dict[Any, Any] = {}
        for option in options:
            finfo = option.model_fields.get(discriminator)
            literal = _strip_annotated(finfo.annotation) if finfo is not None else None
            if get_origin(literal) is not Literal:
                raise UnsupportedSchemaError(
                    f"{option.__name__}.{discriminator} must be a Literal to act as a discriminator"
                )
            for value in get_args(literal):
                mapping[value] = option
        name, description = self._union_name(options, extras)
        return DiscriminatedUnionShape(
            key=('union', name, options),
            name=name,
            discriminator=discriminator,
            mapping=mapping,
            description=description,
        )

    def _matches(self, option: Any, value: Any) -> bool:
        try:
            self.parse(option, value)
        except ValidationError:
            return False
        return True

    # ---------- validation ----------
    def _type_adapter(self, native: Any) -> TypeAdapter:
        try:
            cached = self._type_adapters.get(native)
        except TypeError:
            return TypeAdapter(native)
        if cached is None:
            cached = TypeAdapter(native)
            self._type_adapters[native] = cached
        return cached

    def parse(self, native: Any, value: Any) -> Any:
        try:
            if _is_model(native):
                return native.model_validate(value)
            return self._type_adapter(native).validate_python(value)
        except PydanticValidationError as e:
            issues = [{'path': tuple(err.get('loc', ())), 'message': err.get('msg', '')} for err in e.errors()]
            _logger.debug("silkql: pydantic rejected value for %r (%d issues)", native, len(issues))
            raise ValidationError(f"Invalid value for {getattr(native, '__name__', native)}", issues=issues) from e
