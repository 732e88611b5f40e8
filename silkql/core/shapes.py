"""Closed set of shapes a native schema can take.

Adapters map their native schema objects onto these variants; the weaving
engine only ever walks shapes and never touches a validation library
directly. Child schemas are referenced by their *native* object so that
named types are memoized by native identity.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from graphql import GraphQLScalarType

__all__ = [
    'Shape',
    'ScalarShape',
    'EnumShape',
    'FieldShape',
    'ObjectShape',
    'ArrayShape',
    'UnionShape',
    'DiscriminatedUnionShape',
    'NullableShape',
    'OptionalShape',
]


@dataclass(frozen=True)
class ScalarShape:
    type: GraphQLScalarType


@dataclass(frozen=True)
class EnumShape:
    key: Any
    name: str
    values: Mapping[str, Any]
    description: Optional[str] = None


@dataclass(frozen=True)
class FieldShape:
    """One entry of an object shape.

    ``source`` is the attribute/key read when resolving output values;
    ``input_key`` is the key the native parser expects (defaults to source).
    """

    native: Any
    source: str
    required: bool = True
    nullable: Optional[bool] = None
    hidden: bool = False
    read_only: bool = False
    name: Optional[str] = None
    description: Optional[str] = None
    deprecation_reason: Optional[str] = None
    input_key: Optional[str] = None

    @property
    def graphql_name(self) -> str:
        return self.name or self.source

    @property
    def parse_key(self) -> str:
        return self.input_key or self.source


@dataclass(frozen=True)
class ObjectShape:
    key: Any
    name: str
    fields: Mapping[str, FieldShape]
    description: Optional[str] = None
    interfaces: Tuple[Any, ...] = ()
    # Exact input type name; default is ``name`` + configured suffix
    input_name: Optional[str] = None
    # Native classes whose instances belong to this type (abstract type resolution)
    classes: Tuple[type, ...] = ()


@dataclass(frozen=True)
class ArrayShape:
    element: Any


@dataclass(frozen=True)
class UnionShape:
    key: Any
    name: str
    options: Tuple[Any, ...]
    description: Optional[str] = None
    # Optional trial validator: (option native, value) -> bool
    matches: Optional[Callable[[Any, Any], bool]] = None


@dataclass(frozen=True)
class DiscriminatedUnionShape:
    key: Any
    name: str
    discriminator: str
    mapping: Mapping[Any, Any] = field(default_factory=dict)
    description: Optional[str] = None

    @property
    def options(self) -> Tuple[Any, ...]:
        out = []
        for opt in self.mapping.values():
            if not any(opt is o for o in out):
                out.append(opt)
        return tuple(out)


@dataclass(frozen=True)
class NullableShape:
    inner: Any


@dataclass(frozen=True)
class OptionalShape:
    inner: Any


Shape = Union[
    ScalarShape,
    EnumShape,
    ObjectShape,
    ArrayShape,
    UnionShape,
    DiscriminatedUnionShape,
    NullableShape,
    OptionalShape,
]
