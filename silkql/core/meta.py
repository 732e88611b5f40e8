from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

__all__ = [
    'SilkMeta', 'ObjectConfig', 'UnionConfig', 'meta', 'object_type', 'union_type',
    'get_object_config', 'find_meta', 'find_union_config',
]


@dataclass(frozen=True)
class SilkMeta:
    """Field/type level metadata, placed inside ``typing.Annotated``.

    Attributes:
        name: GraphQL name override. For unions this names the union type.
        description: GraphQL description.
        nullable: Nullability override; when not None it wins over the
            required/optional status of the field.
        hidden: Never expose the field, neither in output nor input types.
        read_only: Expose in output types only.
        deprecation_reason: Marks the output field deprecated.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    nullable: Optional[bool] = None
    hidden: bool = False
    read_only: bool = False
    deprecation_reason: Optional[str] = None


def meta(**kwargs: Any) -> SilkMeta:
    """Shortcut for ``SilkMeta(**kwargs)``.

    Example:
        class Book(BaseModel):
            isbn: Annotated[str, meta(name="ISBN")]
            sales: Annotated[int, meta(hidden=True)]
    """
    return SilkMeta(**kwargs)


@dataclass(frozen=True)
class ObjectConfig:
    name: Optional[str] = None
    description: Optional[str] = None
    interfaces: Tuple[Any, ...] = field(default_factory=tuple)


def object_type(name: Optional[str] = None, *, description: Optional[str] = None, interfaces: Any = ()):
    """Class decorator attaching GraphQL object options to a native schema class.

    ``name`` may carry a description after the first colon
    (``"Cat: a small feline"``). ``interfaces`` lists native schemas whose
    derived object types are promoted to interfaces implemented by this type.
    """
    def deco(cls):
        setattr(cls, '__silkql_object__', ObjectConfig(name=name, description=description, interfaces=tuple(interfaces or ())))
        return cls
    return deco


def get_object_config(native: Any) -> Optional[ObjectConfig]:
    # Own namespace only: subclasses must not inherit their parent's name.
    try:
        cfg = vars(native).get('__silkql_object__')
    except TypeError:
        return None
    return cfg if isinstance(cfg, ObjectConfig) else None


def find_meta(items: Any) -> Optional[SilkMeta]:
    """Return the last SilkMeta among Annotated metadata items."""
    found = None
    for it in items or ():
        if isinstance(it, SilkMeta):
            found = it
    return found


@dataclass(frozen=True)
class UnionConfig:
    name: Optional[str] = None
    description: Optional[str] = None


def union_type(name: str, *, description: Optional[str] = None) -> UnionConfig:
    """Name a union inside ``typing.Annotated``.

    Example:
        Pet = Annotated[Union[Cat, Dog], union_type("Pet")]
    """
    parsed_name, parsed_desc = name, None
    if ':' in name:
        from .naming import parse_object_config
        parsed_name, parsed_desc = parse_object_config(name)
    return UnionConfig(name=parsed_name, description=description or parsed_desc)


def find_union_config(items: Any) -> Optional[UnionConfig]:
    found = None
    for it in items or ():
        if isinstance(it, UnionConfig):
            found = it
    return found
