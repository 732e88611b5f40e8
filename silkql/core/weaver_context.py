from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Tuple, get_origin

from graphql import (
    GraphQLEnumType,
    GraphQLField,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLTypeResolver,
    GraphQLUnionType,
    is_interface_type,
    is_object_type,
)

from ..config import WeaverConfig
from ..errors import InvalidTargetError, SchemaCompositionError, UnresolvedVariantError

_logger = logging.getLogger("silkql")

__all__ = ['WeaverContext']

_HASHABLE_KEY_TYPES = (type, str, int, float, bool, bytes, frozenset)


class WeaverContext:
    """Per-weave registry of derived GraphQL types.

    Holds the memo of derived types keyed by native identity, the interfaces
    promoted from object types, in-progress markers for cyclic schemas and
    the extra fields contributed to object types by ``resolver.of``. A
    context is created for every ``weave()`` call and frozen once the schema
    is finalized; after that it is only read.
    """

    def __init__(self, config: Optional[WeaverConfig] = None):
        self.config = config or WeaverConfig()
        self.frozen = False
        self._types: Dict[Any, GraphQLNamedType] = {}
        # Natives keyed by id() are retained so their ids cannot be reused
        self._retained: Dict[int, Any] = {}
        self._in_progress: Set[Any] = set()
        self._type_names: Dict[str, Any] = {}
        self._interfaces: Dict[int, Tuple[GraphQLObjectType, GraphQLInterfaceType]] = {}
        self._base_fields: Dict[int, Dict[str, Any]] = {}
        self._extra_fields: Dict[int, Dict[str, GraphQLField]] = {}
        self._classes: Dict[type, GraphQLObjectType] = {}

    # ---------- keys ----------
    def key(self, *parts: Any) -> Tuple[Any, ...]:
        """Build a memo key from native objects.

        Classes, strings and other plain hashables are used directly; any other
        object (SQLAlchemy columns compare by SQL expression, pydantic field
        infos are unhashable) is keyed by identity.
        """
        out: List[Any] = []
        for p in parts:
            if isinstance(p, tuple):
                out.append(self.key(*p))
            elif p is None or isinstance(p, _HASHABLE_KEY_TYPES):
                out.append(p)
            else:
                # typing aliases (list[int], Union[...]) hash and compare structurally
                if get_origin(p) is not None:
                    try:
                        hash(p)
                        out.append(p)
                        continue
                    except TypeError:
                        pass
                self._retained[id(p)] = p
                out.append(('id', id(p)))
        return tuple(out)

    def _check_mutable(self) -> None:
        if self.frozen:
            raise RuntimeError("WeaverContext is frozen; derive types before the schema is finalized")

    def freeze(self) -> None:
        self.frozen = True
        _logger.debug("silkql: weaver context frozen with %d types", len(self._types))

    # ---------- lookups ----------
    def get(self, key: Any) -> Optional[GraphQLNamedType]:
        return self._types.get(key)

    def is_in_progress(self, key: Any) -> bool:
        return key in self._in_progress

    def register_type_name(self, name: str, owner: Any) -> None:
        """Claim a GraphQL type name for ``owner``.

        Raises:
            SchemaCompositionError: The name is already owned by another native.
        """
        current = self._type_names.get(name)
        if current is not None and current != owner:
            raise SchemaCompositionError(f"Type name '{name}' is derived from two different schemas")
        self._type_names[name] = owner

    def object_type_for_value(self, value: Any) -> Optional[GraphQLObjectType]:
        for cls in type(value).__mro__:
            found = self._classes.get(cls)
            if found is not None:
                return found
        return None

    # ---------- object types ----------
    def ensure_object_type(
        self,
        key: Any,
        name: str,
        build_fields: Callable[[], Dict[str, GraphQLField]],
        *,
        description: Optional[str] = None,
        build_interfaces: Optional[Callable[[], Sequence[GraphQLInterfaceType]]] = None,
        classes: Sequence[type] = (),
    ) -> GraphQLObjectType:
        """Return the memoized object type for ``key``, deriving it on first use.

        The type is registered before ``build_fields`` runs and graphql-core
        receives its fields as a thunk, so a field that refers back to a type
        still under construction gets the very same object.
        """
        existing = self._types.get(key)
        if existing is not None:
            if key in self._in_progress:
                _logger.debug("silkql: forward reference to %s (cycle)", name)
            return existing  # type: ignore[return-value]
        self._check_mutable()
        self.register_type_name(name, key)
        state: Dict[str, Any] = {'fields': {}, 'interfaces': []}

        def _fields():
            merged = dict(state['fields'])
            merged.update(self._extra_fields.get(id(obj), {}))
            return merged

        obj = GraphQLObjectType(
            name,
            fields=_fields,
            interfaces=lambda: list(state['interfaces']),
            description=description,
        )
        self._types[key] = obj
        self._base_fields[id(obj)] = state
        self._in_progress.add(key)
        try:
            state['fields'] = build_fields()
            if build_interfaces is not None:
                state['interfaces'] = list(build_interfaces())
        except Exception:
            # A failed derivation must not leave a half-built type behind
            self._types.pop(key, None)
            self._base_fields.pop(id(obj), None)
            self._type_names.pop(name, None)
            raise
        finally:
            self._in_progress.discard(key)
        for cls in classes:
            self._classes.setdefault(cls, obj)
        _logger.debug("silkql: derived object type %s (%d fields)", name, len(state['fields']))
        return obj

    def ensure_input_object_type(
        self,
        key: Any,
        name: str,
        build_fields: Callable[[], Dict[str, GraphQLInputField]],
        *,
        description: Optional[str] = None,
    ) -> GraphQLInputObjectType:
        existing = self._types.get(key)
        if existing is not None:
            return existing  # type: ignore[return-value]
        self._check_mutable()
        self.register_type_name(name, key)
        state: Dict[str, Any] = {'fields': {}}
        obj = GraphQLInputObjectType(name, fields=lambda: dict(state['fields']), description=description)
        self._types[key] = obj
        self._in_progress.add(key)
        try:
            state['fields'] = build_fields()
        except Exception:
            self._types.pop(key, None)
            self._type_names.pop(name, None)
            raise
        finally:
            self._in_progress.discard(key)
        _logger.debug("silkql: derived input type %s", name)
        return obj

    def ensure_named_type(self, key: Any, name: str, factory: Callable[[], GraphQLNamedType]) -> GraphQLNamedType:
        """Memoize enums and unions, which never refer back to themselves."""
        existing = self._types.get(key)
        if existing is not None:
            return existing
        self._check_mutable()
        self.register_type_name(name, key)
        try:
            created = factory()
        except Exception:
            self._type_names.pop(name, None)
            raise
        self._types[key] = created
        kind = 'enum' if isinstance(created, GraphQLEnumType) else 'union' if isinstance(created, GraphQLUnionType) else 'type'
        _logger.debug("silkql: derived %s %s", kind, name)
        return created

    # ---------- interfaces ----------
    def ensure_interface_type(
        self,
        gql_type: Any,
        resolve_type: Optional[GraphQLTypeResolver] = None,
    ) -> GraphQLInterfaceType:
        """Promote an object type to an interface, once per object type.

        Interfaces are returned unchanged.

        Raises:
            InvalidTargetError: ``gql_type`` is neither an object nor an interface.
        """
        if is_interface_type(gql_type):
            return gql_type
        if not is_object_type(gql_type):
            raise InvalidTargetError(f"{gql_type} is not an object type")
        existing = self._interfaces.get(id(gql_type))
        if existing is not None:
            return existing[1]
        self._check_mutable()
        state = self._base_fields.get(id(gql_type))

        def _fields():
            if state is not None:
                return dict(state['fields'])
            return dict(gql_type.fields)

        interface = GraphQLInterfaceType(
            gql_type.name,
            fields=_fields,
            interfaces=lambda: list(gql_type.interfaces),
            resolve_type=resolve_type or self._resolve_type_by_value,
            description=gql_type.description,
            extensions=gql_type.extensions,
        )
        self._interfaces[id(gql_type)] = (gql_type, interface)
        _logger.debug("silkql: promoted %s to interface", gql_type.name)
        return interface

    def _resolve_type_by_value(self, value: Any, info: Any, abstract_type: Any) -> str:
        typename = value.get('__typename') if isinstance(value, dict) else getattr(value, '__typename', None)
        if isinstance(typename, str):
            return typename
        found = self.object_type_for_value(value)
        if found is not None:
            return found.name
        raise UnresolvedVariantError(
            f"Cannot resolve a concrete type of {abstract_type} for value of type {type(value).__name__}",
            type_name=getattr(abstract_type, 'name', None),
            value=value,
        )

    # ---------- extra fields (resolver.of) ----------
    def add_extra_field(self, object_type: GraphQLObjectType, name: str, field: GraphQLField) -> None:
        """Attach a resolver-contributed field to an object type.

        Raises:
            SchemaCompositionError: The object type already has a field with that name.
        """
        self._check_mutable()
        state = self._base_fields.get(id(object_type))
        if state is None:
            raise InvalidTargetError(f"{object_type} was not derived by this weave and cannot be extended")
        extra = self._extra_fields.setdefault(id(object_type), {})
        if name in state['fields'] or name in extra:
            raise SchemaCompositionError(f"Field '{name}' is declared twice on type {object_type.name}")
        extra[name] = field
        _logger.debug("silkql: added field %s.%s", object_type.name, name)
