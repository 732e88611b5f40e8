"""SQLAlchemy ORM adapter.

Mapped classes derive to object types with one field per mapped column.
Relationships are not exposed; add them with ``resolver.of(Model, ...)``.
Column ``info`` carries the GraphQL options::

    sales = mapped_column(Integer, info={'hidden': True})
    title = mapped_column(String, info={'name': 'headline', 'description': 'Shown on the cover'})
    tags = mapped_column(JSON, info={'type': list[str]})
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple, get_origin

from graphql import GraphQLBoolean, GraphQLFloat, GraphQLID, GraphQLInt, GraphQLString
from sqlalchemy import ARRAY, Boolean, Column, Date, DateTime, Float, Integer, Numeric, String, Time, Uuid
from sqlalchemy import Enum as SAEnum
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper, Session
from sqlalchemy.types import TypeDecorator, TypeEngine

from ..core.meta import get_object_config
from ..core.naming import docstring_of, parse_field_config, parse_object_config
from ..core.shapes import ArrayShape, EnumShape, FieldShape, ObjectShape, ScalarShape
from ..errors import UnsupportedSchemaError, ValidationError
from .base import SchemaAdapter, get_adapter

_logger = logging.getLogger("silkql")

__all__ = ['SQLAlchemyAdapter', 'EntityInput', 'SQLAlchemyUnitOfWork', 'as_unit_of_work']


@dataclass(frozen=True)
class EntityInput:
    """Input-only view of a mapped class.

    ``partial`` lists attribute keys that become optional regardless of the
    column definition. ``name`` is the exact GraphQL input type name.
    """

    model: type
    name: str
    partial: FrozenSet[str] = field(default_factory=frozenset)


def _mapper_of(native: Any) -> Optional[Mapper]:
    if not isinstance(native, type) or get_origin(native) is not None:
        return None
    insp = sa_inspect(native, raiseerr=False)
    return insp if isinstance(insp, Mapper) else None


def _has_default(col: Any) -> bool:
    return getattr(col, 'default', None) is not None or getattr(col, 'server_default', None) is not None


class SQLAlchemyAdapter(SchemaAdapter):
    name = 'sqlalchemy'

    def handles(self, native: Any) -> bool:
        if isinstance(native, (EntityInput, Column, TypeEngine)):
            return True
        if isinstance(native, type) and get_origin(native) is None and issubclass(native, TypeEngine):
            return True
        return _mapper_of(native) is not None

    # ---------- shapes ----------
    def shape_of(self, native: Any):
        if isinstance(native, EntityInput):
            return self._object(native.model, partial=native.partial, input_name=native.name, key=('entity_input', native.model))
        if isinstance(native, Column):
            return self._column_shape(native)
        if isinstance(native, TypeEngine) or (isinstance(native, type) and issubclass(native, TypeEngine)):
            return self._type_shape(native)
        if _mapper_of(native) is not None:
            return self._object(native)
        raise UnsupportedSchemaError(f"Cannot derive a GraphQL type from {native!r}")

    def object_name(self, model: type) -> Tuple[str, Optional[str]]:
        cfg = get_object_config(model)
        name, description = model.__name__, None
        if cfg is not None and cfg.name:
            name, description = parse_object_config(cfg.name)
        if cfg is not None and cfg.description:
            description = cfg.description
        table = getattr(model, '__table__', None)
        return name, description or docstring_of(model) or getattr(table, 'comment', None)

    def _columns(self, model: type) -> Iterator[Tuple[str, Any]]:
        mapper = _mapper_of(model)
        if mapper is None:
            raise UnsupportedSchemaError(f"{model!r} is not a mapped class")
        for attr_key, col in mapper.columns.items():
            yield attr_key, col

    def _object(self, model: type, *, partial: FrozenSet[str] = frozenset(), input_name: Optional[str] = None, key: Any = None) -> ObjectShape:
        name, description = self.object_name(model)
        cfg = get_object_config(model)
        fields: Dict[str, FieldShape] = {}
        for attr_key, col in self._columns(model):
            info = getattr(col, 'info', None) or {}
            if info.get('hidden') and any(info.get(k) is not None for k in ('name', 'nullable', 'deprecation_reason')):
                _logger.warning("silkql: %s.%s is hidden; its other GraphQL options are ignored", model.__name__, attr_key)
            is_column = isinstance(col, Column)
            required = is_column and not col.nullable
            if input_name is not None and (attr_key in partial or (is_column and _has_default(col))):
                required = False
            fields[attr_key] = FieldShape(
                native=col if is_column else col.type,
                source=attr_key,
                required=required,
                nullable=info.get('nullable'),
                hidden=bool(info.get('hidden')),
                read_only=bool(info.get('read_only')) or not is_column or getattr(col, 'computed', None) is not None,
                name=info.get('name'),
                description=parse_field_config(info.get('description') or getattr(col, 'comment', None)),
                deprecation_reason=info.get('deprecation_reason'),
            )
        return ObjectShape(
            key=key if key is not None else model,
            name=name,
            fields=fields,
            description=description,
            interfaces=tuple(cfg.interfaces) if cfg is not None else (),
            input_name=input_name,
            classes=(model,),
        )

    def _column_shape(self, col: Column):
        override = (col.info or {}).get('type')
        if override is not None:
            return get_adapter(override).shape_of(override)
        if col.primary_key:
            return ScalarShape(GraphQLID)
        return self._type_shape(col.type)

    def _type_shape(self, sa_type: Any):
        if isinstance(sa_type, type):
            sa_type = sa_type()
        if isinstance(sa_type, TypeDecorator):
            impl = sa_type.impl
            if impl is not None and impl is not sa_type:
                return self._type_shape(impl)
        # Enum is a String subclass, check it first
        if isinstance(sa_type, SAEnum):
            enum_cls = getattr(sa_type, 'enum_class', None)
            if enum_cls is not None:
                return EnumShape(
                    key=enum_cls,
                    name=enum_cls.__name__,
                    values={m.name: m for m in enum_cls},
                    description=docstring_of(enum_cls),
                )
            return ScalarShape(GraphQLString)
        if isinstance(sa_type, ARRAY):
            return ArrayShape(sa_type.item_type)
        if isinstance(sa_type, Boolean):
            return ScalarShape(GraphQLBoolean)
        if isinstance(sa_type, Integer):
            return ScalarShape(GraphQLInt)
        # Float stopped subclassing Numeric in SQLAlchemy 2.1
        if isinstance(sa_type, (Float, Numeric)):
            return ScalarShape(GraphQLFloat)
        if isinstance(sa_type, Uuid):
            return ScalarShape(GraphQLID)
        if isinstance(sa_type, (DateTime, Date, Time, String)):
            return ScalarShape(GraphQLString)
        raise UnsupportedSchemaError(
            f"Column type {sa_type!r} has no GraphQL mapping; set info={{'type': ...}} on the column"
        )

    # ---------- validation ----------
    def parse(self, native: Any, value: Any) -> Any:
        if isinstance(native, EntityInput):
            model, partial = native.model, native.partial
        elif _mapper_of(native) is not None:
            model, partial = native, frozenset()
        else:
            return value
        if not isinstance(value, Mapping):
            raise ValidationError(
                f"Invalid value for {model.__name__}",
                issues=[{'path': (), 'message': f"Expected an object, got {type(value).__name__}"}],
            )
        issues: List[Dict[str, Any]] = []
        known = set()
        for attr_key, col in self._columns(model):
            info = getattr(col, 'info', None) or {}
            # Hidden and read-only columns are not part of the input
            if info.get('hidden') or info.get('read_only') or not isinstance(col, Column):
                continue
            if getattr(col, 'computed', None) is not None:
                continue
            known.add(attr_key)
            # Database defaults fill omitted columns
            optional = col.nullable or attr_key in partial or _has_default(col)
            if not optional and value.get(attr_key) is None:
                issues.append({'path': (attr_key,), 'message': "Field required"})
        for k in value:
            if k not in known:
                issues.append({'path': (k,), 'message': "Unknown field"})
        if issues:
            raise ValidationError(f"Invalid value for {model.__name__}", issues=issues)
        return dict(value)


class SQLAlchemyUnitOfWork:
    """Unit of work over a SQLAlchemy session.

    Instances are scheduled with :meth:`schedule_insert` and written by a
    single :meth:`commit`, after which they are refreshed so their columns can
    be read without further IO.
    """

    def __init__(self, session: Any):
        self.session = session
        self._pending: List[Any] = []

    def create_instance(self, model: type, data: Any) -> Any:
        if hasattr(data, 'model_dump'):
            data = data.model_dump()
        return model(**dict(data))

    def schedule_insert(self, entity: Any) -> None:
        self.session.add(entity)
        self._pending.append(entity)

    async def commit(self) -> None:
        pending, self._pending = self._pending, []
        result = self.session.commit()
        if inspect.isawaitable(result):
            await result
        for entity in pending:
            refreshed = self.session.refresh(entity)
            if inspect.isawaitable(refreshed):
                await refreshed
        _logger.debug("silkql: committed %d new entities", len(pending))


def as_unit_of_work(obj: Any) -> Any:
    """Return a unit of work for ``obj``.

    Sessions are wrapped once per session (cached in ``session.info``);
    objects already providing the unit of work protocol are returned as-is.
    """
    if isinstance(obj, (AsyncSession, Session)):
        uow = obj.info.get('silkql_uow')
        if uow is None:
            uow = SQLAlchemyUnitOfWork(obj)
            obj.info['silkql_uow'] = uow
        return uow
    if all(hasattr(obj, attr) for attr in ('create_instance', 'schedule_insert', 'commit')):
        return obj
    raise TypeError(f"Cannot use {obj!r} as a unit of work")
