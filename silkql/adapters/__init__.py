from __future__ import annotations

from .base import SchemaAdapter, get_adapter, register_adapter, registered_adapters
from .pydantic import PydanticAdapter
from .sqlalchemy import EntityInput, SQLAlchemyAdapter, SQLAlchemyUnitOfWork, as_unit_of_work

__all__ = [
    'SchemaAdapter',
    'PydanticAdapter',
    'SQLAlchemyAdapter',
    'EntityInput',
    'SQLAlchemyUnitOfWork',
    'as_unit_of_work',
    'get_adapter',
    'register_adapter',
    'registered_adapters',
]
