from __future__ import annotations
import logging
from typing import Any, List, Optional

from ..errors import UnsupportedSchemaError

_logger = logging.getLogger("silkql")

__all__ = ['SchemaAdapter', 'get_adapter', 'register_adapter', 'registered_adapters']


class SchemaAdapter:
    """Bridge between one validation/entity library and the weaving engine.

    Subclasses map their native schema objects onto the closed set of shapes
    in :mod:`silkql.core.shapes` and run the library's own validation.
    """

    name = 'base'

    def handles(self, native: Any) -> bool:
        raise NotImplementedError

    def shape_of(self, native: Any):
        raise NotImplementedError

    def parse(self, native: Any, value: Any) -> Any:
        return value

    def silk(self, native: Any):
        from ..silk import Silk
        return Silk(native, self)


_ADAPTERS: Optional[List[SchemaAdapter]] = None


def _default_adapters() -> List[SchemaAdapter]:
    # Order matters: the pydantic adapter accepts any typing annotation.
    from .sqlalchemy import SQLAlchemyAdapter
    from .pydantic import PydanticAdapter
    return [SQLAlchemyAdapter(), PydanticAdapter()]


def registered_adapters() -> List[SchemaAdapter]:
    global _ADAPTERS
    if _ADAPTERS is None:
        _ADAPTERS = _default_adapters()
    return _ADAPTERS


def register_adapter(adapter: SchemaAdapter, *, first: bool = True) -> SchemaAdapter:
    """Add an adapter; by default it is consulted before the built-in ones."""
    adapters = registered_adapters()
    if first:
        adapters.insert(0, adapter)
    else:
        adapters.append(adapter)
    _logger.debug("silkql: registered adapter %s", adapter.name)
    return adapter


def get_adapter(native: Any) -> SchemaAdapter:
    for adapter in registered_adapters():
        if adapter.handles(native):
            return adapter
    raise UnsupportedSchemaError(f"No schema adapter handles {native!r}")
