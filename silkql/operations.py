"""Entity operation builders backed by a unit of work.

Example:
    books = EntityOperationWeaver(Book, lambda: session)
    book_resolver = resolver({'create_book': books.create()})
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from sqlalchemy import inspect as sa_inspect

from .adapters.sqlalchemy import EntityInput, as_unit_of_work
from .middleware import Middleware, compose
from .resolver import FieldOrOperation, mutation
from .silk import ensure_silk

_logger = logging.getLogger("silkql")

__all__ = ['EntityOperationWeaver']


class EntityOperationWeaver:
    """Build mutations that persist ``entity`` instances.

    Args:
        entity: A mapped class (or any native the unit of work can construct).
        get_session_or_options: Either a callable returning a session/unit of
            work (sync or async), or a mapping ``{'get_session': callable}``.
    """

    def __init__(self, entity: Any, get_session_or_options: Union[Callable[[], Any], Mapping[str, Any]]):
        self.entity = entity
        if callable(get_session_or_options):
            self.options: Dict[str, Any] = {'get_session': get_session_or_options}
        elif isinstance(get_session_or_options, Mapping) and callable(get_session_or_options.get('get_session')):
            self.options = dict(get_session_or_options)
        else:
            raise TypeError("EntityOperationWeaver needs a get_session callable")
        # Kept as one bound object: middleware lists are deduplicated by reference
        self.flush_middleware = self._flush

    async def use_session(self) -> Any:
        """Return the unit of work for the current session."""
        session = self.options['get_session']()
        if inspect.isawaitable(session):
            session = await session
        return as_unit_of_work(session)

    async def _flush(self, next, options):
        result = await next()
        uow = await self.use_session()
        await uow.commit()
        return result

    def entity_name(self) -> str:
        return ensure_silk(self.entity).adapter.object_name(self.entity)[0]

    def default_create_input(self) -> EntityInput:
        """Input of ``create``: primary keys and defaulted columns are optional."""
        mapper = sa_inspect(self.entity)
        primary_keys = frozenset(mapper.get_property_by_column(col).key for col in mapper.primary_key)
        return EntityInput(self.entity, f"{self.entity_name()}CreateInput", primary_keys)

    def create(
        self,
        *,
        input: Any = None,
        middlewares: Optional[Sequence[Middleware]] = None,
        description: Optional[str] = None,
        deprecation_reason: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
    ) -> FieldOrOperation:
        """Build a ``create`` mutation for the entity.

        The instance is built from the parsed input and scheduled for insert;
        the flush middleware commits once after the resolver returns and
        never when it raises. It is appended to ``middlewares`` unless the
        caller already placed it there.
        """
        input = input if input is not None else self.default_create_input()
        declared = list(middlewares or ())
        if not any(mw is self.flush_middleware for mw in declared):
            declared = compose(declared, [self.flush_middleware])
        entity = self.entity

        async def resolve(value):
            uow = await self.use_session()
            instance = uow.create_instance(entity, value)
            uow.schedule_insert(instance)
            _logger.debug("silkql: scheduled insert of %s", type(instance).__name__)
            return instance

        return mutation(
            entity,
            resolve,
            input=input,
            middlewares=declared,
            description=description,
            deprecation_reason=deprecation_reason,
            extensions=extensions,
        )
