"""Operation and field builders.

``query``, ``mutation``, ``subscription`` and ``field`` turn an output silk
plus a resolve function into a :class:`FieldOrOperation`; ``resolver()``
collects them under their GraphQL names for ``weave()``.

Example:
    class Book(BaseModel):
        isbn: str
        title: str

    book_resolver = resolver.of(Book, {
        'books': query(silk.list(Book), lambda: BOOKS),
        'add_book': mutation(Book, add_book, input=Book),
        'shout': field(str, lambda book: book.title.upper()),
    })
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from graphql import GraphQLArgument, is_input_object_type, is_non_null_type

from .context import ResolverPayload, resolver_payload_scope
from .core.weaver_context import WeaverContext
from .errors import UnsupportedSchemaError, ValidationError
from .middleware import CallOptions, Chain, Middleware, _maybe_await, build_chain, compose
from .silk import ensure_silk

_logger = logging.getLogger("silkql")

__all__ = [
    'FieldOrOperation',
    'InputParser',
    'Resolver',
    'create_input_parser',
    'input_arguments',
    'query',
    'mutation',
    'subscription',
    'field',
    'resolver',
]

OPERATION_TYPES = ('query', 'mutation', 'subscription', 'field')


def create_input_parser(spec: Any, raw: Any) -> Any:
    """Validate ``raw`` against an input spec.

    ``spec`` is None (no input), a silk/native schema, or a mapping of
    argument name to silk/native schema. Issues from every argument of a
    mapping are reported together, prefixed by the argument name.

    Raises:
        ValidationError: ``raw`` does not satisfy ``spec``.
    """
    if spec is None:
        return raw
    if isinstance(spec, Mapping):
        raw = raw or {}
        out: Dict[str, Any] = {}
        issues: List[Dict[str, Any]] = []
        for name, s in spec.items():
            try:
                out[name] = ensure_silk(s).parse(raw.get(name))
            except ValidationError as e:
                issues.extend({'path': (name, *tuple(i.get('path', ()))), 'message': i.get('message', '')} for i in e.issues)
        if issues:
            raise ValidationError("Invalid arguments", issues=issues)
        return out
    return ensure_silk(spec).parse(raw)


class InputParser:
    """Parse the input of one call at most once, however often it is awaited."""

    def __init__(self, spec: Any, raw: Any):
        self.spec = spec
        self.raw = raw
        self._done = False
        self._value: Any = None
        self._error: Optional[BaseException] = None

    async def __call__(self) -> Any:
        if not self._done:
            try:
                self._value = await _maybe_await(create_input_parser(self.spec, self.raw))
            except ValidationError as e:
                _logger.debug("silkql: input rejected: %s", e)
                self._error = e
            self._done = True
        if self._error is not None:
            raise self._error
        return self._value


def input_arguments(spec: Any, context: WeaverContext) -> Dict[str, GraphQLArgument]:
    """Derive the GraphQL arguments of an operation from its input spec.

    An object silk contributes one argument per field of its input type; a
    mapping contributes one argument per entry.
    """
    if spec is None:
        return {}
    config = context.config
    if isinstance(spec, Mapping):
        return {
            config.convert_name(name): GraphQLArgument(ensure_silk(s).get_input_type(context), out_name=name)
            for name, s in spec.items()
        }
    input_type = ensure_silk(spec).get_input_type(context)
    base = input_type.of_type if is_non_null_type(input_type) else input_type
    if not is_input_object_type(base):
        raise UnsupportedSchemaError(
            f"Input {base} is not an object type; use a mapping of argument names to schemas instead"
        )
    return {
        name: GraphQLArgument(
            f.type,
            default_value=f.default_value,
            description=f.description,
            out_name=f.out_name or name,
        )
        for name, f in base.fields.items()
    }


@dataclass(eq=False)
class FieldOrOperation:
    """A resolvable field or root operation.

    ``resolve`` is only ever called through :meth:`execute`, which parses the
    input and runs the middleware pipeline around it.
    """

    type: str
    output: Any
    resolve: Optional[Callable[..., Any]] = None
    input: Any = None
    middlewares: List[Middleware] = dc_field(default_factory=list)
    description: Optional[str] = None
    deprecation_reason: Optional[str] = None
    extensions: Optional[Dict[str, Any]] = None
    subscribe: Optional[Callable[..., Any]] = None

    def __post_init__(self):
        if self.type not in OPERATION_TYPES:
            raise ValueError(f"Unknown operation type '{self.type}'")
        if self.type == 'subscription':
            if self.subscribe is None:
                raise ValueError("A subscription needs a subscribe function")
        elif self.resolve is None:
            raise ValueError(f"A {self.type} needs a resolve function")
        self.middlewares = compose(self.middlewares)
        self._chain = build_chain(self.middlewares)

    def chain_for(self, outer: Sequence[Middleware] = (), extra: Sequence[Middleware] = ()) -> Chain:
        """Compose ``outer + declared + extra`` into one chain.

        ``weave()`` calls this once per operation with the global and resolver
        middlewares; call-time extras get a fresh chain on every call.
        """
        if not outer and not extra:
            return self._chain
        return build_chain(compose(outer, self.middlewares, extra))

    def _call_user(self, fn: Callable[..., Any], value: Any, parent: Tuple[Any, ...]) -> Any:
        if self.input is None:
            return fn(*parent)
        if isinstance(self.input, Mapping):
            return fn(*parent, **(value or {}))
        return fn(*parent, value)

    def _options(self, parse_input: InputParser, parent: Any, info: Any) -> CallOptions:
        return CallOptions(parse_input=parse_input, parent=parent, output_silk=self.output, info=info, type=self.type)

    async def execute(
        self,
        input_value: Any = None,
        *,
        parent: Any = None,
        info: Any = None,
        middlewares: Optional[Sequence[Middleware]] = None,
        outer_middlewares: Sequence[Middleware] = (),
        chain: Optional[Chain] = None,
    ) -> Any:
        """Parse ``input_value``, then run the middleware pipeline around ``resolve``.

        ``chain`` is a chain already composed by :meth:`chain_for`; it replaces
        ``outer_middlewares`` unless call-time ``middlewares`` are given.

        Raises:
            ValidationError: The input does not satisfy the input spec; no
                middleware runs in that case.
        """
        parse_input = InputParser(self.input, input_value)
        await parse_input()
        parents = (parent,) if self.type == 'field' else ()

        async def inner():
            value = await parse_input()
            return await _maybe_await(self._call_user(self.resolve, value, parents))

        if chain is None or middlewares:
            chain = self.chain_for(outer_middlewares, middlewares or ())
        return await chain(inner, self._options(parse_input, parent, info))

    async def open_stream(
        self,
        input_value: Any = None,
        *,
        info: Any = None,
        payload: Optional[ResolverPayload] = None,
        middlewares: Optional[Sequence[Middleware]] = None,
        outer_middlewares: Sequence[Middleware] = (),
        chain: Optional[Chain] = None,
    ) -> Any:
        """Parse the input once and return the subscription's event stream.

        The middleware pipeline wraps opening the stream, not each event.
        Events are mapped by ``resolve`` (when given) with the same parsed
        input, under ``payload`` with the event as its root.
        """
        parse_input = InputParser(self.input, input_value)
        await parse_input()

        async def inner():
            value = await parse_input()
            stream = await _maybe_await(self._call_user(self.subscribe, value, ()))
            if self.resolve is None:
                return stream
            return self._map_events(stream, value, payload)

        if chain is None or middlewares:
            chain = self.chain_for(outer_middlewares, middlewares or ())
        return await chain(inner, self._options(parse_input, None, info))

    async def _map_events(self, stream: Any, value: Any, payload: Optional[ResolverPayload]):
        try:
            async for event in stream:
                if payload is None:
                    mapped = await _maybe_await(self._call_user(self.resolve, value, (event,)))
                else:
                    with resolver_payload_scope(replace(payload, root=event)):
                        mapped = await _maybe_await(self._call_user(self.resolve, value, (event,)))
                yield mapped
        finally:
            aclose = getattr(stream, 'aclose', None)
            if aclose is not None:
                await aclose()


def _builder(op_type: str):
    fn_key = 'subscribe' if op_type == 'subscription' else 'resolve'

    def build(output: Any, resolve_or_options: Any = None, **options: Any):
        if callable(resolve_or_options):
            options[fn_key] = resolve_or_options
        elif isinstance(resolve_or_options, Mapping):
            options = {**resolve_or_options, **options}
        elif resolve_or_options is not None:
            raise TypeError(f"{op_type}() expects a function or an options mapping, got {resolve_or_options!r}")
        if op_type == 'subscription' and options.get('subscribe') is None and options.get('resolve') is not None:
            raise TypeError("subscription() needs a subscribe function; resolve only maps its events")
        if options.get(fn_key) is None:
            # Decorator form: @query(Book, input={...})
            def deco(fn: Callable[..., Any]) -> FieldOrOperation:
                return build(output, {**options, fn_key: fn})
            return deco
        return FieldOrOperation(type=op_type, output=output, **options)

    build.__name__ = op_type
    build.__doc__ = (
        f"Build a {op_type}. ``{op_type}(Output, fn)`` is the same as "
        f"``{op_type}(Output, {fn_key}=fn)``; without a function it returns a decorator."
    )
    return build


query = _builder('query')
mutation = _builder('mutation')
subscription = _builder('subscription')
field = _builder('field')


class Resolver(Mapping):
    """Immutable collection of operations, optionally bound to a parent schema."""

    def __init__(self, operations: Mapping[str, FieldOrOperation], *, parent: Any = None, middlewares: Optional[Sequence[Middleware]] = None):
        for name, op in operations.items():
            if not isinstance(op, FieldOrOperation):
                raise TypeError(f"Resolver entry '{name}' is not an operation: {op!r}")
        self._operations = MappingProxyType(dict(operations))
        self.parent = parent
        self.middlewares: Tuple[Middleware, ...] = tuple(compose(middlewares))

    def __getitem__(self, name: str) -> FieldOrOperation:
        return self._operations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __repr__(self) -> str:
        parent = f" of {self.parent!r}" if self.parent is not None else ""
        return f"<Resolver{parent} {list(self._operations)}>"


def resolver(operations: Optional[Mapping[str, FieldOrOperation]] = None, *, middlewares: Optional[Sequence[Middleware]] = None, **named: FieldOrOperation) -> Resolver:
    """Collect root operations.

    ``field`` operations need a parent; use ``resolver.of(Parent, ...)``.
    """
    return Resolver({**(operations or {}), **named}, middlewares=middlewares)


def _resolver_of(parent: Any, operations: Optional[Mapping[str, FieldOrOperation]] = None, *, middlewares: Optional[Sequence[Middleware]] = None, **named: FieldOrOperation) -> Resolver:
    """Collect operations of ``parent``; its ``field`` entries extend the parent object type."""
    return Resolver({**(operations or {}), **named}, parent=parent, middlewares=middlewares)


resolver.of = _resolver_of  # type: ignore[attr-defined]
