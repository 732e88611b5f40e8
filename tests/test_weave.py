from __future__ import annotations

import asyncio
import inspect
from typing import List, Optional

import pytest
from graphql import GraphQLInt, GraphQLNonNull, GraphQLString, graphql, parse, print_schema, subscribe
from pydantic import BaseModel

from silkql import (
    SchemaCompositionError,
    StrawberryConfig,
    WeaverConfig,
    WeaverContext,
    field,
    get_graphql_type,
    mutation,
    query,
    resolver,
    silk,
    subscription,
    use_context,
    use_resolver_payload,
    weave,
)


class User(BaseModel):
    id: int
    full_name: str
    nick_name: Optional[str] = None


USERS = [User(id=1, full_name='Ann Lee'), User(id=2, full_name='Bo Chen', nick_name='bo')]


def user_resolver():
    def greeting(user, excited: bool = False):
        return f"hi {user.full_name}{'!' if excited else ''}"

    return resolver.of(User, {
        'users': query(List[User], lambda: USERS),
        'user_by_id': query(Optional[User], lambda user_id: next((u for u in USERS if u.id == user_id), None), input={'user_id': int}),
        'greeting': field(str, greeting, input={'excited': Optional[bool]}),
    })


def test_weave_is_idempotent():
    first = print_schema(weave(user_resolver()))
    second = print_schema(weave(user_resolver()))
    assert first == second
    # the same resolver collection can be woven again
    r = user_resolver()
    assert print_schema(weave(r)) == print_schema(weave(r))


@pytest.mark.asyncio
async def test_resolver_of_adds_fields_to_the_parent_type():
    schema = weave(user_resolver())
    assert 'greeting' in schema.get_type('User').fields

    res = await graphql(schema, """
    {
      users { id full_name greeting loud: greeting(excited: true) }
      user_by_id(user_id: 2) { nick_name }
    }
    """)
    assert res.errors is None, res.errors
    assert res.data['users'][0] == {'id': 1, 'full_name': 'Ann Lee', 'greeting': 'hi Ann Lee', 'loud': 'hi Ann Lee!'}
    assert res.data['user_by_id'] == {'nick_name': 'bo'}


@pytest.mark.asyncio
async def test_camel_case_naming_from_strawberry_config():
    config = WeaverConfig(strawberry_config=StrawberryConfig(auto_camel_case=True))
    schema = weave(user_resolver(), config)
    sdl = print_schema(schema)
    assert "fullName: String!" in sdl
    assert "userById(userId: Int!): User" in sdl

    res = await graphql(schema, "{ userById(userId: 1) { fullName nickName } }")
    assert res.errors is None, res.errors
    assert res.data == {'userById': {'fullName': 'Ann Lee', 'nickName': None}}


def test_duplicate_operation_names_fail():
    a = resolver({'hello': query(str, lambda: 'a')})
    b = resolver({'hello': query(str, lambda: 'b')})
    with pytest.raises(SchemaCompositionError):
        weave(a, b)


def test_field_without_parent_fails():
    with pytest.raises(SchemaCompositionError):
        weave(resolver({'hello': query(str, lambda: 'a'), 'orphan': field(str, lambda p: 'x')}))


def test_duplicate_parent_field_fails():
    r = resolver.of(User, {
        'users': query(List[User], lambda: USERS),
        'full_name': field(str, lambda u: u.full_name),
    })
    with pytest.raises(SchemaCompositionError):
        weave(r)


def test_conflicting_type_names_fail():
    def make_first():
        class Item(BaseModel):
            name: str
        return Item

    def make_second():
        class Item(BaseModel):
            price: float
        return Item

    first, second = make_first(), make_second()
    with pytest.raises(SchemaCompositionError):
        weave(resolver({'first': query(first, lambda: None), 'second': query(second, lambda: None)}))


def test_underivable_output_fails_at_weave_time():
    with pytest.raises(SchemaCompositionError) as exc:
        weave(resolver({'thing': query(object, lambda: object())}))
    assert exc.value.__cause__ is not None


def test_resolver_of_non_object_parent_fails():
    with pytest.raises(SchemaCompositionError):
        weave(resolver({'hello': query(str, lambda: 'a')}), resolver.of(str, {'size': field(int, len)}))


def test_context_is_frozen_after_weave():
    ctx = WeaverContext()
    weave(user_resolver(), context=ctx)
    assert ctx.frozen
    assert get_graphql_type(User, ctx) is not None

    class Late(BaseModel):
        x: int

    with pytest.raises(RuntimeError):
        get_graphql_type(Late, ctx)


def test_extra_silks_become_orphan_types():
    class Audit(BaseModel):
        action: str

    schema = weave(resolver({'hello': query(str, lambda: 'a')}), Audit)
    assert schema.get_type('Audit') is not None


@pytest.mark.asyncio
async def test_raw_graphql_silks():
    upper = silk(GraphQLNonNull(GraphQLString), parse=lambda v: v.upper())
    schema = weave(resolver({'shout': query(upper, lambda text: text, input={'text': upper})}))
    assert "shout(text: String!): String!" in print_schema(schema)
    res = await graphql(schema, '{ shout(text: "hey") }')
    assert res.errors is None, res.errors
    assert res.data == {'shout': 'HEY'}


@pytest.mark.asyncio
async def test_resolver_payload_is_available_and_isolated():
    async def whoami():
        await asyncio.sleep(0)
        payload = use_resolver_payload()
        return f"{use_context()['user']}:{payload.info.field_name}"

    schema = weave(resolver({'a': query(str, whoami), 'b': query(str, whoami)}))
    res = await graphql(schema, "{ a b }", context_value={'user': 'ann'})
    assert res.errors is None, res.errors
    assert res.data == {'a': 'ann:a', 'b': 'ann:b'}
    assert use_resolver_payload() is None


@pytest.mark.asyncio
async def test_subscriptions_stream_events():
    async def count(to):
        for i in range(to):
            yield i

    schema = weave(resolver({
        'hello': query(str, lambda: 'hi'),
        'count': subscription(int, count, input={'to': int}),
        'labels': subscription(str, count, input={'to': int}, resolve=lambda event, to: f"{event}/{to}"),
    }))

    stream = subscribe(schema, parse("subscription { count(to: 3) }"))
    if inspect.isawaitable(stream):
        stream = await stream
    assert [r.data['count'] async for r in stream] == [0, 1, 2]

    stream = subscribe(schema, parse("subscription { labels(to: 2) }"))
    if inspect.isawaitable(stream):
        stream = await stream
    assert [r.data['labels'] async for r in stream] == ['0/2', '1/2']


@pytest.mark.asyncio
async def test_mutation_with_object_input():
    class NewUser(BaseModel):
        full_name: str
        nick_name: Optional[str] = None

    created = []

    def add_user(data: NewUser):
        created.append(data)
        return User(id=len(created) + 10, **data.model_dump())

    schema = weave(resolver({
        'hello': query(str, lambda: 'hi'),
        'add_user': mutation(User, add_user, input=NewUser),
    }))
    res = await graphql(schema, 'mutation { add_user(full_name: "Cy") { id full_name } }')
    assert res.errors is None, res.errors
    assert res.data == {'add_user': {'id': 11, 'full_name': 'Cy'}}
    assert isinstance(created[0], NewUser)


@pytest.mark.asyncio
async def test_subscription_events_share_one_parsed_input():
    parsed = []
    opened = []

    def parse_limit(value):
        parsed.append(value)
        return value

    async def count(to):
        for i in range(to):
            yield i

    async def audit(next, options):
        opened.append(options.type)
        return await next()

    def label(event, to):
        return f"{use_context()['user']}:{event}/{to}"

    limit = silk(GraphQLNonNull(GraphQLInt), parse=parse_limit)
    schema = weave(resolver({
        'hello': query(str, lambda: 'hi'),
        'labels': subscription(str, count, input={'to': limit}, resolve=label, middlewares=[audit]),
    }))

    stream = subscribe(schema, parse("subscription { labels(to: 3) }"), context_value={'user': 'ann'})
    if inspect.isawaitable(stream):
        stream = await stream
    assert [r.data['labels'] async for r in stream] == ['ann:0/3', 'ann:1/3', 'ann:2/3']
    assert parsed == [3]
    assert opened == ['subscription']


def test_subscription_needs_a_subscribe_function():
    with pytest.raises(TypeError):
        subscription(str, resolve=lambda event: event)
