from typing import List

import pytest
from graphql import graphql
from sqlalchemy import select

from silkql import field, query, resolver, silk, weave
from silkql.adapters.sqlalchemy import SQLAlchemyUnitOfWork, as_unit_of_work
from silkql.operations import EntityOperationWeaver
from tests.fixtures import FakeUnitOfWork
from tests.models import Author, Book, Note

CREATE_BOOK = """
mutation {
  create_book(ISBN: "978-0441013593", title: "Dune", tags: ["sf", "classic"]) {
    ISBN
    title
    tags
  }
}
"""


def book_schema(books, **create_options):
    return weave(resolver({
        'hello': query(str, lambda: 'hi'),
        'create_book': books.create(**create_options),
    }))


@pytest.mark.asyncio
async def test_create_commits_once_after_resolve(fake_uow):
    books = EntityOperationWeaver(Book, lambda: fake_uow)
    res = await graphql(book_schema(books), CREATE_BOOK)
    assert res.errors is None, res.errors
    assert res.data == {'create_book': {'ISBN': '978-0441013593', 'title': 'Dune', 'tags': ['sf', 'classic']}}
    assert fake_uow.commits == 1
    assert [b.title for b in fake_uow.committed] == ['Dune']


@pytest.mark.asyncio
async def test_create_never_commits_when_resolve_raises():
    uow = FakeUnitOfWork(fail_on_create=True)
    books = EntityOperationWeaver(Book, lambda: uow)
    res = await graphql(book_schema(books), CREATE_BOOK)
    assert res.errors
    assert "create failed" in res.errors[0].message
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_create_never_commits_on_invalid_input(fake_uow):
    books = EntityOperationWeaver(Book, lambda: fake_uow)
    res = await graphql(book_schema(books), 'mutation { create_book(ISBN: "1", title: null) { ISBN } }')
    assert res.errors
    assert fake_uow.commits == 0


@pytest.mark.asyncio
async def test_flush_middleware_is_not_added_twice(fake_uow):
    calls = []

    async def audit(next, options):
        calls.append('audit')
        return await next()

    books = EntityOperationWeaver(Book, {'get_session': lambda: fake_uow})
    op = books.create(middlewares=[books.flush_middleware, audit])
    assert op.middlewares == [books.flush_middleware, audit]

    default_op = books.create(middlewares=[audit])
    assert default_op.middlewares == [audit, books.flush_middleware]

    res = await graphql(book_schema(books, middlewares=[books.flush_middleware, audit]), CREATE_BOOK)
    assert res.errors is None, res.errors
    assert fake_uow.commits == 1
    assert calls == ['audit']


@pytest.mark.asyncio
async def test_create_with_async_session(db_session):
    async def get_session():
        return db_session

    books = EntityOperationWeaver(Book, get_session)
    res = await graphql(book_schema(books), """
    mutation {
      create_book(ISBN: "978-0553283686", title: "Hyperion") { ISBN title is_published tags price }
    }
    """)
    assert res.errors is None, res.errors
    assert res.data == {'create_book': {
        'ISBN': '978-0553283686', 'title': 'Hyperion', 'is_published': False, 'tags': [], 'price': None,
    }}

    rows = (await db_session.execute(select(Book))).scalars().all()
    assert [(b.ISBN, b.title, b.sales) for b in rows] == [('978-0553283686', 'Hyperion', 0)]


@pytest.mark.asyncio
async def test_unit_of_work_is_cached_per_session(db_session):
    uow = as_unit_of_work(db_session)
    assert isinstance(uow, SQLAlchemyUnitOfWork)
    assert as_unit_of_work(db_session) is uow
    fake = FakeUnitOfWork()
    assert as_unit_of_work(fake) is fake
    with pytest.raises(TypeError):
        as_unit_of_work(object())


@pytest.mark.asyncio
async def test_mapped_entities_with_relation_field(db_session, sample_books):
    async def books():
        return (await db_session.execute(select(Book).order_by(Book.ISBN))).scalars().all()

    async def author(book):
        return await db_session.get(Author, book.author_id)

    schema = weave(resolver.of(Book, {
        'books': query(List[Book], books),
        'author': field(silk.nullable(Author), author),
    }))
    res = await graphql(schema, "{ books { ISBN title price is_published author { name } } }")
    assert res.errors is None, res.errors
    assert res.data == {'books': [
        {'ISBN': '978-0441013593', 'title': 'Dune', 'price': 9.99, 'is_published': False, 'author': {'name': 'Frank Herbert'}},
        {'ISBN': '978-0441104024', 'title': 'Dune Messiah', 'price': None, 'is_published': True, 'author': {'name': 'Frank Herbert'}},
    ]}


@pytest.mark.asyncio
async def test_create_with_required_read_only_column(fake_uow):
    notes = EntityOperationWeaver(Note, lambda: fake_uow)
    schema = weave(resolver({
        'hello': query(str, lambda: 'hi'),
        'create_note': notes.create(),
    }))
    assert 'stamped' not in schema.get_type('NoteCreateInput').fields

    res = await graphql(schema, 'mutation { create_note(body: "x") { body } }')
    assert res.errors is None, res.errors
    assert res.data == {'create_note': {'body': 'x'}}
    assert fake_uow.commits == 1
