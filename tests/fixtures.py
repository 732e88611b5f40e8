"""Shared fixtures and fakes for silkql tests."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Author, Book


class FakeUnitOfWork:
    """In-memory unit of work recording scheduled inserts and commits."""

    def __init__(self, fail_on_create: bool = False):
        self.fail_on_create = fail_on_create
        self.scheduled = []
        self.committed = []
        self.commits = 0

    def create_instance(self, model, data):
        if self.fail_on_create:
            raise RuntimeError("create failed")
        return model(**dict(data))

    def schedule_insert(self, entity):
        self.scheduled.append(entity)

    async def commit(self):
        self.commits += 1
        self.committed.extend(self.scheduled)
        self.scheduled = []


@pytest.fixture
def fake_uow():
    return FakeUnitOfWork()


async def create_sample_books(session: AsyncSession):
    """Create and commit one author with two books."""
    author = Author(name="Frank Herbert")
    session.add(author)
    await session.flush()
    books = [
        Book(ISBN="978-0441013593", title="Dune", author_id=author.id, tags=["sf"], price=9.99),
        Book(ISBN="978-0441104024", title="Dune Messiah", author_id=author.id, is_published=True),
    ]
    session.add_all(books)
    await session.commit()
    return author, books


@pytest.fixture(scope="function")
async def sample_books(db_session: AsyncSession):
    return await create_sample_books(db_session)
