"""
Races the database must settle: duplicate registrations and simultaneous
comments on one post.

Each contender runs in its own session (own connection) against a
file-backed SQLite database, committing the way ``get_db`` does.
"""
import asyncio

import pytest

from blogapi.database import Database
from blogapi.errors import Conflict
from blogapi.schemas import UserCreate
from blogapi.services import comment_service, post_service, user_service


async def _in_transaction(db: Database, work):
    async with db.session_factory() as session:
        try:
            result = await work(session)
            await session.commit()
            return result
        except Exception:
            await session.rollback()
            raise


@pytest.mark.asyncio
async def test_concurrent_duplicate_registration(file_database: Database):
    def attempt(email: str):
        data = UserCreate(username="racer", email=email, password="pw123456")
        return lambda session: user_service.register(session, data)

    results = await asyncio.gather(
        _in_transaction(file_database, attempt("racer1@example.com")),
        _in_transaction(file_database, attempt("racer2@example.com")),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, dict)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(successes) == 1
    assert len(conflicts) == 1


@pytest.mark.asyncio
async def test_concurrent_comments_are_all_kept(file_database: Database):
    author = await _in_transaction(
        file_database,
        lambda s: user_service.register(
            s, UserCreate(username="host", email="host@example.com", password="pw123456")
        ),
    )
    author_id = author["data"]["id"]
    post = await _in_transaction(
        file_database, lambda s: post_service.create_post(s, author_id, "Hot Topic", "x")
    )

    def comment(text: str):
        return lambda s: comment_service.add_comment(s, post["id"], author_id, text)

    created = await asyncio.gather(*(
        _in_transaction(file_database, comment(f"take {i}")) for i in range(5)
    ))

    final = await _in_transaction(
        file_database, lambda s: post_service.get_post_by_slug(s, "hot-topic")
    )
    assert sorted(c["id"] for c in final["comments"]) == sorted(c["id"] for c in created)
    assert len(final["comments"]) == 5
