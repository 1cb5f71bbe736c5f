import asyncio
import uuid

import pytest
from sqlalchemy import text

from docrev.core.documents.entities import DocumentSnapshot
from docrev.core.documents.repository import DocumentRepository
from docrev.utils.exceptions import ConcurrencyConflictException


def _require_postgres(database) -> None:
    if database.dialect_name not in {"postgresql", "postgres"}:
        pytest.skip("Postgres-only: set TEST_DATABASE_URL to a Postgres database")


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_losing_writer_waits_on_row_lock_then_conflicts_postgres(database, sql_store):
    """A writer blocked behind an uncommitted winner re-checks the revision after the lock.

    Session A holds the row lock with an uncommitted bump to revision 2. The
    repository's conditional UPDATE from revision 1 waits on that lock, then
    re-evaluates `revision < 2` against the committed row and matches nothing.
    """
    _require_postgres(database)
    repo = DocumentRepository(sql_store)
    doc = await repo.add(DocumentSnapshot(any_text="base"))

    async with database.session() as holder:
        async with holder.begin():
            await holder.execute(
                text("UPDATE documents SET any_text = 'holder', revision = 2 WHERE id = :id"),
                {"id": doc.id},
            )
            pending = asyncio.create_task(repo.update(doc.with_text("late")))
            await asyncio.sleep(0.2)
            assert not pending.done()

    with pytest.raises(ConcurrencyConflictException):
        await pending

    stored = await repo.get(doc.id)
    assert (stored.any_text, stored.revision) == ("holder", 2)


@pytest.mark.postgres
@pytest.mark.asyncio
async def test_revision_check_constraint_postgres(database, db_session):
    _require_postgres(database)

    from sqlalchemy.exc import IntegrityError

    with pytest.raises(IntegrityError):
        async with db_session.begin():
            await db_session.execute(
                text("INSERT INTO documents (id, any_text, revision) VALUES (:id, 'x', 0)"),
                {"id": uuid.uuid4()},
            )
