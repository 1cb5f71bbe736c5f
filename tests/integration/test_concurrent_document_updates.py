"""Concurrent writers racing from the same snapshot.

Only one conditional write may land per base revision; every other writer gets
ConcurrencyConflictException and the stored payload is exactly one writer's,
never a merge. Runs against both the SQL store (separate connections per
writer) and the in-memory store.
"""
from __future__ import annotations

import asyncio

import pytest

from docrev.core.documents.entities import DocumentSnapshot
from docrev.core.documents.results import Conflict, Ok
from docrev.utils.exceptions import ConcurrencyConflictException


@pytest.mark.asyncio
async def test_two_writers_from_same_revision_exactly_one_wins(repository):
    doc = await repository.add(DocumentSnapshot(any_text="base"))
    base = await repository.update(doc.with_text("v2"))
    assert base.revision == 2

    results = await asyncio.gather(
        repository.update(base.with_text("X")),
        repository.update(base.with_text("Y")),
        return_exceptions=True,
    )

    winners = [r for r in results if isinstance(r, DocumentSnapshot)]
    losers = [r for r in results if isinstance(r, ConcurrencyConflictException)]
    assert len(winners) == 1, results
    assert len(losers) == 1, results
    assert winners[0].revision == 3

    stored = await repository.get(doc.id)
    assert stored.revision == 3
    assert stored.any_text == winners[0].any_text
    assert stored.any_text in {"X", "Y"}


@pytest.mark.asyncio
async def test_many_writers_from_same_revision_one_wins(repository):
    doc = await repository.add(DocumentSnapshot(any_text="base"))

    results = await asyncio.gather(
        *[repository.try_update(doc.with_text(f"writer-{i}")) for i in range(8)]
    )

    ok = [r for r in results if isinstance(r, Ok)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(ok) == 1
    assert len(conflicts) == 7
    assert all(c.document_id == doc.id for c in conflicts)

    stored = await repository.get(doc.id)
    assert stored == ok[0].document


@pytest.mark.asyncio
async def test_updates_on_different_keys_do_not_interact(repository):
    docs = [await repository.add(DocumentSnapshot(any_text=f"doc-{i}")) for i in range(4)]

    updated = await asyncio.gather(*[repository.update(d.with_text(d.any_text + "-v2")) for d in docs])

    assert [u.revision for u in updated] == [2, 2, 2, 2]
    for d in docs:
        stored = await repository.get(d.id)
        assert (stored.any_text, stored.revision) == (d.any_text + "-v2", 2)


@pytest.mark.asyncio
async def test_interleaved_readers_and_writers_see_monotonic_revisions(repository):
    doc = await repository.add(DocumentSnapshot(any_text="0"))
    observed: list[int] = []

    async def reader():
        for _ in range(10):
            observed.append((await repository.get(doc.id)).revision)
            await asyncio.sleep(0)

    async def writer():
        current = doc
        for i in range(1, 6):
            current = await repository.update(current.with_text(str(i)))
            await asyncio.sleep(0)

    await asyncio.gather(reader(), writer())

    assert observed == sorted(observed)
    assert observed[0] >= 1
    assert (await repository.get(doc.id)).revision == 6
