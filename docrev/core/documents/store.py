from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Protocol
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from docrev.core.documents.entities import DocumentSnapshot
from docrev.core.documents.revision import RevisionDecision, RevisionPolicy, revision_policy
from docrev.db.models.document import DocumentRecord
from docrev.db.session import Database
from docrev.utils.exceptions import AlreadyExistsException, BackendUnavailableException

logger = logging.getLogger(__name__)


class CasOutcome(str, Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"
    MISSING = "missing"


class DocumentStore(Protocol):
    """Persistence backend for documents.

    `compare_and_swap` must be indivisible at the backend: the revision check and
    the write happen as one step, so no read-then-write window exists.
    Transport failures surface as BackendUnavailableException, never as a conflict.
    """

    async def get(self, document_id: UUID) -> DocumentSnapshot | None:
        ...

    async def insert_if_absent(self, document_id: UUID, any_text: str | None, revision: int) -> None:
        """Insert a new document; raises AlreadyExistsException when the key is taken."""
        ...

    async def compare_and_swap(self, document_id: UUID, any_text: str | None, new_revision: int) -> CasOutcome:
        """Write payload and revision only if the stored revision is < new_revision."""
        ...


def _is_serialization_failure(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    orig = getattr(exc, "orig", None)
    # asyncpg uses `sqlstate`, psycopg2 uses `pgcode`.
    sqlstate = (
        getattr(orig, "sqlstate", None)
        or getattr(orig, "pgcode", None)
        or getattr(orig, "code", None)
    )
    # 40001: serialization_failure (REPEATABLE READ / SERIALIZABLE concurrent update)
    return sqlstate == "40001"


def _is_transport_error(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (OSError, TimeoutError))


def _backend_unavailable(op: str, document_id: UUID, exc: BaseException) -> BackendUnavailableException:
    logger.warning(
        "event=document_store.backend_unavailable op=%s id=%s error=%s",
        op,
        document_id,
        type(exc).__name__,
    )
    return BackendUnavailableException(
        f"Storage backend unavailable during {op}",
        details={"op": op, "document_id": str(document_id), "error": type(exc).__name__},
    )


class SqlDocumentStore(DocumentStore):
    """Relational backend: one row per document in the `documents` table.

    Every call acquires its own session and transaction and releases both on
    every exit path.
    """

    def __init__(self, db: Database):
        self.db = db

    async def get(self, document_id: UUID) -> DocumentSnapshot | None:
        try:
            async with self.db.session() as session:
                record = await session.get(DocumentRecord, document_id)
                if record is None:
                    return None
                return DocumentSnapshot.model_validate(record)
        except (DBAPIError, OSError, TimeoutError) as exc:
            if not _is_transport_error(exc):
                raise
            raise _backend_unavailable("get", document_id, exc) from exc

    async def insert_if_absent(self, document_id: UUID, any_text: str | None, revision: int) -> None:
        try:
            async with self.db.session() as session:
                async with session.begin():
                    session.add(DocumentRecord(id=document_id, any_text=any_text, revision=revision))
        except IntegrityError as exc:
            # Covers both the primary-key race and a plain duplicate insert.
            raise AlreadyExistsException(document_id=document_id) from exc
        except (DBAPIError, OSError, TimeoutError) as exc:
            if not _is_transport_error(exc):
                raise
            raise _backend_unavailable("insert", document_id, exc) from exc

    async def compare_and_swap(self, document_id: UUID, any_text: str | None, new_revision: int) -> CasOutcome:
        # The WHERE clause is RevisionPolicy.validate_against_store evaluated by the
        # database under the row lock: accept iff stored revision < new revision.
        stmt = (
            update(DocumentRecord)
            .where(
                DocumentRecord.id == document_id,
                DocumentRecord.revision < new_revision,
            )
            .values(any_text=any_text, revision=new_revision)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self.db.session() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    if result.rowcount == 1:
                        return CasOutcome.APPLIED

                    exists = await session.scalar(
                        select(DocumentRecord.id).where(DocumentRecord.id == document_id)
                    )
                    return CasOutcome.CONFLICT if exists is not None else CasOutcome.MISSING
        except (DBAPIError, OSError, TimeoutError) as exc:
            if _is_serialization_failure(exc):
                # Another transaction changed the row concurrently: that writer won.
                return CasOutcome.CONFLICT
            if not _is_transport_error(exc):
                raise
            raise _backend_unavailable("compare_and_swap", document_id, exc) from exc


class InMemoryDocumentStore(DocumentStore):
    """Process-local backend; the lock makes check-and-set indivisible."""

    def __init__(self, policy: RevisionPolicy | None = None):
        self._policy = policy or revision_policy
        self._lock = asyncio.Lock()
        self._rows: dict[UUID, tuple[str | None, int]] = {}

    def __len__(self) -> int:
        return len(self._rows)

    async def get(self, document_id: UUID) -> DocumentSnapshot | None:
        async with self._lock:
            row = self._rows.get(document_id)
        if row is None:
            return None
        any_text, revision = row
        return DocumentSnapshot(id=document_id, any_text=any_text, revision=revision)

    async def insert_if_absent(self, document_id: UUID, any_text: str | None, revision: int) -> None:
        async with self._lock:
            if document_id in self._rows:
                raise AlreadyExistsException(document_id=document_id)
            self._rows[document_id] = (any_text, revision)

    async def compare_and_swap(self, document_id: UUID, any_text: str | None, new_revision: int) -> CasOutcome:
        async with self._lock:
            row = self._rows.get(document_id)
            if row is None:
                return CasOutcome.MISSING
            _, stored_revision = row
            decision = self._policy.validate_against_store(new_revision, stored_revision)
            if decision is RevisionDecision.CONFLICT:
                return CasOutcome.CONFLICT
            self._rows[document_id] = (any_text, new_revision)
            return CasOutcome.APPLIED
