from __future__ import annotations

import logging
from uuid import UUID

from docrev.core.documents.entities import INITIAL_REVISION, DocumentSnapshot
from docrev.core.documents.results import Conflict, NotFound, Ok, TransportError, UpdateResult
from docrev.core.documents.revision import RevisionPolicy, revision_policy
from docrev.core.documents.store import CasOutcome, DocumentStore
from docrev.utils.exceptions import (
    AlreadyExistsException,
    BackendUnavailableException,
    ConcurrencyConflictException,
    InvalidRevisionException,
    NotFoundException,
)
from docrev.utils.metrics import DOCUMENT_EVENTS_TOTAL
from docrev.utils.observability import log_duration

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Caller-facing surface of the versioned document store.

    Stateless between calls: all serialization of competing writers happens in
    the store's compare-and-swap. Conflicts are reported, never retried here.
    """

    def __init__(self, store: DocumentStore, policy: RevisionPolicy | None = None):
        self.store = store
        self.policy = policy or revision_policy

    async def add(self, document: DocumentSnapshot) -> DocumentSnapshot:
        """Create a new document at revision 1.

        Use `seed` to import a document that already has history elsewhere.
        """
        if document.revision != INITIAL_REVISION:
            raise InvalidRevisionException(
                f"New documents start at revision {INITIAL_REVISION}; use seed() to import revision {document.revision}",
                details={"document_id": str(document.id), "revision": document.revision},
            )
        return await self._insert(document, event="add")

    async def seed(self, document: DocumentSnapshot) -> DocumentSnapshot:
        """Insert a document with an explicit starting revision."""
        self.policy.check_initial(document.revision)
        return await self._insert(document, event="seed")

    async def _insert(self, document: DocumentSnapshot, *, event: str) -> DocumentSnapshot:
        with log_duration(logger, f"document.{event}", id=document.id):
            try:
                await self.store.insert_if_absent(document.id, document.any_text, document.revision)
            except AlreadyExistsException:
                DOCUMENT_EVENTS_TOTAL.labels(event=event, result="already_exists").inc()
                raise
            except BackendUnavailableException:
                DOCUMENT_EVENTS_TOTAL.labels(event=event, result="backend_unavailable").inc()
                raise

        DOCUMENT_EVENTS_TOTAL.labels(event=event, result="ok").inc()
        logger.info("event=document.%s id=%s revision=%s", event, document.id, document.revision)
        return document

    async def find(self, document_id: UUID) -> DocumentSnapshot | None:
        with log_duration(logger, "document.get", id=document_id):
            return await self.store.get(document_id)

    async def get(self, document_id: UUID) -> DocumentSnapshot:
        document = await self.find(document_id)
        if document is None:
            raise NotFoundException(document_id=document_id)
        return document

    async def try_update(self, document: DocumentSnapshot) -> UpdateResult:
        """Conditionally write `document` at its revision + 1.

        The write lands only if the stored revision is still below the proposed one.
        Invalid revisions raise; every backend outcome comes back as a result value.
        """
        proposed = self.policy.next_revision(document.revision)

        with log_duration(logger, "document.update", id=document.id, proposed_revision=proposed):
            try:
                outcome = await self.store.compare_and_swap(document.id, document.any_text, proposed)
            except BackendUnavailableException as exc:
                DOCUMENT_EVENTS_TOTAL.labels(event="update", result="backend_unavailable").inc()
                return TransportError(exc)

        if outcome is CasOutcome.APPLIED:
            DOCUMENT_EVENTS_TOTAL.labels(event="update", result="ok").inc()
            logger.info("event=document.update id=%s revision=%s", document.id, proposed)
            return Ok(document.with_revision(proposed))

        if outcome is CasOutcome.CONFLICT:
            DOCUMENT_EVENTS_TOTAL.labels(event="update", result="conflict").inc()
            logger.info(
                "event=document.update.conflict id=%s snapshot_revision=%s proposed_revision=%s",
                document.id,
                document.revision,
                proposed,
            )
            return Conflict(document_id=document.id, proposed_revision=proposed)

        DOCUMENT_EVENTS_TOTAL.labels(event="update", result="not_found").inc()
        return NotFound(document_id=document.id)

    async def update(self, document: DocumentSnapshot) -> DocumentSnapshot:
        """Raising form of `try_update`.

        Raises ConcurrencyConflictException, NotFoundException, or the store's
        BackendUnavailableException unchanged.
        """
        result = await self.try_update(document)
        return result.unwrap()

    async def save(self, document: DocumentSnapshot) -> DocumentSnapshot:
        """Insert-or-update that keeps the revision check.

        An existing document is updated exactly like `update`; a missing one is
        added at revision 1. There is no unconditional overwrite.
        """
        result = await self.try_update(document)
        if not isinstance(result, NotFound):
            return result.unwrap()

        try:
            return await self.add(document)
        except AlreadyExistsException as exc:
            # Someone inserted between our update attempt and the insert.
            raise ConcurrencyConflictException(document.id) from exc
