"""Tagged outcomes of a conditional update.

Callers that prefer branching over exception handling use
`DocumentRepository.try_update` and match on these:

    match await repo.try_update(doc):
        case Ok(document=fresh): ...
        case Conflict(): ...          # re-read and retry, or give up
        case NotFound(): ...
        case TransportError(cause=exc): ...   # outcome unknown

`unwrap()` turns any outcome back into the raising form used by `update`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from docrev.core.documents.entities import DocumentSnapshot
from docrev.utils.exceptions import (
    BackendUnavailableException,
    ConcurrencyConflictException,
    NotFoundException,
)


@dataclass(frozen=True)
class Ok:
    document: DocumentSnapshot

    def unwrap(self) -> DocumentSnapshot:
        return self.document


@dataclass(frozen=True)
class Conflict:
    document_id: UUID
    proposed_revision: int

    def unwrap(self) -> DocumentSnapshot:
        raise ConcurrencyConflictException(
            self.document_id, details={"proposed_revision": self.proposed_revision}
        )


@dataclass(frozen=True)
class NotFound:
    document_id: UUID

    def unwrap(self) -> DocumentSnapshot:
        raise NotFoundException(document_id=self.document_id)


@dataclass(frozen=True)
class TransportError:
    cause: BackendUnavailableException

    def unwrap(self) -> DocumentSnapshot:
        raise self.cause


UpdateResult = Union[Ok, Conflict, NotFound, TransportError]
