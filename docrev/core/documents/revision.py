from __future__ import annotations

from enum import Enum

from docrev.core.documents.entities import INITIAL_REVISION
from docrev.utils.exceptions import InvalidRevisionException


class RevisionDecision(str, Enum):
    ACCEPT = "accept"
    CONFLICT = "conflict"


def _require_revision(value: object, *, name: str) -> int:
    # bool is an int subclass; True must not pass as revision 1.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRevisionException(
            f"{name} must be an integer, got {type(value).__name__}",
            details={name: repr(value)},
        )
    if value < INITIAL_REVISION:
        raise InvalidRevisionException(
            f"{name} must be >= {INITIAL_REVISION}, got {value}",
            details={name: value},
        )
    return value


class RevisionPolicy:
    """Pure optimistic-concurrency rules for document revisions.

    A write is accepted only when it moves the stored revision strictly forward.
    Proposals further ahead than the immediate successor are accepted as well;
    anything that does not advance history is a conflict.
    """

    initial_revision: int = INITIAL_REVISION

    def next_revision(self, current_snapshot_revision: int) -> int:
        current = _require_revision(current_snapshot_revision, name="current_snapshot_revision")
        return current + 1

    def validate_against_store(self, proposed_revision: int, stored_revision: int) -> RevisionDecision:
        proposed = _require_revision(proposed_revision, name="proposed_revision")
        stored = _require_revision(stored_revision, name="stored_revision")
        if stored < proposed:
            return RevisionDecision.ACCEPT
        return RevisionDecision.CONFLICT

    def check_initial(self, revision: int) -> int:
        """Validate a revision used for a first insert (seed/import)."""
        return _require_revision(revision, name="revision")


revision_policy = RevisionPolicy()
