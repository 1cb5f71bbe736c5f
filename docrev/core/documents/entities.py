from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field

INITIAL_REVISION = 1


class DocumentSnapshot(BaseModel):
    """Caller-held copy of a document as of some read.

    Snapshots are immutable. Prepare an update with `with_text`, which keeps
    the revision the snapshot was read at.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    any_text: str | None = None
    revision: int = Field(default=INITIAL_REVISION, ge=INITIAL_REVISION)

    def with_text(self, any_text: str | None) -> "DocumentSnapshot":
        return self.model_copy(update={"any_text": any_text})

    def with_revision(self, revision: int) -> "DocumentSnapshot":
        return self.model_copy(update={"revision": revision})
