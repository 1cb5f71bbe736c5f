"""documents table with optimistic concurrency revision

Revision ID: 001_documents
Revises:
Create Date: 2026-10-17

One row per document. `revision` starts at 1 and is advanced only by the
conditional UPDATE issued by SqlDocumentStore.compare_and_swap.

Note: SQLite tests use Base.metadata.create_all and do not run Alembic.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_documents"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("any_text", sa.Text, nullable=True),
        sa.Column("revision", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("revision >= 1", name="chk_documents_revision_positive"),
    )


def downgrade() -> None:
    op.drop_table("documents")
