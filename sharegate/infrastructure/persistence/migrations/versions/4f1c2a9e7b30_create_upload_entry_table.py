"""create_upload_entry_table

Revision ID: 4f1c2a9e7b30
Revises:
Create Date: 2026-10-19 10:12:44.318204

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4f1c2a9e7b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - create upload_entry."""
    op.create_table(
        "upload_entry",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("author", sa.String(), nullable=True),
        sa.Column("filename", sa.String(), nullable=False),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("etag", sa.String(), nullable=True),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=False),
        sa.Column("upload_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_upload_entry_author", "upload_entry", ["author"])
    # Reserved-but-unpublished rows are scanned by purge_pending.
    op.create_index(
        "ix_upload_entry_pending", "upload_entry", ["published", "upload_date"]
    )


def downgrade() -> None:
    """Downgrade schema - drop upload_entry."""
    op.drop_index("ix_upload_entry_pending", table_name="upload_entry")
    op.drop_index("ix_upload_entry_author", table_name="upload_entry")
    op.drop_table("upload_entry")
