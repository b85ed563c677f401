"""Store sessions.user_id as a 36 character UUID string

Revision ID: 8c47e5d2a6f0
Revises: 3a1f0c2b9d41
Create Date: 2025-08-20 18:02:12.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c47e5d2a6f0"
down_revision: Union[str, Sequence[str], None] = "3a1f0c2b9d41"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Change sessions.user_id from an integer to a nullable UUID string."""
    # Batch mode recreates the table on SQLite, which cannot ALTER COLUMN
    with op.batch_alter_table("sessions") as batch_op:
        batch_op.alter_column(
            "user_id",
            existing_type=sa.BigInteger(),
            type_=sa.String(length=36),
            existing_nullable=True,
            nullable=True,
            postgresql_using="user_id::varchar(36)",
        )


def downgrade() -> None:
    """Revert sessions.user_id to an integer."""
    with op.batch_alter_table("sessions") as batch_op:
        batch_op.alter_column(
            "user_id",
            existing_type=sa.String(length=36),
            type_=sa.BigInteger(),
            existing_nullable=True,
            nullable=True,
            postgresql_using="user_id::bigint",
        )
