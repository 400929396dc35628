"""День последней сверки стрика

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18 18:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("shared_habits", sa.Column("last_reconciled_day", sa.Date(), nullable=True))


def downgrade() -> None:
    op.drop_column("shared_habits", "last_reconciled_day")
