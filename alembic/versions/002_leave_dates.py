"""Explicit covered dates on leave requests

Revision ID: 002_leave_dates
Revises: 001_timekeeping
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "002_leave_dates"
down_revision: Union[str, None] = "001_timekeeping"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("leave_requests") as batch_op:
        batch_op.add_column(sa.Column("leave_dates", sa.JSON(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("leave_requests") as batch_op:
        batch_op.drop_column("leave_dates")
