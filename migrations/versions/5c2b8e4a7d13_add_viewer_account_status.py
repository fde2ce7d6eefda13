"""add viewer account status

Revision ID: 5c2b8e4a7d13
Revises: 3a7e1c9d2f40
Create Date: 2026-10-03 09:30:00
"""

from alembic import op
import sqlalchemy as sa

revision = "5c2b8e4a7d13"
down_revision = "3a7e1c9d2f40"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("viewer_account") as batch:
        batch.add_column(
            sa.Column("account_status", sa.String(length=16), nullable=False, server_default="ACTIVE")
        )
        batch.create_check_constraint(
            "ck_viewer_account_status",
            "account_status in ('ACTIVE', 'LOCKED', 'FLAGGED')",
        )


def downgrade() -> None:
    with op.batch_alter_table("viewer_account") as batch:
        batch.drop_constraint("ck_viewer_account_status", type_="check")
        batch.drop_column("account_status")
