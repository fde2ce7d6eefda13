"""add suggested country name and placeholder country

Revision ID: 8d4f0b6e1a27
Revises: 5c2b8e4a7d13
Create Date: 2026-10-05 14:00:00

Viewers whose country is not in the reference table point at the placeholder
row 999 and keep their free-text suggestion until an admin approves it.
"""

from alembic import op
import sqlalchemy as sa

revision = "8d4f0b6e1a27"
down_revision = "5c2b8e4a7d13"
branch_labels = None
depends_on = None

PLACEHOLDER_ID = 999


def upgrade() -> None:
    with op.batch_alter_table("viewer_account") as batch:
        batch.add_column(sa.Column("suggested_country_name", sa.String(length=100), nullable=True))

    country = sa.table(
        "country",
        sa.column("country_id", sa.Integer),
        sa.column("country_name", sa.String),
        sa.column("country_code_iso", sa.String),
    )
    bind = op.get_bind()
    exists = bind.execute(
        sa.select(country.c.country_id).where(country.c.country_id == PLACEHOLDER_ID)
    ).first()
    if exists is None:
        op.bulk_insert(
            country,
            [{"country_id": PLACEHOLDER_ID, "country_name": "Other / Unknown", "country_code_iso": "XX"}],
        )


def downgrade() -> None:
    with op.batch_alter_table("viewer_account") as batch:
        batch.drop_column("suggested_country_name")
    # placeholder stays while viewers still reference it
    op.execute(
        f"DELETE FROM country WHERE country_id = {PLACEHOLDER_ID} AND NOT EXISTS "
        f"(SELECT 1 FROM viewer_account WHERE viewer_country_id = {PLACEHOLDER_ID})"
    )
