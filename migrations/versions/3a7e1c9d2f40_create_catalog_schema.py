"""create catalog schema

Revision ID: 3a7e1c9d2f40
Revises:
Create Date: 2026-10-01 10:00:00

Purpose:
- reference tables: country, language, genre
- catalog: production_house, producer, web_series, episode, contract and the
  series association tables (genre, dubbing, subtitle, release country)
- viewers: viewer_account, user_credential, view_history, viewer_feedback
"""

from alembic import op
import sqlalchemy as sa

revision = "3a7e1c9d2f40"
down_revision = None
branch_labels = None
depends_on = None


def _series_link(table_name: str, column: str, target: str) -> None:
    op.create_table(
        table_name,
        sa.Column("webseries_id", sa.Integer(), nullable=False),
        sa.Column(column, sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["webseries_id"], ["web_series.webseries_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint([column], [target], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("webseries_id", column),
    )


def upgrade() -> None:
    op.create_table(
        "country",
        sa.Column("country_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("country_name", sa.String(length=100), nullable=False),
        sa.Column("country_code_iso", sa.String(length=3), nullable=True),
        sa.PrimaryKeyConstraint("country_id"),
    )
    op.create_table(
        "language",
        sa.Column("language_id", sa.Integer(), nullable=False),
        sa.Column("language_name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("language_id"),
        sa.UniqueConstraint("language_name"),
    )
    op.create_table(
        "genre",
        sa.Column("genre_id", sa.Integer(), nullable=False),
        sa.Column("genre_name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("genre_id"),
        sa.UniqueConstraint("genre_name"),
    )
    op.create_table(
        "production_house",
        sa.Column("production_house_id", sa.Integer(), nullable=False),
        sa.Column("ph_name", sa.String(length=150), nullable=False),
        sa.Column("street", sa.String(length=150), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("year_established", sa.Integer(), nullable=True),
        sa.Column("country_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["country_id"], ["country.country_id"]),
        sa.PrimaryKeyConstraint("production_house_id"),
    )
    op.create_table(
        "producer",
        sa.Column("producer_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("producer_first_name", sa.String(length=100), nullable=False),
        sa.Column("producer_last_name", sa.String(length=100), nullable=False),
        sa.Column("street", sa.String(length=150), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("country_id", sa.Integer(), nullable=True),
        sa.Column("production_house_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["country_id"], ["country.country_id"]),
        sa.ForeignKeyConstraint(
            ["production_house_id"],
            ["production_house.production_house_id"],
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("producer_id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "viewer_account",
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("viewer_first_name", sa.String(length=100), nullable=False),
        sa.Column("viewer_last_name", sa.String(length=100), nullable=False),
        sa.Column("street", sa.String(length=150), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("viewer_country_id", sa.Integer(), nullable=False),
        sa.Column("monthly_charge", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("opened_at", sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.CheckConstraint("monthly_charge >= 0", name="ck_viewer_account_monthly_charge"),
        sa.ForeignKeyConstraint(["viewer_country_id"], ["country.country_id"]),
        sa.PrimaryKeyConstraint("account_id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "user_credential",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=True),
        sa.Column("producer_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role in ('ADMIN', 'EMPLOYEE', 'VIEWER')", name="ck_user_credential_role"),
        sa.CheckConstraint(
            "(role = 'ADMIN' AND account_id IS NULL AND producer_id IS NULL)"
            " OR (role = 'EMPLOYEE' AND producer_id IS NOT NULL AND account_id IS NULL)"
            " OR (role = 'VIEWER' AND account_id IS NOT NULL AND producer_id IS NULL)",
            name="ck_user_credential_role_reference",
        ),
        sa.ForeignKeyConstraint(["account_id"], ["viewer_account.account_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["producer_id"], ["producer.producer_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "web_series",
        sa.Column("webseries_id", sa.Integer(), nullable=False),
        sa.Column("series_name", sa.String(length=200), nullable=False),
        sa.Column("production_house_id", sa.Integer(), nullable=False),
        sa.Column("original_language_id", sa.Integer(), nullable=False),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["production_house_id"], ["production_house.production_house_id"]),
        sa.ForeignKeyConstraint(["original_language_id"], ["language.language_id"]),
        sa.PrimaryKeyConstraint("webseries_id"),
    )
    op.create_table(
        "episode",
        sa.Column("episode_id", sa.Integer(), nullable=False),
        sa.Column("webseries_id", sa.Integer(), nullable=False),
        sa.Column("episode_number", sa.Integer(), nullable=False),
        sa.Column("episode_title", sa.String(length=200), nullable=False),
        sa.Column("duration_min", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["webseries_id"], ["web_series.webseries_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("episode_id"),
        sa.UniqueConstraint("webseries_id", "episode_number", name="uq_episode_series_number"),
    )
    op.create_table(
        "contract",
        sa.Column("contract_id", sa.Integer(), nullable=False),
        sa.Column("webseries_id", sa.Integer(), nullable=False),
        sa.Column("contract_date", sa.Date(), nullable=False),
        sa.Column("charge_per_episode", sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint("charge_per_episode >= 0", name="ck_contract_charge_per_episode"),
        sa.ForeignKeyConstraint(["webseries_id"], ["web_series.webseries_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("contract_id"),
    )
    _series_link("webseries_genre", "genre_id", "genre.genre_id")
    _series_link("webseries_dubbing", "language_id", "language.language_id")
    _series_link("webseries_subtitle", "language_id", "language.language_id")
    _series_link("release_country", "country_id", "country.country_id")
    op.create_table(
        "view_history",
        sa.Column("view_id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("episode_id", sa.Integer(), nullable=False),
        sa.Column("view_timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["account_id"], ["viewer_account.account_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["episode_id"], ["episode.episode_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("view_id"),
    )
    op.create_index("ix_view_history_account_id", "view_history", ["account_id"])
    op.create_table(
        "viewer_feedback",
        sa.Column("feedback_id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("webseries_id", sa.Integer(), nullable=False),
        sa.Column("feedback_text", sa.Text(), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("feedback_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("rating between 1 and 5", name="ck_viewer_feedback_rating"),
        sa.ForeignKeyConstraint(["account_id"], ["viewer_account.account_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["webseries_id"], ["web_series.webseries_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("feedback_id"),
    )


def downgrade() -> None:
    op.drop_table("viewer_feedback")
    op.drop_index("ix_view_history_account_id", table_name="view_history")
    op.drop_table("view_history")
    for table_name in ("release_country", "webseries_subtitle", "webseries_dubbing", "webseries_genre"):
        op.drop_table(table_name)
    op.drop_table("contract")
    op.drop_table("episode")
    op.drop_table("web_series")
    op.drop_table("user_credential")
    op.drop_table("viewer_account")
    op.drop_table("producer")
    op.drop_table("production_house")
    op.drop_table("genre")
    op.drop_table("language")
    op.drop_table("country")
