from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

SENTINEL_COUNTRY_ID = 999
SENTINEL_COUNTRY_NAME = "Other / Unknown"
SENTINEL_COUNTRY_CODE = "XX"

ACCOUNT_STATUSES = ("ACTIVE", "LOCKED", "FLAGGED")
ROLES = ("ADMIN", "EMPLOYEE", "VIEWER")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _today() -> date:
    return datetime.now(UTC).date()


class Country(Base):
    __tablename__ = "country"

    country_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    country_name: Mapped[str] = mapped_column(String(100))
    country_code_iso: Mapped[str | None] = mapped_column(String(3), nullable=True)


class Language(Base):
    __tablename__ = "language"

    language_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    language_name: Mapped[str] = mapped_column(String(100), unique=True)


class Genre(Base):
    __tablename__ = "genre"

    genre_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    genre_name: Mapped[str] = mapped_column(String(100), unique=True)


class ProductionHouse(Base):
    __tablename__ = "production_house"

    production_house_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ph_name: Mapped[str] = mapped_column(String(150))
    street: Mapped[str | None] = mapped_column(String(150), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    year_established: Mapped[int | None] = mapped_column(Integer, nullable=True)
    country_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("country.country_id"),
        nullable=True,
    )

    series: Mapped[list["WebSeries"]] = relationship(back_populates="production_house")


class Producer(Base):
    __tablename__ = "producer"

    producer_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    producer_first_name: Mapped[str] = mapped_column(String(100))
    producer_last_name: Mapped[str] = mapped_column(String(100))
    street: Mapped[str | None] = mapped_column(String(150), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    country_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("country.country_id"),
        nullable=True,
    )
    production_house_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("production_house.production_house_id", ondelete="SET NULL"),
        nullable=True,
    )


class ViewerAccount(Base):
    __tablename__ = "viewer_account"

    account_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    viewer_first_name: Mapped[str] = mapped_column(String(100))
    viewer_last_name: Mapped[str] = mapped_column(String(100))
    street: Mapped[str | None] = mapped_column(String(150), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    viewer_country_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("country.country_id"),
    )
    suggested_country_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    monthly_charge: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    account_status: Mapped[str] = mapped_column(String(16), default="ACTIVE")
    opened_at: Mapped[date] = mapped_column(Date, default=_today)

    country: Mapped["Country"] = relationship()

    __table_args__ = (
        CheckConstraint("monthly_charge >= 0", name="ck_viewer_account_monthly_charge"),
        CheckConstraint(
            "account_status in ('ACTIVE', 'LOCKED', 'FLAGGED')",
            name="ck_viewer_account_status",
        ),
    )


class UserCredential(Base):
    __tablename__ = "user_credential"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    password_hash: Mapped[str] = mapped_column(Text)
    role: Mapped[str] = mapped_column(String(16))
    account_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("viewer_account.account_id", ondelete="CASCADE"),
        nullable=True,
    )
    producer_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("producer.producer_id", ondelete="CASCADE"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        CheckConstraint("role in ('ADMIN', 'EMPLOYEE', 'VIEWER')", name="ck_user_credential_role"),
        CheckConstraint(
            "(role = 'ADMIN' AND account_id IS NULL AND producer_id IS NULL)"
            " OR (role = 'EMPLOYEE' AND producer_id IS NOT NULL AND account_id IS NULL)"
            " OR (role = 'VIEWER' AND account_id IS NOT NULL AND producer_id IS NULL)",
            name="ck_user_credential_role_reference",
        ),
    )


class WebSeries(Base):
    __tablename__ = "web_series"

    webseries_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    series_name: Mapped[str] = mapped_column(String(200))
    production_house_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("production_house.production_house_id"),
    )
    original_language_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("language.language_id"),
    )
    release_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    production_house: Mapped["ProductionHouse"] = relationship(back_populates="series")
    episodes: Mapped[list["Episode"]] = relationship(
        back_populates="series",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Episode(Base):
    __tablename__ = "episode"

    episode_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    webseries_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("web_series.webseries_id", ondelete="CASCADE"),
    )
    episode_number: Mapped[int] = mapped_column(Integer)
    episode_title: Mapped[str] = mapped_column(String(200))
    duration_min: Mapped[int | None] = mapped_column(Integer, nullable=True)

    series: Mapped["WebSeries"] = relationship(back_populates="episodes")

    __table_args__ = (
        UniqueConstraint("webseries_id", "episode_number", name="uq_episode_series_number"),
    )


class Contract(Base):
    __tablename__ = "contract"

    contract_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    webseries_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("web_series.webseries_id", ondelete="CASCADE"),
    )
    contract_date: Mapped[date] = mapped_column(Date)
    charge_per_episode: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    __table_args__ = (
        CheckConstraint("charge_per_episode >= 0", name="ck_contract_charge_per_episode"),
    )


class SeriesGenre(Base):
    __tablename__ = "webseries_genre"

    webseries_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("web_series.webseries_id", ondelete="CASCADE"),
        primary_key=True,
    )
    genre_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("genre.genre_id", ondelete="CASCADE"),
        primary_key=True,
    )


class SeriesDubbing(Base):
    __tablename__ = "webseries_dubbing"

    webseries_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("web_series.webseries_id", ondelete="CASCADE"),
        primary_key=True,
    )
    language_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("language.language_id", ondelete="CASCADE"),
        primary_key=True,
    )


class SeriesSubtitle(Base):
    __tablename__ = "webseries_subtitle"

    webseries_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("web_series.webseries_id", ondelete="CASCADE"),
        primary_key=True,
    )
    language_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("language.language_id", ondelete="CASCADE"),
        primary_key=True,
    )


class ReleaseCountry(Base):
    __tablename__ = "release_country"

    webseries_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("web_series.webseries_id", ondelete="CASCADE"),
        primary_key=True,
    )
    country_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("country.country_id", ondelete="CASCADE"),
        primary_key=True,
    )


class ViewHistory(Base):
    __tablename__ = "view_history"

    view_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("viewer_account.account_id", ondelete="CASCADE"),
    )
    episode_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("episode.episode_id", ondelete="CASCADE"),
    )
    view_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ViewerFeedback(Base):
    __tablename__ = "viewer_feedback"

    feedback_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("viewer_account.account_id", ondelete="CASCADE"),
    )
    webseries_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("web_series.webseries_id", ondelete="CASCADE"),
    )
    feedback_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int] = mapped_column(Integer)
    feedback_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        CheckConstraint("rating between 1 and 5", name="ck_viewer_feedback_rating"),
    )
