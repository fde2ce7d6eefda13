from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
import logging

from sqlalchemy import delete, desc, func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import (
    SENTINEL_COUNTRY_ID,
    Contract,
    Country,
    Episode,
    Genre,
    Language,
    ProductionHouse,
    ReleaseCountry,
    SeriesDubbing,
    SeriesGenre,
    SeriesSubtitle,
    ViewHistory,
    ViewerFeedback,
    WebSeries,
)

from .errors import Conflict, NotFound, TransactionFailed

logger = logging.getLogger(__name__)

RENEWAL_RATE = Decimal("1.05")
_CENTS = Decimal("0.01")


@dataclass
class SeriesDraft:
    production_house_id: int
    series_name: str
    original_language_id: int
    release_date: date | None = None
    contract_date: date | None = None
    charge_per_episode: Decimal | None = None
    genre_ids: list[int] = field(default_factory=list)
    dubbing_language_ids: list[int] = field(default_factory=list)
    subtitle_language_ids: list[int] = field(default_factory=list)
    release_country_ids: list[int] = field(default_factory=list)


def _series_row(series: WebSeries, ph_name: str | None, language_name: str | None) -> dict:
    return {
        "webseries_id": series.webseries_id,
        "series_name": series.series_name,
        "production_house_id": series.production_house_id,
        "ph_name": ph_name,
        "original_language_id": series.original_language_id,
        "language_name": language_name,
        "release_date": series.release_date,
    }


def list_genres(session: Session) -> list[Genre]:
    return list(session.execute(select(Genre).order_by(Genre.genre_name)).scalars().all())


def list_languages(session: Session) -> list[Language]:
    return list(session.execute(select(Language).order_by(Language.language_name)).scalars().all())


def list_countries(session: Session) -> list[Country]:
    stmt = (
        select(Country)
        .where(Country.country_id != SENTINEL_COUNTRY_ID)
        .order_by(Country.country_name)
    )
    return list(session.execute(stmt).scalars().all())


def list_production_houses(session: Session) -> list[ProductionHouse]:
    stmt = select(ProductionHouse).order_by(ProductionHouse.ph_name)
    return list(session.execute(stmt).scalars().all())


PH_FIELDS = ("ph_name", "street", "city", "state", "zip_code", "year_established", "country_id")


def create_production_house(session: Session, fields: dict) -> ProductionHouse:
    house = ProductionHouse(**{name: fields.get(name) for name in PH_FIELDS})
    session.add(house)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise NotFound("Unknown country for production house") from exc
    return house


def update_production_house(session: Session, production_house_id: int, changes: dict) -> ProductionHouse:
    house = session.get(ProductionHouse, production_house_id)
    if house is None:
        raise NotFound("Production house not found")
    for name in PH_FIELDS:
        if name in changes:
            setattr(house, name, changes[name])
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise NotFound("Unknown country for production house") from exc
    return house


def delete_production_house(session: Session, production_house_id: int) -> None:
    house = session.get(ProductionHouse, production_house_id)
    if house is None:
        raise NotFound("Production house not found")
    session.delete(house)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Production house still owns series") from exc


def list_series(session: Session) -> list[dict]:
    stmt = (
        select(WebSeries, ProductionHouse.ph_name, Language.language_name)
        .join(ProductionHouse, WebSeries.production_house_id == ProductionHouse.production_house_id)
        .join(Language, WebSeries.original_language_id == Language.language_id)
        .order_by(desc(WebSeries.release_date), WebSeries.webseries_id)
    )
    return [_series_row(series, ph, lang) for series, ph, lang in session.execute(stmt).all()]


def get_series(session: Session, webseries_id: int) -> dict:
    stmt = (
        select(WebSeries, ProductionHouse.ph_name, Language.language_name)
        .join(ProductionHouse, WebSeries.production_house_id == ProductionHouse.production_house_id)
        .join(Language, WebSeries.original_language_id == Language.language_id)
        .where(WebSeries.webseries_id == webseries_id)
    )
    row = session.execute(stmt).first()
    if row is None:
        raise NotFound("Series not found")
    series, ph_name, language_name = row
    payload = _series_row(series, ph_name, language_name)
    payload["genre_ids"] = list(
        session.execute(
            select(SeriesGenre.genre_id).where(SeriesGenre.webseries_id == webseries_id)
        ).scalars()
    )
    payload["dubbing_language_ids"] = list(
        session.execute(
            select(SeriesDubbing.language_id).where(SeriesDubbing.webseries_id == webseries_id)
        ).scalars()
    )
    payload["subtitle_language_ids"] = list(
        session.execute(
            select(SeriesSubtitle.language_id).where(SeriesSubtitle.webseries_id == webseries_id)
        ).scalars()
    )
    payload["release_country_ids"] = list(
        session.execute(
            select(ReleaseCountry.country_id).where(ReleaseCountry.webseries_id == webseries_id)
        ).scalars()
    )
    return payload


def create_series(
    session: Session,
    *,
    production_house_id: int,
    series_name: str,
    original_language_id: int,
    release_date: date | None,
) -> int:
    series = WebSeries(
        production_house_id=production_house_id,
        series_name=series_name,
        original_language_id=original_language_id,
        release_date=release_date,
    )
    session.add(series)
    session.commit()
    return series.webseries_id


def _bulk_link(session: Session, model, column: str, webseries_id: int, ids: list[int]) -> None:
    if not ids:
        return
    session.execute(insert(model), [{"webseries_id": webseries_id, column: value} for value in ids])


def create_series_full(session: Session, draft: SeriesDraft) -> int:
    """Create a series with its contract and associations as one unit of work.

    The series row is flushed first so its generated id can be used by every
    dependent insert. Any failure rolls back the series as well.
    """
    try:
        series = WebSeries(
            production_house_id=draft.production_house_id,
            series_name=draft.series_name,
            original_language_id=draft.original_language_id,
            release_date=draft.release_date,
        )
        session.add(series)
        session.flush()
        webseries_id = series.webseries_id

        if draft.contract_date is not None and draft.charge_per_episode is not None:
            session.add(
                Contract(
                    webseries_id=webseries_id,
                    contract_date=draft.contract_date,
                    charge_per_episode=draft.charge_per_episode,
                )
            )
            session.flush()

        _bulk_link(session, SeriesGenre, "genre_id", webseries_id, draft.genre_ids)
        _bulk_link(session, SeriesDubbing, "language_id", webseries_id, draft.dubbing_language_ids)
        _bulk_link(session, SeriesSubtitle, "language_id", webseries_id, draft.subtitle_language_ids)
        _bulk_link(session, ReleaseCountry, "country_id", webseries_id, draft.release_country_ids)

        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("series creation rolled back: %s", exc)
        raise TransactionFailed("Failed to create series. Transaction rolled back.") from exc
    logger.info("created series %s with %d genre(s)", webseries_id, len(draft.genre_ids))
    return webseries_id


def delete_series(session: Session, webseries_id: int) -> None:
    series = session.get(WebSeries, webseries_id)
    if series is None:
        raise NotFound("Series not found")
    try:
        # dependents first so the delete does not rely on dialect cascade support
        session.execute(
            delete(ViewHistory).where(
                ViewHistory.episode_id.in_(
                    select(Episode.episode_id).where(Episode.webseries_id == webseries_id)
                )
            )
        )
        for model in (
            ViewerFeedback,
            SeriesGenre,
            SeriesDubbing,
            SeriesSubtitle,
            ReleaseCountry,
            Contract,
            Episode,
        ):
            session.execute(delete(model).where(model.webseries_id == webseries_id))
        session.delete(series)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise


def list_episodes(session: Session, webseries_id: int) -> list[Episode]:
    stmt = (
        select(Episode)
        .where(Episode.webseries_id == webseries_id)
        .order_by(Episode.episode_number)
    )
    return list(session.execute(stmt).scalars().all())


def create_episode(
    session: Session,
    *,
    webseries_id: int,
    episode_number: int,
    episode_title: str,
    duration_min: int | None,
) -> int:
    if session.get(WebSeries, webseries_id) is None:
        raise NotFound("Series not found")
    episode = Episode(
        webseries_id=webseries_id,
        episode_number=episode_number,
        episode_title=episode_title,
        duration_min=duration_min,
    )
    session.add(episode)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict(f"Episode {episode_number} already exists for this series") from exc
    return episode.episode_id


def list_contracts(session: Session, webseries_id: int | None = None) -> list[dict]:
    stmt = (
        select(Contract, WebSeries.series_name, ProductionHouse.ph_name)
        .join(WebSeries, Contract.webseries_id == WebSeries.webseries_id)
        .join(ProductionHouse, WebSeries.production_house_id == ProductionHouse.production_house_id)
        .order_by(desc(Contract.contract_date), desc(Contract.contract_id))
    )
    if webseries_id is not None:
        stmt = stmt.where(Contract.webseries_id == webseries_id)
    return [
        {
            "contract_id": contract.contract_id,
            "webseries_id": contract.webseries_id,
            "series_name": series_name,
            "ph_name": ph_name,
            "contract_date": contract.contract_date,
            "charge_per_episode": contract.charge_per_episode,
        }
        for contract, series_name, ph_name in session.execute(stmt).all()
    ]


def create_contract(
    session: Session,
    *,
    webseries_id: int,
    contract_date: date,
    charge_per_episode: Decimal,
) -> int:
    if session.get(WebSeries, webseries_id) is None:
        raise NotFound("Series not found")
    contract = Contract(
        webseries_id=webseries_id,
        contract_date=contract_date,
        charge_per_episode=charge_per_episode,
    )
    session.add(contract)
    session.commit()
    return contract.contract_id


def renew_contract(
    session: Session,
    *,
    webseries_id: int,
    old_charge: Decimal | None = None,
    today: date | None = None,
) -> Contract:
    """Append a renewed contract at 5% over the previous per-episode charge."""
    if session.get(WebSeries, webseries_id) is None:
        raise NotFound("Series not found")
    if old_charge is None:
        latest = session.execute(
            select(Contract)
            .where(Contract.webseries_id == webseries_id)
            .order_by(desc(Contract.contract_date), desc(Contract.contract_id))
            .limit(1)
        ).scalar_one_or_none()
        if latest is None:
            raise NotFound("No existing contract to renew")
        old_charge = latest.charge_per_episode

    new_charge = (Decimal(old_charge) * RENEWAL_RATE).quantize(_CENTS, rounding=ROUND_HALF_UP)
    contract = Contract(
        webseries_id=webseries_id,
        contract_date=today or date.today(),
        charge_per_episode=new_charge,
    )
    session.add(contract)
    session.commit()
    return contract


def _aggregate(target_model, column, link_model, link_column, target_key):
    return (
        select(func.aggregate_strings(column, ", "))
        .select_from(link_model)
        .join(target_model, link_column == target_key)
        .where(link_model.webseries_id == WebSeries.webseries_id)
        .scalar_subquery()
    )


def browse(
    session: Session,
    *,
    country_id: int | None = None,
    genre_id: int | None = None,
    q: str | None = None,
) -> list[dict]:
    genres = _aggregate(Genre, Genre.genre_name, SeriesGenre, SeriesGenre.genre_id, Genre.genre_id)
    dubbing = _aggregate(
        Language, Language.language_name, SeriesDubbing, SeriesDubbing.language_id, Language.language_id
    )
    subtitles = _aggregate(
        Language, Language.language_name, SeriesSubtitle, SeriesSubtitle.language_id, Language.language_id
    )
    countries = _aggregate(
        Country, Country.country_name, ReleaseCountry, ReleaseCountry.country_id, Country.country_id
    )
    stmt = select(
        WebSeries.webseries_id,
        WebSeries.series_name,
        WebSeries.release_date,
        genres.label("genres"),
        dubbing.label("dubbing_languages"),
        subtitles.label("subtitle_languages"),
        countries.label("release_countries"),
    )
    if country_id is not None:
        stmt = stmt.where(
            WebSeries.webseries_id.in_(
                select(ReleaseCountry.webseries_id).where(ReleaseCountry.country_id == country_id)
            )
        )
    if genre_id is not None:
        stmt = stmt.where(
            WebSeries.webseries_id.in_(
                select(SeriesGenre.webseries_id).where(SeriesGenre.genre_id == genre_id)
            )
        )
    if q:
        stmt = stmt.where(WebSeries.series_name.ilike(f"%{q}%"))
    stmt = stmt.order_by(desc(WebSeries.release_date), WebSeries.webseries_id)
    return [dict(row._mapping) for row in session.execute(stmt).all()]


def top_series(session: Session, limit: int = 5) -> list[dict]:
    total_views = func.count(ViewHistory.view_id).label("total_views")
    stmt = (
        select(WebSeries.series_name, total_views)
        .join(Episode, Episode.webseries_id == WebSeries.webseries_id)
        .join(ViewHistory, ViewHistory.episode_id == Episode.episode_id)
        .group_by(WebSeries.webseries_id, WebSeries.series_name)
        .order_by(desc(total_views))
        .limit(limit)
    )
    return [{"series_name": name, "total_views": int(views)} for name, views in session.execute(stmt).all()]


def genre_distribution(session: Session, limit: int = 10) -> list[dict]:
    series_count = func.count(SeriesGenre.webseries_id).label("series_count")
    stmt = (
        select(Genre.genre_name, series_count)
        .join(SeriesGenre, SeriesGenre.genre_id == Genre.genre_id)
        .group_by(Genre.genre_id, Genre.genre_name)
        .order_by(desc(series_count))
        .limit(limit)
    )
    return [{"genre_name": name, "series_count": int(count)} for name, count in session.execute(stmt).all()]
