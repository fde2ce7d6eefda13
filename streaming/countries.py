from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import desc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import SENTINEL_COUNTRY_ID, Country, ViewerAccount

from .errors import Conflict, InvalidInput, NotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovalResult:
    country_id: int
    users_updated: int


def allocate_next_country_id(session: Session) -> int:
    """Return one past the highest non-sentinel country id.

    Deleted ids are never reused. Two concurrent callers can receive the same
    id; the primary key turns the second insert into an IntegrityError.
    """
    current = session.execute(
        select(func.max(Country.country_id)).where(Country.country_id != SENTINEL_COUNTRY_ID)
    ).scalar_one()
    return (current or 0) + 1


def _clean(name: str | None, label: str) -> str:
    value = (name or "").strip()
    if not value:
        raise InvalidInput(f"{label} is required")
    return value


def create_country(session: Session, country_name: str, country_code_iso: str | None) -> Country:
    country = Country(
        country_id=allocate_next_country_id(session),
        country_name=_clean(country_name, "Country name"),
        country_code_iso=(country_code_iso or "").strip().upper() or None,
    )
    session.add(country)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Country id already taken, please retry") from exc
    return country


def _get_editable(session: Session, country_id: int) -> Country:
    if country_id == SENTINEL_COUNTRY_ID:
        raise InvalidInput("The placeholder country cannot be modified")
    country = session.get(Country, country_id)
    if country is None:
        raise NotFound("Country not found")
    return country


def update_country(
    session: Session,
    country_id: int,
    *,
    country_name: str | None = None,
    country_code_iso: str | None = None,
) -> Country:
    country = _get_editable(session, country_id)
    if country_name is not None:
        country.country_name = _clean(country_name, "Country name")
    if country_code_iso is not None:
        country.country_code_iso = country_code_iso.strip().upper() or None
    session.commit()
    return country


def delete_country(session: Session, country_id: int) -> None:
    country = _get_editable(session, country_id)
    session.delete(country)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Country is still referenced") from exc


def list_suggestions(session: Session) -> list[dict]:
    """Group pending free-text country suggestions by name, most requested first."""
    user_count = func.count(ViewerAccount.account_id).label("user_count")
    stmt = (
        select(ViewerAccount.suggested_country_name, user_count)
        .where(
            ViewerAccount.viewer_country_id == SENTINEL_COUNTRY_ID,
            ViewerAccount.suggested_country_name.is_not(None),
        )
        .group_by(ViewerAccount.suggested_country_name)
        .order_by(desc(user_count), ViewerAccount.suggested_country_name)
    )
    return [
        {"suggested_country_name": name, "user_count": int(count)}
        for name, count in session.execute(stmt).all()
    ]


def approve_country(
    session: Session,
    *,
    suggested_name: str,
    official_name: str,
    official_code: str | None,
) -> ApprovalResult:
    """Promote a suggestion to an official country and retarget its viewers.

    Allocation, insert and bulk update commit together or not at all. Approving
    the same suggestion twice inserts a second country and updates no viewers.
    """
    suggested_name = _clean(suggested_name, "Suggested name")
    official_name = _clean(official_name, "Official name")
    try:
        country_id = allocate_next_country_id(session)
        session.add(
            Country(
                country_id=country_id,
                country_name=official_name,
                country_code_iso=(official_code or "").strip().upper() or None,
            )
        )
        session.flush()
        result = session.execute(
            update(ViewerAccount)
            .where(
                ViewerAccount.viewer_country_id == SENTINEL_COUNTRY_ID,
                ViewerAccount.suggested_country_name == suggested_name,
            )
            .values(viewer_country_id=country_id, suggested_country_name=None)
            .execution_options(synchronize_session=False)
        )
        users_updated = result.rowcount
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("country approval for %r collided: %s", suggested_name, exc.orig)
        raise Conflict("Country id already taken, please retry") from exc
    except SQLAlchemyError:
        session.rollback()
        logger.exception("country approval for %r rolled back", suggested_name)
        raise
    logger.info(
        "approved country %s (%s) for %d viewer(s)", country_id, official_name, users_updated
    )
    return ApprovalResult(country_id=country_id, users_updated=users_updated)
