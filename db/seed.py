from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from streaming.passwords import hash_password

from .models import (
    SENTINEL_COUNTRY_CODE,
    SENTINEL_COUNTRY_ID,
    SENTINEL_COUNTRY_NAME,
    Country,
    Genre,
    Language,
    Producer,
    ProductionHouse,
    ReleaseCountry,
    UserCredential,
    ViewerAccount,
    WebSeries,
)

DEFAULT_COUNTRIES = [
    (1, "United States", "US"),
    (2, "United Kingdom", "GB"),
    (3, "India", "IN"),
    (4, "Canada", "CA"),
    (5, "Germany", "DE"),
]
DEFAULT_LANGUAGES = ["English", "Hindi", "Spanish", "German", "French"]
DEFAULT_GENRES = ["Drama", "Comedy", "Thriller", "Sci-Fi", "Documentary"]


def ensure_sentinel_country(session: Session) -> bool:
    """Insert the placeholder country if missing; returns True when it was created."""
    if session.get(Country, SENTINEL_COUNTRY_ID) is not None:
        return False
    session.add(
        Country(
            country_id=SENTINEL_COUNTRY_ID,
            country_name=SENTINEL_COUNTRY_NAME,
            country_code_iso=SENTINEL_COUNTRY_CODE,
        )
    )
    session.flush()
    return True


def seed_reference_data(session: Session) -> dict:
    created = {"countries": 0, "languages": 0, "genres": 0}
    ensure_sentinel_country(session)
    for country_id, name, code in DEFAULT_COUNTRIES:
        if session.get(Country, country_id) is None:
            session.add(Country(country_id=country_id, country_name=name, country_code_iso=code))
            created["countries"] += 1
    existing_languages = set(session.execute(select(Language.language_name)).scalars())
    for name in DEFAULT_LANGUAGES:
        if name not in existing_languages:
            session.add(Language(language_name=name))
            created["languages"] += 1
    existing_genres = set(session.execute(select(Genre.genre_name)).scalars())
    for name in DEFAULT_GENRES:
        if name not in existing_genres:
            session.add(Genre(genre_name=name))
            created["genres"] += 1
    session.commit()
    return created


def _credential_exists(session: Session, email: str) -> bool:
    stmt = select(UserCredential.user_id).where(UserCredential.email == email)
    return session.execute(stmt).scalar_one_or_none() is not None


def seed_users(
    session: Session,
    *,
    password: str,
    admin_email: str = "admin@webseries.local",
    employee_email: str = "producer@webseries.local",
    viewer_email: str = "viewer@webseries.local",
) -> list[str]:
    """Create one login per role, skipping emails that already exist."""
    ensure_sentinel_country(session)
    password_hash = hash_password(password)
    created: list[str] = []

    if not _credential_exists(session, admin_email):
        session.add(UserCredential(email=admin_email, password_hash=password_hash, role="ADMIN"))
        created.append(admin_email)

    if not _credential_exists(session, employee_email):
        house = session.execute(select(ProductionHouse).limit(1)).scalar_one_or_none()
        if house is None:
            house = ProductionHouse(ph_name="Demo Pictures")
            session.add(house)
            session.flush()
        producer = Producer(
            email=employee_email,
            producer_first_name="Demo",
            producer_last_name="Producer",
            production_house_id=house.production_house_id,
        )
        session.add(producer)
        session.flush()
        session.add(
            UserCredential(
                email=employee_email,
                password_hash=password_hash,
                role="EMPLOYEE",
                producer_id=producer.producer_id,
            )
        )
        created.append(employee_email)

    if not _credential_exists(session, viewer_email):
        account = ViewerAccount(
            email=viewer_email,
            viewer_first_name="Demo",
            viewer_last_name="Viewer",
            viewer_country_id=SENTINEL_COUNTRY_ID,
        )
        session.add(account)
        session.flush()
        session.add(
            UserCredential(
                email=viewer_email,
                password_hash=password_hash,
                role="VIEWER",
                account_id=account.account_id,
            )
        )
        created.append(viewer_email)

    session.commit()
    return created


def reset_password(session: Session, email: str, password: str) -> bool:
    credential = session.execute(
        select(UserCredential).where(UserCredential.email == email.strip().lower())
    ).scalar_one_or_none()
    if credential is None:
        return False
    credential.password_hash = hash_password(password)
    session.commit()
    return True


def release_all_in_country(session: Session, country_id: int) -> list[int]:
    """Add a release row in the country for every series not yet released there."""
    if session.get(Country, country_id) is None:
        raise ValueError(f"Country not found: {country_id}")
    already = set(
        session.execute(
            select(ReleaseCountry.webseries_id).where(ReleaseCountry.country_id == country_id)
        ).scalars()
    )
    released: list[int] = []
    for webseries_id in session.execute(select(WebSeries.webseries_id)).scalars().all():
        if webseries_id in already:
            continue
        session.add(ReleaseCountry(webseries_id=webseries_id, country_id=country_id))
        released.append(webseries_id)
    session.commit()
    return released
