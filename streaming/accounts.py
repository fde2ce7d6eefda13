from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import (
    ACCOUNT_STATUSES,
    SENTINEL_COUNTRY_ID,
    Country,
    Producer,
    ProductionHouse,
    UserCredential,
    ViewHistory,
    ViewerAccount,
    ViewerFeedback,
)

from .errors import AccountLocked, Conflict, InvalidCredentials, InvalidInput, NotFound
from .identity import Viewer, identity_of, linked_ids
from .passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

SIGNUP_ROLES = ("VIEWER", "EMPLOYEE")
_MAX_PASSWORD_BYTES = 72


@dataclass
class SignupForm:
    role: str
    email: str
    password: str
    first_name: str
    last_name: str
    country_id: int
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    phone: str | None = None
    suggested_country_name: str | None = None
    production_house_id: int | None = None


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password(password: str) -> None:
    if not password:
        raise InvalidInput("Password is required")
    if len(password.encode("utf-8")) > _MAX_PASSWORD_BYTES:
        raise InvalidInput(f"Password must be at most {_MAX_PASSWORD_BYTES} bytes")


def _require_country(session: Session, country_id: int) -> None:
    if session.get(Country, country_id) is None:
        raise InvalidInput(f"Unknown country: {country_id}")


def _suggestion_for(country_id: int, suggested: str | None) -> str | None:
    if country_id != SENTINEL_COUNTRY_ID:
        return None
    suggested = (suggested or "").strip()
    return suggested or None


def viewer_payload(account: ViewerAccount, country_name: str | None = None) -> dict:
    return {
        "account_id": account.account_id,
        "email": account.email,
        "viewer_first_name": account.viewer_first_name,
        "viewer_last_name": account.viewer_last_name,
        "street": account.street,
        "city": account.city,
        "state": account.state,
        "zip_code": account.zip_code,
        "phone": account.phone,
        "viewer_country_id": account.viewer_country_id,
        "country_name": country_name,
        "suggested_country_name": account.suggested_country_name,
        "monthly_charge": account.monthly_charge,
        "account_status": account.account_status,
        "opened_at": account.opened_at,
    }


def signup(session: Session, form: SignupForm) -> UserCredential:
    """Create the role's account row and its credential as one unit of work."""
    role = form.role.upper()
    if role not in SIGNUP_ROLES:
        raise InvalidInput(f"Role must be one of {', '.join(SIGNUP_ROLES)}")
    email = _normalize_email(form.email)
    if not email or not form.first_name or not form.last_name:
        raise InvalidInput("Email, first name and last name are required")
    _check_password(form.password)

    existing = session.execute(
        select(UserCredential.user_id).where(UserCredential.email == email)
    ).scalar_one_or_none()
    if existing is not None:
        raise Conflict("Email already registered")
    _require_country(session, form.country_id)
    if form.production_house_id is not None and session.get(ProductionHouse, form.production_house_id) is None:
        raise InvalidInput(f"Unknown production house: {form.production_house_id}")

    try:
        credential = UserCredential(
            email=email,
            password_hash=hash_password(form.password),
            role=role,
        )
        if role == "VIEWER":
            account = ViewerAccount(
                email=email,
                viewer_first_name=form.first_name,
                viewer_last_name=form.last_name,
                street=form.street,
                city=form.city,
                state=form.state,
                zip_code=form.zip_code,
                phone=form.phone,
                viewer_country_id=form.country_id,
                suggested_country_name=_suggestion_for(form.country_id, form.suggested_country_name),
                monthly_charge=Decimal("0.00"),
                account_status="ACTIVE",
            )
            session.add(account)
            session.flush()
            credential.account_id = account.account_id
        else:
            producer = Producer(
                email=email,
                producer_first_name=form.first_name,
                producer_last_name=form.last_name,
                street=form.street,
                city=form.city,
                state=form.state,
                zip_code=form.zip_code,
                phone=form.phone,
                country_id=form.country_id,
                production_house_id=form.production_house_id,
            )
            session.add(producer)
            session.flush()
            credential.producer_id = producer.producer_id

        session.add(credential)
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning("signup rolled back for %s: %s", email, exc.orig)
        if "email" in str(exc.orig).lower() or "unique" in str(exc.orig).lower():
            raise Conflict("Email already registered") from exc
        raise InvalidInput("Signup references unknown data") from exc
    except SQLAlchemyError:
        session.rollback()
        raise
    logger.info("signed up %s as %s", email, role)
    return credential


def login(session: Session, email: str, password: str) -> dict:
    """Verify the password, then consult the viewer status gate exactly once."""
    if not email or not password:
        raise InvalidInput("Email and password are required")

    credential = session.execute(
        select(UserCredential).where(UserCredential.email == _normalize_email(email))
    ).scalar_one_or_none()
    if credential is None or not verify_password(password, credential.password_hash):
        raise InvalidCredentials("Invalid credentials")

    identity = identity_of(credential)
    account_status = None
    if isinstance(identity, Viewer):
        account_status = session.execute(
            select(ViewerAccount.account_status).where(ViewerAccount.account_id == identity.account_id)
        ).scalar_one_or_none()
        if account_status == "LOCKED":
            logger.info("rejected login for locked account %s", identity.account_id)
            raise AccountLocked()

    account_id, producer_id = linked_ids(identity)
    return {
        "message": "Login successful",
        "user": {
            "id": credential.user_id,
            "email": credential.email,
            "role": credential.role,
            "accountId": account_id,
            "producerId": producer_id,
            "accountStatus": account_status,
        },
    }


def _get_account(session: Session, account_id: int) -> ViewerAccount:
    account = session.get(ViewerAccount, account_id)
    if account is None:
        raise NotFound("Viewer account not found")
    return account


def get_profile(session: Session, account_id: int) -> dict:
    row = session.execute(
        select(ViewerAccount, Country.country_name)
        .join(Country, ViewerAccount.viewer_country_id == Country.country_id)
        .where(ViewerAccount.account_id == account_id)
    ).first()
    if row is None:
        raise NotFound("Viewer account not found")
    account, country_name = row
    return viewer_payload(account, country_name)


_PROFILE_FIELDS = (
    "viewer_first_name",
    "viewer_last_name",
    "street",
    "city",
    "state",
    "zip_code",
    "phone",
)


def update_profile(session: Session, account_id: int, changes: dict) -> dict:
    """Update the account and, when the email changes, its credential together."""
    account = _get_account(session, account_id)
    if changes.get("viewer_country_id") is not None:
        _require_country(session, changes["viewer_country_id"])
    try:
        for name in _PROFILE_FIELDS:
            if name in changes and changes[name] is not None:
                setattr(account, name, changes[name])

        if changes.get("viewer_country_id") is not None:
            account.viewer_country_id = changes["viewer_country_id"]
        if "suggested_country_name" in changes or "viewer_country_id" in changes:
            suggestion = changes.get("suggested_country_name", account.suggested_country_name)
            account.suggested_country_name = _suggestion_for(account.viewer_country_id, suggestion)

        credential = session.execute(
            select(UserCredential).where(UserCredential.account_id == account_id)
        ).scalar_one_or_none()
        new_email = changes.get("email")
        if new_email:
            new_email = _normalize_email(new_email)
            account.email = new_email
            if credential is not None:
                credential.email = new_email
        if changes.get("password") and credential is not None:
            _check_password(changes["password"])
            credential.password_hash = hash_password(changes["password"])

        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise Conflict("Email already registered") from exc
    except Exception:
        session.rollback()
        raise
    return get_profile(session, account_id)


def delete_account(session: Session, account_id: int) -> None:
    """Close a viewer account along with its credential, history and feedback."""
    account = _get_account(session, account_id)
    try:
        session.execute(delete(ViewHistory).where(ViewHistory.account_id == account_id))
        session.execute(delete(ViewerFeedback).where(ViewerFeedback.account_id == account_id))
        session.execute(delete(UserCredential).where(UserCredential.account_id == account_id))
        session.delete(account)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        raise
    logger.info("closed viewer account %s", account_id)


def list_viewers(
    session: Session,
    *,
    status: str | None = None,
    country_id: int | None = None,
    q: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict]:
    stmt = select(ViewerAccount, Country.country_name).join(
        Country, ViewerAccount.viewer_country_id == Country.country_id
    )
    if status:
        stmt = stmt.where(ViewerAccount.account_status == status.upper())
    if country_id is not None:
        stmt = stmt.where(ViewerAccount.viewer_country_id == country_id)
    if q:
        pattern = f"%{q}%"
        stmt = stmt.where(
            or_(
                ViewerAccount.email.ilike(pattern),
                ViewerAccount.viewer_first_name.ilike(pattern),
                ViewerAccount.viewer_last_name.ilike(pattern),
            )
        )
    stmt = stmt.order_by(ViewerAccount.account_id).limit(limit).offset(offset)
    return [viewer_payload(account, country_name) for account, country_name in session.execute(stmt).all()]


def get_charge(session: Session, account_id: int) -> dict:
    account = _get_account(session, account_id)
    return {"account_id": account.account_id, "monthly_charge": account.monthly_charge}


def set_charge(session: Session, account_id: int, monthly_charge: Decimal) -> dict:
    if monthly_charge < 0:
        raise InvalidInput("Monthly charge must be non-negative")
    account = _get_account(session, account_id)
    account.monthly_charge = monthly_charge
    session.commit()
    return {"account_id": account.account_id, "monthly_charge": account.monthly_charge}


def get_status(session: Session, account_id: int) -> dict:
    account = _get_account(session, account_id)
    return {"account_id": account.account_id, "account_status": account.account_status}


def set_status(session: Session, account_id: int, status: str) -> dict:
    status = status.upper()
    if status not in ACCOUNT_STATUSES:
        raise InvalidInput(f"Status must be one of {', '.join(ACCOUNT_STATUSES)}")
    account = _get_account(session, account_id)
    account.account_status = status
    session.commit()
    logger.info("viewer %s status set to %s", account_id, status)
    return {"account_id": account.account_id, "account_status": account.account_status}
