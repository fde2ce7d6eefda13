from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
import logging
from os import getenv
from typing import Iterator, List, Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from db.session import create_db_engine, make_session_factory
from streaming import accounts, activity, catalog, countries
from streaming.catalog import SeriesDraft
from streaming.errors import ServiceError

logger = logging.getLogger("webseries.api")


def _cors_origins() -> list[str]:
    raw = getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def _configure_logging() -> None:
    logging.basicConfig(
        level=getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _paginate(limit: int, offset: int) -> tuple[int, int]:
    limit = max(1, min(limit, 200))
    offset = max(0, offset)
    return limit, offset


def _encode(obj):
    return jsonable_encoder(obj)


def _created(payload: dict) -> JSONResponse:
    return JSONResponse(status_code=201, content=jsonable_encoder(payload))


def get_session(request: Request) -> Iterator[Session]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


# --- request models ---


class SignupRequest(BaseModel):
    role: str
    email: str
    password: str
    first_name: str
    last_name: str
    country_id: int
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    suggested_country_name: Optional[str] = None
    production_house_id: Optional[int] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class SeriesCreateRequest(BaseModel):
    production_house_id: int
    series_name: str = Field(min_length=1)
    original_language_id: int
    release_date: Optional[date] = None


class SeriesFullRequest(SeriesCreateRequest):
    contract_date: Optional[date] = None
    charge_per_episode: Optional[Decimal] = Field(default=None, ge=0)
    genre_ids: List[int] = Field(default_factory=list)
    dubbing_language_ids: List[int] = Field(default_factory=list)
    subtitle_language_ids: List[int] = Field(default_factory=list)
    release_country_ids: List[int] = Field(default_factory=list)


class EpisodeCreateRequest(BaseModel):
    webseries_id: int
    episode_number: int = Field(ge=1)
    episode_title: str = Field(min_length=1)
    duration_min: Optional[int] = Field(default=None, ge=0)


class ContractCreateRequest(BaseModel):
    webseries_id: int
    contract_date: date
    charge_per_episode: Decimal = Field(ge=0)


class ContractRenewRequest(BaseModel):
    webseries_id: int
    old_charge: Optional[Decimal] = Field(default=None, ge=0)


class ViewRequest(BaseModel):
    account_id: int
    episode_id: int


class FeedbackRequest(BaseModel):
    account_id: int
    webseries_id: int
    rating: int
    feedback_text: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    viewer_first_name: Optional[str] = None
    viewer_last_name: Optional[str] = None
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    viewer_country_id: Optional[int] = None
    suggested_country_name: Optional[str] = None


class CountryCreateRequest(BaseModel):
    country_name: str
    country_code_iso: Optional[str] = Field(default=None, max_length=3)


class CountryUpdateRequest(BaseModel):
    country_name: Optional[str] = None
    country_code_iso: Optional[str] = Field(default=None, max_length=3)


class ApproveCountryRequest(BaseModel):
    suggested_name: str
    official_name: str
    official_code: Optional[str] = Field(default=None, max_length=3)


class ChargeRequest(BaseModel):
    monthly_charge: Decimal = Field(ge=0)


class StatusRequest(BaseModel):
    status: Literal["ACTIVE", "LOCKED", "FLAGGED"]


class ProductionHouseRequest(BaseModel):
    ph_name: str = Field(min_length=1)
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    year_established: Optional[int] = None
    country_id: Optional[int] = None


class ProductionHouseUpdateRequest(BaseModel):
    ph_name: Optional[str] = Field(default=None, min_length=1)
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    year_established: Optional[int] = None
    country_id: Optional[int] = None


router = APIRouter(prefix="/api")


@router.get("/health")
def health(session: Session = Depends(get_session)) -> dict:
    try:
        session.execute(text("select 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        database = f"down:{type(exc).__name__}"
    return _encode({"status": "ok", "database": database, "timestamp": datetime.now(timezone.utc)})


# --- accounts ---


@router.post("/signup", status_code=201)
def signup(request: SignupRequest, session: Session = Depends(get_session)) -> JSONResponse:
    credential = accounts.signup(session, accounts.SignupForm(**request.model_dump()))
    return _created(
        {
            "message": "Signup successful",
            "user": {
                "id": credential.user_id,
                "email": credential.email,
                "role": credential.role,
                "accountId": credential.account_id,
                "producerId": credential.producer_id,
            },
        }
    )


@router.post("/login")
def login(request: LoginRequest, session: Session = Depends(get_session)) -> dict:
    return accounts.login(session, request.email or "", request.password or "")


# --- reference data & analytics ---


@router.get("/genres")
def list_genres(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_genres(session))


@router.get("/languages")
def list_languages(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_languages(session))


@router.get("/countries")
def list_countries(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_countries(session))


@router.get("/production-houses")
def list_production_houses(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_production_houses(session))


@router.get("/analytics/top-series")
def analytics_top_series(session: Session = Depends(get_session)) -> List[dict]:
    return catalog.top_series(session)


@router.get("/analytics/genre-distribution")
def analytics_genre_distribution(session: Session = Depends(get_session)) -> List[dict]:
    return catalog.genre_distribution(session)


# --- catalog ---


@router.get("/series")
def list_series(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_series(session))


@router.post("/series", status_code=201)
def create_series(request: SeriesCreateRequest, session: Session = Depends(get_session)) -> JSONResponse:
    webseries_id = catalog.create_series(session, **request.model_dump())
    return _created({"message": "Series created", "id": webseries_id})


@router.post("/series/full", status_code=201)
def create_series_full(request: SeriesFullRequest, session: Session = Depends(get_session)) -> JSONResponse:
    webseries_id = catalog.create_series_full(session, SeriesDraft(**request.model_dump()))
    return _created({"message": "Series created successfully with all details", "id": webseries_id})


@router.get("/series/{webseries_id}")
def get_series(webseries_id: int, session: Session = Depends(get_session)) -> dict:
    return _encode(catalog.get_series(session, webseries_id))


@router.delete("/series/{webseries_id}")
def delete_series(webseries_id: int, session: Session = Depends(get_session)) -> dict:
    catalog.delete_series(session, webseries_id)
    return {"message": "Series deleted"}


@router.get("/series/{webseries_id}/episodes")
def list_episodes(webseries_id: int, session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_episodes(session, webseries_id))


@router.get("/series/{webseries_id}/feedback")
def list_feedback(webseries_id: int, session: Session = Depends(get_session)) -> List[dict]:
    return _encode(activity.list_feedback(session, webseries_id))


@router.post("/episodes", status_code=201)
def create_episode(request: EpisodeCreateRequest, session: Session = Depends(get_session)) -> JSONResponse:
    episode_id = catalog.create_episode(session, **request.model_dump())
    return _created({"message": "Episode created", "id": episode_id})


@router.get("/contracts")
def list_contracts(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_contracts(session))


@router.get("/contracts/series/{webseries_id}")
def list_series_contracts(webseries_id: int, session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_contracts(session, webseries_id))


@router.post("/contracts", status_code=201)
def create_contract(request: ContractCreateRequest, session: Session = Depends(get_session)) -> JSONResponse:
    contract_id = catalog.create_contract(session, **request.model_dump())
    return _created({"message": "Contract created", "id": contract_id})


@router.post("/contracts/renew", status_code=201)
def renew_contract(request: ContractRenewRequest, session: Session = Depends(get_session)) -> JSONResponse:
    contract = catalog.renew_contract(
        session, webseries_id=request.webseries_id, old_charge=request.old_charge
    )
    return _created(
        {
            "message": f"Contract renewed. New rate: ${contract.charge_per_episode:.2f}",
            "id": contract.contract_id,
            "charge_per_episode": contract.charge_per_episode,
            "contract_date": contract.contract_date,
        }
    )


@router.get("/browse")
def browse(
    country_id: Optional[int] = None,
    genre_id: Optional[int] = None,
    q: Optional[str] = None,
    session: Session = Depends(get_session),
) -> List[dict]:
    return _encode(catalog.browse(session, country_id=country_id, genre_id=genre_id, q=q))


# --- recorders & history ---


@router.post("/view", status_code=201)
def record_view(request: ViewRequest, session: Session = Depends(get_session)) -> JSONResponse:
    view = activity.record_view(session, account_id=request.account_id, episode_id=request.episode_id)
    return _created({"message": "View recorded", "id": view.view_id})


@router.post("/feedback", status_code=201)
def submit_feedback(request: FeedbackRequest, session: Session = Depends(get_session)) -> JSONResponse:
    feedback = activity.submit_feedback(session, **request.model_dump())
    return _created({"message": "Feedback submitted", "id": feedback.feedback_id})


@router.get("/history/{account_id}")
def list_history(account_id: int, session: Session = Depends(get_session)) -> List[dict]:
    return _encode(activity.list_history(session, account_id))


@router.delete("/history/item/{view_id}")
def delete_history_item(view_id: int, session: Session = Depends(get_session)) -> dict:
    activity.delete_history_item(session, view_id)
    return {"message": "History item deleted"}


@router.delete("/history/account/{account_id}")
def clear_history(account_id: int, session: Session = Depends(get_session)) -> dict:
    deleted = activity.clear_history(session, account_id)
    return {"message": "History cleared", "deleted": deleted}


# --- profile & viewers ---


@router.get("/profile/{account_id}")
def get_profile(account_id: int, session: Session = Depends(get_session)) -> dict:
    return _encode(accounts.get_profile(session, account_id))


@router.put("/profile/{account_id}")
def update_profile(
    account_id: int,
    request: ProfileUpdateRequest,
    session: Session = Depends(get_session),
) -> dict:
    profile = accounts.update_profile(session, account_id, request.model_dump(exclude_unset=True))
    return _encode({"message": "Profile updated", "profile": profile})


@router.delete("/profile/{account_id}")
def delete_profile(account_id: int, session: Session = Depends(get_session)) -> dict:
    accounts.delete_account(session, account_id)
    return {"message": "Account closed"}


@router.get("/viewers")
def list_viewers(
    status: Optional[str] = None,
    country_id: Optional[int] = None,
    q: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
) -> List[dict]:
    limit, offset = _paginate(limit, offset)
    rows = accounts.list_viewers(
        session, status=status, country_id=country_id, q=q, limit=limit, offset=offset
    )
    return _encode(rows)


@router.get("/viewers/{account_id}")
def get_viewer(account_id: int, session: Session = Depends(get_session)) -> dict:
    return _encode(accounts.get_profile(session, account_id))


# --- admin ---


@router.get("/admin/countries")
def admin_list_countries(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_countries(session))


@router.post("/admin/countries", status_code=201)
def admin_create_country(request: CountryCreateRequest, session: Session = Depends(get_session)) -> JSONResponse:
    country = countries.create_country(session, request.country_name, request.country_code_iso)
    return _created({"message": "Country created", "country": country})


@router.put("/admin/countries/{country_id}")
def admin_update_country(
    country_id: int,
    request: CountryUpdateRequest,
    session: Session = Depends(get_session),
) -> dict:
    country = countries.update_country(session, country_id, **request.model_dump())
    return _encode({"message": "Country updated", "country": country})


@router.delete("/admin/countries/{country_id}")
def admin_delete_country(country_id: int, session: Session = Depends(get_session)) -> dict:
    countries.delete_country(session, country_id)
    return {"message": "Country deleted"}


@router.get("/admin/suggestions")
def admin_list_suggestions(session: Session = Depends(get_session)) -> List[dict]:
    return countries.list_suggestions(session)


@router.post("/admin/approve-country")
def admin_approve_country(request: ApproveCountryRequest, session: Session = Depends(get_session)) -> dict:
    result = countries.approve_country(
        session,
        suggested_name=request.suggested_name,
        official_name=request.official_name,
        official_code=request.official_code,
    )
    return {
        "message": f"Country approved. {result.users_updated} account(s) updated.",
        "countryId": result.country_id,
        "usersUpdated": result.users_updated,
    }


@router.get("/admin/viewers/{account_id}/charge")
def admin_get_charge(account_id: int, session: Session = Depends(get_session)) -> dict:
    return _encode(accounts.get_charge(session, account_id))


@router.put("/admin/viewers/{account_id}/charge")
def admin_set_charge(account_id: int, request: ChargeRequest, session: Session = Depends(get_session)) -> dict:
    return _encode(accounts.set_charge(session, account_id, request.monthly_charge))


@router.get("/admin/viewers/{account_id}/status")
def admin_get_status(account_id: int, session: Session = Depends(get_session)) -> dict:
    return accounts.get_status(session, account_id)


@router.put("/admin/viewers/{account_id}/status")
def admin_set_status(account_id: int, request: StatusRequest, session: Session = Depends(get_session)) -> dict:
    return accounts.set_status(session, account_id, request.status)


@router.get("/admin/production-houses")
def admin_list_production_houses(session: Session = Depends(get_session)) -> List[dict]:
    return _encode(catalog.list_production_houses(session))


@router.post("/admin/production-houses", status_code=201)
def admin_create_production_house(
    request: ProductionHouseRequest,
    session: Session = Depends(get_session),
) -> JSONResponse:
    house = catalog.create_production_house(session, request.model_dump())
    return _created({"message": "Production house created", "production_house": house})


@router.put("/admin/production-houses/{production_house_id}")
def admin_update_production_house(
    production_house_id: int,
    request: ProductionHouseUpdateRequest,
    session: Session = Depends(get_session),
) -> dict:
    house = catalog.update_production_house(
        session, production_house_id, request.model_dump(exclude_unset=True)
    )
    return _encode({"message": "Production house updated", "production_house": house})


@router.delete("/admin/production-houses/{production_house_id}")
def admin_delete_production_house(production_house_id: int, session: Session = Depends(get_session)) -> dict:
    catalog.delete_production_house(session, production_house_id)
    return {"message": "Production house deleted"}


# --- error handling ---


async def _service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


async def _http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": detail})


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "Invalid request"})


async def _database_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("database error", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Database error"})


def create_app(engine: Engine | None = None) -> FastAPI:
    """Build the API around an explicitly owned engine and session factory.

    When no engine is given one is created from DATABASE_URL at startup. The
    engine is disposed when the application shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _configure_logging()
        if app.state.engine is None:
            app.state.engine = create_db_engine()
            app.state.session_factory = make_session_factory(app.state.engine)
        logger.info("database pool ready: %s", app.state.engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            app.state.engine.dispose()
            logger.info("database pool closed")

    app = FastAPI(title="Web Series Catalog API", version="0.1.0", lifespan=lifespan)
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine) if engine is not None else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
    app.include_router(router)
    return app


app = create_app()
