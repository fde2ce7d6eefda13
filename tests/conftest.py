from __future__ import annotations

import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from api.main import create_app
from db.models import Genre, Language, ProductionHouse
from db.seed import seed_reference_data
from db.session import create_db_engine, init_db, make_session_factory


@pytest.fixture()
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    with make_session_factory(engine)() as session:
        seed_reference_data(session)
        session.add(ProductionHouse(ph_name="21 Laps", country_id=1))
        session.commit()
    yield engine
    engine.dispose()


@pytest.fixture()
def sessions(engine):
    return make_session_factory(engine)


@pytest.fixture()
def client(engine):
    with TestClient(create_app(engine)) as test_client:
        yield test_client


@pytest.fixture()
def refs(sessions) -> dict:
    with sessions() as session:
        return {
            "house": session.execute(select(ProductionHouse.production_house_id)).scalar_one(),
            "languages": dict(session.execute(select(Language.language_name, Language.language_id)).all()),
            "genres": dict(session.execute(select(Genre.genre_name, Genre.genre_id)).all()),
        }


@pytest.fixture()
def make_viewer(client):
    def _make(email: str, **overrides) -> dict:
        body = {
            "role": "VIEWER",
            "email": email,
            "password": "password123",
            "first_name": "Test",
            "last_name": "Viewer",
            "country_id": 1,
        }
        body.update(overrides)
        response = client.post("/api/signup", json=body)
        assert response.status_code == 201, response.text
        return response.json()["user"]

    return _make


@pytest.fixture()
def make_series(client, refs):
    def _make(name: str = "Stranger Things", **extra) -> int:
        body = {
            "production_house_id": refs["house"],
            "series_name": name,
            "original_language_id": refs["languages"]["English"],
            "release_date": "2016-07-15",
        }
        body.update(extra)
        response = client.post("/api/series/full", json=body)
        assert response.status_code == 201, response.text
        return response.json()["id"]

    return _make
