from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from db.models import (
    Contract,
    ReleaseCountry,
    SeriesDubbing,
    SeriesGenre,
    SeriesSubtitle,
    WebSeries,
)
from streaming.catalog import SeriesDraft, create_series_full
from streaming.errors import TransactionFailed


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def test_series_full_creates_all_rows(client, refs, sessions) -> None:
    response = client.post(
        "/api/series/full",
        json={
            "production_house_id": refs["house"],
            "series_name": "Stranger Things",
            "original_language_id": refs["languages"]["English"],
            "release_date": "2016-07-15",
            "contract_date": "2024-01-01",
            "charge_per_episode": "1200.00",
            "genre_ids": [refs["genres"]["Drama"], refs["genres"]["Sci-Fi"]],
            "dubbing_language_ids": [refs["languages"]["Hindi"]],
            "subtitle_language_ids": [refs["languages"]["German"], refs["languages"]["French"]],
            "release_country_ids": [1],
        },
    )

    assert response.status_code == 201
    webseries_id = response.json()["id"]
    with sessions() as session:
        assert session.get(WebSeries, webseries_id).series_name == "Stranger Things"
        assert _count(session, Contract) == 1
        assert _count(session, SeriesGenre) == 2
        assert _count(session, SeriesDubbing) == 1
        assert _count(session, SeriesSubtitle) == 2
        assert _count(session, ReleaseCountry) == 1

    detail = client.get(f"/api/series/{webseries_id}").json()
    assert sorted(detail["genre_ids"]) == sorted([refs["genres"]["Drama"], refs["genres"]["Sci-Fi"]])
    assert detail["ph_name"] == "21 Laps"


def test_series_full_without_episodes_lists_none(client, refs) -> None:
    response = client.post(
        "/api/series/full",
        json={
            "production_house_id": refs["house"],
            "series_name": "Dark",
            "original_language_id": refs["languages"]["German"],
            "genre_ids": [refs["genres"]["Drama"], refs["genres"]["Thriller"]],
            "release_country_ids": [5],
        },
    )
    assert response.status_code == 201

    episodes = client.get(f"/api/series/{response.json()['id']}/episodes")
    assert episodes.status_code == 200
    assert episodes.json() == []


def test_series_full_skips_contract_without_both_terms(client, refs, sessions) -> None:
    response = client.post(
        "/api/series/full",
        json={
            "production_house_id": refs["house"],
            "series_name": "Half Contract",
            "original_language_id": refs["languages"]["English"],
            "contract_date": "2024-01-01",
        },
    )
    assert response.status_code == 201
    with sessions() as session:
        assert _count(session, Contract) == 0


def test_series_full_keeps_zero_charge_contract(client, refs, sessions) -> None:
    response = client.post(
        "/api/series/full",
        json={
            "production_house_id": refs["house"],
            "series_name": "Pro Bono",
            "original_language_id": refs["languages"]["English"],
            "contract_date": "2024-01-01",
            "charge_per_episode": "0.00",
        },
    )

    assert response.status_code == 201
    with sessions() as session:
        contract = session.execute(select(Contract)).scalar_one()
        assert contract.charge_per_episode == Decimal("0")
        assert contract.contract_date == date(2024, 1, 1)


@pytest.mark.parametrize(
    "broken",
    [
        {"genre_ids": [9999]},
        {"dubbing_language_ids": [9999]},
        {"subtitle_language_ids": [9999]},
        {"release_country_ids": [9999]},
        {"genre_ids": [1, 1]},
        {"contract_date": date(2024, 1, 1), "charge_per_episode": Decimal("-5")},
    ],
)
def test_series_full_rolls_back_series_when_dependent_insert_fails(refs, sessions, broken) -> None:
    draft = SeriesDraft(
        production_house_id=refs["house"],
        series_name="Doomed",
        original_language_id=refs["languages"]["English"],
        genre_ids=[refs["genres"]["Comedy"]],
        release_country_ids=[1],
    )
    for name, value in broken.items():
        setattr(draft, name, value)

    with sessions() as session:
        with pytest.raises(TransactionFailed):
            create_series_full(session, draft)

    with sessions() as session:
        assert _count(session, WebSeries) == 0
        assert _count(session, SeriesGenre) == 0
        assert _count(session, ReleaseCountry) == 0
        assert _count(session, Contract) == 0


def test_series_full_failure_reports_generic_error(client, refs) -> None:
    response = client.post(
        "/api/series/full",
        json={
            "production_house_id": refs["house"],
            "series_name": "Doomed",
            "original_language_id": refs["languages"]["English"],
            "genre_ids": [9999],
        },
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create series. Transaction rolled back."}
    assert client.get("/api/series").json() == []


def test_series_full_missing_name_is_validation_error(client, refs) -> None:
    response = client.post(
        "/api/series/full",
        json={"production_house_id": refs["house"], "original_language_id": 1},
    )
    assert response.status_code == 400
    assert "series_name" in response.json()["error"]


def test_delete_series_removes_children(client, make_series, sessions) -> None:
    webseries_id = make_series(genre_ids=[1], release_country_ids=[1])
    client.post(
        "/api/episodes",
        json={"webseries_id": webseries_id, "episode_number": 1, "episode_title": "Pilot"},
    )

    response = client.delete(f"/api/series/{webseries_id}")

    assert response.status_code == 200
    assert client.get(f"/api/series/{webseries_id}").status_code == 404
    assert client.get(f"/api/series/{webseries_id}/episodes").json() == []
    with sessions() as session:
        assert _count(session, SeriesGenre) == 0
        assert _count(session, ReleaseCountry) == 0
