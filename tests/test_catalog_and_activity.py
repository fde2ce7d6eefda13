from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from db.models import Contract
from streaming.catalog import renew_contract


def _add_episode(client, webseries_id: int, number: int, title: str = "Episode") -> int:
    response = client.post(
        "/api/episodes",
        json={"webseries_id": webseries_id, "episode_number": number, "episode_title": title, "duration_min": 48},
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_episodes_are_ordered_and_unique_per_series(client, make_series) -> None:
    webseries_id = make_series()
    _add_episode(client, webseries_id, 2, "Second")
    _add_episode(client, webseries_id, 1, "First")

    duplicate = client.post(
        "/api/episodes",
        json={"webseries_id": webseries_id, "episode_number": 1, "episode_title": "Again"},
    )

    assert duplicate.status_code == 409
    titles = [row["episode_title"] for row in client.get(f"/api/series/{webseries_id}/episodes").json()]
    assert titles == ["First", "Second"]


def test_episode_for_unknown_series_is_404(client) -> None:
    response = client.post(
        "/api/episodes",
        json={"webseries_id": 404, "episode_number": 1, "episode_title": "Lost"},
    )
    assert response.status_code == 404


def test_series_listing_joins_names(client, make_series) -> None:
    make_series("Older", release_date="2010-01-01")
    make_series("Newer", release_date="2020-01-01")

    rows = client.get("/api/series").json()

    assert [row["series_name"] for row in rows] == ["Newer", "Older"]
    assert rows[0]["ph_name"] == "21 Laps"
    assert rows[0]["language_name"] == "English"


def test_browse_aggregates_and_filters(client, make_series, refs) -> None:
    genres = refs["genres"]
    languages = refs["languages"]
    make_series(
        "The Crown",
        release_date="2016-11-04",
        genre_ids=[genres["Drama"]],
        dubbing_language_ids=[languages["Hindi"]],
        subtitle_language_ids=[languages["French"]],
        release_country_ids=[2],
    )
    make_series(
        "Ozark",
        release_date="2017-07-21",
        genre_ids=[genres["Drama"], genres["Thriller"]],
        release_country_ids=[1, 2],
    )

    rows = {row["series_name"]: row for row in client.get("/api/browse").json()}

    assert rows["The Crown"]["genres"] == "Drama"
    assert rows["The Crown"]["dubbing_languages"] == "Hindi"
    assert rows["The Crown"]["subtitle_languages"] == "French"
    assert rows["The Crown"]["release_countries"] == "United Kingdom"
    assert sorted(rows["Ozark"]["genres"].split(", ")) == ["Drama", "Thriller"]
    assert rows["Ozark"]["dubbing_languages"] is None

    us_only = client.get("/api/browse", params={"country_id": 1}).json()
    assert [row["series_name"] for row in us_only] == ["Ozark"]
    thrillers = client.get("/api/browse", params={"genre_id": genres["Thriller"]}).json()
    assert [row["series_name"] for row in thrillers] == ["Ozark"]
    searched = client.get("/api/browse", params={"q": "crown"}).json()
    assert [row["series_name"] for row in searched] == ["The Crown"]


def test_contracts_create_list_and_renew(client, make_series) -> None:
    webseries_id = make_series("Bridgerton", contract_date="2023-01-01", charge_per_episode="1000.00")

    renewed = client.post("/api/contracts/renew", json={"webseries_id": webseries_id})

    assert renewed.status_code == 201
    assert renewed.json()["charge_per_episode"] == 1050.0
    rows = client.get(f"/api/contracts/series/{webseries_id}").json()
    assert len(rows) == 2
    assert rows[0]["charge_per_episode"] == 1050.0
    assert rows[1]["charge_per_episode"] == 1000.0
    assert rows[0]["series_name"] == "Bridgerton"

    manual = client.post(
        "/api/contracts",
        json={"webseries_id": webseries_id, "contract_date": "2022-06-01", "charge_per_episode": "900"},
    )
    assert manual.status_code == 201
    assert len(client.get("/api/contracts").json()) == 3


def test_renew_without_history_needs_old_charge(client, make_series, sessions) -> None:
    webseries_id = make_series("Fresh")

    missing = client.post("/api/contracts/renew", json={"webseries_id": webseries_id})
    assert missing.status_code == 404

    with sessions() as session:
        contract = renew_contract(
            session,
            webseries_id=webseries_id,
            old_charge=Decimal("333.33"),
            today=date(2026, 1, 1),
        )
        assert contract.charge_per_episode == Decimal("350.00")
        stored = session.execute(select(Contract).where(Contract.webseries_id == webseries_id)).scalar_one()
        assert stored.contract_date == date(2026, 1, 1)


def test_view_history_record_list_and_delete(client, make_viewer, make_series) -> None:
    user = make_viewer("watcher@example.com")
    account_id = user["accountId"]
    webseries_id = make_series("Dark")
    first = _add_episode(client, webseries_id, 1, "Secrets")
    second = _add_episode(client, webseries_id, 2, "Lies")

    view_ids = [
        client.post("/api/view", json={"account_id": account_id, "episode_id": episode_id}).json()["id"]
        for episode_id in (first, second)
    ]

    history = client.get(f"/api/history/{account_id}").json()
    assert {row["episode_title"] for row in history} == {"Secrets", "Lies"}
    assert all(row["series_name"] == "Dark" for row in history)

    assert client.delete(f"/api/history/item/{view_ids[0]}").status_code == 200
    assert client.delete(f"/api/history/item/{view_ids[0]}").status_code == 404
    assert [row["view_id"] for row in client.get(f"/api/history/{account_id}").json()] == [view_ids[1]]

    cleared = client.delete(f"/api/history/account/{account_id}")
    assert cleared.json()["deleted"] == 1
    assert client.get(f"/api/history/{account_id}").json() == []


def test_view_for_unknown_episode_is_404(client, make_viewer) -> None:
    user = make_viewer("ghost@example.com")
    response = client.post("/api/view", json={"account_id": user["accountId"], "episode_id": 999})
    assert response.status_code == 404


def test_feedback_rating_bounds_and_listing(client, make_viewer, make_series) -> None:
    user = make_viewer("critic@example.com", first_name="Roger")
    webseries_id = make_series("Narcos")

    too_high = client.post(
        "/api/feedback",
        json={"account_id": user["accountId"], "webseries_id": webseries_id, "rating": 6},
    )
    assert too_high.status_code == 400

    ok = client.post(
        "/api/feedback",
        json={
            "account_id": user["accountId"],
            "webseries_id": webseries_id,
            "rating": 5,
            "feedback_text": "Gripping",
        },
    )
    assert ok.status_code == 201
    listing = client.get(f"/api/series/{webseries_id}/feedback").json()
    assert listing[0]["viewer_first_name"] == "Roger"
    assert listing[0]["feedback_text"] == "Gripping"


def test_analytics(client, make_viewer, make_series, refs) -> None:
    user = make_viewer("fan@example.com")
    popular = make_series("Popular", genre_ids=[refs["genres"]["Comedy"]])
    quiet = make_series("Quiet", genre_ids=[refs["genres"]["Comedy"], refs["genres"]["Drama"]])
    popular_episode = _add_episode(client, popular, 1)
    quiet_episode = _add_episode(client, quiet, 1)
    for episode_id in (popular_episode, popular_episode, quiet_episode):
        client.post("/api/view", json={"account_id": user["accountId"], "episode_id": episode_id})

    top = client.get("/api/analytics/top-series").json()
    assert top[0] == {"series_name": "Popular", "total_views": 2}
    distribution = client.get("/api/analytics/genre-distribution").json()
    assert distribution[0] == {"genre_name": "Comedy", "series_count": 2}


def test_production_house_admin(client, make_series) -> None:
    created = client.post("/api/admin/production-houses", json={"ph_name": "Dark Ways", "country_id": 5})
    assert created.status_code == 201
    house_id = created.json()["production_house"]["production_house_id"]

    updated = client.put(f"/api/admin/production-houses/{house_id}", json={"city": "Berlin"})
    assert updated.json()["production_house"]["city"] == "Berlin"
    assert "Dark Ways" in [row["ph_name"] for row in client.get("/api/production-houses").json()]

    assert client.delete(f"/api/admin/production-houses/{house_id}").status_code == 200
    assert client.delete(f"/api/admin/production-houses/{house_id}").status_code == 404


def test_reference_data_and_health(client) -> None:
    assert client.get("/api/health").json()["database"] == "ok"
    assert "Drama" in [row["genre_name"] for row in client.get("/api/genres").json()]
    assert "English" in [row["language_name"] for row in client.get("/api/languages").json()]
