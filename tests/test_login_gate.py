from __future__ import annotations

import pytest
from sqlalchemy import text

from db.models import Producer, UserCredential
from db.seed import seed_users
from streaming.errors import InconsistentCredential
from streaming.identity import Admin, Employee, Viewer, identity_of
from streaming.passwords import hash_password


def _login(client, email: str, password: str = "password123"):
    return client.post("/api/login", json={"email": email, "password": password})


def test_active_viewer_logs_in(client, make_viewer) -> None:
    user = make_viewer("active@example.com")

    response = _login(client, "active@example.com")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["user"]["role"] == "VIEWER"
    assert body["user"]["accountId"] == user["accountId"]
    assert body["user"]["producerId"] is None
    assert body["user"]["accountStatus"] == "ACTIVE"


def test_locked_viewer_is_rejected_with_status(client, make_viewer) -> None:
    user = make_viewer("locked@example.com")
    client.put(f"/api/admin/viewers/{user['accountId']}/status", json={"status": "LOCKED"})

    response = _login(client, "locked@example.com")

    assert response.status_code == 403
    assert response.json()["status"] == "LOCKED"
    assert "error" in response.json()


def test_locked_viewer_with_wrong_password_gets_401(client, make_viewer) -> None:
    user = make_viewer("locked2@example.com")
    client.put(f"/api/admin/viewers/{user['accountId']}/status", json={"status": "LOCKED"})

    response = _login(client, "locked2@example.com", "not-the-password")

    assert response.status_code == 401


def test_flagged_viewer_logs_in_with_flag(client, make_viewer) -> None:
    user = make_viewer("flagged@example.com")
    client.put(f"/api/admin/viewers/{user['accountId']}/status", json={"status": "FLAGGED"})

    response = _login(client, "flagged@example.com")

    assert response.status_code == 200
    assert response.json()["user"]["accountStatus"] == "FLAGGED"


@pytest.mark.parametrize(
    "email,password",
    [("nobody@example.com", "password123"), ("active@example.com", "wrong")],
)
def test_bad_credentials_are_401(client, make_viewer, email, password) -> None:
    make_viewer("active@example.com")

    response = _login(client, email, password)

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_missing_credentials_are_400(client) -> None:
    response = client.post("/api/login", json={"email": "someone@example.com"})

    assert response.status_code == 400
    assert response.json()["error"] == "Email and password are required"


def test_admin_and_employee_logins_have_no_status(client, sessions) -> None:
    with sessions() as session:
        seed_users(session, password="password123")

    admin = _login(client, "admin@webseries.local").json()["user"]
    employee = _login(client, "producer@webseries.local").json()["user"]

    assert admin["role"] == "ADMIN"
    assert admin["accountId"] is None and admin["producerId"] is None
    assert admin["accountStatus"] is None
    assert employee["role"] == "EMPLOYEE"
    assert employee["producerId"] is not None
    assert employee["accountStatus"] is None


def test_employee_signup_links_producer(client, sessions) -> None:
    response = client.post(
        "/api/signup",
        json={
            "role": "EMPLOYEE",
            "email": "shawn@21laps.com",
            "password": "password123",
            "first_name": "Shawn",
            "last_name": "Levy",
            "country_id": 1,
        },
    )

    assert response.status_code == 201
    producer_id = response.json()["user"]["producerId"]
    with sessions() as session:
        assert session.get(Producer, producer_id).producer_last_name == "Levy"


def test_identity_variants() -> None:
    assert identity_of(UserCredential(user_id=1, role="ADMIN")) == Admin(user_id=1)
    assert identity_of(UserCredential(user_id=2, role="EMPLOYEE", producer_id=7)) == Employee(
        user_id=2, producer_id=7
    )
    assert identity_of(UserCredential(user_id=3, role="VIEWER", account_id=9)) == Viewer(
        user_id=3, account_id=9
    )


@pytest.mark.parametrize(
    "credential",
    [
        UserCredential(user_id=4, role="VIEWER"),
        UserCredential(user_id=5, role="ADMIN", account_id=1),
        UserCredential(user_id=6, role="EMPLOYEE", producer_id=1, account_id=1),
    ],
)
def test_identity_rejects_inconsistent_credentials(credential) -> None:
    with pytest.raises(InconsistentCredential):
        identity_of(credential)


def test_login_with_inconsistent_credential_returns_json_error(client, sessions) -> None:
    with sessions() as session:
        session.execute(text("PRAGMA ignore_check_constraints = ON"))
        session.add(
            UserCredential(
                email="orphan@example.com",
                password_hash=hash_password("password123"),
                role="VIEWER",
            )
        )
        session.commit()
        session.execute(text("PRAGMA ignore_check_constraints = OFF"))

    response = _login(client, "orphan@example.com")

    assert response.status_code == 500
    assert response.json()["error"].startswith("Inconsistent credential")
