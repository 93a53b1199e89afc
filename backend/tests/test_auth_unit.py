"""Unit tests for authentication helpers and endpoints."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.api.auth import login_user
from app.api.deps import get_user_from_token
from app.core.security import create_access_token, get_password_hash
from app.models import User
from app.schemas import LoginRequest


@pytest.fixture()
def user(db_session):
    db_user = User(
        username="tester",
        email="tester@example.com",
        hashed_password=get_password_hash("supersecret"),
        display_name="Tester",
    )
    db_session.add(db_user)
    db_session.commit()
    return db_user


def test_login_user_returns_token(db_session, user):
    """Successful login should return a bearer token."""

    credentials = LoginRequest(username="tester", password="supersecret")
    token = login_user(credentials, db_session)

    assert token.token_type == "bearer"
    assert isinstance(token.access_token, str) and token.access_token
    assert token.expires_in == 24 * 60 * 60


def test_login_user_rejects_invalid_credentials(db_session, user):
    """A wrong password must raise an HTTP 401 error."""

    credentials = LoginRequest(username="tester", password="not-the-password")
    with pytest.raises(HTTPException) as exc:
        login_user(credentials, db_session)

    assert exc.value.status_code == 401
    assert "Incorrect username" in exc.value.detail


def test_get_user_from_token(db_session, user):
    """Tokens should resolve to existing users."""

    token = create_access_token({"sub": str(user.id)})
    resolved = get_user_from_token(token, db_session)

    assert resolved.id == user.id
    assert resolved.username == "tester"


def test_get_user_from_token_invalid_payload(db_session):
    """Invalid tokens must result in a 401 error."""

    with pytest.raises(HTTPException) as exc:
        get_user_from_token("invalid-token", db_session)

    assert exc.value.status_code == 401
    assert "Could not validate credentials" in exc.value.detail


def test_token_for_deleted_user_is_rejected(db_session):
    token = create_access_token({"sub": "999"})

    with pytest.raises(HTTPException) as exc:
        get_user_from_token(token, db_session)

    assert exc.value.status_code == 401


def test_register_login_and_me_over_http(client):
    payload = {"username": "newbie", "email": "newbie@example.com", "password": "supersecret"}
    created = client.post("/api/auth/register", json=payload)
    assert created.status_code == 201
    assert created.json()["is_online"] is False

    duplicate = client.post("/api/auth/register", json=payload)
    assert duplicate.status_code == 400

    login = client.post("/api/auth/login", json={"username": "newbie", "password": "supersecret"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "newbie"
