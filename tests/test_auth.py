"""
Tests for `farmdesk/routers/auth.py` and `farmdesk/core/auth.py`.
"""

from datetime import timedelta

from farmdesk.core.jwt import create_access_token


def test_register_creates_user(client):
    response = client.post(
        "/auth/register",
        json={"username": "newfarmer", "password": "green-fields-7"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["username"] == "newfarmer"
    assert body["role"] == "user"
    assert "password" not in body
    assert "password_hash" not in body


def test_register_duplicate_username(client, make_user):
    make_user(username="taken")

    response = client.post(
        "/auth/register",
        json={"username": "taken", "password": "green-fields-7"},
    )

    assert response.status_code == 409


def test_register_rejects_weak_passwords(client):
    common = client.post("/auth/register", json={"username": "weak1", "password": "password123"})
    numeric = client.post("/auth/register", json={"username": "weak2", "password": "98765432"})

    assert common.status_code == 400
    assert numeric.status_code == 400


def test_login_returns_token_and_sets_cookie(client, make_user):
    make_user(username="grower", password="s3cure-pass")

    response = client.post("/auth/login", data={"username": "grower", "password": "s3cure-pass"})

    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"
    assert response.json()["access_token"]
    assert "token" in response.cookies


def test_login_wrong_password(client, make_user):
    make_user(username="grower", password="s3cure-pass")

    response = client.post("/auth/login", data={"username": "grower", "password": "nope-nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid credentials"


def test_me_with_bearer_token(client, operator, operator_headers):
    response = client.get("/auth/me", headers=operator_headers)

    assert response.status_code == 200
    assert response.json()["id"] == operator.id


def test_me_without_token(client):
    assert client.get("/auth/me").status_code == 401


def test_me_with_garbage_token(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_me_with_expired_token(client, operator):
    token = create_access_token(
        data={"sub": str(operator.id)},
        expires_delta=timedelta(minutes=-5),
    )

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_logout_clears_cookie(client, make_user):
    make_user(username="grower", password="s3cure-pass")
    client.post("/auth/login", data={"username": "grower", "password": "s3cure-pass"})
    assert client.get("/auth/me").status_code == 200

    client.post("/auth/logout")

    assert client.get("/auth/me").status_code == 401
