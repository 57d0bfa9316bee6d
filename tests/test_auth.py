from datetime import datetime, timedelta, timezone

import jwt

from app.auth import create_access_token, decode_access_token, JWT_ALGORITHM


def test_login_returns_token(client, make_volunteer):
    volunteer = make_volunteer("ali@example.com", password="secret123")

    resp = client.post('/api/login', json={"email": " Ali@Example.com ", "password": "secret123"})

    assert resp.status_code == 200
    assert resp.json["userId"] == volunteer.id
    assert resp.json["role"] == "user"
    payload = decode_access_token(resp.json["token"])
    assert payload["userId"] == volunteer.id


def test_login_wrong_password(client, make_volunteer):
    make_volunteer("ali@example.com", password="secret123")

    resp = client.post('/api/login', json={"email": "ali@example.com", "password": "nope"})

    assert resp.status_code == 400
    assert resp.json == {"success": False, "message": "Invalid login credentials"}


def test_login_unknown_user(client):
    resp = client.post('/api/login', json={"email": "ghost@example.com", "password": "x"})
    assert resp.status_code == 400
    assert resp.json["message"] == "Invalid login credentials"


def test_login_requires_both_fields(client):
    resp = client.post('/api/login', json={"email": "ali@example.com"})
    assert resp.status_code == 400
    assert resp.json["message"] == "Email and password are required"


def test_token_for_admin_grants_admin_routes(client, admin_user):
    token = create_access_token(admin_user)
    resp = client.get('/api/lectures/requests', headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200


def test_expired_token_is_rejected(client, app, admin_user):
    expired = jwt.encode(
        {
            "userId": admin_user.id,
            "role": "admin",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        app.config["JWT_SECRET"],
        algorithm=JWT_ALGORITHM,
    )

    resp = client.get('/api/lectures/requests', headers={"Authorization": f"Bearer {expired}"})

    assert resp.status_code == 401
    assert resp.json["message"] == "Token expired, please log in again"


def test_token_signed_with_other_secret_is_rejected(client, admin_user):
    forged = jwt.encode({"userId": admin_user.id, "role": "admin"}, "wrong-secret", algorithm=JWT_ALGORITHM)

    resp = client.get('/api/lectures/requests', headers={"Authorization": f"Bearer {forged}"})

    assert resp.status_code == 401
    assert resp.json["message"] == "Invalid token"


def test_missing_bearer_prefix(client, admin_user):
    token = create_access_token(admin_user)
    resp = client.get('/api/lectures/requests', headers={"Authorization": token})
    assert resp.status_code == 401
    assert resp.json["message"] == "Access denied, please log in"
