from datetime import timedelta

from app.utils.token import create_access_token, decode_access_token

from conftest import auth_headers


def test_token_round_trip(user):
    token = create_access_token({"sub": str(user.id)})

    assert decode_access_token(token)["sub"] == str(user.id)


def test_tampered_token_is_rejected():
    assert decode_access_token("not.a.token") is None


def test_expired_token(client, user):
    token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(minutes=-5))

    res = client.get("/cart", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 401
    assert res.headers["www-authenticate"] == "Bearer"
    assert res.json() == {"success": False, "message": "Could not validate credentials"}


def test_legacy_user_id_claim(client, user):
    token = create_access_token({"user_id": user.id})

    assert client.get("/cart", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_token_for_missing_user(client):
    token = create_access_token({"sub": "4040"})

    res = client.get("/cart", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 401
    assert res.json()["message"] == "User not found"


def test_garbage_subject(client):
    token = create_access_token({"sub": "abc"})

    res = client.get("/cart", headers={"Authorization": f"Bearer {token}"})

    assert res.json()["message"] == "Invalid token payload"


def test_disabled_account(session, client, user):
    user.can_login = False
    session.add(user)
    session.commit()

    res = client.get("/cart", headers=auth_headers(user))

    assert res.status_code == 403
    assert res.json()["message"] == "User account is disabled"


def test_health_check(client):
    res = client.get("/health/check")

    assert res.status_code == 200
    assert res.json()["database"] == "ok"
