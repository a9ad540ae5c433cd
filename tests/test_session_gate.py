# tests/test_session_gate.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from kosan.auth import SessionStatus, issue_token, resolve_session
from kosan.config import Settings, settings
from kosan.db import SessionLocal
from kosan.models import Admin


def _mk_admin(email: str = "pengelola@kosan.local") -> Admin:
    db = SessionLocal()
    try:
        a = Admin(email=email, name="Pengelola")
        db.add(a)
        db.commit()
        db.refresh(a)
        db.expunge(a)
        return a
    finally:
        db.close()


def test_session_states():
    assert resolve_session(None).status is SessionStatus.MISSING
    assert resolve_session("").status is SessionStatus.MISSING
    assert resolve_session("not-a-jwt").status is SessionStatus.INVALID

    forged = jwt.encode({"sub": "1", "email": "x@y"}, "some-other-secret", algorithm="HS256")
    assert resolve_session(forged).status is SessionStatus.INVALID

    no_email = jwt.encode({"sub": "1"}, settings.jwt_secret, algorithm="HS256")
    assert resolve_session(no_email).status is SessionStatus.INVALID

    past = datetime.now(timezone.utc) - timedelta(days=2)
    expired = jwt.encode(
        {"sub": "1", "email": "x@y", "exp": int((past + timedelta(minutes=5)).timestamp())},
        settings.jwt_secret,
        algorithm="HS256",
    )
    assert resolve_session(expired).status is SessionStatus.EXPIRED


def test_issued_token_round_trips_identity():
    admin = _mk_admin()
    token, exp = issue_token(admin)
    result = resolve_session(token)
    assert result.ok
    assert result.session.admin_id == admin.id
    assert result.session.email == admin.email
    assert result.session.expires_at == datetime.fromtimestamp(int(exp.timestamp()), tz=timezone.utc)


def test_protected_routes_require_a_session(client):
    assert client.get("/api/rooms").status_code == 401

    r = client.get("/api/rooms", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert f"{settings.jwt_cookie_name}=;" in r.headers.get("set-cookie", "")

    state = client.get("/api/auth/session", headers={"Authorization": "Bearer garbage"})
    assert state.status_code == 200
    assert state.json()["status"] == "invalid"


def test_login_sets_cookie_and_me_reads_it(client):
    admin = _mk_admin()

    bad = client.post("/api/auth/login", json={"email": admin.email, "password": "wrong"})
    assert bad.status_code == 401

    unknown = client.post("/api/auth/login", json={"email": "nobody@kosan.local", "password": settings.admin_password})
    assert unknown.status_code == 401

    r = client.post("/api/auth/login", json={"email": admin.email.upper(), "password": settings.admin_password})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "authenticated"
    assert settings.jwt_cookie_name in r.cookies

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["admin_id"] == admin.id

    assert client.get("/api/auth/session").json()["status"] == "authenticated"

    client.post("/api/auth/logout")
    client.cookies.clear()
    assert client.get("/api/auth/session").json()["status"] == "missing"


def test_dev_header_provisions_admin(client):
    r = client.get("/api/auth/me", headers={"X-Admin-Email": "Baru@Kosan.local"})
    assert r.status_code == 200
    assert r.json()["email"] == "baru@kosan.local"


def test_prod_settings_refuse_dev_defaults():
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="dev")
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="jwt")
    ok = Settings(app_env="prod", auth_mode="jwt", jwt_secret="s3cret", cors_allow_origins=["https://kos.example"])
    assert ok.auth_mode == "jwt"
