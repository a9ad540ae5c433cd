# kosan/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import (
    AdminSession,
    SessionStatus,
    get_admin,
    issue_token,
    password_matches,
    resolve_session,
    token_from_request,
)
from ..config import settings
from ..db import get_db
from ..models import Admin
from ..schemas import LoginIn, SessionOut

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_out(s: AdminSession, status: SessionStatus = SessionStatus.AUTHENTICATED) -> SessionOut:
    return SessionOut(status=status.value, admin_id=s.admin_id, email=s.email, name=s.name, expires_at=s.expires_at)


@router.post("/login", response_model=SessionOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if not email or not payload.password:
        raise HTTPException(status_code=400, detail="email and password are required")

    admin = db.scalar(select(Admin).where(Admin.email == email))
    if admin is None or not password_matches(payload.password):
        log.warning("login rejected for %s", email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token, exp = issue_token(admin)
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=bool(settings.jwt_cookie_secure),
        samesite=str(settings.jwt_cookie_samesite),
        max_age=int(settings.jwt_exp_minutes) * 60,
        path="/",
    )
    log.info("admin logged in", extra={"admin_id": admin.id})
    return SessionOut(
        status=SessionStatus.AUTHENTICATED.value,
        admin_id=int(admin.id),
        email=str(admin.email),
        name=admin.name,
        expires_at=exp,
    )


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=SessionOut)
def me(a: AdminSession = Depends(get_admin)):
    return _session_out(a)


@router.get("/session", response_model=SessionOut)
def session_state(request: Request, response: Response):
    """
    Report the state of the stored session without failing the request.
    A corrupt or expired cookie is cleared.
    """
    result = resolve_session(token_from_request(request))
    if result.ok:
        return _session_out(result.session)

    if result.status in (SessionStatus.INVALID, SessionStatus.EXPIRED):
        response.delete_cookie(settings.jwt_cookie_name, path="/")
    return SessionOut(status=result.status.value)
