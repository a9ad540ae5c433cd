# kosan/auth.py
from __future__ import annotations

import enum
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .middleware.request_context import bind_admin
from .models import Admin

log = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class SessionStatus(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    MISSING = "missing"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class AdminSession:
    admin_id: int
    email: str
    name: str | None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class SessionResult:
    status: SessionStatus
    session: AdminSession | None = None

    @property
    def ok(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED


# -------------------------
# Token helpers
# -------------------------
def issue_token(admin: Admin, *, now: Optional[datetime] = None) -> tuple[str, datetime]:
    now = now or datetime.now(timezone.utc)
    exp = now + timedelta(minutes=int(settings.jwt_exp_minutes))
    payload = {
        "sub": str(admin.id),
        "email": admin.email,
        "name": admin.name,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM), exp


def resolve_session(token: Optional[str]) -> SessionResult:
    """
    Classify a stored session token.

    Missing, expired and unreadable tokens are ordinary outcomes here, not
    exceptions: callers branch on SessionResult.status.
    """
    if not token:
        return SessionResult(SessionStatus.MISSING)
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return SessionResult(SessionStatus.EXPIRED)
    except jwt.InvalidTokenError:
        return SessionResult(SessionStatus.INVALID)

    sub = str(claims.get("sub") or "")
    email = claims.get("email")
    if not sub.isdigit() or not email:
        return SessionResult(SessionStatus.INVALID)

    exp = claims.get("exp")
    return SessionResult(
        SessionStatus.AUTHENTICATED,
        AdminSession(
            admin_id=int(sub),
            email=str(email),
            name=claims.get("name"),
            expires_at=datetime.fromtimestamp(int(exp), tz=timezone.utc) if exp is not None else None,
        ),
    )


def token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.jwt_cookie_name) if settings.jwt_cookie_name else None
    authorization = request.headers.get("Authorization") or ""
    if not token and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    return token or None


def _clear_cookie_header() -> dict[str, str]:
    return {"set-cookie": f"{settings.jwt_cookie_name}=; Max-Age=0; Path=/; HttpOnly"}


def password_matches(password: str) -> bool:
    return hmac.compare_digest(password.encode(), settings.admin_password.encode())


# -------------------------
# Dev header bypass
# -------------------------
def _dev_session(db: Session, email: str) -> AdminSession:
    email = email.strip().lower()
    admin = db.scalar(select(Admin).where(Admin.email == email))
    if admin is None and settings.dev_auto_provision:
        admin = Admin(email=email, name=email.split("@")[0], created_at=datetime.utcnow())
        db.add(admin)
        db.commit()
        db.refresh(admin)
        log.info("dev admin provisioned", extra={"admin_id": admin.id})
    if admin is None:
        raise HTTPException(status_code=401, detail="Unknown admin")
    return AdminSession(admin_id=int(admin.id), email=str(admin.email), name=admin.name)


# -------------------------
# get_admin (route guard)
# -------------------------
def get_admin(request: Request, db: Session = Depends(get_db)) -> AdminSession:
    """
    Session sources, in priority order:
      1) JWT cookie OR Authorization: Bearer <token>
      2) dev header (ONLY if settings.auth_mode == "dev")
    """
    result = resolve_session(token_from_request(request))

    if result.ok:
        admin = db.scalar(select(Admin).where(Admin.id == result.session.admin_id))
        if admin is None:
            raise HTTPException(status_code=401, detail="Unknown admin", headers=_clear_cookie_header())
        bind_admin(result.session.admin_id, result.session.email)
        return result.session

    if result.status is SessionStatus.INVALID:
        raise HTTPException(status_code=401, detail="Invalid session", headers=_clear_cookie_header())
    if result.status is SessionStatus.EXPIRED:
        raise HTTPException(status_code=401, detail="Session expired", headers=_clear_cookie_header())

    if settings.auth_mode == "dev":
        email = request.headers.get(settings.dev_header_admin_email) or ""
        if email.strip():
            session = _dev_session(db, email)
            bind_admin(session.admin_id, session.email)
            return session

    raise HTTPException(status_code=401, detail="Not authenticated")
