# certverify/api/v1/auth.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from certverify.api.deps import get_current_user, get_db
from certverify.core.errors import AuthError
from certverify.core.logging import audit_log
from certverify.core.security_password import verify_and_maybe_upgrade
from certverify.core.tokens import create_access_token, create_refresh_token, decode_refresh
from certverify.crud.user import user_crud
from certverify.models.tokens import RefreshToken
from certverify.models.user import User
from certverify.schemas.token import LoginIn, RefreshIn, Token
from certverify.schemas.user import UserOut

logger = logging.getLogger(__name__)

router = APIRouter()


def _aware(d: datetime) -> datetime:
    # SQLite devolve datetime sem tz
    return d if d.tzinfo else d.replace(tzinfo=timezone.utc)


def issue_tokens_for(db: Session, user: User) -> Token:
    sub = str(user.id)
    refresh, jti, expires = create_refresh_token(sub=sub)
    db.add(RefreshToken(jti=jti, user_id=user.id, expires_at=expires))
    db.commit()
    return Token(
        access_token=create_access_token(sub=sub),
        refresh_token=refresh,
        user=UserOut.model_validate(user),
    )


@router.post("/login", response_model=Token)
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = user_crud.get_by_email(db, body.email)
    ok, new_hash = verify_and_maybe_upgrade(body.password, user.hashed_password if user else None)
    if not user or not ok or user.status != "active":
        audit_log.security_event("login_failed", severity="low", email=body.email.strip().lower())
        raise AuthError("Invalid credentials")
    if new_hash:
        user.hashed_password = new_hash
        db.add(user)
    return issue_tokens_for(db, user)


def _live_refresh(db: Session, token: str) -> RefreshToken:
    payload = decode_refresh(token)
    if not payload:
        raise AuthError("Invalid refresh token")
    row = db.execute(select(RefreshToken).where(RefreshToken.jti == payload["jti"])).scalar_one_or_none()
    now = datetime.now(timezone.utc)
    if not row or row.revoked_at is not None or _aware(row.expires_at) <= now:
        raise AuthError("Refresh token expired or revoked")
    if str(row.user_id) != str(payload["sub"]):
        raise AuthError("Invalid refresh token")
    return row


@router.post("/refresh", response_model=Token)
def refresh(body: RefreshIn, db: Session = Depends(get_db)):
    row = _live_refresh(db, body.refresh_token)
    user = user_crud.get(db, row.user_id)
    if not user or user.status != "active":
        raise AuthError("User not found or inactive")
    # rotação: o refresh usado morre aqui
    row.revoked_at = datetime.now(timezone.utc)
    db.add(row)
    return issue_tokens_for(db, user)


@router.post("/logout", status_code=204)
def logout(body: RefreshIn, db: Session = Depends(get_db)):
    row = _live_refresh(db, body.refresh_token)
    row.revoked_at = datetime.now(timezone.utc)
    db.add(row)
    db.commit()


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return UserOut.model_validate(user)
