from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from certverify.core.errors import AuthError
from certverify.core.tokens import decode_access
from certverify.crud.certificate import CertificateStore
from certverify.crud.user import user_crud
from certverify.db.session import SessionLocal, get_db
from certverify.models.user import User
from certverify.services.issuance import IssuanceService
from certverify.services.revocation import RevocationManager
from certverify.services.verification import VerificationEngine

__all__ = [
    "get_db",
    "get_store",
    "get_issuance",
    "get_verification",
    "get_revocation",
    "get_bearer_token",
    "get_current_user",
    "get_optional_user",
]


# ----------------------------------------------------------------------
# Store único por processo (os locks por id vivem nele)
# ----------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_store() -> CertificateStore:
    return CertificateStore(SessionLocal)


def get_issuance(
    store: CertificateStore = Depends(get_store),
    db: Session = Depends(get_db),
) -> IssuanceService:
    return IssuanceService(store, lambda rid: user_crud.recipient_name(db, rid))


def get_verification(store: CertificateStore = Depends(get_store)) -> VerificationEngine:
    return VerificationEngine(store)


def get_revocation(store: CertificateStore = Depends(get_store)) -> RevocationManager:
    return RevocationManager(store)


# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def _parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthError("Invalid Authorization header")
    return parts[1]


def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    token = _parse_bearer(authorization)
    if not token:
        raise AuthError("Missing Authorization header")
    return token


def _user_from_token(db: Session, token: str) -> User:
    payload = decode_access(token)
    if not payload:
        raise AuthError("Invalid token")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthError("Invalid token")
    user = user_crud.get(db, user_id)
    if not user or user.status != "active":
        raise AuthError("User not found or inactive")
    return user


def get_current_user(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> User:
    return _user_from_token(db, token)


def get_optional_user(
    authorization: str = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Para rotas públicas: usuário se houver token válido, senão None."""
    try:
        token = _parse_bearer(authorization)
        return _user_from_token(db, token) if token else None
    except AuthError:
        return None
