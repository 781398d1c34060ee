# certverify/core/tokens.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from certverify.core.config import settings

ALGO = settings.ALGORITHM


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(*, sub: str) -> str:
    """Access token curto (minutos). Não carrega papel: o papel é lido do banco."""
    payload: Dict[str, Any] = {
        "type": "access",
        "sub": sub,
        "jti": uuid.uuid4().hex,
        "iat": int(_now().timestamp()),
        "exp": int((_now() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGO)


def create_refresh_token(*, sub: str) -> tuple[str, str, datetime]:
    """Refresh longo (dias), assinado com REFRESH_SECRET_KEY. Retorna (token, jti, expira_em)."""
    jti = uuid.uuid4().hex
    expires = _now() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    payload: Dict[str, Any] = {
        "type": "refresh",
        "sub": sub,
        "jti": jti,
        "iat": int(_now().timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, settings.REFRESH_SECRET_KEY, algorithm=ALGO), jti, expires


def _decode(token: str, key: str, kind: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, key, algorithms=[ALGO])
    except JWTError:
        return None
    if not isinstance(payload, dict) or payload.get("type") != kind:
        return None
    if not payload.get("sub") or not payload.get("jti"):
        return None
    return payload


def decode_access(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, settings.SECRET_KEY, "access")


def decode_refresh(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, settings.REFRESH_SECRET_KEY, "refresh")
