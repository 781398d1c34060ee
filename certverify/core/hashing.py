# certverify/core/hashing.py
from __future__ import annotations

import datetime as dt
import hashlib
import json
from typing import Any, Optional, Union

HASH_PREFIX = "sha256:"


def canonicalize(obj: Any) -> bytes:
    """JSON canônico: chaves ordenadas, sem espaços, UTF-8."""
    s = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return s.encode("utf-8")


def sha256_hex(data: Union[bytes, str]) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def _iso(d: Optional[dt.date]) -> Optional[str]:
    return d.isoformat() if d is not None else None


def content_hash(
    *,
    recipient_id: int,
    recipient_name: str,
    program: str,
    issuing_authority: str,
    issue_date: dt.date,
    valid_until: Optional[dt.date],
) -> str:
    """Digest over the fields that are immutable after issuance."""
    doc = {
        "recipient_id": int(recipient_id),
        "recipient_name": recipient_name,
        "program": program,
        "issuing_authority": issuing_authority,
        "issue_date": _iso(issue_date),
        "valid_until": _iso(valid_until),
    }
    return HASH_PREFIX + sha256_hex(canonicalize(doc))


def content_hash_for(cert: Any) -> str:
    """Recompute the hash from a stored record (ORM object or anything with the same attributes)."""
    return content_hash(
        recipient_id=cert.recipient_id,
        recipient_name=cert.recipient_name,
        program=cert.program,
        issuing_authority=cert.issuing_authority,
        issue_date=cert.issue_date,
        valid_until=cert.valid_until,
    )
