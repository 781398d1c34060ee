# certverify/services/qr.py
"""
QR payload, versão 1:

    MTNCERT:1:<certificate-id>:<tag>

tag = primeiros 16 hex de HMAC-SHA256(SECRET_KEY, "1:<certificate-id>").
Também aceitos: o id puro (códigos antigos) e uma URL de verificação com ?id=.
"""
import base64
import hashlib
import hmac
import io
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

import qrcode  # type: ignore

from certverify.core.config import settings
from certverify.core.errors import ValidationError

SCHEME = "MTNCERT"
TAG_LEN = 16


def _id_pattern() -> re.Pattern:
    return re.compile(rf"^{re.escape(settings.CERT_ID_PREFIX)}\d{{4,}}$")


def _tag(version: int, certificate_id: str) -> str:
    msg = f"{version}:{certificate_id}".encode()
    return hmac.new(settings.SECRET_KEY.encode(), msg, hashlib.sha256).hexdigest()[:TAG_LEN]


def build_qr_payload(certificate_id: str) -> str:
    version = settings.QR_PAYLOAD_VERSION
    return f"{SCHEME}:{version}:{certificate_id}:{_tag(version, certificate_id)}"


def _check_id(certificate_id: str) -> str:
    if not _id_pattern().match(certificate_id):
        raise ValidationError("Invalid QR code format")
    return certificate_id


def parse_qr_payload(payload: Optional[str]) -> str:
    """Return the certificate id carried by a scanned payload."""
    text = (payload or "").strip()
    if not text:
        raise ValidationError("Empty QR payload")

    if text.upper().startswith(SCHEME + ":"):
        parts = text.split(":")
        if len(parts) != 4:
            raise ValidationError("Invalid QR code format")
        _, version, certificate_id, tag = parts
        if version != str(settings.QR_PAYLOAD_VERSION):
            raise ValidationError("Unsupported QR payload version", details={"version": version})
        _check_id(certificate_id)
        if not hmac.compare_digest(_tag(int(version), certificate_id), tag.lower()):
            raise ValidationError("QR payload signature mismatch")
        return certificate_id

    if text.lower().startswith(("http://", "https://")):
        ids = parse_qs(urlparse(text).query).get("id") or []
        if len(ids) != 1:
            raise ValidationError("Invalid QR code format")
        return _check_id(ids[0].strip())

    return _check_id(text)


def verify_url(certificate_id: str, base: Optional[str] = None) -> str:
    base = (base or settings.PUBLIC_BASE_URL or "").rstrip("/")
    return f"{base}/verify?id={certificate_id}"


def qr_png(text: str) -> bytes:
    img = qrcode.make(text)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def qr_data_uri(text: str) -> str:
    b64 = base64.b64encode(qr_png(text)).decode("ascii")
    return f"data:image/png;base64,{b64}"
