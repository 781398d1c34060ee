# certverify/services/revocation.py
from __future__ import annotations

import logging
from typing import Optional

from certverify.core.errors import AlreadyRevokedError, ValidationError
from certverify.core.logging import audit_log
from certverify.crud.certificate import CertificateStore
from certverify.models.certificate import CertificateStatus
from certverify.schemas.certificate import CertificateRecord

logger = logging.getLogger(__name__)


class RevocationManager:
    """Único caminho issued -> revoked. Nunca apaga o registro nem os eventos."""

    def __init__(self, store: CertificateStore):
        self.store = store

    def revoke(self, certificate_id: str, reason: Optional[str]) -> CertificateRecord:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A revocation reason is required", details={"reason": "required"})
        try:
            record = self.store.set_status(certificate_id, CertificateStatus.revoked, reason=reason)
        except AlreadyRevokedError:
            logger.warning("repeat revoke of %s ignored", certificate_id)
            raise
        audit_log.certificate_revoked(record.id, reason)
        return record
