# certverify/services/verification.py
"""
Verification engine.

Every call to verify() appends exactly one verification event, whatever the
outcome. Store failures propagate; they are never reported as not_found.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from prometheus_client import Counter

from certverify.core.config import settings
from certverify.core.hashing import content_hash_for
from certverify.core.logging import audit_log
from certverify.crud.certificate import CertificateStore
from certverify.models.certificate import CertificateStatus
from certverify.models.verification_event import VerificationOutcome
from certverify.schemas.certificate import CertificateRecord, VerificationEventRecord
from certverify.services.qr import parse_qr_payload

logger = logging.getLogger(__name__)

VERIFICATIONS = Counter(
    "certificate_verifications_total",
    "Verification queries by outcome",
    ["outcome"],
)


@dataclass(frozen=True)
class VerificationResult:
    outcome: VerificationOutcome
    certificate: Optional[CertificateRecord] = None
    event: Optional[VerificationEventRecord] = None

    @property
    def is_valid(self) -> bool:
        return self.outcome is VerificationOutcome.success


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def hint_matches(recipient_name: str, hint: Optional[str]) -> bool:
    """Case-insensitive substring match; an empty hint matches anything."""
    if hint is None or not hint.strip():
        return True
    return hint.strip().casefold() in (recipient_name or "").casefold()


def is_expired(valid_until: Optional[dt.date], today: dt.date) -> bool:
    # valid_until é inclusivo: o próprio dia ainda vale
    return valid_until is not None and today > valid_until


class VerificationEngine:
    def __init__(
        self,
        store: CertificateStore,
        *,
        clock: Callable[[], dt.datetime] = _utcnow,
        timezone: Optional[str] = None,
    ):
        self.store = store
        self._clock = clock
        self._tz = ZoneInfo(timezone or settings.TIMEZONE)

    def _evaluate(
        self, cert: Optional[CertificateRecord], hint: Optional[str], today: dt.date
    ) -> VerificationOutcome:
        if cert is None or cert.status == CertificateStatus.draft.value:
            return VerificationOutcome.not_found
        # nome errado é indistinguível de id inexistente
        if not hint_matches(cert.recipient_name, hint):
            return VerificationOutcome.not_found
        if cert.status == CertificateStatus.revoked.value:
            return VerificationOutcome.revoked
        if is_expired(cert.valid_until, today):
            return VerificationOutcome.expired
        if content_hash_for(cert) != cert.content_hash:
            audit_log.security_event("content_hash_mismatch", severity="high", certificate_id=cert.id)
            return VerificationOutcome.not_found
        return VerificationOutcome.success

    def verify(
        self,
        certificate_id: str,
        recipient_name_hint: Optional[str] = None,
        *,
        verifier_identity: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> VerificationResult:
        certificate_id = (certificate_id or "").strip()
        now = now or self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=dt.timezone.utc)
        # now só decide a expiração; o carimbo do evento vem do store
        today = now.astimezone(self._tz).date()

        cert = self.store.get(certificate_id) if certificate_id else None
        outcome = self._evaluate(cert, recipient_name_hint, today)

        event = self.store.record_attempt(
            VerificationEventRecord(
                certificate_id=certificate_id,
                verifier_identity=verifier_identity,
                outcome=outcome.value,
            )
        )
        VERIFICATIONS.labels(outcome=outcome.value).inc()
        audit_log.verification(certificate_id, outcome.value, verifier_identity)

        return VerificationResult(
            outcome=outcome,
            certificate=cert if outcome is VerificationOutcome.success else None,
            event=event,
        )

    def verify_qr(
        self,
        payload: str,
        recipient_name_hint: Optional[str] = None,
        *,
        verifier_identity: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> VerificationResult:
        certificate_id = parse_qr_payload(payload)
        return self.verify(
            certificate_id, recipient_name_hint, verifier_identity=verifier_identity, now=now
        )
