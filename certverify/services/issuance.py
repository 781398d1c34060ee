# certverify/services/issuance.py
from __future__ import annotations

import datetime as dt
import logging
import secrets
from typing import Callable, Optional

from certverify.core.config import settings
from certverify.core.errors import DuplicateIdError, IdExhaustionError, ValidationError
from certverify.core.hashing import content_hash
from certverify.core.logging import audit_log
from certverify.crud.certificate import CertificateStore
from certverify.models.certificate import CertificateStatus
from certverify.schemas.certificate import CertificateRecord

logger = logging.getLogger(__name__)

RecipientLookup = Callable[[int], Optional[str]]


def new_certificate_id(prefix: Optional[str] = None, digits: Optional[int] = None) -> str:
    """MTN-CERT-nnnn: sem zero à esquerda, como no formato externo."""
    prefix = settings.CERT_ID_PREFIX if prefix is None else prefix
    digits = settings.CERT_ID_DIGITS if digits is None else digits
    low = 10 ** (digits - 1)
    return f"{prefix}{low + secrets.randbelow(9 * low)}"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class IssuanceService:
    def __init__(
        self,
        store: CertificateStore,
        recipient_lookup: RecipientLookup,
        *,
        id_factory: Callable[[], str] = new_certificate_id,
        max_attempts: Optional[int] = None,
        draft_by_default: Optional[bool] = None,
    ):
        self.store = store
        self._recipient_lookup = recipient_lookup
        self._id_factory = id_factory
        self._max_attempts = max_attempts or settings.ISSUE_MAX_ID_ATTEMPTS
        self._draft_by_default = settings.ISSUE_AS_DRAFT_DEFAULT if draft_by_default is None else draft_by_default

    def _validate(self, recipient_id, program, issue_date, valid_until) -> str:
        errors = {}
        if recipient_id is None or (isinstance(recipient_id, str) and not recipient_id.strip()):
            errors["recipientId"] = "required"
        if not _clean(program):
            errors["program"] = "required"
        if issue_date is None:
            errors["issueDate"] = "required"
        elif not isinstance(issue_date, dt.date):
            errors["issueDate"] = "must be a date"
        if valid_until is not None and not isinstance(valid_until, dt.date):
            errors["validUntil"] = "must be a date"
        if errors:
            raise ValidationError("Invalid issuance request", details=errors)

        if isinstance(issue_date, dt.datetime):
            issue_date = issue_date.date()
        if isinstance(valid_until, dt.datetime):
            valid_until = valid_until.date()
        if valid_until is not None and valid_until < issue_date:
            raise ValidationError("validUntil precedes issueDate",
                                  details={"validUntil": "must not precede issueDate"})

        try:
            rid = int(recipient_id)
        except (TypeError, ValueError):
            raise ValidationError("Invalid recipient", details={"recipientId": "must be an integer"})
        name = self._recipient_lookup(rid)
        if not name:
            raise ValidationError("Unknown recipient", details={"recipientId": "unknown recipient"})
        return name

    def issue(
        self,
        recipient_id: Optional[int],
        program: Optional[str],
        issue_date: Optional[dt.date],
        valid_until: Optional[dt.date] = None,
        *,
        issuing_authority: Optional[str] = None,
        draft: Optional[bool] = None,
    ) -> CertificateRecord:
        recipient_name = self._validate(recipient_id, program, issue_date, valid_until)
        if isinstance(issue_date, dt.datetime):
            issue_date = issue_date.date()
        if isinstance(valid_until, dt.datetime):
            valid_until = valid_until.date()

        program = _clean(program)
        authority = _clean(issuing_authority) or settings.DEFAULT_ISSUING_AUTHORITY
        as_draft = self._draft_by_default if draft is None else bool(draft)
        status = CertificateStatus.draft if as_draft else CertificateStatus.issued

        digest = content_hash(
            recipient_id=int(recipient_id),
            recipient_name=recipient_name,
            program=program,
            issuing_authority=authority,
            issue_date=issue_date,
            valid_until=valid_until,
        )
        now = dt.datetime.now(dt.timezone.utc)

        for attempt in range(1, self._max_attempts + 1):
            record = CertificateRecord(
                id=self._id_factory(),
                recipient_id=int(recipient_id),
                recipient_name=recipient_name,
                program=program,
                issuing_authority=authority,
                issue_date=issue_date,
                valid_until=valid_until,
                status=status.value,
                content_hash=digest,
                published_at=None if as_draft else now,
            )
            try:
                stored = self.store.put(record)
            except DuplicateIdError:
                logger.debug("id collision on %s (attempt %d/%d)", record.id, attempt, self._max_attempts)
                continue
            audit_log.certificate_issued(stored.id, stored.recipient_id, stored.status)
            return stored

        logger.error("no free certificate id after %d attempts", self._max_attempts)
        raise IdExhaustionError(f"Could not allocate a certificate id after {self._max_attempts} attempts")

    def publish(self, certificate_id: str) -> CertificateRecord:
        """draft -> issued."""
        record = self.store.set_status(certificate_id, CertificateStatus.issued)
        audit_log.certificate_issued(record.id, record.recipient_id, record.status)
        return record
