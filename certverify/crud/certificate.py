# certverify/crud/certificate.py
"""
Certificate record store.

The only component that mutates certificates and verification events. Every
write runs in its own transaction; writes touching one certificate id are
serialized through a per-id lock, reads never take it.
"""
from __future__ import annotations

import datetime as dt
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import sqlalchemy as sa
from sqlalchemy import select, func
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from certverify.core.errors import (
    AlreadyRevokedError,
    DuplicateIdError,
    InvalidTransitionError,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from certverify.models.certificate import ALLOWED_TRANSITIONS, Certificate, CertificateStatus
from certverify.models.verification_event import VerificationEvent
from certverify.schemas.certificate import CertificateRecord, VerificationEventRecord

logger = logging.getLogger(__name__)


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class KeyedLocks:
    """Um lock por chave; a entrada some quando ninguém mais a usa."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class EventStream:
    """
    Lazy, restartable view over a certificate's verification events.

    Each iteration pages by seq up to the high-water mark taken when it
    starts, so it always terminates even while appends continue.
    """

    def __init__(self, store: "CertificateStore", certificate_id: str, page_size: int):
        self._store = store
        self.certificate_id = certificate_id
        self._page_size = page_size

    def __iter__(self) -> Iterator[VerificationEventRecord]:
        high = self._store._max_event_seq(self.certificate_id)
        after = 0
        while after < high:
            page = self._store._event_page(self.certificate_id, after, high, self._page_size)
            if not page:
                return
            yield from page
            after = page[-1].seq

    def __repr__(self) -> str:
        return f"EventStream({self.certificate_id!r})"


class CertificateStore:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        page_size: int = 200,
        clock: Callable[[], dt.datetime] = _now,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._locks = KeyedLocks()
        self._page_size = page_size

    # ------------------------------------------------------------------ infra

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        db.expire_on_commit = False
        try:
            yield db
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        except DBAPIError as exc:
            db.rollback()
            logger.error("store unavailable: %s", exc)
            raise StoreUnavailable("Certificate store unavailable", details=str(getattr(exc, "orig", exc))) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreUnavailable("Certificate store error", details=str(exc)) from exc
        except BaseException:
            db.rollback()
            raise
        finally:
            db.close()

    def locked(self, certificate_id: str):
        return self._locks.hold(certificate_id)

    @staticmethod
    def _live(db: Session, certificate_id: str) -> Optional[Certificate]:
        row = db.get(Certificate, certificate_id)
        if row is None or row.deleted_at is not None:
            return None
        return row

    # ------------------------------------------------------------ certificates

    def put(self, certificate: CertificateRecord) -> CertificateRecord:
        """Insert a new record. Ids are never reused, tombstoned ones included."""
        with self._locks.hold(certificate.id):
            try:
                with self._session() as db:
                    if db.get(Certificate, certificate.id) is not None:
                        raise DuplicateIdError(f"Certificate id {certificate.id} already exists")
                    data = certificate.model_dump(exclude={"created_at"}, exclude_none=False)
                    row = Certificate(**data)
                    db.add(row)
                    db.flush()
                    db.refresh(row)
                    stored = CertificateRecord.model_validate(row)
            except IntegrityError as exc:
                # outro processo pode ter inserido o mesmo id
                if self.exists(certificate.id):
                    raise DuplicateIdError(f"Certificate id {certificate.id} already exists") from exc
                raise ValidationError("Certificate violates a store constraint",
                                      details=str(getattr(exc, "orig", exc))) from exc
        return stored

    def get(self, certificate_id: str) -> Optional[CertificateRecord]:
        """The record, or None when absent; absence is a normal result here."""
        with self._session() as db:
            row = self._live(db, certificate_id)
            return CertificateRecord.model_validate(row) if row is not None else None

    def exists(self, certificate_id: str) -> bool:
        """True if the id was ever stored, deleted or not."""
        with self._session() as db:
            return db.get(Certificate, certificate_id) is not None

    def set_status(
        self,
        certificate_id: str,
        new_status: CertificateStatus | str,
        *,
        reason: Optional[str] = None,
        now: Optional[dt.datetime] = None,
    ) -> CertificateRecord:
        new_status = CertificateStatus(new_status)
        now = now or _now()
        with self._locks.hold(certificate_id):
            with self._session() as db:
                row = self._live(db, certificate_id)
                if row is None:
                    raise NotFound(f"Certificate {certificate_id} not found")
                current = CertificateStatus(row.status)
                if current is CertificateStatus.revoked and new_status is CertificateStatus.revoked:
                    raise AlreadyRevokedError(f"Certificate {certificate_id} is already revoked")
                if new_status not in ALLOWED_TRANSITIONS[current]:
                    raise InvalidTransitionError(
                        f"Cannot move certificate {certificate_id} from {current.value} to {new_status.value}",
                        details={"from": current.value, "to": new_status.value},
                    )

                values: dict = {"status": new_status.value}
                if new_status is CertificateStatus.issued:
                    values["published_at"] = now
                elif new_status is CertificateStatus.revoked:
                    values["revoked_at"] = now
                    values["revocation_reason"] = reason

                # compare-and-set sobre o status anterior
                res = db.execute(
                    sa.update(Certificate)
                    .where(Certificate.id == certificate_id, Certificate.status == current.value)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if res.rowcount != 1:
                    db.rollback()
                    latest = db.get(Certificate, certificate_id, populate_existing=True)
                    if latest is not None and latest.status == CertificateStatus.revoked.value:
                        raise AlreadyRevokedError(f"Certificate {certificate_id} is already revoked")
                    raise InvalidTransitionError(f"Certificate {certificate_id} changed concurrently")
                row = db.get(Certificate, certificate_id, populate_existing=True)
                return CertificateRecord.model_validate(row)

    def delete_draft(self, certificate_id: str, *, now: Optional[dt.datetime] = None) -> CertificateRecord:
        """Tombstone a draft. Issued or revoked records are never deleted."""
        with self._locks.hold(certificate_id):
            with self._session() as db:
                row = self._live(db, certificate_id)
                if row is None:
                    raise NotFound(f"Certificate {certificate_id} not found")
                if row.status != CertificateStatus.draft.value:
                    raise InvalidTransitionError(
                        f"Only drafts can be deleted; {certificate_id} is {row.status}",
                        details={"from": row.status, "to": "deleted"},
                    )
                row.deleted_at = now or _now()
                db.flush()
                return CertificateRecord.model_validate(row)

    def list(
        self,
        *,
        status: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        recipient_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[List[CertificateRecord], int]:
        conds = [Certificate.deleted_at.is_(None)]
        if status:
            conds.append(Certificate.status == status)
        if statuses is not None:
            conds.append(Certificate.status.in_(list(statuses)))
        if recipient_id is not None:
            conds.append(Certificate.recipient_id == recipient_id)
        with self._session() as db:
            total = db.execute(select(func.count()).select_from(Certificate).where(*conds)).scalar_one()
            rows = db.execute(
                select(Certificate).where(*conds)
                .order_by(Certificate.issue_date.desc(), Certificate.id)
                .offset(offset).limit(limit)
            ).scalars().all()
            return [CertificateRecord.model_validate(r) for r in rows], total

    # ------------------------------------------------------------------ events

    def append_event(self, event: VerificationEventRecord) -> VerificationEventRecord:
        """Append to the log of an existing certificate; NotFound otherwise.

        The store stamps the event itself; any timestamp on `event` is ignored.
        """
        with self._locks.hold(event.certificate_id):
            with self._session() as db:
                if self._live(db, event.certificate_id) is None:
                    raise NotFound(f"Certificate {event.certificate_id} not found")
                return self._insert_event(db, event)

    def record_attempt(self, event: VerificationEventRecord) -> VerificationEventRecord:
        """Append a verification attempt; the id does not need to exist."""
        with self._locks.hold(event.certificate_id):
            with self._session() as db:
                return self._insert_event(db, event)

    def _insert_event(self, db: Session, event: VerificationEventRecord) -> VerificationEventRecord:
        # carimbo tomado sob o lock do id: a ordem de seq é a ordem de timestamp
        row = VerificationEvent(
            certificate_id=event.certificate_id,
            timestamp=self._clock(),
            verifier_identity=event.verifier_identity,
            outcome=event.outcome,
        )
        db.add(row)
        db.flush()
        return VerificationEventRecord.model_validate(row)

    def list_events_for(self, certificate_id: str) -> EventStream:
        return EventStream(self, certificate_id, self._page_size)

    def count_events(self, certificate_id: str) -> int:
        with self._session() as db:
            return db.execute(
                select(func.count(VerificationEvent.seq))
                .where(VerificationEvent.certificate_id == certificate_id)
            ).scalar_one()

    def count_events_for(self, certificate_ids: List[str]) -> Dict[str, int]:
        if not certificate_ids:
            return {}
        with self._session() as db:
            rows = db.execute(
                select(VerificationEvent.certificate_id, func.count(VerificationEvent.seq))
                .where(VerificationEvent.certificate_id.in_(certificate_ids))
                .group_by(VerificationEvent.certificate_id)
            ).all()
        counts = {cid: 0 for cid in certificate_ids}
        counts.update({cid: n for cid, n in rows})
        return counts

    def _max_event_seq(self, certificate_id: str) -> int:
        with self._session() as db:
            return db.execute(
                select(func.max(VerificationEvent.seq))
                .where(VerificationEvent.certificate_id == certificate_id)
            ).scalar() or 0

    def _event_page(self, certificate_id: str, after: int, upto: int, size: int) -> List[VerificationEventRecord]:
        with self._session() as db:
            rows = db.execute(
                select(VerificationEvent)
                .where(
                    VerificationEvent.certificate_id == certificate_id,
                    VerificationEvent.seq > after,
                    VerificationEvent.seq <= upto,
                )
                .order_by(VerificationEvent.seq)
                .limit(size)
            ).scalars().all()
            return [VerificationEventRecord.model_validate(r) for r in rows]

    # ----------------------------------------------------------------- reports

    def stats(self) -> dict:
        with self._session() as db:
            by_status = dict(
                db.execute(
                    select(Certificate.status, func.count())
                    .where(Certificate.deleted_at.is_(None))
                    .group_by(Certificate.status)
                ).all()
            )
            by_outcome = dict(
                db.execute(
                    select(VerificationEvent.outcome, func.count(VerificationEvent.seq))
                    .group_by(VerificationEvent.outcome)
                ).all()
            )
        return {
            "certificates": {s.value: int(by_status.get(s.value, 0)) for s in CertificateStatus},
            "verifications": {k: int(v) for k, v in by_outcome.items()},
        }
