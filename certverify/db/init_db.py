# certverify/db/init_db.py
import datetime as dt
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from certverify.core.config import settings
from certverify.core.hashing import content_hash
from certverify.core.security_password import hash_password
from certverify.models.certificate import Certificate, CertificateStatus
from certverify.models.user import ROLE_ADMIN, ROLE_RECIPIENT, User

logger = logging.getLogger(__name__)

DEMO_RECIPIENTS = [
    ("John Doe", "john.doe@mtn.cm"),
    ("Jane Smith", "jane.smith@mtn.cm"),
    ("Alice Johnson", "alice.johnson@mtn.cm"),
    ("Bob Williams", "bob.williams@mtn.cm"),
    ("Charlie Brown", "charlie.brown@mtn.cm"),
]

# (id, e-mail, programa, emissão, validade, status)
DEMO_CERTIFICATES = [
    ("MTN-CERT-1234", "john.doe@mtn.cm", "Digital Marketing Fundamentals", dt.date(2025, 1, 15), dt.date(2027, 1, 15), "issued"),
    ("MTN-CERT-1235", "john.doe@mtn.cm", "Project Management Essentials", dt.date(2025, 2, 20), None, "issued"),
    ("MTN-CERT-1236", "john.doe@mtn.cm", "Telecommunications Basics", dt.date(2025, 3, 10), dt.date(2027, 3, 10), "issued"),
    ("MTN-CERT-1237", "jane.smith@mtn.cm", "Digital Marketing Fundamentals", dt.date(2025, 1, 15), dt.date(2027, 1, 15), "issued"),
    ("MTN-CERT-1238", "alice.johnson@mtn.cm", "Network Security", dt.date(2025, 3, 5), None, "issued"),
    ("MTN-CERT-1239", "bob.williams@mtn.cm", "Cloud Computing", dt.date(2025, 2, 28), dt.date(2027, 2, 28), "draft"),
    ("MTN-CERT-1240", "charlie.brown@mtn.cm", "Data Analytics", dt.date(2025, 1, 20), None, "revoked"),
]

DEMO_PASSWORD = "recipient123"


def _ensure_user(db: Session, name: str, email: str, role: str, password: str) -> User:
    user = db.scalar(select(User).where(User.email == email))
    if not user:
        user = User(name=name, email=email, role=role, status="active", hashed_password=hash_password(password))
        db.add(user); db.flush()
    return user


def _seed_demo(db: Session) -> None:
    users = {email: _ensure_user(db, name, email, ROLE_RECIPIENT, DEMO_PASSWORD) for name, email in DEMO_RECIPIENTS}
    now = dt.datetime.now(dt.timezone.utc)
    for cid, email, program, issued, valid_until, status in DEMO_CERTIFICATES:
        if db.get(Certificate, cid) is not None:
            continue
        u = users[email]
        authority = settings.DEFAULT_ISSUING_AUTHORITY
        db.add(Certificate(
            id=cid,
            recipient_id=u.id,
            recipient_name=u.name,
            program=program,
            issuing_authority=authority,
            issue_date=issued,
            valid_until=valid_until,
            status=status,
            content_hash=content_hash(
                recipient_id=u.id, recipient_name=u.name, program=program,
                issuing_authority=authority, issue_date=issued, valid_until=valid_until,
            ),
            published_at=None if status == CertificateStatus.draft.value else now,
            revoked_at=now if status == CertificateStatus.revoked.value else None,
            revocation_reason="seed" if status == CertificateStatus.revoked.value else None,
        ))


def init_db(db: Session) -> None:
    _ensure_user(db, "Administrator", settings.ADMIN_EMAIL.strip().lower(), ROLE_ADMIN, settings.ADMIN_PASSWORD)
    if settings.SEED_DEMO:
        _seed_demo(db)
        logger.info("demo data seeded")
    db.commit()
