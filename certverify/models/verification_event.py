from enum import Enum
from datetime import datetime
from typing import Optional
from sqlalchemy import Index, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from certverify.db.base import Base


class VerificationOutcome(str, Enum):
    success = "success"
    not_found = "not_found"
    revoked = "revoked"
    expired = "expired"


class VerificationEvent(Base):
    """Append-only. Sem FK para certificates: ids nunca emitidos também são auditados."""

    __tablename__ = "verification_events"

    seq: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    certificate_id: Mapped[str] = mapped_column(String(64))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    verifier_identity: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    outcome: Mapped[str] = mapped_column(String(16))

    __table_args__ = (Index("ix_verification_events_cert_seq", "certificate_id", "seq"),)
