from enum import Enum
from datetime import date, datetime
from typing import Optional
from sqlalchemy import ForeignKey, String, Date, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from certverify.db.base import Base


class CertificateStatus(str, Enum):
    draft = "draft"
    issued = "issued"
    revoked = "revoked"


# draft -> issued -> revoked (terminal)
ALLOWED_TRANSITIONS = {
    CertificateStatus.draft: {CertificateStatus.issued},
    CertificateStatus.issued: {CertificateStatus.revoked},
    CertificateStatus.revoked: set(),
}


class Certificate(Base):
    __tablename__ = "certificates"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    recipient_name: Mapped[str] = mapped_column(String(120))
    program: Mapped[str] = mapped_column(String(200))
    issuing_authority: Mapped[str] = mapped_column(String(200))
    issue_date: Mapped[date] = mapped_column(Date)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=CertificateStatus.issued.value, index=True)
    content_hash: Mapped[str] = mapped_column(String(80))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    revocation_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # tombstone: a linha fica para o id nunca ser reutilizado
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
