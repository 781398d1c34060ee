from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Outcome = Literal["success", "not_found", "revoked", "expired"]


class CertificateRecord(BaseModel):
    """Snapshot imutável de um certificado, como o store devolve."""

    id: str
    recipient_id: int
    recipient_name: str
    program: str
    issuing_authority: str
    issue_date: date
    valid_until: Optional[date] = None
    status: str
    content_hash: str
    created_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    revocation_reason: Optional[str] = None
    deleted_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "frozen": True}


class VerificationEventRecord(BaseModel):
    seq: Optional[int] = None
    certificate_id: str
    # atribuído pelo store no append
    timestamp: Optional[datetime] = None
    verifier_identity: Optional[str] = None
    outcome: Outcome

    model_config = {"from_attributes": True, "frozen": True}


# ------------------------------ API ------------------------------

class CertificateIssue(BaseModel):
    recipientId: Optional[int] = None
    program: Optional[str] = None
    issueDate: Optional[date] = None
    validUntil: Optional[date] = None
    issuingAuthority: Optional[str] = None
    draft: Optional[bool] = None


class CertificateOut(BaseModel):
    id: str
    recipientId: int
    recipientName: str
    program: str
    issuingAuthority: str
    issueDate: date
    validUntil: Optional[date] = None
    status: str
    contentHash: str
    verificationCount: Optional[int] = None
    revokedAt: Optional[datetime] = None
    revocationReason: Optional[str] = None


class PublicCertificate(BaseModel):
    """Projeção pública (sem motivo de revogação nem contagens)."""

    id: str
    recipientName: str
    program: str
    issuingAuthority: str
    issueDate: date
    validUntil: Optional[date] = None
    status: str
    contentHash: str


class VerificationOut(BaseModel):
    outcome: Outcome
    certificate: Optional[PublicCertificate] = None


class QrVerifyIn(BaseModel):
    payload: str = Field(min_length=1, max_length=512)
    name: Optional[str] = None


class RevokeIn(BaseModel):
    reason: str = Field(min_length=1, max_length=255)


class EventOut(BaseModel):
    seq: int
    certificateId: str
    timestamp: datetime
    verifierIdentity: Optional[str] = None
    outcome: Outcome


class CertificateList(BaseModel):
    items: List[CertificateOut]
    total: int
