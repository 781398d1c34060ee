# certverify/api/v1/certificates.py
from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from certverify.api.deps import (
    get_current_user,
    get_db,
    get_issuance,
    get_optional_user,
    get_revocation,
    get_store,
    get_verification,
)
from certverify.core.config import settings
from certverify.core.errors import NotFound
from certverify.core.rbac import is_admin, require_roles
from certverify.crud.certificate import CertificateStore
from certverify.models.user import User
from certverify.schemas.certificate import (
    CertificateIssue,
    CertificateList,
    CertificateOut,
    CertificateRecord,
    EventOut,
    PublicCertificate,
    QrVerifyIn,
    RevokeIn,
    VerificationOut,
)
from certverify.services.audit import actions_for, record_action
from certverify.services.documents import render_certificate_html, render_certificate_pdf
from certverify.services.issuance import IssuanceService
from certverify.services.qr import build_qr_payload, qr_png
from certverify.services.revocation import RevocationManager
from certverify.services.verification import VerificationEngine, VerificationResult

router = APIRouter()


def to_out(c: CertificateRecord, verification_count: Optional[int] = None) -> CertificateOut:
    return CertificateOut(
        id=c.id,
        recipientId=c.recipient_id,
        recipientName=c.recipient_name,
        program=c.program,
        issuingAuthority=c.issuing_authority,
        issueDate=c.issue_date,
        validUntil=c.valid_until,
        status=c.status,
        contentHash=c.content_hash,
        verificationCount=verification_count,
        revokedAt=c.revoked_at,
        revocationReason=c.revocation_reason,
    )


def _to_public(c: CertificateRecord) -> PublicCertificate:
    return PublicCertificate(
        id=c.id,
        recipientName=c.recipient_name,
        program=c.program,
        issuingAuthority=c.issuing_authority,
        issueDate=c.issue_date,
        validUntil=c.valid_until,
        status=c.status,
        contentHash=c.content_hash,
    )


def _verification_out(result: VerificationResult) -> VerificationOut:
    return VerificationOut(
        outcome=result.outcome.value,
        certificate=_to_public(result.certificate) if result.certificate else None,
    )


def _base_url(request: Request) -> str:
    # prioridade: env PUBLIC_BASE_URL; senão, monta com host da requisição
    return settings.PUBLIC_BASE_URL or str(request.base_url).rstrip("/")


def _visible(store: CertificateStore, certificate_id: str, user: User) -> CertificateRecord:
    """Admin vê tudo; destinatário só os seus, e nunca rascunhos. O resto é 404, sem distinção."""
    c = store.get(certificate_id)
    if c is None or (not is_admin(user) and (c.recipient_id != user.id or c.status == "draft")):
        raise NotFound("Certificate not found")
    return c


# -------------------- verificação pública --------------------

@router.get("/verify", response_model=VerificationOut)
def verify_certificate(
    id: str = Query(..., min_length=1, max_length=64),
    name: Optional[str] = Query(None, max_length=120),
    verifier: Optional[str] = Query(None, max_length=160),
    engine: VerificationEngine = Depends(get_verification),
    user: Optional[User] = Depends(get_optional_user),
):
    identity = user.email if user else verifier
    return _verification_out(engine.verify(id, name, verifier_identity=identity))


@router.post("/verify/qr", response_model=VerificationOut)
def verify_qr(
    body: QrVerifyIn,
    engine: VerificationEngine = Depends(get_verification),
    user: Optional[User] = Depends(get_optional_user),
):
    identity = user.email if user else None
    return _verification_out(engine.verify_qr(body.payload, body.name, verifier_identity=identity))


# -------------------------- emissão --------------------------

@router.post("", response_model=CertificateOut, status_code=201)
def issue_certificate(
    body: CertificateIssue,
    issuance: IssuanceService = Depends(get_issuance),
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles("admin")),
):
    c = issuance.issue(
        body.recipientId,
        body.program,
        body.issueDate,
        body.validUntil,
        issuing_authority=body.issuingAuthority,
        draft=body.draft,
    )
    record_action(db, user_id=admin.id, entity_id=c.id, action="issue",
                  diff={"status": c.status, "content_hash": c.content_hash})
    return to_out(c, 0)


@router.post("/{certificate_id}/publish", response_model=CertificateOut)
def publish_certificate(
    certificate_id: str = Path(..., min_length=1, max_length=32),
    issuance: IssuanceService = Depends(get_issuance),
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles("admin")),
):
    c = issuance.publish(certificate_id)
    record_action(db, user_id=admin.id, entity_id=c.id, action="publish",
                  diff={"status": ["draft", "issued"]})
    return to_out(c)


@router.post("/{certificate_id}/revoke", response_model=CertificateOut)
def revoke_certificate(
    body: RevokeIn,
    certificate_id: str = Path(..., min_length=1, max_length=32),
    revocation: RevocationManager = Depends(get_revocation),
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles("admin")),
):
    c = revocation.revoke(certificate_id, body.reason)
    record_action(db, user_id=admin.id, entity_id=c.id, action="revoke",
                  diff={"status": ["issued", "revoked"], "reason": body.reason})
    return to_out(c)


@router.delete("/{certificate_id}", status_code=204)
def delete_draft(
    certificate_id: str = Path(..., min_length=1, max_length=32),
    store: CertificateStore = Depends(get_store),
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles("admin")),
):
    c = store.delete_draft(certificate_id)
    record_action(db, user_id=admin.id, entity_id=c.id, action="delete", diff={"status": c.status})
    return Response(status_code=204)


# -------------------------- leitura --------------------------

@router.get("", response_model=CertificateList, dependencies=[Depends(require_roles("admin"))])
def list_certificates(
    status: Optional[Literal["draft", "issued", "revoked"]] = Query(None),
    recipient_id: Optional[int] = Query(None, ge=1),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    store: CertificateStore = Depends(get_store),
):
    items, total = store.list(status=status, recipient_id=recipient_id, offset=skip, limit=limit)
    counts = store.count_events_for([c.id for c in items])
    return CertificateList(items=[to_out(c, counts.get(c.id, 0)) for c in items], total=total)


@router.get("/{certificate_id}", response_model=CertificateOut)
def get_certificate(
    certificate_id: str = Path(..., min_length=1, max_length=32),
    store: CertificateStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    c = _visible(store, certificate_id, user)
    return to_out(c, store.count_events(c.id))


@router.get("/{certificate_id}/events", response_model=List[EventOut],
            dependencies=[Depends(require_roles("admin"))])
def list_events(
    certificate_id: str = Path(..., min_length=1, max_length=32),
    store: CertificateStore = Depends(get_store),
):
    # inclui tentativas contra ids nunca emitidos (sinal de fraude)
    return [
        EventOut(
            seq=e.seq,
            certificateId=e.certificate_id,
            timestamp=e.timestamp,
            verifierIdentity=e.verifier_identity,
            outcome=e.outcome,
        )
        for e in store.list_events_for(certificate_id)
    ]


# ------------------------- documentos -------------------------

@router.get("/{certificate_id}/qr")
def certificate_qr(
    certificate_id: str = Path(..., min_length=1, max_length=32),
    store: CertificateStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    c = _visible(store, certificate_id, user)
    return Response(content=qr_png(build_qr_payload(c.id)), media_type="image/png")


@router.get("/{certificate_id}/pdf")
def certificate_pdf(
    request: Request,
    certificate_id: str = Path(..., min_length=1, max_length=32),
    store: CertificateStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    c = _visible(store, certificate_id, user)
    return Response(
        content=render_certificate_pdf(c, _base_url(request)),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{c.id}.pdf"'},
    )


@router.get("/{certificate_id}/preview", response_class=HTMLResponse)
def certificate_preview(
    request: Request,
    certificate_id: str = Path(..., min_length=1, max_length=32),
    store: CertificateStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    c = _visible(store, certificate_id, user)
    return HTMLResponse(render_certificate_html(c, _base_url(request)))


@router.get("/{certificate_id}/audit", dependencies=[Depends(require_roles("admin"))])
def certificate_audit(
    certificate_id: str = Path(..., min_length=1, max_length=32),
    db: Session = Depends(get_db),
):
    return [
        {
            "id": a.id,
            "userId": a.user_id,
            "action": a.action,
            "diff": a.diff_json,
            "createdAt": a.created_at,
        }
        for a in actions_for(db, certificate_id)
    ]
