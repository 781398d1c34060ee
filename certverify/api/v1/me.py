# certverify/api/v1/me.py
from __future__ import annotations

from typing import List, Optional, Literal

from fastapi import APIRouter, Depends, Query

from certverify.api.deps import get_current_user, get_store
from certverify.api.v1.certificates import to_out
from certverify.crud.certificate import CertificateStore
from certverify.models.user import User
from certverify.schemas.certificate import CertificateOut

router = APIRouter()

# rascunhos não existem para o destinatário, como na verificação pública
VISIBLE_STATUSES = ("issued", "revoked")


@router.get("/certificates", response_model=List[CertificateOut])
def my_certificates(
    status: Optional[Literal["issued", "revoked"]] = Query(None),
    store: CertificateStore = Depends(get_store),
    user: User = Depends(get_current_user),
):
    """Painel do destinatário: os próprios certificados com a contagem de verificações."""
    items, _ = store.list(recipient_id=user.id, status=status, statuses=VISIBLE_STATUSES, limit=500)
    counts = store.count_events_for([c.id for c in items])
    return [to_out(c, counts.get(c.id, 0)) for c in items]
