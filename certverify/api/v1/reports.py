# certverify/api/v1/reports.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from certverify.api.deps import get_db, get_store
from certverify.core.rbac import require_roles
from certverify.crud.certificate import CertificateStore
from certverify.crud.user import user_crud

router = APIRouter(dependencies=[Depends(require_roles("admin"))])


@router.get("/summary")
def summary(store: CertificateStore = Depends(get_store), db: Session = Depends(get_db)):
    stats = store.stats()
    verifications = {o: stats["verifications"].get(o, 0) for o in ("success", "not_found", "revoked", "expired")}
    return {
        "certificates": stats["certificates"],
        "certificates_total": sum(stats["certificates"].values()),
        "verifications": verifications,
        "verifications_total": sum(verifications.values()),
        "recipients_total": user_crud.count_recipients(db),
    }
