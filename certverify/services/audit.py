# certverify/services/audit.py
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from certverify.core.logging import audit_log
from certverify.models.audit import AuditLog

logger = logging.getLogger(__name__)


def record_action(
    db: Session,
    *,
    user_id: Optional[int],
    entity_id: str,
    action: str,
    diff: Optional[Dict[str, Any]] = None,
    entity: str = "certificate",
) -> Optional[AuditLog]:
    """
    Grava a ação do admin em audit_logs.

    Roda depois do commit do store: se a gravação falhar, a ação já valeu.
    A falha vai para o log (e para o audit logger) e a requisição segue.
    """
    row = AuditLog(user_id=user_id, entity=entity, entity_id=entity_id, action=action, diff_json=diff)
    try:
        db.add(row)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("audit row not written: %s %s %s", entity, entity_id, action)
        audit_log.security_event(
            "audit_write_failed", severity="high", entity=entity, entity_id=entity_id, action=action, user_id=user_id
        )
        return None
    db.refresh(row)
    return row


def actions_for(db: Session, entity_id: str, entity: str = "certificate") -> List[AuditLog]:
    return db.execute(
        select(AuditLog)
        .where(AuditLog.entity == entity, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.id)
    ).scalars().all()
