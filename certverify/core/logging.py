"""
Logging setup for the certificate service.

JSON lines on stdout by default, with the current request id attached, plus a
small audit logger for issuance, revocation and verification events.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class StructuredFormatter(logging.Formatter):
    """Formats records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Logger for security-relevant certificate events.

    These go to the log stream only; the durable trails are the
    verification_events and audit_logs tables.
    """

    def __init__(self, name: str = "certverify.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        extra = {"event_type": event_type, "request_id": request_id_var.get(), **kwargs}
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None,
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def certificate_issued(self, certificate_id: str, recipient_id: int, status: str) -> None:
        self._log(
            logging.INFO,
            "CERTIFICATE_ISSUED",
            certificate_id=certificate_id,
            recipient_id=recipient_id,
            status=status,
            message=f"Certificate {certificate_id} stored as {status}",
        )

    def certificate_revoked(self, certificate_id: str, reason: str) -> None:
        self._log(
            logging.INFO,
            "CERTIFICATE_REVOKED",
            certificate_id=certificate_id,
            reason=reason,
            message=f"Certificate {certificate_id} revoked",
        )

    def verification(self, certificate_id: str, outcome: str, verifier: Optional[str] = None) -> None:
        level = logging.INFO if outcome == "success" else logging.WARNING
        self._log(
            level,
            "VERIFICATION",
            certificate_id=certificate_id,
            outcome=outcome,
            verifier=verifier,
            message=f"Verification of {certificate_id}: {outcome}",
        )

    def security_event(self, event: str, severity: str = "medium", **details) -> None:
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL,
        }.get(severity, logging.WARNING)
        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}",
        )


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: log level name; defaults to settings.LOG_LEVEL
        json_format: JSON lines instead of plain text; defaults to settings.LOG_JSON
    """
    from certverify.core.config import settings

    level = level or settings.LOG_LEVEL
    json_format = settings.LOG_JSON if json_format is None else json_format

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    if request_id is None:
        request_id = uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    return request_id_var.get()


audit_log = AuditLogger()
