# certverify/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class CertificateError(Exception):
    """Base de todos os erros de domínio; cada um sabe seu code e status HTTP."""

    code = "CERTIFICATE_ERROR"
    status_code = 400

    def __init__(self, message: str = "", *, details: Optional[Any] = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details = details

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(CertificateError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFound(CertificateError):
    code = "NOT_FOUND"
    status_code = 404


class DuplicateIdError(CertificateError):
    code = "DUPLICATE_ID"
    status_code = 409


class IdExhaustionError(CertificateError):
    code = "ID_EXHAUSTED"
    status_code = 503


class InvalidTransitionError(CertificateError):
    code = "INVALID_TRANSITION"
    status_code = 409


class AlreadyRevokedError(InvalidTransitionError):
    code = "ALREADY_REVOKED"
    status_code = 409


class StoreUnavailable(CertificateError):
    code = "STORE_UNAVAILABLE"
    status_code = 503


class AuthError(CertificateError):
    code = "UNAUTHORIZED"
    status_code = 401


class PermissionDenied(CertificateError):
    code = "FORBIDDEN"
    status_code = 403
