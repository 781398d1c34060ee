# certverify/models/__init__.py
from certverify.db.base import Base  # noqa: F401  (registra todos os models)
from certverify.models.user import User  # noqa: F401
from certverify.models.certificate import Certificate, CertificateStatus  # noqa: F401
from certverify.models.verification_event import VerificationEvent, VerificationOutcome  # noqa: F401
from certverify.models.audit import AuditLog  # noqa: F401
from certverify.models.tokens import RefreshToken  # noqa: F401
