# certverify/db/base.py
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import MetaData

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=naming_convention)

# IMPORTE TODOS OS MODELS AQUI (registra as tabelas no metadata)
from certverify.models.user import User  # noqa: E402,F401
from certverify.models.certificate import Certificate  # noqa: E402,F401
from certverify.models.verification_event import VerificationEvent  # noqa: E402,F401
from certverify.models.audit import AuditLog  # noqa: E402,F401
from certverify.models.tokens import RefreshToken  # noqa: E402,F401
