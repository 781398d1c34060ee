import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ambiente de teste antes de importar o app (settings é lido no import)
_TMP = tempfile.mkdtemp(prefix="certverify-tests-")
os.environ["DATA_DIR"] = _TMP
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'unused.db')}"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["SEED_DEMO"] = "false"
os.environ["LOG_JSON"] = "false"

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from certverify.api.deps import get_db, get_store
from certverify.core.security_password import hash_password
from certverify.core.tokens import create_access_token
from certverify.crud.certificate import CertificateStore
from certverify.crud.user import user_crud
from certverify.db.base import Base
from certverify.db.session import make_engine
from certverify.main import api
from certverify.models.user import ROLE_ADMIN, ROLE_RECIPIENT, User
from certverify.services.issuance import IssuanceService

PASSWORD = "s3cret-pass"


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def store(session_factory):
    return CertificateStore(session_factory, page_size=2)


def make_user(db, name, email, role=ROLE_RECIPIENT, status="active"):
    u = User(name=name, email=email, role=role, status=status, hashed_password=hash_password(PASSWORD))
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def admin(db):
    return make_user(db, "Administrator", "admin@mtn.cm", role=ROLE_ADMIN)


@pytest.fixture
def recipient(db):
    return make_user(db, "John Doe", "john.doe@mtn.cm")


@pytest.fixture
def other_recipient(db):
    return make_user(db, "Jane Smith", "jane.smith@mtn.cm")


@pytest.fixture
def issuance(store, session_factory):
    def lookup(rid):
        with session_factory() as s:
            return user_crud.recipient_name(s, rid)
    return IssuanceService(store, lookup, draft_by_default=False)


def auth(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(sub=str(user.id))}"}


@pytest.fixture
def client(session_factory, store):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    api.dependency_overrides[get_db] = _get_db
    api.dependency_overrides[get_store] = lambda: store
    yield TestClient(api)
    api.dependency_overrides.clear()


class UnreachableSession(Session):
    """Sessão cujo banco caiu: toda leitura falha como falharia o driver."""

    def _fail(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    get = _fail
    execute = _fail
    scalar = _fail


@pytest.fixture
def broken_store(engine):
    return CertificateStore(sessionmaker(bind=engine, class_=UnreachableSession, expire_on_commit=False))
