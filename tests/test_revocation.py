import datetime as dt

import pytest

from certverify.core.errors import AlreadyRevokedError, InvalidTransitionError, NotFound, ValidationError
from certverify.services.revocation import RevocationManager


@pytest.fixture
def manager(store):
    return RevocationManager(store)


def test_revoke_sets_reason(issuance, manager, recipient):
    c = issuance.issue(recipient.id, "Data Analytics", dt.date(2026, 1, 1))
    r = manager.revoke(c.id, "  Obtained by fraud ")
    assert r.status == "revoked"
    assert r.revocation_reason == "Obtained by fraud"
    assert r.revoked_at is not None


def test_revoke_requires_reason(issuance, manager, recipient):
    c = issuance.issue(recipient.id, "Data Analytics", dt.date(2026, 1, 1))
    with pytest.raises(ValidationError):
        manager.revoke(c.id, "   ")
    assert manager.store.get(c.id).status == "issued"


def test_revoke_twice(issuance, manager, recipient):
    c = issuance.issue(recipient.id, "Data Analytics", dt.date(2026, 1, 1))
    manager.revoke(c.id, "fraud")
    with pytest.raises(AlreadyRevokedError):
        manager.revoke(c.id, "fraud again")
    assert manager.store.get(c.id).revocation_reason == "fraud"


def test_revoke_unknown(manager):
    with pytest.raises(NotFound):
        manager.revoke("MTN-CERT-9999", "fraud")


def test_revoke_draft_refused(issuance, manager, recipient):
    c = issuance.issue(recipient.id, "Data Analytics", dt.date(2026, 1, 1), draft=True)
    with pytest.raises(InvalidTransitionError) as exc:
        manager.revoke(c.id, "fraud")
    assert not isinstance(exc.value, AlreadyRevokedError)
