import datetime as dt
import itertools
import threading

import pytest
from sqlalchemy import update

from certverify.core.errors import StoreUnavailable, ValidationError
from certverify.crud.certificate import CertificateStore
from certverify.models.certificate import Certificate
from certverify.models.verification_event import VerificationOutcome
from certverify.services.qr import build_qr_payload
from certverify.services.revocation import RevocationManager
from certverify.services.verification import VerificationEngine, hint_matches, is_expired

UTC = dt.timezone.utc
NOW = dt.datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def engine_(store):
    return VerificationEngine(store, clock=lambda: NOW, timezone="Africa/Douala")


def _outcomes(store, cid):
    return [e.outcome for e in store.list_events_for(cid)]


def test_hint_matches():
    assert hint_matches("John Doe", None)
    assert hint_matches("John Doe", "  ")
    assert hint_matches("John Doe", "john")
    assert hint_matches("John Doe", "DOE")
    assert not hint_matches("John Doe", "Jane")


def test_is_expired_is_inclusive():
    assert not is_expired(None, dt.date(2100, 1, 1))
    assert not is_expired(dt.date(2026, 1, 31), dt.date(2026, 1, 31))
    assert is_expired(dt.date(2026, 1, 31), dt.date(2026, 2, 1))


def test_issued_certificate_verifies(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Network Security", dt.date(2026, 1, 1))
    result = engine_.verify(c.id, "John Doe", verifier_identity="hr@example.org")
    assert result.outcome is VerificationOutcome.success
    assert result.is_valid
    assert result.certificate.id == c.id
    assert result.event.verifier_identity == "hr@example.org"
    assert _outcomes(engine_.store, c.id) == ["success"]


def test_john_doe_scenario(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Digital Marketing Fundamentals",
                       dt.date(2025, 1, 15), dt.date(2027, 1, 15))
    assert engine_.verify(c.id, "John Doe").outcome is VerificationOutcome.success
    RevocationManager(engine_.store).revoke(c.id, "Issued in error")
    assert engine_.verify(c.id, "John Doe").outcome is VerificationOutcome.revoked
    assert engine_.verify(c.id).outcome is VerificationOutcome.revoked
    assert _outcomes(engine_.store, c.id) == ["success", "revoked", "revoked"]


def test_unknown_id_records_not_found(engine_):
    result = engine_.verify("MTN-CERT-9999")
    assert result.outcome is VerificationOutcome.not_found
    assert result.certificate is None
    assert _outcomes(engine_.store, "MTN-CERT-9999") == ["not_found"]


def test_draft_is_not_found(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1), draft=True)
    assert engine_.verify(c.id).outcome is VerificationOutcome.not_found


def test_name_mismatch_is_not_found(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1))
    result = engine_.verify(c.id, "Jane Smith")
    assert result.outcome is VerificationOutcome.not_found
    assert result.certificate is None


def test_expired(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2024, 1, 1), dt.date(2025, 1, 1))
    result = engine_.verify(c.id, "John")
    assert result.outcome is VerificationOutcome.expired
    assert result.certificate is None


def test_expiry_uses_local_date(issuance, store, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1), dt.date(2026, 1, 31))
    engine = VerificationEngine(store, timezone="Africa/Douala")
    on_last_day = dt.datetime(2026, 1, 31, 12, 0, tzinfo=UTC)
    # 23:30 UTC já é 1º de fevereiro em Douala (UTC+1)
    late_evening = dt.datetime(2026, 1, 31, 23, 30, tzinfo=UTC)
    assert engine.verify(c.id, now=on_last_day).outcome is VerificationOutcome.success
    assert engine.verify(c.id, now=late_evening).outcome is VerificationOutcome.expired


def test_revoked_takes_precedence_over_expired(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2024, 1, 1), dt.date(2025, 1, 1))
    RevocationManager(engine_.store).revoke(c.id, "fraud")
    assert engine_.verify(c.id).outcome is VerificationOutcome.revoked


def test_tampered_record_is_not_found(issuance, engine_, recipient, session_factory):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1))
    with session_factory() as s:
        s.execute(update(Certificate).where(Certificate.id == c.id).values(program="Brain Surgery"))
        s.commit()
    assert engine_.verify(c.id).outcome is VerificationOutcome.not_found


def test_each_verify_appends_one_event(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1))
    for n in range(1, 4):
        engine_.verify(c.id)
        assert engine_.store.count_events(c.id) == n


def test_concurrent_verifications_all_logged(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1))
    threads = [threading.Thread(target=engine_.verify, args=(c.id,)) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    events = list(engine_.store.list_events_for(c.id))
    assert len(events) == 10
    assert len({e.seq for e in events}) == 10


def test_verify_qr(issuance, engine_, recipient):
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1))
    result = engine_.verify_qr(build_qr_payload(c.id), "doe")
    assert result.outcome is VerificationOutcome.success


def test_verify_qr_rejects_bad_payload_without_event(engine_):
    with pytest.raises(ValidationError):
        engine_.verify_qr("not a certificate")
    assert engine_.store.stats()["verifications"] == {}


def test_event_stamps_follow_append_order(issuance, session_factory, recipient):
    # relógio do store avança a cada append; relógios dos chamadores ficam fora de ordem
    ticks = itertools.count()
    base = dt.datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
    store = CertificateStore(session_factory, clock=lambda: base + dt.timedelta(seconds=next(ticks)))
    c = issuance.issue(recipient.id, "Cloud Computing", dt.date(2026, 1, 1))
    engine = VerificationEngine(store, timezone="Africa/Douala")

    engine.verify(c.id, now=base + dt.timedelta(hours=2))
    engine.verify(c.id, now=base + dt.timedelta(hours=1))

    def late_caller():
        engine.verify(c.id, now=base - dt.timedelta(days=1))

    threads = [threading.Thread(target=late_caller) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    events = list(store.list_events_for(c.id))
    assert len(events) == 8
    stamps = [e.timestamp for e in events]
    assert stamps == sorted(stamps)
    assert [e.seq for e in events] == sorted(e.seq for e in events)


def test_store_failure_is_not_reported_as_not_found(broken_store, store):
    engine = VerificationEngine(broken_store, clock=lambda: NOW)
    with pytest.raises(StoreUnavailable):
        engine.verify("MTN-CERT-1234", "John Doe")
    with pytest.raises(StoreUnavailable):
        engine.verify_qr(build_qr_payload("MTN-CERT-1234"))
    # nenhuma tentativa registrada
    assert store.stats()["verifications"] == {}
