import datetime as dt
import threading

import pytest

from certverify.core.errors import AlreadyRevokedError, DuplicateIdError, InvalidTransitionError, NotFound
from certverify.core.hashing import content_hash
from certverify.schemas.certificate import CertificateRecord, VerificationEventRecord

NOW = dt.datetime(2026, 3, 1, 10, 0, tzinfo=dt.timezone.utc)


def _record(recipient, cid="MTN-CERT-5000", status="issued"):
    fields = dict(
        recipient_id=recipient.id,
        recipient_name=recipient.name,
        program="Network Security",
        issuing_authority="MTN Cameroon Professional Development",
        issue_date=dt.date(2026, 1, 10),
        valid_until=None,
    )
    return CertificateRecord(id=cid, status=status, content_hash=content_hash(**fields), **fields)


def _event(cid, outcome="success"):
    return VerificationEventRecord(certificate_id=cid, timestamp=NOW, outcome=outcome)


def test_put_then_get(store, recipient):
    stored = store.put(_record(recipient))
    assert stored.id == "MTN-CERT-5000"
    got = store.get("MTN-CERT-5000")
    assert got.recipient_name == "John Doe"
    assert got.status == "issued"


def test_get_missing_returns_none(store):
    assert store.get("MTN-CERT-0000") is None


def test_put_duplicate_id(store, recipient):
    store.put(_record(recipient))
    with pytest.raises(DuplicateIdError):
        store.put(_record(recipient))


def test_revoke_and_revoke_again(store, recipient):
    store.put(_record(recipient))
    r = store.set_status("MTN-CERT-5000", "revoked", reason="fraud", now=NOW)
    assert r.status == "revoked"
    assert r.revocation_reason == "fraud"
    with pytest.raises(AlreadyRevokedError):
        store.set_status("MTN-CERT-5000", "revoked", reason="again")


def test_invalid_transitions(store, recipient):
    store.put(_record(recipient, status="draft"))
    with pytest.raises(InvalidTransitionError):
        store.set_status("MTN-CERT-5000", "revoked", reason="x")
    store.set_status("MTN-CERT-5000", "issued")
    with pytest.raises(InvalidTransitionError):
        store.set_status("MTN-CERT-5000", "draft")


def test_set_status_unknown_id(store):
    with pytest.raises(NotFound):
        store.set_status("MTN-CERT-0001", "revoked", reason="x")


def test_delete_draft_keeps_id_reserved(store, recipient):
    store.put(_record(recipient, status="draft"))
    store.delete_draft("MTN-CERT-5000")
    assert store.get("MTN-CERT-5000") is None
    assert store.exists("MTN-CERT-5000")
    with pytest.raises(DuplicateIdError):
        store.put(_record(recipient))


def test_delete_issued_is_refused(store, recipient):
    store.put(_record(recipient))
    with pytest.raises(InvalidTransitionError):
        store.delete_draft("MTN-CERT-5000")


def test_append_event_requires_certificate(store):
    with pytest.raises(NotFound):
        store.append_event(_event("MTN-CERT-4040", "not_found"))


def test_record_attempt_accepts_unknown_id(store):
    store.record_attempt(_event("MTN-CERT-9999", "not_found"))
    events = list(store.list_events_for("MTN-CERT-9999"))
    assert [e.outcome for e in events] == ["not_found"]


def test_event_stream_pages_in_order_and_restarts(store, recipient):
    store.put(_record(recipient))
    for _ in range(5):
        store.append_event(_event("MTN-CERT-5000"))
    stream = store.list_events_for("MTN-CERT-5000")
    first = [e.seq for e in stream]
    assert len(first) == 5
    assert first == sorted(first)
    assert [e.seq for e in stream] == first


def test_event_stream_snapshot_terminates(store, recipient):
    store.put(_record(recipient))
    for _ in range(3):
        store.append_event(_event("MTN-CERT-5000"))
    seen = 0
    for _ in store.list_events_for("MTN-CERT-5000"):
        seen += 1
        store.append_event(_event("MTN-CERT-5000"))
    assert seen == 3
    assert store.count_events("MTN-CERT-5000") == 6


def test_concurrent_revocations_single_winner(store, recipient):
    store.put(_record(recipient))
    results = []
    lock = threading.Lock()

    def worker():
        try:
            store.set_status("MTN-CERT-5000", "revoked", reason="fraud")
            outcome = "ok"
        except AlreadyRevokedError:
            outcome = "already"
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count("ok") == 1
    assert results.count("already") == 7
    assert len(store._locks) == 0


def test_stats(store, recipient):
    store.put(_record(recipient))
    store.put(_record(recipient, cid="MTN-CERT-5001", status="draft"))
    store.append_event(_event("MTN-CERT-5000"))
    store.record_attempt(_event("MTN-CERT-9999", "not_found"))
    s = store.stats()
    assert s["certificates"] == {"draft": 1, "issued": 1, "revoked": 0}
    assert s["verifications"] == {"success": 1, "not_found": 1}


def test_list_filters_by_statuses(store, recipient):
    store.put(_record(recipient))
    store.put(_record(recipient, cid="MTN-CERT-5001", status="draft"))
    items, total = store.list(recipient_id=recipient.id, statuses=("issued", "revoked"))
    assert [c.id for c in items] == ["MTN-CERT-5000"]
    assert total == 1
