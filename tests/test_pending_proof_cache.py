import time

from stockbot.entities import KIND_REGISTER
from stockbot.pending_proof_cache import AWAITING_DECISION, AWAITING_PROOF, PendingProof, PendingProofCache


def _entry(tid, submitter="1", owner="1", created_at=None):
    entry = PendingProof(
        transaction_id=tid,
        submitter_id=submitter,
        target_owner_id=owner,
        kind=KIND_REGISTER,
        line_items={"folhas": 1},
    )
    if created_at is not None:
        entry.created_at = created_at
    return entry


def test_pop_claims_once():
    cache = PendingProofCache()
    cache.add(_entry(7))
    assert cache.pop(7).transaction_id == 7
    assert cache.pop(7) is None
    assert len(cache) == 0


def test_get_for_submitter_checks_ownership():
    cache = PendingProofCache()
    cache.add(_entry(7, submitter="1"))
    assert cache.get_for_submitter(7, "2") is None
    assert cache.get_for_submitter(7, "1") is not None


def test_find_by_submitter_returns_oldest_match():
    cache = PendingProofCache()
    cache.add(_entry(1, submitter="1", owner="9"))
    cache.add(_entry(2, submitter="1", owner="1"))
    cache.add(_entry(3, submitter="1", owner="1"))
    assert cache.find_by_submitter("1", "1").transaction_id == 2
    assert cache.find_by_submitter("2", "1") is None


def test_mark_awaiting_proof():
    cache = PendingProofCache()
    cache.add(_entry(5))
    assert cache.get(5).state == AWAITING_DECISION
    assert cache.mark_awaiting_proof(5)
    assert cache.get(5).state == AWAITING_PROOF
    assert not cache.mark_awaiting_proof(6)


def test_stale_entries_expire():
    cache = PendingProofCache(ttl_seconds=10)
    cache.add(_entry(1, created_at=time.time() - 60))
    cache.add(_entry(2, created_at=time.time() - 60))
    cache.add(_entry(3))

    assert cache.get(1) is None
    assert cache.sweep_expired() == 1
    assert [e.transaction_id for e in cache.snapshot()] == [3]


def test_ttl_disabled_keeps_everything():
    cache = PendingProofCache(ttl_seconds=0)
    cache.add(_entry(1, created_at=0))
    assert cache.sweep_expired() == 0
    assert cache.get(1) is not None


def test_find_by_submitter_prefers_the_entry_awaiting_proof():
    cache = PendingProofCache()
    cache.add(_entry(1))
    cache.add(_entry(2))
    cache.mark_awaiting_proof(2)
    assert cache.find_by_submitter("1", "1").transaction_id == 2
