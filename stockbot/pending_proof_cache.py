# stockbot/pending_proof_cache.py

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

AWAITING_DECISION = "AWAITING_DECISION"
AWAITING_PROOF = "AWAITING_PROOF"


@dataclass
class PendingProof:
    transaction_id: int
    submitter_id: str
    target_owner_id: str
    kind: str
    line_items: dict
    state: str = AWAITING_DECISION
    prompt_message_id: Optional[str] = None
    prompt_channel_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)


class PendingProofCache:
    """
    Process-local map of transactions waiting for a proof decision.

    - Keyed by transaction id; also searchable by (submitter, target owner).
    - pop() is the only way an entry leaves on the happy paths, and it is
      synchronous: whoever pops first owns the finalization.
    - Optional staleness TTL (ttl_seconds <= 0 disables it).
    """

    def __init__(self, ttl_seconds: float = 0) -> None:
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._items: dict[int, PendingProof] = {}

    def _expired(self, entry: PendingProof, now: float) -> bool:
        return self.ttl_seconds > 0 and entry.created_at + self.ttl_seconds <= now

    def add(self, entry: PendingProof) -> None:
        with self._lock:
            self._items[int(entry.transaction_id)] = entry

    def get(self, transaction_id: int) -> PendingProof | None:
        now = time.time()
        with self._lock:
            entry = self._items.get(int(transaction_id))
            if entry is not None and self._expired(entry, now):
                del self._items[int(transaction_id)]
                return None
            return entry

    def get_for_submitter(self, transaction_id: int, submitter_id: str) -> PendingProof | None:
        entry = self.get(transaction_id)
        if entry is None or entry.submitter_id != str(submitter_id):
            return None
        return entry

    def find_by_submitter(self, submitter_id: str, target_owner_id: str) -> PendingProof | None:
        """
        Live entry for this submitter/owner pair. Entries whose prompt was
        answered with "yes" win; otherwise the oldest one, in insertion order.
        """
        now = time.time()
        first = None
        with self._lock:
            for tid, entry in list(self._items.items()):
                if self._expired(entry, now):
                    del self._items[tid]
                    continue
                if entry.submitter_id != str(submitter_id) or entry.target_owner_id != str(target_owner_id):
                    continue
                if entry.state == AWAITING_PROOF:
                    return entry
                if first is None:
                    first = entry
        return first

    def mark_awaiting_proof(self, transaction_id: int) -> bool:
        with self._lock:
            entry = self._items.get(int(transaction_id))
            if entry is None:
                return False
            entry.state = AWAITING_PROOF
            return True

    def pop(self, transaction_id: int) -> PendingProof | None:
        with self._lock:
            return self._items.pop(int(transaction_id), None)

    def snapshot(self) -> list[PendingProof]:
        with self._lock:
            return list(self._items.values())

    def sweep_expired(self) -> int:
        """
        Drop stale entries. Returns how many were removed.
        """
        if self.ttl_seconds <= 0:
            return 0
        now = time.time()
        with self._lock:
            expired = [tid for tid, entry in self._items.items() if self._expired(entry, now)]
            for tid in expired:
                del self._items[tid]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
