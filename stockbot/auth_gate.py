# stockbot/auth_gate.py
"""
Shared-secret gate in front of the manager actions.

A user presses a restricted control, the gate remembers which action they
asked for, and the next chat message from that user is read as the master
key. Anyone holding the key passes: there are no per-user credentials.
"""

import asyncio
import logging
import threading
from typing import Any, Optional

logger = logging.getLogger("stockbot")

DEFAULT_AUTH_TIMEOUT_SECONDS = 60


class AuthGate:
    def __init__(self, timeout_seconds: float = DEFAULT_AUTH_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds
        self._lock = threading.Lock()
        self._pending: dict[str, str] = {}
        # user id -> prepared modal, opened by the follow-up button
        self._modal_grants: dict[str, Any] = {}

    def request(self, user_id: str, action_id: str) -> None:
        """
        Store the pending action and schedule its expiry on the running loop.
        """
        user_id = str(user_id)
        with self._lock:
            self._pending[user_id] = action_id

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("AuthGate.request outside an event loop; %s will not expire", user_id)
            return
        loop.call_later(self.timeout_seconds, self.expire, user_id, action_id)

    def expire(self, user_id: str, action_id: str) -> bool:
        """
        Remove the entry only if it still holds `action_id`, so a newer
        request from the same user survives an older timer.
        """
        with self._lock:
            if self._pending.get(str(user_id)) == action_id:
                del self._pending[str(user_id)]
                logger.debug("Pending auth expired for %s (%s)", user_id, action_id)
                return True
        return False

    def pending_action(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._pending.get(str(user_id))

    def consume(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._pending.pop(str(user_id), None)

    @staticmethod
    def check_secret(candidate: str | None, master_key: str | None) -> bool:
        if not master_key or candidate is None:
            return False
        return candidate.strip() == master_key

    # -----------------------
    # Post-auth modal grants
    # -----------------------

    def grant_modal(self, user_id: str, modal: Any) -> None:
        with self._lock:
            self._modal_grants[str(user_id)] = modal

    def take_modal(self, user_id: str) -> Any:
        with self._lock:
            return self._modal_grants.pop(str(user_id), None)
