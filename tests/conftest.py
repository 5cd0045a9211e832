"""
conftest.py - shared fixtures

- a QueryStore over a throwaway SQLite file, optionally seeded with the
  default item rules, master key and manager roles
- a recording messenger standing in for the Discord channel API
- a StockBot wired to both
"""

import pytest

from stockbot.auth_gate import AuthGate
from stockbot.config_schema import (
    ITEMS_FARM_KEY,
    ITEMS_PRODUCTION_KEY,
    MANAGER_ROLES_KEY,
    MASTER_KEY_KEY,
    ManagerRoles,
    MasterKey,
)
from stockbot.db_helpers import create_session_factory
from stockbot.handlers import BotContext, StockBot
from stockbot.pending_proof_cache import PendingProofCache
from stockbot.query_store import QueryStore
from stockbot.seed_config import DEFAULT_FARM_ITEMS, DEFAULT_PRODUCTION_ITEMS

from tests.fakes import MANAGER_ROLE, MASTER_KEY, RecordingMessenger, run


@pytest.fixture
def store(tmp_path) -> QueryStore:
    factory = create_session_factory(f"sqlite:///{tmp_path / 'stock.sqlite'}")
    return QueryStore(factory)


@pytest.fixture
def seeded_store(store) -> QueryStore:
    async def _seed():
        await store.set_config(ITEMS_FARM_KEY, DEFAULT_FARM_ITEMS)
        await store.set_config(ITEMS_PRODUCTION_KEY, DEFAULT_PRODUCTION_ITEMS)
        await store.set_config(MASTER_KEY_KEY, MasterKey(value=MASTER_KEY))
        await store.set_config(MANAGER_ROLES_KEY, ManagerRoles(ids=[MANAGER_ROLE]))

    run(_seed())
    return store


@pytest.fixture
def messenger() -> RecordingMessenger:
    return RecordingMessenger()


@pytest.fixture
def bot(seeded_store, messenger) -> StockBot:
    ctx = BotContext(
        store=seeded_store,
        messenger=messenger,
        proofs=PendingProofCache(ttl_seconds=600),
        auth=AuthGate(timeout_seconds=60),
    )
    return StockBot(ctx)
