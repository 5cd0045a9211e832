from stockbot.config_schema import ITEMS_FARM_KEY, MASTER_KEY_KEY, MasterKey
from stockbot.entities import (
    KIND_ADJUST,
    KIND_REGISTER,
    STATUS_ADJUSTMENT,
    STATUS_NONE,
    STATUS_PENDING,
    STATUS_WITH_PROOF,
    Configuration,
)

from tests.fakes import run


def test_register_owner_is_an_upsert_that_keeps_stock(store):
    async def scenario():
        assert await store.register_owner("1", "chan-a", "dono#0001")
        assert await store.update_stock("1", {"folhas": 10}, {"farinha": 2})
        assert await store.register_owner("1", "chan-b")
        return await store.get_owner("1")

    owner = run(scenario())
    assert owner.channel_id == "chan-b"
    assert owner.display_name == "dono#0001"
    assert owner.farm_stock == {"folhas": 10}
    assert owner.production_stock == {"farinha": 2}


def test_missing_owner(store):
    assert run(store.get_owner("nope")) is None
    assert run(store.update_stock("nope", {}, {})) is False


def test_all_farm_stocks(store):
    async def scenario():
        await store.register_owner("1", "a")
        await store.register_owner("2", "b")
        await store.update_stock("1", {"folhas": 1}, {})
        await store.update_stock("2", {"folhas": 2, "farinha": 3}, {"farinha": 9})
        return await store.get_all_farm_stocks()

    stocks = run(scenario())
    assert sorted(stocks, key=len) == [{"folhas": 1}, {"folhas": 2, "farinha": 3}]


def test_transactions_round_trip_and_order(store):
    async def scenario():
        first = await store.add_transaction(
            kind=KIND_REGISTER, executor_id="1", target_owner_id="1", line_items={"folhas": 5}
        )
        second = await store.add_transaction(
            kind=KIND_ADJUST,
            executor_id="2",
            target_owner_id="1",
            line_items={"folhas": -5},
            proof_status=STATUS_ADJUSTMENT,
        )
        await store.add_transaction(
            kind=KIND_REGISTER, executor_id="3", target_owner_id="3", line_items={"folhas": 1}
        )
        assert await store.update_transaction_status(first, STATUS_WITH_PROOF, "http://img")
        return first, second, await store.list_transactions("1"), await store.list_transactions(limit=2)

    first, second, for_owner, latest = run(scenario())
    assert second > first
    assert [r.transaction_id for r in for_owner] == [second, first]
    assert for_owner[1].proof_status == STATUS_WITH_PROOF
    assert for_owner[1].proof_url == "http://img"
    assert for_owner[0].line_items == {"folhas": -5}
    assert len(latest) == 2
    assert latest[0].transaction_id > latest[1].transaction_id


def test_default_status_is_none(store):
    async def scenario():
        await store.add_transaction(
            kind=KIND_REGISTER, executor_id="1", target_owner_id="1", line_items={}
        )
        return await store.list_transactions("1")

    assert run(scenario())[0].proof_status == STATUS_NONE


def test_commit_finalization_is_all_or_nothing(store):
    async def scenario():
        await store.register_owner("1", "a")
        tid = await store.add_transaction(
            kind=KIND_REGISTER,
            executor_id="1",
            target_owner_id="1",
            line_items={"folhas": 5},
            proof_status=STATUS_PENDING,
        )
        missing_owner = await store.commit_finalization(tid, STATUS_WITH_PROOF, None, "ghost", {"folhas": 5}, {})
        after_failure = (await store.list_transactions("1"))[0].proof_status
        ok = await store.commit_finalization(tid, STATUS_WITH_PROOF, "http://p", "1", {"folhas": 5}, {})
        return missing_owner, after_failure, ok, await store.get_owner("1"), await store.list_transactions("1")

    missing_owner, after_failure, ok, owner, records = run(scenario())
    assert missing_owner is False
    assert after_failure == STATUS_PENDING
    assert ok is True
    assert owner.farm_stock == {"folhas": 5}
    assert records[0].proof_status == STATUS_WITH_PROOF


def test_config_round_trip(store):
    async def scenario():
        assert await store.get_config(MASTER_KEY_KEY) is None
        assert await store.set_config(MASTER_KEY_KEY, MasterKey(value="abc"))
        return await store.get_config(MASTER_KEY_KEY)

    assert run(scenario()) == MasterKey(value="abc")


def test_legacy_master_key_object_is_normalized(store):
    session = store.SessionFactory()
    try:
        session.add(Configuration(key=MASTER_KEY_KEY, value={"valor": "legacy"}))
        session.commit()
    finally:
        session.close()

    assert run(store.get_config(MASTER_KEY_KEY)).value == "legacy"


def test_undecodable_config_reads_as_absent(store):
    session = store.SessionFactory()
    try:
        session.add(Configuration(key=ITEMS_FARM_KEY, value=[{"nome": "sem id"}]))
        session.commit()
    finally:
        session.close()

    assert run(store.get_config(ITEMS_FARM_KEY)) is None
    assert run(store.has_config(ITEMS_FARM_KEY)) is True
    assert run(store.has_config(MASTER_KEY_KEY)) is False
