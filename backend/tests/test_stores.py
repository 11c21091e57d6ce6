import pytest

from dutyroster.services.planning.locks import LockStore
from dutyroster.services.planning.runs import RunStore, canonical_input_hash
from dutyroster.services.planning.types import LockSnapshot


INPUT_JSON = {
    "version": "v1",
    "meta": {"timezone": "Europe/Vienna", "createdAt": "2025-01-01T00:00:00", "planningKind": "MONTHLY_DUTY"},
    "slots": [{"id": "2025-01-01-gyn"}],
}
OUTPUT_JSON = {"version": "v1", "summary": {"score": 1, "coverage": {"filled": 1, "required": 1}}}


async def save_run(store: RunStore, year: int = 2025, month: int = 1, seed: int = 1):
    return await store.save_run(
        year=year,
        month=month,
        input_json=INPUT_JSON,
        output_json=OUTPUT_JSON,
        engine="local-greedy",
        seed=seed,
        user_id="planner-1",
    )


# ================= LOCKS =================

async def test_upsert_creates_then_updates(db, clock):
    store = LockStore(db, clock)

    created = await store.upsert(2025, 1, "2025-01-06-gyn", "e1", "planner-1")
    created_at = created.created_at
    clock.advance(minutes=5)
    updated = await store.upsert(2025, 1, "2025-01-06-gyn", None, "planner-2")

    assert updated.id == created.id
    assert updated.employee_id is None
    assert updated.created_at == created_at
    assert updated.updated_at == clock.now
    assert updated.created_by_id == "planner-1"
    assert len(await store.list_locks(2025, 1)) == 1


async def test_upsert_over_row_from_another_session(session_factory, clock):
    async with session_factory() as first:
        created = await LockStore(first, clock).upsert(2025, 1, "2025-01-06-gyn", "e1", "planner-1")
        await first.commit()
    clock.advance(minutes=1)

    async with session_factory() as second:
        store = LockStore(second, clock)
        updated = await store.upsert(2025, 1, "2025-01-06-gyn", "e2", "planner-2")
        await second.commit()
        locks = await store.list_locks(2025, 1)

    assert updated.id == created.id
    assert updated.employee_id == "e2"
    assert updated.created_by_id == "planner-1"
    assert updated.updated_at == clock.now
    assert len(locks) == 1


async def test_upsert_refreshes_loaded_lock(db, clock):
    store = LockStore(db, clock)
    await store.upsert(2025, 1, "2025-01-06-gyn", "e1", "planner-1")
    loaded = await store.get_lock(2025, 1, "2025-01-06-gyn")

    await store.upsert(2025, 1, "2025-01-06-gyn", "e2", "planner-1")

    assert loaded.employee_id == "e2"


async def test_locks_are_scoped_to_period(db, clock):
    store = LockStore(db, clock)
    await store.upsert(2025, 1, "2025-01-06-gyn", "e1", "planner-1")
    await store.upsert(2025, 2, "2025-02-06-gyn", "e1", "planner-1")

    assert [lock.slot_id for lock in await store.list_locks(2025, 1)] == ["2025-01-06-gyn"]
    assert await store.get_lock(2025, 2, "2025-01-06-gyn") is None


async def test_list_locks_is_ordered_by_slot(db, clock):
    store = LockStore(db, clock)
    for slot_id in ["2025-01-09-gyn", "2025-01-02-overduty", "2025-01-02-gyn"]:
        await store.upsert(2025, 1, slot_id, "e1", "planner-1")

    assert [lock.slot_id for lock in await store.list_locks(2025, 1)] == [
        "2025-01-02-gyn", "2025-01-02-overduty", "2025-01-09-gyn"
    ]


async def test_delete_lock(db, clock):
    store = LockStore(db, clock)
    await store.upsert(2025, 1, "2025-01-06-gyn", "e1", "planner-1")

    assert await store.delete(2025, 1, "2025-01-06-gyn") is True
    assert await store.delete(2025, 1, "2025-01-06-gyn") is False
    assert await store.list_locks(2025, 1) == []


async def test_snapshot_is_read_only(db, clock):
    store = LockStore(db, clock)
    await store.upsert(2025, 1, "2025-01-06-gyn", "e1", "planner-1")
    await store.upsert(2025, 1, "2025-01-07-gyn", None, "planner-1")

    snapshot = await store.snapshot(2025, 1)

    assert snapshot["2025-01-06-gyn"] == LockSnapshot("2025-01-06-gyn", "e1", clock.now)
    assert snapshot["2025-01-07-gyn"].employee_id is None
    with pytest.raises(TypeError):
        snapshot["2025-01-08-gyn"] = LockSnapshot("2025-01-08-gyn", None)


# ================= RUNS =================

async def test_save_run_stores_hash_and_documents(db, clock):
    run = await save_run(RunStore(db, clock), seed=1735689600000)

    assert run.id
    assert run.input_hash == canonical_input_hash(INPUT_JSON)
    assert run.input_json == INPUT_JSON
    assert run.output_json == OUTPUT_JSON
    assert run.seed == 1735689600000
    assert run.created_at == clock.now


async def test_latest_run_orders_by_creation_time(db, clock):
    store = RunStore(db, clock)
    await save_run(store, seed=1)
    clock.advance(minutes=1)
    latest = await save_run(store, seed=2)
    await save_run(store, month=2, seed=3)

    assert (await store.get_latest_run(2025, 1)).id == latest.id
    assert [run.seed for run in await store.list_runs(2025, 1)] == [2, 1]
    assert await store.get_latest_run(2025, 3) is None


async def test_dirty_without_runs(db, clock):
    assert await RunStore(db, clock).is_dirty(2025, 1) is True


async def test_dirty_after_lock_change(db, clock):
    locks = LockStore(db, clock)
    runs = RunStore(db, clock)
    await locks.upsert(2025, 1, "2025-01-06-gyn", "e1", "planner-1")
    clock.advance(minutes=1)
    await save_run(runs)

    assert await runs.is_dirty(2025, 1) is False

    clock.advance(minutes=1)
    await locks.upsert(2025, 1, "2025-01-06-gyn", "e2", "planner-1")

    assert await runs.is_dirty(2025, 1) is True
    # Локи другого периода не влияют
    assert await runs.is_dirty(2025, 2) is True
    await save_run(runs, month=2)
    clock.advance(minutes=1)
    await locks.upsert(2025, 1, "2025-01-07-gyn", "e2", "planner-1")
    assert await runs.is_dirty(2025, 2) is False


def test_hash_ignores_created_at():
    changed_time = {**INPUT_JSON, "meta": {**INPUT_JSON["meta"], "createdAt": "2030-01-01T00:00:00"}}
    changed_slots = {**INPUT_JSON, "slots": [{"id": "2025-01-02-gyn"}]}

    assert canonical_input_hash(changed_time) == canonical_input_hash(INPUT_JSON)
    assert canonical_input_hash(changed_slots) != canonical_input_hash(INPUT_JSON)
    assert len(canonical_input_hash(INPUT_JSON)) == 64


def test_hash_ignores_key_order():
    reordered = {"slots": INPUT_JSON["slots"], "meta": dict(reversed(list(INPUT_JSON["meta"].items()))), "version": "v1"}

    assert canonical_input_hash(reordered) == canonical_input_hash(INPUT_JSON)


def test_hash_does_not_mutate_document():
    document = {"meta": {"createdAt": "2025-01-01T00:00:00"}}

    canonical_input_hash(document)

    assert document == {"meta": {"createdAt": "2025-01-01T00:00:00"}}
