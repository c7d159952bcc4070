import asyncio
import logging
import uuid

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from core.storage.accounts import StorageRetryableError, get_storage, run_atomic, set_capacity
from core.storage.classifier import StorageClass
from core.storage.events import (
    HarvestRecorded,
    InventoryItemCreated,
    InventoryItemDeleted,
    InventoryItemQuantityChanged,
)
from core.storage.ledger import apply_delta, apply_event, delta_for_event


def test_delta_for_inventory_events():
    uid = uuid.uuid4()

    assert delta_for_event(InventoryItemCreated(uid, "seeds", 50)) == (StorageClass.COLD, 5.0)
    assert delta_for_event(InventoryItemCreated(uid, "fertilizer", 20)) == (StorageClass.DRY, 2.0)
    assert delta_for_event(InventoryItemQuantityChanged(uid, "seeds", 50, 20)) == (StorageClass.COLD, -3.0)
    assert delta_for_event(InventoryItemQuantityChanged(uid, "tools", 2, 7)) == (StorageClass.DRY, 0.5)
    assert delta_for_event(InventoryItemDeleted(uid, "transplants", 12)) == (StorageClass.COLD, -1.2)


def test_delta_for_harvest_uses_crop_name():
    uid = uuid.uuid4()

    assert delta_for_event(HarvestRecorded(uid, "Tomato", 40)) == (StorageClass.COLD, 2.0)
    assert delta_for_event(HarvestRecorded(uid, "Wheat", 40)) == (StorageClass.DRY, 2.0)


def test_delta_for_unknown_event():
    with pytest.raises(TypeError):
        delta_for_event(object())


@pytest.mark.asyncio
async def test_create_update_delete_round_trip(db, user_id):
    await run_atomic(db, lambda: apply_event(db, InventoryItemCreated(user_id, "seeds", 50)))
    assert (await get_storage(db, user_id)).cold_used == 5.0

    await run_atomic(db, lambda: apply_event(db, InventoryItemQuantityChanged(user_id, "seeds", 50, 20)))
    assert (await get_storage(db, user_id)).cold_used == 2.0

    await run_atomic(db, lambda: apply_event(db, InventoryItemDeleted(user_id, "seeds", 20)))
    snapshot = await get_storage(db, user_id)
    assert snapshot.cold_used == 0.0
    assert snapshot.dry_used == 0.0


@pytest.mark.asyncio
async def test_inverse_events_cancel_out(db, user_id):
    await run_atomic(db, lambda: set_capacity(db, user_id, dry_used=3.25))

    await run_atomic(db, lambda: apply_event(db, InventoryItemCreated(user_id, "fertilizer", 17.3)))
    await run_atomic(db, lambda: apply_event(db, InventoryItemDeleted(user_id, "fertilizer", 17.3)))

    assert (await get_storage(db, user_id)).dry_used == 3.25


@pytest.mark.asyncio
async def test_harvest_adds_to_cold_for_cold_chain_crop(db, user_id):
    await run_atomic(db, lambda: apply_event(db, HarvestRecorded(user_id, "Cherry Tomato", 40)))
    await run_atomic(db, lambda: apply_event(db, HarvestRecorded(user_id, "Oats", 10)))

    snapshot = await get_storage(db, user_id)
    assert snapshot.cold_used == 2.0
    assert snapshot.dry_used == 0.5


@pytest.mark.asyncio
async def test_usage_is_clamped_at_zero(db, user_id, caplog):
    caplog.set_level(logging.WARNING, logger="core.storage.ledger")
    await run_atomic(db, lambda: set_capacity(db, user_id, dry_used=0.2))

    await run_atomic(db, lambda: apply_event(db, InventoryItemDeleted(user_id, "fertilizer", 5)))

    assert (await get_storage(db, user_id)).dry_used == 0.0
    assert "clamped to zero" in caplog.text


@pytest.mark.asyncio
async def test_zero_delta_does_not_create_account(db, user_id):
    result = await run_atomic(db, lambda: apply_event(db, InventoryItemQuantityChanged(user_id, "seeds", 5, 5)))

    assert result is None
    assert await get_storage(db, user_id) == await get_storage(db, uuid.uuid4())


@pytest.mark.asyncio
async def test_only_touches_one_users_account(db, user_id, other_user_id):
    await run_atomic(db, lambda: apply_event(db, InventoryItemCreated(user_id, "seeds", 10)))

    other = await get_storage(db, other_user_id)
    assert other.cold_used == 0.0
    assert other.dry_used == 0.0


@pytest.mark.asyncio
async def test_concurrent_deltas_are_not_lost(session_maker, user_id):
    async def add(volume_delta):
        async with session_maker() as session:
            await run_atomic(
                session,
                lambda: apply_delta(session, user_id, StorageClass.COLD, volume_delta),
                attempts=10,
            )

    await asyncio.gather(*(add(0.25) for _ in range(4)))

    async with session_maker() as session:
        assert (await get_storage(session, user_id)).cold_used == 1.0


def _locked():
    return OperationalError("UPDATE storage_accounts", {}, Exception("database is locked"))


@pytest.mark.asyncio
async def test_run_atomic_gives_up_after_all_attempts(db, user_id):
    await run_atomic(db, lambda: set_capacity(db, user_id, cold_used=1))
    calls = []

    async def work():
        calls.append(1)
        await apply_delta(db, user_id, StorageClass.COLD, 0.5)
        raise _locked()

    with pytest.raises(StorageRetryableError):
        await run_atomic(db, work, attempts=3)

    assert len(calls) == 3
    assert (await get_storage(db, user_id)).cold_used == 1.0


@pytest.mark.asyncio
async def test_run_atomic_does_not_retry_other_errors(db, user_id):
    await run_atomic(db, lambda: set_capacity(db, user_id, dry_used=2))
    calls = []
    error = ValueError("bad quantity")

    async def work():
        calls.append(1)
        await apply_event(db, InventoryItemCreated(user_id, "fertilizer", 30))
        raise error

    with pytest.raises(ValueError) as exc:
        await run_atomic(db, work, attempts=3)

    assert exc.value is error
    assert len(calls) == 1
    assert (await get_storage(db, user_id)).dry_used == 2.0


@pytest.mark.asyncio
async def test_run_atomic_commits_once_after_a_conflict(db, user_id, monkeypatch):
    calls = []
    commits = []
    commit = db.commit

    async def counting_commit():
        commits.append(1)
        await commit()

    monkeypatch.setattr(db, "commit", counting_commit)

    async def work():
        calls.append(1)
        account = await apply_delta(db, user_id, StorageClass.COLD, 0.5)
        if len(calls) == 1:
            raise StaleDataError("storage_accounts row was updated concurrently")
        return account

    await run_atomic(db, work, attempts=3)

    assert len(calls) == 2
    assert len(commits) == 1
    assert (await get_storage(db, user_id)).cold_used == 0.5
