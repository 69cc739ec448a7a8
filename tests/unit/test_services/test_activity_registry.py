"""Tests for the activity registry."""

import pytest
from winery.services.activity_registry import ActivityRegistry
from winery.services.repositories import InMemoryActivityStore
from winery.utils.errors import ActivityNotFoundError, InvalidActivityError, PersistenceError
from tests.utils.factories import create_harvesting_activity, create_planting_activity


@pytest.mark.unit
@pytest.mark.asyncio
async def test_add_and_get(registry, activity_store):
    activity = create_planting_activity()

    activity_id = await registry.add(activity)

    assert activity_id == activity.activity_id
    assert registry.get_by_id(activity_id) == activity
    assert activity_id in activity_store.records
    assert len(registry) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_add_duplicate_id_rejected(registry):
    activity = create_planting_activity()
    await registry.add(activity)

    with pytest.raises(InvalidActivityError):
        await registry.add(activity)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reads_return_copies(registry):
    activity = create_planting_activity()
    await registry.add(activity)

    copy = registry.get_by_id(activity.activity_id)
    copy.params.planted_density = 999

    assert registry.get_by_id(activity.activity_id).params.planted_density == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_by_target_and_all(registry):
    a = create_planting_activity(target_id="vy_a")
    b = create_harvesting_activity(target_id="vy_b")
    c = create_harvesting_activity(target_id="vy_a")
    for activity in (a, b, c):
        await registry.add(activity)

    assert [x.activity_id for x in registry.get_by_target("vy_a")] == [a.activity_id, c.activity_id]
    assert [x.activity_id for x in registry.get_all()] == [a.activity_id, b.activity_id, c.activity_id]
    assert registry.get_by_target("vy_missing") == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_registry_does_not_enforce_exclusivity(registry):
    """Two planting activities on one target are accepted at this level."""
    await registry.add(create_planting_activity(target_id="vy_a"))
    await registry.add(create_planting_activity(target_id="vy_a"))

    assert len(registry.get_by_target("vy_a")) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_persists(registry, activity_store):
    activity = create_planting_activity(total_work=240)
    await registry.add(activity)

    updated = await registry.update(activity.activity_id, applied_work=60)

    assert updated.applied_work == 60
    assert activity_store.records[activity.activity_id]["applied_work"] == 60


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_missing_activity(registry):
    with pytest.raises(ActivityNotFoundError):
        await registry.update("missing", applied_work=1)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_applied_work_never_decreases(registry):
    activity = create_planting_activity(total_work=240, applied_work=100)
    await registry.add(activity)

    with pytest.raises(InvalidActivityError):
        await registry.update(activity.activity_id, applied_work=50)
    assert registry.get_by_id(activity.activity_id).applied_work == 100


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_rejects_overshoot(registry):
    activity = create_planting_activity(total_work=240)
    await registry.add(activity)

    with pytest.raises(InvalidActivityError):
        await registry.update(activity.activity_id, applied_work=241)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_remove(registry, activity_store):
    activity = create_planting_activity()
    await registry.add(activity)

    assert await registry.remove(activity.activity_id) is True
    assert registry.get_by_id(activity.activity_id) is None
    assert activity.activity_id not in activity_store.records
    assert await registry.remove(activity.activity_id) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_load_replaces_content():
    existing = create_planting_activity()
    store = InMemoryActivityStore([existing])
    registry = ActivityRegistry(store)

    count = await registry.load()

    assert count == 1
    assert registry.get_by_id(existing.activity_id) == existing


@pytest.mark.unit
@pytest.mark.asyncio
async def test_save_failure_marks_unsynced(registry, activity_store):
    activity = create_planting_activity()
    activity_store.fail_saves = True

    with pytest.raises(PersistenceError):
        await registry.add(activity)

    # In-memory change stands, the write is pending
    assert registry.get_by_id(activity.activity_id) is not None
    assert registry.unsynced_ids == {activity.activity_id}

    with pytest.raises(PersistenceError):
        await registry.sync()

    activity_store.fail_saves = False
    await registry.sync()

    assert registry.unsynced_ids == set()
    assert activity.activity_id in activity_store.records


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_failure_retried_on_sync(registry, activity_store):
    activity = create_planting_activity()
    await registry.add(activity)
    activity_store.fail_deletes = True

    with pytest.raises(PersistenceError):
        await registry.remove(activity.activity_id)

    assert registry.get_by_id(activity.activity_id) is None
    assert activity.activity_id in activity_store.records

    activity_store.fail_deletes = False
    await registry.sync()

    assert activity.activity_id not in activity_store.records
    assert registry.unsynced_ids == set()
