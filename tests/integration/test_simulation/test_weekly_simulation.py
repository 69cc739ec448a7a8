"""End-to-end simulation: staff, manager, ticks and domain side effects."""

import pytest
from winery.models.params import HarvestingParams, PlantingParams
from winery.models.work import WorkCategory
from winery.services.activity_manager import ActivityManager
from winery.services.repositories import InMemoryActivityStore
from winery.services.work_estimators import HarvestingWorkInput, estimate
from tests.utils.factories import create_staff
from tests.utils.assertions import assert_valid_activity


@pytest.mark.integration
@pytest.mark.asyncio
async def test_planting_over_four_weeks(activity_manager, domain_context):
    """240 work with one 60-capacity worker plants 25% of the vines per week."""
    await domain_context.staff.save(create_staff(staff_id="st_1", skill=1.0, workforce=60))
    activity = await activity_manager.create_activity(
        WorkCategory.PLANTING,
        "Planting Barbera",
        PlantingParams(grape="Barbera", density=5000),
        total_work=240,
        target_id="vy_test",
        assigned_staff_ids=["st_1"],
    )

    densities = []
    for _ in range(3):
        report = await activity_manager.advance_week()
        assert report.failures == []
        assert_valid_activity(activity_manager.registry.get_by_id(activity.activity_id))
        densities.append((await domain_context.vineyards.get("vy_test")).density)

    assert densities == [1250, 2500, 3750]

    report = await activity_manager.advance_week()

    assert [r.activity_id for r in report.completed] == [activity.activity_id]
    assert activity_manager.get_activities() == []
    vineyard = await domain_context.vineyards.get("vy_test")
    assert vineyard.density == 5000
    assert vineyard.vine_age == 0
    assert vineyard.status == "Growing"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_partial_harvest_batches(activity_manager, domain_context):
    """1000 work at 250 per week yields four 1250 kg batches from 5000 kg."""
    await domain_context.staff.save(create_staff(staff_id="st_1", skill=1.0, workforce=250))
    activity = await activity_manager.create_activity(
        WorkCategory.HARVESTING,
        "Harvesting Barbera",
        HarvestingParams(grape="Barbera", expected_yield=5000),
        total_work=1000,
        target_id="vy_test",
        assigned_staff_ids=["st_1"],
    )

    for week in range(1, 4):
        await activity_manager.advance_week()
        current = activity_manager.registry.get_by_id(activity.activity_id)
        assert current.params.harvested_so_far == 1250 * week

    await activity_manager.advance_week()

    batches = [b for b in await domain_context.wine_batches.list_all() if b.vineyard_id == "vy_test"
               and b.batch_id != "wb_test"]
    assert [b.quantity for b in batches] == [1250, 1250, 1250, 1250]
    assert sum(b.quantity for b in batches) == 5000
    assert (await domain_context.vineyards.get("vy_test")).status == "Harvested"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_estimate_to_completion(domain_context):
    """An estimated harvest finishes in the number of weeks its progress predicts."""
    manager = ActivityManager(InMemoryActivityStore(), domain_context)
    await domain_context.staff.save(create_staff(staff_id="st_1", skill=0.8, workforce=100))
    vineyard = await domain_context.vineyards.get("vy_test")

    work = estimate(WorkCategory.HARVESTING, HarvestingWorkInput(vineyard=vineyard))
    activity = await manager.create_activity(
        WorkCategory.HARVESTING,
        f"Harvesting {vineyard.name}",
        HarvestingParams(grape=vineyard.grape, expected_yield=vineyard.expected_yield),
        estimate=work,
        target_id=vineyard.vineyard_id,
        assigned_staff_ids=["st_1"],
    )
    progress = await manager.get_activity_progress(activity.activity_id)
    weeks = int(progress.time_remaining.split()[0])

    for _ in range(weeks - 1):
        report = await manager.advance_week()
        assert report.completed == []

    report = await manager.advance_week()
    assert len(report.completed) == 1
    assert manager.get_activities() == []


@pytest.mark.integration
@pytest.mark.slow
@pytest.mark.asyncio
async def test_state_survives_restart(domain_context):
    """A new manager on the same store resumes where the old one stopped."""
    store = InMemoryActivityStore()
    await domain_context.staff.save(create_staff(staff_id="st_1", skill=1.0, workforce=60))
    first = ActivityManager(store, domain_context)
    activity = await first.create_activity(
        WorkCategory.PLANTING,
        "Planting",
        PlantingParams(grape="Barbera", density=5000),
        total_work=240,
        target_id="vy_test",
        assigned_staff_ids=["st_1"],
    )
    await first.advance_week()

    second = ActivityManager(store, domain_context)
    await second.initialize()
    resumed = second.registry.get_by_id(activity.activity_id)

    assert resumed.applied_work == 60
    assert resumed.params.planted_density == 1250
