"""Tests for per-category outcome handlers."""

import pytest
from winery.models.activity import Activity
from winery.models.game_state import GameDate
from winery.models.params import (
    BookkeepingParams,
    ClearingParams,
    CrushingParams,
    FermentationParams,
    HiringParams,
    LenderSearchParams,
    StaffSearchParams,
    UprootingParams,
)
from winery.models.work import WorkCategory
from winery.services.outcome_handlers import OUTCOME_HANDLERS, OutcomeHandler, generate_skills
from winery.utils.errors import WineryError
from tests.utils.factories import create_harvesting_activity, create_planting_activity, create_staff


@pytest.mark.unit
def test_every_category_has_a_handler():
    assert set(OUTCOME_HANDLERS) == set(WorkCategory)
    assert all(isinstance(h, OutcomeHandler) for h in OUTCOME_HANDLERS.values())


@pytest.mark.unit
@pytest.mark.asyncio
async def test_planting_progress_raises_density(domain_context):
    activity = create_planting_activity(density=5000)
    handler = OUTCOME_HANDLERS[WorkCategory.PLANTING]

    await handler.on_progress(activity, 0.25, domain_context)

    vineyard = await domain_context.vineyards.get("vy_test")
    assert vineyard.density == 1250
    assert vineyard.status == "Planting: 25%"
    assert activity.params.planted_density == 1250


@pytest.mark.unit
@pytest.mark.asyncio
async def test_planting_progress_skips_sub_vine_increase(domain_context):
    activity = create_planting_activity(density=100)
    activity.params.planted_density = 50
    vineyard = await domain_context.vineyards.get("vy_test")
    vineyard.density = 50
    await domain_context.vineyards.save(vineyard)

    # round(100 * 0.504) == 50, no change
    await OUTCOME_HANDLERS[WorkCategory.PLANTING].on_progress(activity, 0.504, domain_context)

    assert (await domain_context.vineyards.get("vy_test")).density == 50
    assert activity.params.planted_density == 50


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("season,status", [("Spring", "Growing"), ("Fall", "Growing"), ("Winter", "Planted")])
async def test_planting_complete(domain_context, season, status):
    domain_context.date = GameDate(week=4, season=season, year=2025)
    activity = create_planting_activity(density=4000)

    await OUTCOME_HANDLERS[WorkCategory.PLANTING].on_complete(activity, domain_context)

    vineyard = await domain_context.vineyards.get("vy_test")
    assert vineyard.grape == "Barbera"
    assert vineyard.density == 4000
    assert vineyard.vine_age == 0
    assert vineyard.status == status


@pytest.mark.unit
@pytest.mark.asyncio
async def test_planting_missing_vineyard(domain_context):
    activity = create_planting_activity(target_id="vy_missing")
    with pytest.raises(WineryError):
        await OUTCOME_HANDLERS[WorkCategory.PLANTING].on_progress(activity, 0.5, domain_context)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_harvest_progress_creates_batches_once(domain_context):
    activity = create_harvesting_activity(expected_yield=5000)
    handler = OUTCOME_HANDLERS[WorkCategory.HARVESTING]

    await handler.on_progress(activity, 0.25, domain_context)
    await handler.on_progress(activity, 0.5, domain_context)

    batches = [b for b in await domain_context.wine_batches.list_all() if b.batch_id in activity.params.batch_ids]
    assert [b.quantity for b in batches] == [1250, 1250]
    assert activity.params.harvested_so_far == 2500
    assert (await domain_context.vineyards.get("vy_test")).status == "Harvesting: 2500/5000"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_harvest_small_increment_deferred(domain_context):
    activity = create_harvesting_activity(expected_yield=100)
    handler = OUTCOME_HANDLERS[WorkCategory.HARVESTING]

    # 3 kg is below the partial harvest minimum
    await handler.on_progress(activity, 0.03, domain_context)
    assert activity.params.batch_ids == []

    await handler.on_progress(activity, 0.1, domain_context)
    assert activity.params.harvested_so_far == pytest.approx(10)
    assert len(activity.params.batch_ids) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_harvest_complete_takes_remainder(domain_context):
    activity = create_harvesting_activity(expected_yield=5000)
    activity.params.harvested_so_far = 3750

    await OUTCOME_HANDLERS[WorkCategory.HARVESTING].on_complete(activity, domain_context)

    assert activity.params.harvested_so_far == 5000
    batch = await domain_context.wine_batches.get(activity.params.batch_ids[-1])
    assert batch.quantity == 1250
    assert batch.harvested_season == "Spring"
    vineyard = await domain_context.vineyards.get("vy_test")
    assert vineyard.status == "Harvested"
    assert vineyard.ripeness == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_harvest_complete_in_winter_without_remainder(domain_context):
    domain_context.date = GameDate(week=2, season="Winter", year=2025)
    activity = create_harvesting_activity(expected_yield=5000)
    activity.params.harvested_so_far = 4999.5

    await OUTCOME_HANDLERS[WorkCategory.HARVESTING].on_complete(activity, domain_context)

    assert activity.params.batch_ids == []
    assert (await domain_context.vineyards.get("vy_test")).status == "Dormant"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_clearing_complete(domain_context):
    vineyard = await domain_context.vineyards.get("vy_test")
    vineyard.years_since_last_clearing = 4
    await domain_context.vineyards.save(vineyard)
    activity = Activity(
        category=WorkCategory.CLEARING,
        title="Clearing",
        target_id="vy_test",
        total_work=100,
        params=ClearingParams(tasks=["clear-vegetation"]),
    )

    await OUTCOME_HANDLERS[WorkCategory.CLEARING].on_complete(activity, domain_context)

    vineyard = await domain_context.vineyards.get("vy_test")
    assert vineyard.years_since_last_clearing == 0
    assert vineyard.status == "Cleared"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_uprooting_complete(domain_context):
    activity = Activity(
        category=WorkCategory.UPROOTING,
        title="Uprooting",
        target_id="vy_test",
        total_work=100,
        params=UprootingParams(),
    )

    await OUTCOME_HANDLERS[WorkCategory.UPROOTING].on_complete(activity, domain_context)

    vineyard = await domain_context.vineyards.get("vy_test")
    assert vineyard.grape is None
    assert vineyard.density == 0
    assert vineyard.status == "Barren"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_crushing_and_fermentation(domain_context):
    crushing = Activity(
        category=WorkCategory.CRUSHING,
        title="Crushing",
        target_id="wb_test",
        total_work=100,
        params=CrushingParams(batch_id="wb_test"),
    )
    await OUTCOME_HANDLERS[WorkCategory.CRUSHING].on_complete(crushing, domain_context)
    assert (await domain_context.wine_batches.get("wb_test")).state == "must_ready"

    fermentation = Activity(
        category=WorkCategory.FERMENTATION,
        title="Fermentation",
        target_id="wb_test",
        total_work=100,
        params=FermentationParams(batch_id="wb_test", method="Extended Maceration", temperature="Cool", cost=1000),
    )
    await OUTCOME_HANDLERS[WorkCategory.FERMENTATION].on_complete(fermentation, domain_context)

    batch = await domain_context.wine_batches.get("wb_test")
    assert batch.state == "fermenting"
    assert batch.fermentation_method == "Extended Maceration"
    state = await domain_context.game_state.load()
    assert state.money == 99000
    assert state.transactions[-1].amount == -1000


@pytest.mark.unit
@pytest.mark.asyncio
async def test_crushing_missing_batch(domain_context):
    activity = Activity(
        category=WorkCategory.CRUSHING,
        title="Crushing",
        total_work=100,
        params=CrushingParams(batch_id="wb_missing"),
    )
    with pytest.raises(WineryError):
        await OUTCOME_HANDLERS[WorkCategory.CRUSHING].on_complete(activity, domain_context)


@pytest.mark.unit
def test_generated_skills_in_range():
    import random
    rng = random.Random(7)
    for _ in range(50):
        skills = generate_skills(rng, 0.5, [])
        for value in (skills.field, skills.winery, skills.administration, skills.sales, skills.maintenance):
            assert 0.2 <= value <= 0.8


@pytest.mark.unit
@pytest.mark.asyncio
async def test_staff_search_complete(domain_context):
    activity = Activity(
        category=WorkCategory.STAFF_SEARCH,
        title="Staff search",
        total_work=100,
        params=StaffSearchParams(number_of_candidates=4, skill_level=0.7, specializations=["winery"], search_cost=500),
    )

    await OUTCOME_HANDLERS[WorkCategory.STAFF_SEARCH].on_complete(activity, domain_context)

    assert len(activity.params.candidates) == 4
    assert all(c.specializations == ["winery"] for c in activity.params.candidates)
    assert len(await domain_context.staff_candidates.list_all()) == 4
    assert (await domain_context.game_state.load()).money == 99500
    assert "found 4 candidates" in domain_context.notifications.messages[-1]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_hiring_complete(domain_context):
    candidate = create_staff(staff_id="st_new")
    activity = Activity(
        category=WorkCategory.ADMINISTRATION,
        title=f"Hiring {candidate.name}",
        total_work=30,
        params=HiringParams(candidate=candidate),
    )

    await OUTCOME_HANDLERS[WorkCategory.ADMINISTRATION].on_complete(activity, domain_context)

    assert await domain_context.staff.get("st_new") == candidate


@pytest.mark.unit
@pytest.mark.asyncio
async def test_lender_search_complete(domain_context):
    activity = Activity(
        category=WorkCategory.LENDER_SEARCH,
        title="Lender search",
        total_work=45,
        params=LenderSearchParams(number_of_offers=5, lender_types=["Bank"], search_cost=500),
    )

    await OUTCOME_HANDLERS[WorkCategory.LENDER_SEARCH].on_complete(activity, domain_context)

    offers = await domain_context.loan_offers.list_all()
    assert len(offers) == 5
    assert all(o.lender_type == "Bank" for o in offers)
    assert all(0.04 <= o.interest_rate <= 0.08 for o in offers)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_bookkeeping_complete_notifies(domain_context):
    activity = Activity(
        category=WorkCategory.BOOKKEEPING,
        title="Bookkeeping",
        total_work=50,
        params=BookkeepingParams(season="Winter", year=2024, transaction_count=12),
    )

    await OUTCOME_HANDLERS[WorkCategory.BOOKKEEPING].on_complete(activity, domain_context)

    assert domain_context.notifications.messages == [
        "Bookkeeping for Winter 2024 complete (12 transactions processed)."
    ]
